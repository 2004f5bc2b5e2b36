from uuid import UUID
from fastapi import APIRouter, Depends, status
from typing import Annotated
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.database import get_db
from app.core.dependencies.auth import get_current_user_with_roles
from app.core.dependencies.integrations import get_xendit_client
from app.domain.payments.schemas import PayoutReadDTO
from app.integrations.xendit_client import XenditClient
from app.services import payout_service


router = APIRouter(prefix="/admin/payments", tags=["admin"])
db_dependency = Annotated[AsyncSession, Depends(get_db)]


@router.post(
    "/{payment_id}/payout",
    status_code=status.HTTP_200_OK,
    response_model=PayoutReadDTO,
    dependencies=[Depends(get_current_user_with_roles("ADMIN"))]
)
async def retry_payout(
        payment_id: UUID,
        db: db_dependency,
        gateway: Annotated[XenditClient, Depends(get_xendit_client)],
):
    return await payout_service.retry_payout(db, payment_id, gateway=gateway)
