from uuid import UUID
from fastapi import APIRouter, Depends, Response, status
from typing import Annotated
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.database import get_db
from app.core.dependencies.auth import get_current_user_with_roles
from app.core.dependencies.integrations import get_redemption_signer
from app.core.security import RedemptionSigner
from app.domain.users.models import User
from app.domain.purchases.schemas import RedemptionTokenReadDTO, RedemptionValidateDTO, RedemptionResultDTO
from app.services import redemption_service


router = APIRouter(prefix="/purchases", tags=["purchases"])
db_dependency = Annotated[AsyncSession, Depends(get_db)]
signer_dependency = Annotated[RedemptionSigner, Depends(get_redemption_signer)]


@router.get(
    "/{purchase_id}/redemption-token",
    status_code=status.HTTP_200_OK,
    response_model=RedemptionTokenReadDTO,
)
async def get_redemption_token(
        purchase_id: UUID,
        db: db_dependency,
        user: Annotated[User, Depends(get_current_user_with_roles("ATTENDEE", "ORGANIZER", "ADMIN"))],
        signer: signer_dependency,
):
    return await redemption_service.issue_redemption_token(db, user, purchase_id, signer=signer)


@router.get(
    "/{purchase_id}/redemption-qr",
    status_code=status.HTTP_200_OK,
    response_class=Response,
    responses={200: {"content": {"image/png": {}}}},
)
async def get_redemption_qr(
        purchase_id: UUID,
        db: db_dependency,
        user: Annotated[User, Depends(get_current_user_with_roles("ATTENDEE", "ORGANIZER", "ADMIN"))],
        signer: signer_dependency,
):
    png = await redemption_service.issue_redemption_qr(db, user, purchase_id, signer=signer)
    return Response(content=png, media_type="image/png")


@router.post(
    "/validate",
    status_code=status.HTTP_200_OK,
    response_model=RedemptionResultDTO,
)
async def validate_ticket(
        schema: RedemptionValidateDTO,
        db: db_dependency,
        user: Annotated[User, Depends(get_current_user_with_roles("ORGANIZER"))],
        signer: signer_dependency,
):
    return await redemption_service.validate_redemption_token(db, user, schema.token, signer=signer)
