from fastapi import APIRouter, Depends, status
from typing import Annotated
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.database import get_db
from app.core.dependencies.auth import get_current_user_with_roles
from app.domain.users.models import User
from app.domain.coupons.schemas import CouponClaimDTO, CouponClaimReadDTO
from app.services import coupon_service


router = APIRouter(prefix="/coupons", tags=["coupons"])
db_dependency = Annotated[AsyncSession, Depends(get_db)]


@router.post(
    "/claim",
    status_code=status.HTTP_201_CREATED,
    response_model=CouponClaimReadDTO,
)
async def claim_coupon(
        schema: CouponClaimDTO,
        db: db_dependency,
        user: Annotated[User, Depends(get_current_user_with_roles("ATTENDEE", "ORGANIZER", "ADMIN"))],
):
    return await coupon_service.claim_coupon(db, user, schema.code)
