from uuid import UUID
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from .models import Coupon, UserCoupon


async def get_coupon(db: AsyncSession, coupon_id: UUID) -> Coupon | None:
    result = await db.execute(select(Coupon).where(Coupon.id == coupon_id))
    return result.scalars().first()


async def get_coupon_by_code_for_update(db: AsyncSession, code: str) -> Coupon | None:
    result = await db.execute(select(Coupon).where(Coupon.code == code).with_for_update())
    return result.scalars().first()


async def get_user_coupon(
        db: AsyncSession,
        user_id: UUID,
        coupon_id: UUID,
        *,
        for_update: bool = False
) -> UserCoupon | None:
    stmt = select(UserCoupon).where(UserCoupon.user_id == user_id, UserCoupon.coupon_id == coupon_id)
    if for_update:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    return result.scalars().first()


async def count_claims(db: AsyncSession, coupon_id: UUID) -> int:
    total = await db.scalar(select(func.count()).select_from(UserCoupon).where(UserCoupon.coupon_id == coupon_id))
    return int(total or 0)


async def create_user_coupon(db: AsyncSession, user_id: UUID, coupon_id: UUID) -> UserCoupon:
    user_coupon = UserCoupon(user_id=user_id, coupon_id=coupon_id, is_used=False)
    db.add(user_coupon)
    return user_coupon
