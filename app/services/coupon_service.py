from datetime import datetime, timezone
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.auditing import AuditSpan
from app.domain.coupons import crud
from app.domain.coupons.models import Coupon
from app.domain.exceptions import NotFound, Conflict, InvalidState
from app.domain.users.models import User


async def claim_coupon(db: AsyncSession, user: User, code: str) -> Coupon:
    async with AuditSpan(scope="COUPONS", action="CLAIM", object_type="coupon", meta={"code": code}) as span:
        # Row lock serialises concurrent claims against usage_limit
        coupon = await crud.get_coupon_by_code_for_update(db, code)
        if not coupon:
            raise NotFound("Coupon not found", ctx={"code": code})
        span.object_id = coupon.id
        span.coupon_id = coupon.id

        now = datetime.now(timezone.utc)
        if now >= coupon.expired_at:
            raise InvalidState("Coupon has expired", ctx={"coupon_id": coupon.id, "expired_at": coupon.expired_at})

        claims = await crud.count_claims(db, coupon.id)
        if claims >= coupon.usage_limit:
            raise Conflict(
                "Coupon usage limit reached",
                ctx={"coupon_id": coupon.id, "usage_limit": coupon.usage_limit}
            )

        if await crud.get_user_coupon(db, user.id, coupon.id):
            raise Conflict("You have already claimed this coupon", ctx={"coupon_id": coupon.id})

        await crud.create_user_coupon(db, user.id, coupon.id)
        try:
            await db.flush()
        except IntegrityError as e:
            raise Conflict("You have already claimed this coupon", ctx={"coupon_id": coupon.id}) from e

        span.meta.update({"claims": claims + 1})
        return coupon
