from datetime import datetime, timezone
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from app.domain.coupons import crud as coupons_crud
from app.domain.coupons.models import Coupon, UserCoupon
from app.domain.ticketing import crud as ticketing_crud
from app.domain.ticketing.models import Ticket
from app.domain.users import crud as users_crud
from app.domain.users.models import User
from app.domain.exceptions import NotFound, InvalidState, Unclaimed, AlreadyUsed


async def require_ticket(db: AsyncSession, ticket_id: UUID, *, with_event: bool = False) -> Ticket:
    if with_event:
        ticket = await ticketing_crud.get_ticket_with_event(db, ticket_id)
    else:
        ticket = await ticketing_crud.get_ticket(db, ticket_id)
    if not ticket:
        raise NotFound("Ticket not found", ctx={"ticket_id": ticket_id})
    return ticket


async def require_user(db: AsyncSession, user_id: UUID) -> User:
    user = await users_crud.get_user(db, user_id)
    if not user:
        raise NotFound("User not found", ctx={"user_id": user_id})
    return user


async def require_coupon(db: AsyncSession, coupon_id: UUID) -> Coupon:
    coupon = await coupons_crud.get_coupon(db, coupon_id)
    if not coupon:
        raise NotFound("Coupon not found", ctx={"coupon_id": coupon_id})
    return coupon


async def require_redeemable_coupon(
        db: AsyncSession,
        user_id: UUID,
        coupon_id: UUID,
        now: datetime | None = None
) -> tuple[Coupon, UserCoupon]:
    """Coupon the user may spend right now: inside its window, claimed and not yet used."""
    now = now or datetime.now(timezone.utc)
    coupon = await require_coupon(db, coupon_id)

    if not coupon.is_valid_at(now):
        raise InvalidState(
            "Coupon is not currently valid",
            ctx={"coupon_id": coupon_id, "valid_at": coupon.valid_at, "expired_at": coupon.expired_at}
        )

    claim = await coupons_crud.get_user_coupon(db, user_id, coupon_id)
    if not claim:
        raise Unclaimed("Coupon not claimed by user", ctx={"coupon_id": coupon_id})
    if claim.is_used:
        raise AlreadyUsed("Coupon has already been used", ctx={"coupon_id": coupon_id})

    return coupon, claim
