from uuid import UUID
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from .models import Payment, Payout


async def get_payment(db: AsyncSession, payment_id: UUID) -> Payment | None:
    result = await db.execute(select(Payment).where(Payment.id == payment_id))
    return result.scalars().first()


async def get_payment_by_transaction_id(db: AsyncSession, transaction_id: str) -> Payment | None:
    result = await db.execute(select(Payment).where(Payment.transaction_id == transaction_id))
    return result.scalars().first()


async def get_payout_for_payment(db: AsyncSession, payment_id: UUID, *, for_update: bool = False) -> Payout | None:
    stmt = select(Payout).where(Payout.payment_id == payment_id)
    if for_update:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    return result.scalars().first()


async def create_payment(db: AsyncSession, data: dict) -> Payment:
    payment = Payment(**data)
    db.add(payment)
    return payment


async def update_payout(payout: Payout, data: dict) -> Payout:
    for key, value in data.items():
        setattr(payout, key, value)
    return payout
