from datetime import datetime
from uuid import UUID
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from app.domain.ticketing.models import Ticket
from .models import Purchase


async def get_purchase_with_event(db: AsyncSession, purchase_id: UUID) -> Purchase | None:
    result = await db.execute(
        select(Purchase)
        .options(selectinload(Purchase.ticket).selectinload(Ticket.event))
        .where(Purchase.id == purchase_id)
    )
    return result.scalars().first()


async def create_purchases(db: AsyncSession, rows: list[dict]) -> list[Purchase]:
    purchases = [Purchase(**row) for row in rows]
    db.add_all(purchases)
    return purchases


async def mark_used_if_unused(db: AsyncSession, purchase_id: UUID, used_at: datetime) -> bool:
    result = await db.execute(
        update(Purchase)
        .where(Purchase.id == purchase_id, Purchase.is_used.is_(False))
        .values(is_used=True, used_at=used_at)
        .returning(Purchase.id)
    )
    return result.scalar_one_or_none() is not None
