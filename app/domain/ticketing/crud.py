from uuid import UUID
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from app.domain.events.models import Event
from .models import Ticket


async def get_ticket(db: AsyncSession, ticket_id: UUID) -> Ticket | None:
    result = await db.execute(select(Ticket).where(Ticket.id == ticket_id))
    return result.scalars().first()


async def get_ticket_with_event(db: AsyncSession, ticket_id: UUID) -> Ticket | None:
    result = await db.execute(
        select(Ticket)
        .options(selectinload(Ticket.event).selectinload(Event.categories))
        .where(Ticket.id == ticket_id)
    )
    return result.scalars().first()
