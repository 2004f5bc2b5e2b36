from uuid import UUID
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from .models import PayoutAccount


async def get_payout_account(db: AsyncSession, organizer_id: UUID) -> PayoutAccount | None:
    result = await db.execute(select(PayoutAccount).where(PayoutAccount.user_id == organizer_id))
    return result.scalars().first()
