from typing import AsyncIterator
from .config import DATABASE_URL
from sqlalchemy.orm import declarative_base
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession

# Fulfillment and redemption rely on row locks taken under READ COMMITTED
engine = create_async_engine(DATABASE_URL, pool_pre_ping=True, isolation_level="READ COMMITTED")

AsyncSessionLocal = async_sessionmaker(bind=engine, expire_on_commit=False)

Base = declarative_base()


async def get_db() -> AsyncIterator[AsyncSession]:
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
