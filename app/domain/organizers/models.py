import uuid
from sqlalchemy import Text, String, ForeignKey, TIMESTAMP, func
from app.core.database import Base
from sqlalchemy.orm import mapped_column, Mapped, relationship
from datetime import datetime


class PayoutAccount(Base):
    __tablename__ = 'payout_accounts'

    user_id: Mapped[uuid.UUID] = mapped_column(ForeignKey('users.id', ondelete='CASCADE'), primary_key=True)
    # Xendit payout channel, e.g. ID_BCA, ID_OVO
    channel_code: Mapped[str] = mapped_column(Text, nullable=False)
    account_number: Mapped[str] = mapped_column(Text, nullable=False)
    account_holder_name: Mapped[str] = mapped_column(Text, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, server_default="IDR")
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True),
                                                 server_default=func.now(),
                                                 nullable=False)

    user: Mapped['User'] = relationship(back_populates='payout_account', lazy='selectin')
