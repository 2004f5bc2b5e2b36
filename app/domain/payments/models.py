import uuid
from app.core.database import Base
from enum import Enum
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import Text, ForeignKey, Integer, TIMESTAMP, func, Enum as SQLEnum, CheckConstraint, String, Uuid


class PayoutStatus(str, Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"


class Payment(Base):
    __tablename__ = "payments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    method: Mapped[str] = mapped_column(Text, nullable=False)
    # Gateway status as delivered in the callback, e.g. PAID or SETTLED
    status: Mapped[str] = mapped_column(Text, nullable=False)
    transaction_id: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    gateway_invoice_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    user_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    coupon_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("coupons.id"), nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=False)

    purchases: Mapped[list["Purchase"]] = relationship(back_populates="payment")
    payout: Mapped["Payout | None"] = relationship(back_populates="payment", uselist=False)

    __table_args__ = (
        CheckConstraint("amount >= 0", name="chk_amount_nonneg"),
    )


class Payout(Base):
    __tablename__ = "payouts"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    payment_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("payments.id", ondelete="RESTRICT"), nullable=False,
                                                  unique=True)
    reference: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    organizer_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    channel_code: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[PayoutStatus] = mapped_column(SQLEnum(PayoutStatus, name="payout_status"),
                                                 nullable=False, server_default=PayoutStatus.PENDING.value)
    gateway_payout_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    failure_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )

    payment: Mapped["Payment"] = relationship(back_populates="payout", lazy="selectin")
