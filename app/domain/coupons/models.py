import uuid
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import Text, ForeignKey, Integer, Boolean, TIMESTAMP, func, text, CheckConstraint, Uuid
from app.core.database import Base


class Coupon(Base):
    __tablename__ = "coupons"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    code: Mapped[str | None] = mapped_column(Text, nullable=True, unique=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    discount: Mapped[int] = mapped_column(Integer, nullable=False)
    usage_limit: Mapped[int] = mapped_column(Integer, nullable=False)
    valid_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    expired_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=False)

    claims: Mapped[list["UserCoupon"]] = relationship(back_populates="coupon")

    __table_args__ = (
        CheckConstraint("discount BETWEEN 0 AND 100", name="chk_coupon_discount_range"),
        CheckConstraint("usage_limit >= 0", name="chk_coupon_usage_limit_nonneg"),
        CheckConstraint("expired_at > valid_at", name="chk_coupon_validity_range"),
    )

    def is_valid_at(self, moment: datetime) -> bool:
        return self.valid_at <= moment < self.expired_at


class UserCoupon(Base):
    __tablename__ = "user_coupons"

    user_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    coupon_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("coupons.id", ondelete="CASCADE"), primary_key=True,
                                                 index=True)
    is_used: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=text("false"))
    claimed_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=False)

    coupon: Mapped["Coupon"] = relationship(back_populates="claims", lazy="selectin")
