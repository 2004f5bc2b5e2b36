import uuid
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import Text, ForeignKey, Integer, TIMESTAMP, func, CheckConstraint, Uuid
from app.core.database import Base


class Ticket(Base):
    __tablename__ = "tickets"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    event_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("events.id", ondelete="RESTRICT"), nullable=False,
                                                index=True)
    type: Mapped[str] = mapped_column(Text, nullable=False)
    price: Mapped[int] = mapped_column(Integer, nullable=False)
    quantity_limit: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=False)

    event: Mapped["Event"] = relationship(back_populates="tickets", lazy="selectin")

    __table_args__ = (
        CheckConstraint("price >= 0", name="chk_ticket_price_nonneg"),
        CheckConstraint("quantity_limit IS NULL OR quantity_limit > 0", name="chk_ticket_quantity_limit_pos"),
    )
