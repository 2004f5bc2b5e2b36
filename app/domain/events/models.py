import uuid
from sqlalchemy.orm import mapped_column, Mapped, relationship
from sqlalchemy import Text, ForeignKey, CheckConstraint, TIMESTAMP, func, Uuid
from app.core.database import Base
from datetime import datetime


class Category(Base):
    __tablename__ = "categories"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(Text, nullable=False, unique=True)

    events: Mapped[list['Event']] = relationship(secondary="event_categories", back_populates='categories')


class Event(Base):
    __tablename__ = "events"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    organizer_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete='RESTRICT'),
        nullable=False,
        index=True)
    start_time: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    end_time: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    location: Mapped[str | None] = mapped_column(Text, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=False)

    organizer: Mapped['User'] = relationship(lazy='selectin')
    categories: Mapped[list['Category']] = relationship(secondary="event_categories", back_populates='events',
                                                        lazy='selectin')
    tickets: Mapped[list['Ticket']] = relationship(back_populates='event')

    __table_args__ = (
        CheckConstraint("end_time > start_time", name="chk_event_time_range"),
    )
