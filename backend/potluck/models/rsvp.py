"""Rsvp ORM model: one attendance answer per (event, user)."""
import uuid
import enum
from datetime import datetime, timezone
from sqlalchemy import (
    Column, String, Text, Integer, BigInteger, DateTime, ForeignKey,
    CheckConstraint, UniqueConstraint, Enum as SAEnum,
)
from sqlalchemy.orm import relationship
from potluck.database import Base


class RsvpStatus(str, enum.Enum):
    going = "going"
    maybe = "maybe"
    declined = "declined"


def _now():
    return datetime.now(timezone.utc)


class Rsvp(Base):
    __tablename__ = "rsvps"
    __table_args__ = (
        UniqueConstraint("event_id", "user_id", name="uq_rsvps_event_user"),
        CheckConstraint("guest_count >= 0", name="ck_rsvps_guest_count"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    event_id = Column(String(36), ForeignKey("events.id"), nullable=False, index=True)
    user_id = Column(BigInteger, ForeignKey("users.tg_id"), nullable=False)
    status = Column(SAEnum(RsvpStatus), nullable=False)
    guest_count = Column(Integer, nullable=False, default=0)
    guest_names = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)

    event = relationship("Event", back_populates="rsvps")
    dishes = relationship("Dish", back_populates="rsvp", cascade="all, delete-orphan")
