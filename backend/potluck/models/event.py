"""Event ORM model."""
import uuid
import enum
from datetime import datetime, timezone
from sqlalchemy import Column, String, Text, DateTime, Integer, Boolean, BigInteger, ForeignKey, Enum as SAEnum
from sqlalchemy.orm import relationship
from potluck.database import Base


class EventStatus(str, enum.Enum):
    active = "active"
    cancelled = "cancelled"
    completed = "completed"


class FoodMode(str, enum.Enum):
    categories = "categories"
    slots = "slots"


def _now():
    return datetime.now(timezone.utc)


class Event(Base):
    __tablename__ = "events"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    creator_id = Column(BigInteger, ForeignKey("users.tg_id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    location = Column(String(500), nullable=True)
    event_date = Column(DateTime(timezone=True), nullable=True)
    max_attendees = Column(Integer, nullable=True)  # NULL = unlimited
    allow_guests = Column(Boolean, nullable=False, default=True)
    food_mode = Column(SAEnum(FoodMode), nullable=False, default=FoodMode.categories)
    status = Column(SAEnum(EventStatus), nullable=False, default=EventStatus.active)
    share_token = Column(String(32), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)

    rsvps = relationship("Rsvp", back_populates="event", cascade="all, delete-orphan")
