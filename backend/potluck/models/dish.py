"""Dish and Allergen ORM models (many-to-many through dish_allergens)."""
import uuid
import enum
from datetime import datetime, timezone
from sqlalchemy import Column, String, Text, Integer, Boolean, DateTime, ForeignKey, Table, Enum as SAEnum
from sqlalchemy.orm import relationship
from potluck.database import Base


class DishCategory(str, enum.Enum):
    main = "main"
    side = "side"
    dessert = "dessert"
    drink = "drink"
    other = "other"


dish_allergens = Table(
    "dish_allergens",
    Base.metadata,
    Column("dish_id", String(36), ForeignKey("dishes.id", ondelete="CASCADE"), primary_key=True),
    Column("allergen_id", Integer, ForeignKey("allergens.id"), primary_key=True),
)


class Allergen(Base):
    __tablename__ = "allergens"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(50), nullable=False, unique=True)
    display_name = Column(String(100), nullable=False)
    # True: describes the dish (vegan); False: a hazard to the eater (nuts)
    is_dietary_preference = Column(Boolean, nullable=False, default=False)


class Dish(Base):
    __tablename__ = "dishes"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    rsvp_id = Column(String(36), ForeignKey("rsvps.id"), nullable=False, index=True)
    category = Column(SAEnum(DishCategory), nullable=False)
    description = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    rsvp = relationship("Rsvp", back_populates="dishes")
    allergens = relationship("Allergen", secondary=dish_allergens, lazy="selectin", order_by="Allergen.id")
