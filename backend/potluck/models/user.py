"""User ORM model, keyed by the Telegram user id."""
from datetime import datetime, timezone
from sqlalchemy import Column, BigInteger, String, DateTime
from potluck.database import Base


class User(Base):
    __tablename__ = "users"

    tg_id = Column(BigInteger, primary_key=True, autoincrement=False)
    username = Column(String(64), nullable=True)
    display_name = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
