"""User store: opportunistic profile sync on every interaction."""
import logging
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from potluck.models.user import User

logger = logging.getLogger(__name__)


def upsert_user(db: Session, tg_id: int, username: Optional[str], display_name: Optional[str]) -> User:
    """Create the user or refresh their username / display name."""
    user = db.query(User).filter(User.tg_id == tg_id).first()
    if user is None:
        user = User(tg_id=tg_id, username=username, display_name=display_name)
        db.add(user)
        logger.info("Registered user %s (%s)", tg_id, username or display_name)
    else:
        user.username = username
        user.display_name = display_name
    db.commit()
    db.refresh(user)
    return user


def get_user_by_id(db: Session, tg_id: int) -> Optional[User]:
    return db.query(User).filter(User.tg_id == tg_id).first()


def get_users_by_ids(db: Session, tg_ids: Iterable[int]) -> dict[int, User]:
    """Map each known id to its User. An empty input never hits the database."""
    ids = list(set(tg_ids))
    if not ids:
        return {}
    users = db.query(User).filter(User.tg_id.in_(ids)).all()
    return {user.tg_id: user for user in users}
