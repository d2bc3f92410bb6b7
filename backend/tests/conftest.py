"""Pytest fixtures: file-backed SQLite database, fresh schema per test."""
import os

# Keep the app's own engine on the test database and the bot transport off.
os.environ["DATABASE_URL"] = "sqlite:///./test.db"
os.environ["BOT_TOKEN"] = ""
os.environ["WEBHOOK_URL"] = ""
os.environ["WEBHOOK_SECRET"] = ""

import pytest  # noqa: E402
from sqlalchemy import create_engine, event  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from potluck.database import Base  # noqa: E402
from potluck.main import app  # noqa: E402
from potluck.dialogue.messages import Sender  # noqa: E402
from potluck.schemas.event import EventCreate  # noqa: E402
from potluck.services import event_service, user_service  # noqa: E402
from potluck.services.rsvp_service import seed_allergens  # noqa: E402

# Import all models so they register with Base.metadata
from potluck.models.user import User              # noqa: F401,E402
from potluck.models.event import Event            # noqa: F401,E402
from potluck.models.rsvp import Rsvp              # noqa: F401,E402
from potluck.models.dish import Allergen, Dish    # noqa: F401,E402

SQLITE_URL = "sqlite:///./test.db"

CREATOR = Sender(user_id=1001, username="alice", display_name="Alice")
GUEST = Sender(user_id=2002, username="bob", display_name="Bob")
OTHER = Sender(user_id=3003, username=None, display_name="Carol")


@pytest.fixture(scope="function")
def db_engine():
    """Create a fresh SQLite engine for each test."""
    engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=db_engine)


@pytest.fixture(scope="function")
def db(session_factory):
    """Yield a database session with the reference allergens seeded."""
    session = session_factory()
    seed_allergens(session)
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(db_engine):
    """FastAPI TestClient; startup runs against the same test database."""
    with TestClient(app) as c:
        yield c
    app.state.telegram = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def create_test_user(db, sender: Sender = CREATOR) -> User:
    """Helper: upsert the sender as a user."""
    return user_service.upsert_user(db, sender.user_id, sender.username, sender.display_name)


def create_test_event(db, creator: Sender = CREATOR, **fields) -> Event:
    """Helper: create an active event owned by ``creator``."""
    create_test_user(db, creator)
    payload = {"creator_id": creator.user_id, "title": "Summer Potluck"}
    payload.update(fields)
    return event_service.create_event(db, EventCreate(**payload))
