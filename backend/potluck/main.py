"""FastAPI application entry point (webhook mode)."""
import logging

from fastapi import FastAPI

from potluck.bot.application import build_application
from potluck.config import settings
from potluck.database import Base, SessionLocal, engine
from potluck.routers import telegram
from potluck.services.rsvp_service import seed_allergens

# Import all models so Base.metadata knows about them
from potluck.models.user import User      # noqa: F401
from potluck.models.event import Event    # noqa: F401
from potluck.models.rsvp import Rsvp      # noqa: F401
from potluck.models.dish import Allergen, Dish  # noqa: F401

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Potluck Bot",
    description="Telegram bot for organizing potlucks: events, RSVPs, dishes and allergens",
    version="0.1.0",
)
app.state.telegram = None

app.include_router(telegram.router, prefix="/telegram", tags=["Telegram"])


@app.on_event("startup")
async def on_startup():
    """Create tables (SQLite dev mode), seed allergens and start the bot."""
    if settings.DATABASE_URL.startswith("sqlite"):
        Base.metadata.create_all(bind=engine)
    with SessionLocal() as db:
        seed_allergens(db)

    if not settings.BOT_TOKEN:
        logger.warning("BOT_TOKEN is not set; the webhook will answer 503")
        return

    application = build_application(settings, SessionLocal, webhook=True)
    await application.initialize()
    await application.start()
    if settings.WEBHOOK_URL:
        await application.bot.set_webhook(
            url=f"{settings.WEBHOOK_URL.rstrip('/')}/telegram/webhook",
            secret_token=settings.WEBHOOK_SECRET or None,
        )
        logger.info("Webhook registered at %s", settings.WEBHOOK_URL)
    app.state.telegram = application


@app.on_event("shutdown")
async def on_shutdown():
    application = app.state.telegram
    if application is not None:
        await application.stop()
        await application.shutdown()
        app.state.telegram = None


@app.get("/api/health")
def health_check():
    return {"status": "ok", "bot": app.state.telegram is not None}
