"""Run the bot with long polling: ``python -m potluck.bot``."""
import logging

from telegram import Update

from potluck.bot.application import build_application
from potluck.config import settings
from potluck.database import Base, SessionLocal, engine
from potluck.models import dish, event, rsvp, user  # noqa: F401
from potluck.services.rsvp_service import seed_allergens

logger = logging.getLogger("potluck.bot")


def main():
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=settings.LOG_LEVEL,
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    if not settings.BOT_TOKEN:
        raise RuntimeError("BOT_TOKEN is missing. Put it in .env as BOT_TOKEN=...")

    if settings.DATABASE_URL.startswith("sqlite"):
        Base.metadata.create_all(bind=engine)
    with SessionLocal() as db:
        seed_allergens(db)

    application = build_application(settings, SessionLocal)
    logger.info("Potluck bot starting (polling)")
    application.run_polling(allowed_updates=Update.ALL_TYPES, drop_pending_updates=True)


if __name__ == "__main__":
    main()
