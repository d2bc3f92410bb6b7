"""Telegram webhook ingress."""
import logging
from typing import Optional

from fastapi import APIRouter, Header, HTTPException, Request
from telegram import Update

from potluck.config import settings

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/webhook")
async def telegram_webhook(
    request: Request,
    x_telegram_bot_api_secret_token: Optional[str] = Header(default=None),
):
    """Hand one Telegram update to the bot application."""
    application = getattr(request.app.state, "telegram", None)
    if application is None:
        raise HTTPException(status_code=503, detail="Bot is not configured")
    if settings.WEBHOOK_SECRET and x_telegram_bot_api_secret_token != settings.WEBHOOK_SECRET:
        logger.warning("Rejected webhook call with a bad secret token")
        raise HTTPException(status_code=403, detail="Invalid secret token")

    update = Update.de_json(await request.json(), application.bot)
    await application.process_update(update)
    return {"ok": True}
