"""Telegram handlers and application wiring.

Routes commands, deep-link payloads, button presses, plain messages and
inline queries. Dialogue input goes through the DialogueRunner; the other
paths (redirects, details, inline cards, event management) are read-mostly
and delegate to ``potluck.bot.views``.
"""
import asyncio
import logging

from telegram import (
    InlineQueryResultArticle,
    InlineQueryResultsButton,
    InputTextMessageContent,
    Update,
)
from telegram.constants import ParseMode
from telegram.ext import (
    Application,
    CallbackQueryHandler,
    CommandHandler,
    ContextTypes,
    InlineQueryHandler,
    MessageHandler,
    filters,
)

from potluck.bot import views
from potluck.bot.keyboards import to_markup
from potluck.bot.runner import DialogueRunner
from potluck.dialogue.callbacks import DetailsLink, EditEvent, RsvpLink, SetEventStatus, parse_callback
from potluck.dialogue.messages import LocationReply, Selection, TextReply
from potluck.errors import InvalidLink, PotluckError

logger = logging.getLogger(__name__)

WELCOME = (
    "Welcome to <b>Potluck Bot</b>!\n\n"
    "Use /create to organize a new potluck. Share the event from its summary "
    "and your friends can RSVP and tell everyone what they're bringing."
)
NO_DIALOGUE = "Nothing in progress. Use /create to start a new potluck."


def _runner(context: ContextTypes.DEFAULT_TYPE) -> DialogueRunner:
    return context.bot_data["runner"]


async def _in_thread(context: ContextTypes.DEFAULT_TYPE, fn, *args):
    """Run ``fn(db, *args)`` in a worker thread with a fresh session."""
    session_factory = context.bot_data["session_factory"]

    def call():
        with session_factory() as db:
            return fn(db, *args)

    return await asyncio.to_thread(call)


def deep_link(bot_username: str, payload: str) -> str:
    return f"https://t.me/{bot_username}?start={payload}"


# ── commands ───────────────────────────────────────────────────────
async def cmd_start(update: Update, context: ContextTypes.DEFAULT_TYPE):
    payload = context.args[0] if context.args else ""
    if payload == "create":
        await _runner(context).begin(update, context, "create")
    elif payload.startswith("rsvp_"):
        await _runner(context).begin(update, context, "rsvp", payload)
    elif payload.startswith("details_"):
        await show_details(update, context, payload)
    else:
        await update.effective_message.reply_text(WELCOME, parse_mode=ParseMode.HTML)


async def cmd_create(update: Update, context: ContextTypes.DEFAULT_TYPE):
    await _runner(context).begin(update, context, "create")


async def cmd_skip(update: Update, context: ContextTypes.DEFAULT_TYPE):
    turn = await _runner(context).feed(update, context, TextReply("/skip"))
    if turn is None:
        await update.effective_message.reply_text(NO_DIALOGUE)


async def show_details(update: Update, context: ContextTypes.DEFAULT_TYPE, payload: str):
    try:
        text = await _in_thread(context, views.details_view, payload)
    except PotluckError as exc:
        await update.effective_message.reply_text(exc.user_message)
        return
    await update.effective_message.reply_text(text, parse_mode=ParseMode.HTML)


# ── messages ───────────────────────────────────────────────────────
async def on_text(update: Update, context: ContextTypes.DEFAULT_TYPE):
    turn = await _runner(context).feed(update, context, TextReply(update.effective_message.text))
    if turn is None and update.effective_chat.type == "private":
        await update.effective_message.reply_text(NO_DIALOGUE)


async def on_location(update: Update, context: ContextTypes.DEFAULT_TYPE):
    location = update.effective_message.location
    inbound = LocationReply(latitude=location.latitude, longitude=location.longitude)
    await _runner(context).feed(update, context, inbound)


# ── callbacks ──────────────────────────────────────────────────────
async def on_callback(update: Update, context: ContextTypes.DEFAULT_TYPE):
    query = update.callback_query
    try:
        intent = parse_callback(query.data)
    except InvalidLink as exc:
        await query.answer(exc.user_message, show_alert=True)
        return

    if isinstance(intent, (RsvpLink, DetailsLink)):
        await redirect(update, context, intent)
    elif isinstance(intent, EditEvent):
        await manage_event(update, context, intent)
    elif isinstance(intent, SetEventStatus):
        await change_event_status(update, context, intent)
    else:
        turn = await _runner(context).feed(update, context, Selection(intent))
        if turn is None:
            await query.answer("This button is no longer active.")


async def redirect(update: Update, context: ContextTypes.DEFAULT_TYPE, intent):
    """Send the presser to a private chat with the bot via a gated deep link."""
    query = update.callback_query
    prefix = "rsvp" if isinstance(intent, RsvpLink) else "details"
    try:
        payload = await _in_thread(context, views.redirect_payload, prefix, intent.event_id, intent.token)
    except PotluckError as exc:
        await query.answer(exc.user_message, show_alert=True)
        return
    await query.answer(url=deep_link(context.bot.username, payload))


async def manage_event(update: Update, context: ContextTypes.DEFAULT_TYPE, intent: EditEvent):
    query = update.callback_query
    try:
        text, buttons = await _in_thread(context, views.manage_view, intent.event_id, update.effective_user.id)
    except PotluckError as exc:
        await query.answer(exc.user_message, show_alert=True)
        return
    await query.answer()
    await context.bot.send_message(
        chat_id=update.effective_chat.id,
        text=text,
        parse_mode=ParseMode.HTML,
        reply_markup=to_markup(buttons),
    )


async def change_event_status(update: Update, context: ContextTypes.DEFAULT_TYPE, intent: SetEventStatus):
    query = update.callback_query
    try:
        text = await _in_thread(
            context, views.change_status, intent.event_id, update.effective_user.id, intent.status,
        )
    except PotluckError as exc:
        await query.answer(exc.user_message, show_alert=True)
        return
    await query.answer(text)
    await query.edit_message_text(text)


# ── inline mode ────────────────────────────────────────────────────
async def on_inline_query(update: Update, context: ContextTypes.DEFAULT_TYPE):
    query = update.inline_query
    tz_name = context.bot_data["runner"].tz_name
    cards = await _in_thread(context, views.inline_cards, query.from_user.id, query.query, tz_name)

    results = [
        InlineQueryResultArticle(
            id=card.event_id,
            title=card.title,
            description=card.description,
            input_message_content=InputTextMessageContent(card.text, parse_mode=ParseMode.HTML),
            reply_markup=to_markup(card.buttons),
        )
        for card in cards
    ]
    button = None
    if not results:
        button = InlineQueryResultsButton(text="Create your first event", start_parameter="create")
    await query.answer(results, cache_time=0, is_personal=True, button=button)


# ── errors ─────────────────────────────────────────────────────────
async def on_error(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    logger.exception("Unhandled exception while handling an update:", exc_info=context.error)
    if not isinstance(update, Update) or update.effective_chat is None:
        return
    await context.bot.send_message(
        chat_id=update.effective_chat.id,
        text="Sorry, something went wrong. Please try again.",
    )


def build_application(settings, session_factory, webhook: bool = False) -> Application:
    """Create the bot application with all handlers registered.

    In webhook mode no updater is built; updates arrive through
    ``Application.process_update`` from the web endpoint.
    """
    builder = Application.builder().token(settings.BOT_TOKEN)
    if webhook:
        builder = builder.updater(None)
    application = builder.build()

    application.bot_data["session_factory"] = session_factory
    application.bot_data["runner"] = DialogueRunner(session_factory, settings.DEFAULT_TIMEZONE)

    application.add_handler(CommandHandler("start", cmd_start))
    application.add_handler(CommandHandler("create", cmd_create))
    application.add_handler(CommandHandler("skip", cmd_skip))
    application.add_handler(CallbackQueryHandler(on_callback))
    application.add_handler(InlineQueryHandler(on_inline_query))
    application.add_handler(MessageHandler(filters.LOCATION, on_location))
    application.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, on_text))
    application.add_error_handler(on_error)
    return application
