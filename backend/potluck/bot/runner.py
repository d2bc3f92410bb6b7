"""Driver loop for the dialogues.

Holds each in-flight dialogue's state in ``context.user_data`` keyed by
chat id, so a user can run separate dialogues in separate chats. Every
step runs in a worker thread with its own database session; the state
object is the only thing carried between updates. Nothing survives a
restart.
"""
import asyncio
import logging
from typing import Callable, Optional

from sqlalchemy.orm import Session
from telegram import Update
from telegram.constants import ParseMode
from telegram.ext import ContextTypes

from potluck.bot.keyboards import to_markup
from potluck.dialogue.create_event import CreateEventDialogue
from potluck.dialogue.messages import Inbound, Sender, Turn
from potluck.dialogue.rsvp import RsvpDialogue

logger = logging.getLogger(__name__)

DIALOGUES = {
    CreateEventDialogue.kind: CreateEventDialogue,
    RsvpDialogue.kind: RsvpDialogue,
}


def sender_from(update: Update) -> Optional[Sender]:
    user = update.effective_user
    if user is None:
        return None
    return Sender(user_id=user.id, username=user.username, display_name=user.first_name)


class DialogueRunner:
    def __init__(self, session_factory: Callable[[], Session], tz_name: str = "UTC"):
        self.session_factory = session_factory
        self.tz_name = tz_name

    # ── state slots ────────────────────────────────────────────────
    @staticmethod
    def _slots(context: ContextTypes.DEFAULT_TYPE) -> dict:
        return context.user_data.setdefault("dialogues", {})

    def active(self, context: ContextTypes.DEFAULT_TYPE, chat_id: int) -> Optional[tuple]:
        return self._slots(context).get(chat_id)

    def discard(self, context: ContextTypes.DEFAULT_TYPE, chat_id: int) -> None:
        self._slots(context).pop(chat_id, None)

    # ── steps ──────────────────────────────────────────────────────
    def _step(self, kind: str, method: str, *args) -> Turn:
        with self.session_factory() as db:
            dialogue = DIALOGUES[kind](db, self.tz_name)
            return getattr(dialogue, method)(*args)

    async def begin(
        self,
        update: Update,
        context: ContextTypes.DEFAULT_TYPE,
        kind: str,
        payload: Optional[str] = None,
    ) -> Turn:
        """Start ``kind`` in this chat, replacing any dialogue already in flight."""
        chat_id = update.effective_chat.id
        sender = sender_from(update)
        if context.user_data is not None:
            self.discard(context, chat_id)
        logger.info("Starting %s dialogue in chat %s", kind, chat_id)
        turn = await asyncio.to_thread(self._step, kind, "start", sender, payload)
        self._store(context, chat_id, kind, turn)
        await self._deliver(update, context, turn)
        return turn

    async def feed(
        self,
        update: Update,
        context: ContextTypes.DEFAULT_TYPE,
        inbound: Inbound,
    ) -> Optional[Turn]:
        """Hand ``inbound`` to the dialogue in flight; None if there is none."""
        if context.user_data is None:
            return None
        chat_id = update.effective_chat.id
        slot = self.active(context, chat_id)
        if slot is None:
            return None
        kind, state = slot
        turn = await asyncio.to_thread(self._step, kind, "handle", state, inbound)
        self._store(context, chat_id, kind, turn)
        await self._deliver(update, context, turn)
        return turn

    def _store(self, context, chat_id: int, kind: str, turn: Turn) -> None:
        if context.user_data is None:
            return
        if turn.done:
            self.discard(context, chat_id)
            logger.info("%s dialogue in chat %s ended: %s", kind, chat_id, turn.outcome)
        else:
            self._slots(context)[chat_id] = (kind, turn.state)

    async def _deliver(self, update: Update, context: ContextTypes.DEFAULT_TYPE, turn: Turn) -> None:
        if update.callback_query is not None:
            await update.callback_query.answer(turn.toast)
        for reply in turn.replies:
            await context.bot.send_message(
                chat_id=update.effective_chat.id,
                text=reply.text,
                parse_mode=ParseMode.HTML,
                reply_markup=to_markup(reply.buttons),
            )
