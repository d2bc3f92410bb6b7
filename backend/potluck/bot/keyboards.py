"""Conversion of dialogue buttons to Telegram inline keyboards."""
from typing import Optional

from telegram import InlineKeyboardButton, InlineKeyboardMarkup

from potluck.dialogue.messages import Button


def to_button(button: Button) -> InlineKeyboardButton:
    if button.url:
        return InlineKeyboardButton(button.label, url=button.url)
    if button.switch_inline_query is not None:
        return InlineKeyboardButton(button.label, switch_inline_query=button.switch_inline_query)
    return InlineKeyboardButton(button.label, callback_data=button.data)


def to_markup(rows) -> Optional[InlineKeyboardMarkup]:
    if not rows:
        return None
    return InlineKeyboardMarkup([[to_button(b) for b in row] for row in rows])
