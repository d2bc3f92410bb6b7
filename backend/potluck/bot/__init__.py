"""Telegram transport: handlers, dialogue driver and application factory."""
