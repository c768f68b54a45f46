"""Telegram front end for StateBot."""

from .bot import StateBotTelegram

__all__ = ["StateBotTelegram"]
