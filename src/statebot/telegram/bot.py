"""Telegram bot exposing a StateBot per chat."""

import asyncio
import logging
import os
from typing import Any

from telegram import Update
from telegram.constants import ParseMode
from telegram.ext import (
    Application,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from ..config import StateBotConfig
from ..formatting import describe_change, format_facts, format_history, format_state
from ..llm import LLMService
from ..logging import get_logger
from ..models import StateRecord
from ..store import StateBotStore, create_state_bot

logger = logging.getLogger(__name__)


WELCOME_MESSAGE = """
*StateBot*

Send me facts and I will work out which state they describe.

*Commands:*
/start - Show this message
/fact <text> - Add a fact (plain messages work too)
/remove <text> - Remove a fact
/facts - List active facts
/clear - Remove all facts
/update - Determine the state now
/state - Show the current state
/history - Show recent transitions
/reset - Reset facts, state and cache
"""

MAX_MESSAGE_LENGTH = 4096


def truncate_message(text: str, max_length: int = MAX_MESSAGE_LENGTH) -> str:
    """Truncate message to fit Telegram limits."""
    if len(text) <= max_length:
        return text
    return text[: max_length - 20] + "\n... [truncated]"


class StateBotTelegram:
    """Telegram front end: one StateBot per chat, all sharing a config."""

    def __init__(
        self,
        config: StateBotConfig,
        token: str | None = None,
        llm_service: LLMService | None = None,
    ) -> None:
        self.token = token or os.getenv("TELEGRAM_TOKEN")
        if not self.token:
            raise ValueError("TELEGRAM_TOKEN not set")

        self.config = config
        self.llm_service = llm_service
        self.json_logger = get_logger()
        self._stores: dict[str, StateBotStore] = {}
        self._last: dict[str, StateRecord] = {}
        self._send_tasks: set[asyncio.Task] = set()
        self._app: Application | None = None

    def _get_chat_id(self, update: Update) -> str:
        """Get chat_id as string from update."""
        assert update.effective_chat is not None
        return str(update.effective_chat.id)

    def get_store(self, chat_id: str) -> StateBotStore:
        """Get or create the StateBot for a chat."""
        if chat_id not in self._stores:
            store = create_state_bot(
                self.config, llm_service=self.llm_service, bot_id=f"telegram-{chat_id}"
            )
            store.subscribe(lambda record: self._on_state(chat_id, record))
            self._stores[chat_id] = store
        return self._stores[chat_id]

    def _on_state(self, chat_id: str, record: StateRecord) -> None:
        """Push transitions and failures to the chat."""
        message = describe_change(self._last.get(chat_id), record)
        self._last[chat_id] = record
        if message and self._app is not None:
            task = asyncio.get_running_loop().create_task(
                self._app.bot.send_message(chat_id=int(chat_id), text=message)
            )
            self._send_tasks.add(task)
            task.add_done_callback(self._send_tasks.discard)

    async def _reply(self, update: Update, text: str, **kwargs: Any) -> None:
        assert update.message is not None
        await update.message.reply_text(truncate_message(text), **kwargs)

    async def _handle_start(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE
    ) -> None:
        """Handle /start command."""
        chat_id = self._get_chat_id(update)
        self.get_store(chat_id)
        self.json_logger.log("telegram_start", bot_id=chat_id)
        await self._reply(update, WELCOME_MESSAGE, parse_mode=ParseMode.MARKDOWN)

    async def _handle_fact(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE
    ) -> None:
        """Handle /fact <text>."""
        text = " ".join(context.args or []).strip()
        if not text:
            await self._reply(update, "Usage: /fact <text>")
            return
        await self._add_fact(update, text)

    async def _handle_message(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE
    ) -> None:
        """Plain messages are added as facts."""
        assert update.message is not None
        assert update.message.text is not None
        await self._add_fact(update, update.message.text.strip())

    async def _add_fact(self, update: Update, text: str) -> None:
        store = self.get_store(self._get_chat_id(update))
        await store.add_fact(text)
        await self._reply(update, f"📝 Noted ({len(store.get_state().facts)} fact(s))")

    async def _handle_remove(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE
    ) -> None:
        """Handle /remove <text>."""
        text = " ".join(context.args or []).strip()
        if not text:
            await self._reply(update, "Usage: /remove <text>")
            return
        store = self.get_store(self._get_chat_id(update))
        await store.remove_fact(text)
        await self._reply(update, f"🗑 Removed: {text}")

    async def _handle_facts(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE
    ) -> None:
        """Handle /facts."""
        store = self.get_store(self._get_chat_id(update))
        await self._reply(update, format_facts(store.get_state()))

    async def _handle_clear(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE
    ) -> None:
        """Handle /clear."""
        store = self.get_store(self._get_chat_id(update))
        await store.clear_facts()
        await self._reply(update, "✨ Facts cleared.")

    async def _handle_update(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE
    ) -> None:
        """Handle /update: determine the state now."""
        chat_id = self._get_chat_id(update)
        store = self.get_store(chat_id)
        try:
            await store.determine_state()
        except Exception as e:
            logger.exception("Error determining state")
            self.json_logger.log("telegram_error", bot_id=chat_id, error=str(e))
            await self._reply(update, f"❌ Error: {e}")
            return
        await self._reply(update, format_state(store.get_state()))

    async def _handle_state(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE
    ) -> None:
        """Handle /state."""
        store = self.get_store(self._get_chat_id(update))
        await self._reply(update, format_state(store.get_state()))

    async def _handle_history(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE
    ) -> None:
        """Handle /history."""
        store = self.get_store(self._get_chat_id(update))
        await self._reply(update, format_history(store.get_state()))

    async def _handle_reset(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE
    ) -> None:
        """Handle /reset."""
        chat_id = self._get_chat_id(update)
        self.get_store(chat_id).reset()
        self.json_logger.log("telegram_reset", bot_id=chat_id)
        await self._reply(update, "✨ Facts, state and cache reset.")

    async def _post_shutdown(self, application: Application) -> None:
        """Called after Application.shutdown()."""
        for store in self._stores.values():
            await store.aclose()

    def build_app(self) -> Application:
        """Build the Telegram application."""
        assert self.token is not None
        self._app = (
            Application.builder()
            .token(self.token)
            .post_shutdown(self._post_shutdown)
            .build()
        )

        commands = {
            "start": self._handle_start,
            "fact": self._handle_fact,
            "remove": self._handle_remove,
            "facts": self._handle_facts,
            "clear": self._handle_clear,
            "update": self._handle_update,
            "state": self._handle_state,
            "history": self._handle_history,
            "reset": self._handle_reset,
        }
        for name, handler in commands.items():
            self._app.add_handler(CommandHandler(name, handler))
        self._app.add_handler(
            MessageHandler(filters.TEXT & ~filters.COMMAND, self._handle_message)
        )

        return self._app

    def run(self) -> None:
        """Run the bot (blocking)."""
        app = self.build_app()

        logger.info("Starting Telegram bot...")
        app.run_polling()
