"""Interactive console for feeding facts to a StateBot."""

import asyncio
import json
from pathlib import Path

from .config import StateBotConfig, load_config
from .errors import ConfigurationError
from .formatting import describe_change, format_facts, format_history, format_state
from .logging import configure_logger, get_logger
from .models import StateRecord
from .store import StateBotStore, create_state_bot

BANNER = """
╔══════════════════════════════════════════╗
║              StateBot v0.1.0             ║
║     Fact-driven state determination      ║
╚══════════════════════════════════════════╝

Type a fact and press Enter to add it.

Commands:
  /remove <fact>  - Remove every occurrence of a fact
  /facts          - List active facts
  /clear          - Remove all facts and forget the state
  /update         - Determine the state now
  /state          - Print the full state record as JSON
  /history        - Show recent transitions
  /reset          - Reset state, facts and cache
  /help           - Show this help
  /exit, /quit    - Exit
"""


class StateBotConsole:
    """Interactive command-line interface for a StateBot."""

    def __init__(self, store: StateBotStore) -> None:
        self.store = store
        self.logger = get_logger()
        self._last: StateRecord | None = None
        self._unsubscribe = store.subscribe(self._on_state)

    def _on_state(self, record: StateRecord) -> None:
        """Print state changes as they are published."""
        message = describe_change(self._last, record)
        self._last = record
        if message:
            print(f"\n{message}")

    async def _force_update(self) -> None:
        try:
            state = await self.store.determine_state()
        except Exception as e:
            print(f"\n❌ Error: {e}")
            return
        if state is None:
            print("No facts to determine a state from.")
        else:
            print(format_state(self.store.get_state()))

    async def handle_command(self, command: str) -> bool:
        """Handle a special command. Returns True if should continue, False to exit."""
        name, _, arg = command.strip().partition(" ")
        name = name.lower()
        arg = arg.strip()

        if name in ("/exit", "/quit", "exit", "quit"):
            print("\n👋 Goodbye!")
            return False

        if name == "/remove":
            if not arg:
                print("Usage: /remove <fact>")
            else:
                await self.store.remove_fact(arg)
                print(f"✓ Removed: {arg}")
            return True

        if name == "/facts":
            print(format_facts(self.store.get_state()))
            return True

        if name == "/clear":
            await self.store.clear_facts()
            print("✓ Facts cleared")
            return True

        if name == "/update":
            await self._force_update()
            return True

        if name == "/state":
            print(json.dumps(self.store.get_state().to_dict(), indent=2))
            return True

        if name == "/history":
            print(format_history(self.store.get_state()))
            return True

        if name == "/reset":
            self.store.reset()
            self.logger.log("console_reset", bot_id=self.store.bot_id)
            print("✓ State, facts and cache reset")
            return True

        if name == "/help":
            print(BANNER)
            return True

        print(f"Unknown command: {name} (try /help)")
        return True

    async def run(self) -> None:
        """Run the interactive console."""
        print(BANNER)
        print(f"States: {', '.join(self.store.states)}\n")

        try:
            while True:
                try:
                    # Read in a thread so debounced determinations keep running
                    user_input = (await asyncio.to_thread(input, "fact> ")).strip()
                except (EOFError, KeyboardInterrupt):
                    print("\n👋 Goodbye!")
                    break

                if not user_input:
                    continue

                if user_input.startswith("/") or user_input.lower() in ("exit", "quit"):
                    if not await self.handle_command(user_input):
                        break
                    continue

                await self.store.add_fact(user_input)
        finally:
            self._unsubscribe()
            await self.store.aclose()


async def run_cli(config_path: Path | None = None) -> int:
    """Run the console with a config file. Returns an exit code."""
    configure_logger()

    try:
        config: StateBotConfig = load_config(config_path)
        store = create_state_bot(config, bot_id="console")
    except ConfigurationError as e:
        print(f"❌ Error: {e}")
        return 1

    console = StateBotConsole(store)
    await console.run()
    return 0
