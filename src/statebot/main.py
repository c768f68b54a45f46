"""StateBot entry point."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

from .cli import run_cli


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="statebot",
        description="Determine application state from facts with an LLM.",
    )
    parser.add_argument(
        "mode",
        nargs="?",
        choices=["console", "bot"],
        default="console",
        help="console (default) or bot (Telegram)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to the JSON config (default: ~/.statebot/config.json)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return parser


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    load_dotenv(find_dotenv(usecwd=True))

    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.mode == "bot":
        from .config import load_config
        from .logging import configure_logger
        from .telegram import StateBotTelegram

        configure_logger()
        try:
            bot = StateBotTelegram(load_config(args.config))
        except ValueError as e:
            print(f"❌ Error: {e}")
            sys.exit(1)
        bot.run()
        return

    sys.exit(asyncio.run(run_cli(args.config)))


if __name__ == "__main__":
    main()
