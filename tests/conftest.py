"""Shared fixtures for StateBot tests."""

from pathlib import Path

import pytest
from stubs import STATES

from statebot import logging as statebot_logging
from statebot.config import StateBotConfig
from statebot.logging import JSONLLogger


@pytest.fixture(autouse=True)
def event_logger(tmp_path: Path) -> JSONLLogger:
    """Send JSONL events to a temporary directory for every test."""
    return statebot_logging.configure_logger(log_dir=tmp_path / "logs")


@pytest.fixture
def config() -> StateBotConfig:
    return StateBotConfig(
        states=STATES,
        provider="claude",
        api_key="test-key",
        debounce_time=0.05,
    )
