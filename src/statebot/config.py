"""StateBot configuration.

Configuration can be built directly, loaded from a JSON file, or read
from environment variables.
"""

import json
import logging
import os
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

SUPPORTED_PROVIDERS = ("claude", "chatgpt", "gemini", "groq")

# Conventional API key variables, used when STATEBOT_API_KEY is unset
PROVIDER_KEY_ENV = {
    "claude": "ANTHROPIC_API_KEY",
    "chatgpt": "OPENAI_API_KEY",
    "gemini": "GOOGLE_API_KEY",
    "groq": "GROQ_API_KEY",
}

DEFAULT_CONFIG_PATH = Path.home() / ".statebot" / "config.json"


@dataclass
class StateBotConfig:
    """Configuration for a StateBot instance.

    Attributes:
        states: State name -> list of qualifying fact descriptions.
        provider: Backend identifier, one of SUPPORTED_PROVIDERS.
        api_key: Credential passed through to the provider.
        cache_expiry: Seconds a cached determination stays valid.
        debounce_time: Quiet period in seconds before a scheduled determination.
        retry_count: Total attempts per backend call.
        retry_base_delay: Backoff unit; attempt n waits 2**n * this.
        determination_threshold: Confidence below which results are flagged.
        model: Overrides the provider's default model.
        cache_max_entries: Optional cap on cached fact sets.
        request_timeout: Seconds before an HTTP backend call times out.
    """

    states: Mapping[str, Sequence[str]]
    provider: str = "claude"
    api_key: str = ""
    cache_expiry: float = 300.0  # 5 minutes
    debounce_time: float = 0.5
    retry_count: int = 3
    retry_base_delay: float = 0.5
    determination_threshold: float = 0.7
    model: str | None = None
    cache_max_entries: int | None = None
    request_timeout: float = 60.0

    def __post_init__(self) -> None:
        """Validate the configuration."""
        if not self.states:
            raise ConfigurationError("At least one state must be defined")

        for name, qualifying in self.states.items():
            if not isinstance(qualifying, (list, tuple)):
                raise ConfigurationError(f"Facts for state '{name}' must be a list")

        if self.provider not in SUPPORTED_PROVIDERS:
            raise ConfigurationError(f"Unsupported LLM provider: {self.provider}")

        if self.cache_expiry <= 0:
            raise ConfigurationError("cache_expiry must be positive")

        if self.debounce_time < 0:
            raise ConfigurationError("debounce_time cannot be negative")

        if self.retry_count < 1:
            raise ConfigurationError("retry_count must be at least 1")

        if self.retry_base_delay < 0:
            raise ConfigurationError("retry_base_delay cannot be negative")

        if not 0 <= self.determination_threshold <= 1:
            raise ConfigurationError("determination_threshold must be between 0 and 1")

        if self.cache_max_entries is not None and self.cache_max_entries < 1:
            raise ConfigurationError("cache_max_entries must be at least 1")

    @property
    def state_names(self) -> list[str]:
        return list(self.states)


def load_config(config_path: Path | None = None) -> StateBotConfig:
    """Load a StateBotConfig from a JSON file.

    The file holds the config fields at the top level:
    ```json
    {
      "provider": "claude",
      "api_key": "...",
      "states": {
        "idle": ["no user is logged in"],
        "active": ["a user is logged in"]
      },
      "debounce_time": 0.5
    }
    ```

    An empty ``api_key`` falls back to the environment (see ``resolve_api_key``).

    Args:
        config_path: Path to the config file. Uses DEFAULT_CONFIG_PATH if None.

    Returns:
        The validated configuration.

    Raises:
        ConfigurationError: If the file is missing, unreadable or invalid.
    """
    path = config_path or DEFAULT_CONFIG_PATH

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        raise ConfigurationError(f"Config file not found: {path}") from None
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in {path}: {e}") from e
    except OSError as e:
        raise ConfigurationError(f"Cannot read {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Config in {path} must be a JSON object")

    return _parse_config(data)


def _parse_config(data: dict[str, Any]) -> StateBotConfig:
    """Build a StateBotConfig from decoded JSON, ignoring unknown keys."""
    known = {f.name for f in fields(StateBotConfig)}
    for key in data:
        if key not in known:
            logger.warning("Ignoring unknown config key: %s", key)

    states = data.get("states")
    if not isinstance(states, dict):
        raise ConfigurationError("'states' must be a mapping of state name to facts")
    for name, qualifying in states.items():
        if not isinstance(qualifying, list):
            raise ConfigurationError(f"Facts for state '{name}' must be a list")

    kwargs = {k: v for k, v in data.items() if k in known}
    provider = kwargs.get("provider", "claude")
    if not kwargs.get("api_key"):
        kwargs["api_key"] = resolve_api_key(provider)

    try:
        return StateBotConfig(**kwargs)
    except TypeError as e:
        raise ConfigurationError(f"Invalid config: {e}") from e


def resolve_api_key(provider: str, prefix: str = "STATEBOT_") -> str:
    """Find an API key in the environment for a provider."""
    key = os.getenv(f"{prefix}API_KEY")
    if key:
        return key
    env_name = PROVIDER_KEY_ENV.get(provider)
    return os.getenv(env_name, "") if env_name else ""


def config_from_env(
    states: Mapping[str, Sequence[str]],
    prefix: str = "STATEBOT_",
) -> StateBotConfig:
    """Load configuration from environment variables.

    States cannot be expressed in the environment, so they are passed in.
    """
    provider = os.getenv(f"{prefix}PROVIDER", "claude")

    try:
        return StateBotConfig(
            states=states,
            provider=provider,
            api_key=resolve_api_key(provider, prefix),
            model=os.getenv(f"{prefix}MODEL") or None,
            cache_expiry=float(os.getenv(f"{prefix}CACHE_EXPIRY", "300")),
            debounce_time=float(os.getenv(f"{prefix}DEBOUNCE_TIME", "0.5")),
            retry_count=int(os.getenv(f"{prefix}RETRY_COUNT", "3")),
        )
    except ConfigurationError:
        raise
    except ValueError as e:
        raise ConfigurationError(f"Invalid environment configuration: {e}") from e
