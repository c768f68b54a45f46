"""StateBot: determine application state from facts with an LLM."""

from .cache import CacheEntry, DeterminationCache, make_key
from .config import SUPPORTED_PROVIDERS, StateBotConfig, config_from_env, load_config
from .endpoints import EndpointResponse, StateBotEndpoints, create_state_bot_endpoints
from .errors import (
    ConfigurationError,
    LLMResponseParseError,
    LLMServiceError,
    StateBotError,
    UnknownStateError,
)
from .llm import (
    ChatGPTService,
    ClaudeService,
    GeminiService,
    GroqService,
    LLMService,
    create_llm_service,
)
from .models import Fact, LLMStateResponse, StateRecord, Transition
from .scheduler import DebounceScheduler
from .store import StateBotStore, Subscriber, create_state_bot

__version__ = "0.1.0"

__all__ = [
    "CacheEntry",
    "ChatGPTService",
    "ClaudeService",
    "ConfigurationError",
    "DebounceScheduler",
    "DeterminationCache",
    "EndpointResponse",
    "Fact",
    "GeminiService",
    "GroqService",
    "LLMResponseParseError",
    "LLMService",
    "LLMServiceError",
    "LLMStateResponse",
    "SUPPORTED_PROVIDERS",
    "StateBotConfig",
    "StateBotEndpoints",
    "StateBotError",
    "StateBotStore",
    "StateRecord",
    "Subscriber",
    "Transition",
    "UnknownStateError",
    "config_from_env",
    "create_llm_service",
    "create_state_bot",
    "create_state_bot_endpoints",
    "load_config",
    "make_key",
]
