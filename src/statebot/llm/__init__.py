"""LLM backends that classify facts into states."""

from ..config import StateBotConfig
from ..errors import ConfigurationError
from .base import BaseLLMService, LLMService, build_prompt, extract_json, parse_response
from .chatgpt import ChatGPTService
from .claude import ClaudeService
from .gemini import GeminiService
from .groq_llm import GroqService
from .http import HTTPLLMService

PROVIDERS: dict[str, type[BaseLLMService]] = {
    "claude": ClaudeService,
    "chatgpt": ChatGPTService,
    "gemini": GeminiService,
    "groq": GroqService,
}


def create_llm_service(config: StateBotConfig) -> BaseLLMService:
    """Build the provider selected by a configuration.

    Raises:
        ConfigurationError: If the provider identifier is not supported.
    """
    service_cls = PROVIDERS.get(config.provider)
    if service_cls is None:
        raise ConfigurationError(f"Unsupported LLM provider: {config.provider}")

    if issubclass(service_cls, HTTPLLMService):
        return service_cls(
            config.api_key,
            retry_count=config.retry_count,
            model=config.model,
            retry_base_delay=config.retry_base_delay,
            timeout=config.request_timeout,
        )

    return service_cls(
        config.api_key,
        retry_count=config.retry_count,
        model=config.model,
        retry_base_delay=config.retry_base_delay,
    )


__all__ = [
    "BaseLLMService",
    "ChatGPTService",
    "ClaudeService",
    "GeminiService",
    "GroqService",
    "HTTPLLMService",
    "LLMService",
    "PROVIDERS",
    "build_prompt",
    "create_llm_service",
    "extract_json",
    "parse_response",
]
