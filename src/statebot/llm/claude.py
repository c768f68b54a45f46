"""Anthropic Claude provider."""

from typing import Any

from ..errors import LLMResponseParseError
from .http import HTTPLLMService

ANTHROPIC_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"


class ClaudeService(HTTPLLMService):
    """Classifies facts with the Anthropic Messages API."""

    provider = "claude"
    default_model = "claude-3-opus-20240229"
    max_tokens = 1000

    async def _complete(self, prompt: str) -> str:
        data = await self._post_json(
            ANTHROPIC_URL,
            {
                "model": self.model,
                "max_tokens": self.max_tokens,
                "temperature": 0,
                "messages": [{"role": "user", "content": prompt}],
            },
            headers={
                "x-api-key": self.api_key,
                "anthropic-version": ANTHROPIC_VERSION,
            },
        )
        return self._extract_text(data)

    def _extract_text(self, data: Any) -> str:
        try:
            return data["content"][0]["text"]
        except (KeyError, IndexError, TypeError) as e:
            raise LLMResponseParseError(
                "Unexpected Claude response shape", provider=self.provider
            ) from e
