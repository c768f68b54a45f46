"""OpenAI ChatGPT provider."""

from typing import Any

from ..errors import LLMResponseParseError
from .base import SYSTEM_PROMPT
from .http import HTTPLLMService

OPENAI_URL = "https://api.openai.com/v1/chat/completions"


class ChatGPTService(HTTPLLMService):
    """Classifies facts with the OpenAI Chat Completions API."""

    provider = "chatgpt"
    default_model = "gpt-4"
    max_tokens = 500

    async def _complete(self, prompt: str) -> str:
        data = await self._post_json(
            OPENAI_URL,
            {
                "model": self.model,
                "messages": [
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                "temperature": 0,
                "max_tokens": self.max_tokens,
            },
            headers={"Authorization": f"Bearer {self.api_key}"},
        )
        return self._extract_text(data)

    def _extract_text(self, data: Any) -> str:
        try:
            return data["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError) as e:
            raise LLMResponseParseError(
                "Unexpected OpenAI response shape", provider=self.provider
            ) from e
