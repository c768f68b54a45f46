"""Google Gemini provider."""

from typing import Any

from ..errors import LLMResponseParseError
from .http import HTTPLLMService

GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"


class GeminiService(HTTPLLMService):
    """Classifies facts with the Gemini generateContent API."""

    provider = "gemini"
    default_model = "gemini-pro"

    async def _complete(self, prompt: str) -> str:
        url = GEMINI_URL.format(model=self.model) + f"?key={self.api_key}"
        data = await self._post_json(
            url,
            {
                "contents": [{"parts": [{"text": prompt}]}],
                "generationConfig": {"temperature": 0},
            },
        )
        return self._extract_text(data)

    def _extract_text(self, data: Any) -> str:
        try:
            return data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError) as e:
            raise LLMResponseParseError(
                "Unexpected Gemini response shape", provider=self.provider
            ) from e
