"""Groq provider, via the official async SDK."""

from groq import AsyncGroq

from .base import SYSTEM_PROMPT, BaseLLMService


class GroqService(BaseLLMService):
    """Classifies facts with Groq chat completions.

    Example:
        service = GroqService(api_key="...", model="llama-3.1-70b-versatile")
        response = await service.determine_state(states, facts)
    """

    provider = "groq"
    default_model = "llama-3.1-70b-versatile"

    def __init__(
        self,
        api_key: str,
        retry_count: int = 3,
        model: str | None = None,
        retry_base_delay: float = 0.5,
        client: AsyncGroq | None = None,
    ) -> None:
        """Initialize the Groq service.

        Args:
            api_key: Groq API key, unused when a client is given.
            retry_count: Total attempts before giving up.
            model: Model name.
            retry_base_delay: Backoff unit in seconds.
            client: Existing AsyncGroq client to use.
        """
        super().__init__(
            api_key,
            retry_count=retry_count,
            model=model,
            retry_base_delay=retry_base_delay,
        )
        # Retries happen in determine_state, not in the SDK
        self._client = client or AsyncGroq(api_key=api_key, max_retries=0)

    async def _complete(self, prompt: str) -> str:
        response = await self._client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            temperature=0,
        )
        return response.choices[0].message.content or ""
