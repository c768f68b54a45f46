"""Base class for providers reached over plain HTTPS."""

from typing import Any

import httpx

from ..errors import LLMServiceError
from .base import BaseLLMService


class HTTPLLMService(BaseLLMService):
    """A provider whose API is called with httpx.

    A custom ``transport`` can be given to route requests somewhere other
    than the network (e.g. ``httpx.MockTransport`` in tests).
    """

    def __init__(
        self,
        api_key: str,
        retry_count: int = 3,
        model: str | None = None,
        retry_base_delay: float = 0.5,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(
            api_key,
            retry_count=retry_count,
            model=model,
            retry_base_delay=retry_base_delay,
        )
        self._timeout = timeout
        self._transport = transport

    async def _post_json(
        self,
        url: str,
        payload: dict[str, Any],
        headers: dict[str, str] | None = None,
    ) -> Any:
        """POST a JSON payload and return the decoded JSON answer.

        Raises:
            LLMServiceError: On a non-success status code.
            httpx.HTTPError: On transport failures.
        """
        async with httpx.AsyncClient(
            timeout=self._timeout,
            transport=self._transport,
        ) as client:
            response = await client.post(
                url,
                json=payload,
                headers={"Content-Type": "application/json", **(headers or {})},
            )

        if not response.is_success:
            raise LLMServiceError(
                f"{self.provider} API error: {response.status_code} {response.reason_phrase}",
                provider=self.provider,
                status_code=response.status_code,
            )

        return response.json()
