"""Framework-agnostic HTTP handlers for a StateBot.

The handlers return an EndpointResponse (status code plus JSON body) so
they can be mounted in any web framework.
"""

import json
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from .models import Fact
from .store import StateBotStore

logger = logging.getLogger(__name__)

INVALID_FACTS_MESSAGE = "Invalid request. Expected facts array."


@dataclass
class EndpointResponse:
    """A JSON response produced by a handler."""

    status: int
    body: dict[str, Any]
    headers: dict[str, str] = field(
        default_factory=lambda: {"Content-Type": "application/json"}
    )

    def json(self) -> str:
        """Serialize the body."""
        return json.dumps(self.body)


def _decode_body(body: bytes | str | Mapping[str, Any] | None) -> Any:
    """Decode a request body into Python data.

    Raises:
        ValueError: If the body is not valid JSON.
    """
    if body is None:
        return None
    if isinstance(body, Mapping):
        return body
    if isinstance(body, bytes):
        body = body.decode("utf-8")
    return json.loads(body)


def _to_fact(item: Any) -> Fact | str:
    """Accept plain strings or {"content": ..., "source": ...} objects."""
    if isinstance(item, Mapping) and "content" in item:
        source = item.get("source")
        return Fact(content=str(item["content"]), source=str(source) if source else None)
    return str(item)


class StateBotEndpoints:
    """GET/POST handlers exposing a store's query surface."""

    def __init__(self, store: StateBotStore) -> None:
        self.store = store

    async def handle_get_state(self, request: Any = None) -> EndpointResponse:
        """Return the current state record."""
        return EndpointResponse(status=200, body=self.store.get_state().to_dict())

    async def handle_post_facts(
        self, body: bytes | str | Mapping[str, Any] | None
    ) -> EndpointResponse:
        """Add submitted facts, determine the state now, and return the record.

        The body must be a JSON object with a ``facts`` list. A malformed
        body yields 400; a failed determination yields 500.
        """
        try:
            data = _decode_body(body)
        except ValueError:
            return EndpointResponse(status=400, body={"error": INVALID_FACTS_MESSAGE})

        facts = data.get("facts") if isinstance(data, Mapping) else None
        if not isinstance(facts, list):
            return EndpointResponse(status=400, body={"error": INVALID_FACTS_MESSAGE})

        try:
            await self.store.add_facts(_to_fact(fact) for fact in facts)
            await self.store.determine_state()
        except Exception as e:
            logger.error("State determination failed: %s", e)
            return EndpointResponse(status=500, body={"error": str(e)})

        return EndpointResponse(status=200, body=self.store.get_state().to_dict())


def create_state_bot_endpoints(
    store: StateBotStore,
) -> dict[str, Callable[..., Awaitable[EndpointResponse]]]:
    """Map HTTP methods to handlers for a store."""
    endpoints = StateBotEndpoints(store)
    return {
        "GET": endpoints.handle_get_state,
        "POST": endpoints.handle_post_facts,
    }
