"""Common LLM service contract and shared classification logic.

Every provider builds the same prompt, parses the same JSON answer and
retries with the same exponential backoff. Providers only differ in how
they send the prompt and where the text sits in the response, which is
what ``_complete`` implements.
"""

import asyncio
import json
import logging
import math
import re
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from typing import Protocol

from ..errors import ConfigurationError, LLMResponseParseError
from ..models import LLMStateResponse

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a deterministic state manager that analyzes facts "
    "and determines the current state."
)

FENCED_JSON_RE = re.compile(r"```json\n([\s\S]*?)\n```")
BARE_JSON_RE = re.compile(r"{[\s\S]*?}")


class LLMService(Protocol):
    """Anything that can classify facts into one of the given states."""

    async def determine_state(
        self,
        states: Mapping[str, Sequence[str]],
        facts: Sequence[str],
    ) -> LLMStateResponse:
        """Pick the state that best matches the facts."""
        ...


def build_prompt(states: Mapping[str, Sequence[str]], facts: Sequence[str]) -> str:
    """Render the classification prompt for a set of states and facts."""
    state_blocks = []
    for state_name, qualifying_facts in states.items():
        lines = "\n".join(f"- {fact}" for fact in qualifying_facts)
        state_blocks.append(f"## {state_name}\n{lines}\n")

    states_text = "\n".join(state_blocks)
    current = "\n".join(f"- {fact}" for fact in facts)

    return f"""You are a deterministic state manager whose job is to determine the current state based on a set of facts.

# States and their qualifying facts:
{states_text}
# Current Facts:
{current}

Based on these facts, determine which state is most appropriate. Respond in JSON format with the following structure:
{{
  "state": "the_determined_state",
  "confidence": 0.95,
  "reasoning": "Your step-by-step reasoning for selecting this state"
}}

"confidence" is a number between 0 and 1.
If none of the states fully match, select the most appropriate one and adjust the confidence accordingly.
Respond ONLY with the JSON object and nothing else.
"""


def extract_json(text: str) -> str | None:
    """Find the JSON payload in a model answer.

    A fenced ```json block wins; otherwise the first brace-delimited
    object is used.
    """
    match = FENCED_JSON_RE.search(text)
    if match:
        return match.group(1)
    match = BARE_JSON_RE.search(text)
    if match:
        return match.group(0)
    return None


def parse_response(text: str, provider: str = "llm") -> LLMStateResponse:
    """Parse a model answer into an LLMStateResponse.

    The state name is taken as-is; checking it against the configured
    states is left to the caller.

    Raises:
        LLMResponseParseError: If no valid JSON object with a state and
            a numeric confidence can be found.
    """
    json_str = extract_json(text)
    if json_str is None:
        raise LLMResponseParseError(
            f"Could not extract JSON from {provider} response", provider=provider
        )

    try:
        data = json.loads(json_str)
    except json.JSONDecodeError as e:
        raise LLMResponseParseError(
            f"Failed to parse {provider} response: {e}", provider=provider
        ) from e

    if not isinstance(data, dict) or "state" not in data:
        raise LLMResponseParseError(
            f"Invalid {provider} response structure: missing 'state'", provider=provider
        )

    try:
        confidence = float(data.get("confidence", 0))
    except (TypeError, ValueError) as e:
        raise LLMResponseParseError(
            f"Invalid confidence in {provider} response: {data.get('confidence')!r}",
            provider=provider,
        ) from e

    if not math.isfinite(confidence) or not 0 <= confidence <= 1:
        raise LLMResponseParseError(
            f"Confidence out of range in {provider} response: {confidence}",
            provider=provider,
        )

    reasoning = data.get("reasoning")
    return LLMStateResponse(
        state=str(data["state"]),
        confidence=confidence,
        reasoning=str(reasoning) if reasoning is not None else None,
    )


class BaseLLMService(ABC):
    """Shared prompt, parsing and retry behavior for providers."""

    provider: str = "llm"
    default_model: str = ""

    def __init__(
        self,
        api_key: str,
        retry_count: int = 3,
        model: str | None = None,
        retry_base_delay: float = 0.5,
    ) -> None:
        """Initialize the service.

        Args:
            api_key: Provider credential.
            retry_count: Total attempts before giving up.
            model: Model name, defaults to the provider's default.
            retry_base_delay: Backoff unit in seconds.
        """
        if retry_count < 1:
            raise ConfigurationError("retry_count must be at least 1")

        self.api_key = api_key
        self.retry_count = retry_count
        self.model = model or self.default_model
        self.retry_base_delay = retry_base_delay
        self.last_attempts = 0

    @abstractmethod
    async def _complete(self, prompt: str) -> str:
        """Send the prompt and return the model's raw text answer."""
        ...

    def backoff_delay(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number ``attempt`` (1-based)."""
        return 2**attempt * self.retry_base_delay

    async def determine_state(
        self,
        states: Mapping[str, Sequence[str]],
        facts: Sequence[str],
    ) -> LLMStateResponse:
        """Classify facts, retrying with exponential backoff.

        Raises:
            Exception: The last error once all attempts have failed.
        """
        prompt = build_prompt(states, facts)
        last_error: Exception | None = None

        for attempt in range(1, self.retry_count + 1):
            self.last_attempts = attempt
            try:
                text = await self._complete(prompt)
                return parse_response(text, self.provider)
            except Exception as e:
                last_error = e
                logger.warning(
                    "%s attempt %d/%d failed: %s",
                    self.provider, attempt, self.retry_count, e,
                )
                if attempt < self.retry_count:
                    await asyncio.sleep(self.backoff_delay(attempt))

        assert last_error is not None
        raise last_error
