"""Data models for facts, transitions and state snapshots."""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Fact:
    """A piece of textual evidence about application state.

    Two facts with the same content are interchangeable; source and
    timestamp are informational only.

    Attributes:
        content: The fact text.
        source: Optional label for where the fact came from.
        timestamp: Optional time the fact was observed.
    """

    content: str
    source: str | None = None
    timestamp: datetime | None = None


def fact_text(fact: "Fact | str") -> str:
    """Unwrap a Fact to its content; strings pass through."""
    return fact if isinstance(fact, str) else fact.content


def freeze_states(states: Mapping[str, Sequence[str]]) -> Mapping[str, tuple[str, ...]]:
    """Return a read-only copy of a state definition mapping."""
    return MappingProxyType({name: tuple(facts) for name, facts in states.items()})


@dataclass(frozen=True)
class Transition:
    """A change of current state, recorded for auditing."""

    from_state: str | None
    to_state: str
    timestamp: datetime
    facts: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "from": self.from_state,
            "to": self.to_state,
            "timestamp": self.timestamp.isoformat(),
            "facts": list(self.facts),
        }


@dataclass(frozen=True)
class StateRecord:
    """Immutable snapshot of a bot's state.

    Attributes:
        current_state: The last determined state, None before the first
            determination or after facts are cleared.
        previous_state: The state before the last transition.
        facts: Active fact texts, in insertion order.
        confidence: Confidence of the last determination (0..1).
        last_updated: Time of the last determination or reset.
        transitions: Every state change so far, oldest first.
        error: Message of the last failed determination, cleared on success.
    """

    current_state: str | None = None
    previous_state: str | None = None
    facts: tuple[str, ...] = ()
    confidence: float = 0.0
    last_updated: datetime = field(default_factory=utcnow)
    transitions: tuple[Transition, ...] = ()
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-ready data using the wire field names."""
        data: dict[str, Any] = {
            "currentState": self.current_state,
            "previousState": self.previous_state,
            "facts": list(self.facts),
            "confidence": self.confidence,
            "lastUpdated": self.last_updated.isoformat(),
            "transitions": [t.to_dict() for t in self.transitions],
        }
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass(frozen=True)
class LLMStateResponse:
    """A backend's answer: the chosen state and how sure it is."""

    state: str
    confidence: float
    reasoning: str | None = None
