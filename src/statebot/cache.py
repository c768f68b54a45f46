"""Memoization of determinations keyed by fact set."""

import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass

KEY_SEPARATOR = "|"


@dataclass(frozen=True)
class CacheEntry:
    """A determination result as it was when cached."""

    state: str
    confidence: float
    timestamp: float


def make_key(facts: Iterable[str]) -> str:
    """Build the cache key for a fact list.

    Facts are sorted so that order does not matter; duplicates are kept.
    Facts containing the separator can collide, which is accepted.
    """
    return KEY_SEPARATOR.join(sorted(facts))


class DeterminationCache:
    """Maps fact sets to previously determined states.

    Entries expire lazily: an entry older than ``expiry`` seconds is
    reported as a miss but stays in the map until it is overwritten or
    the cache is cleared.
    """

    def __init__(
        self,
        expiry: float = 300.0,
        max_entries: int | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the cache.

        Args:
            expiry: Seconds an entry stays valid.
            max_entries: Optional cap; the oldest-written entry is evicted
                when a new key would exceed it. None means unbounded.
            clock: Time source returning seconds.
        """
        self.expiry = expiry
        self.max_entries = max_entries
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def is_valid(self, entry: CacheEntry) -> bool:
        """Check if an entry is younger than the expiry."""
        return self._clock() - entry.timestamp < self.expiry

    def get(self, key: str) -> CacheEntry | None:
        """Return the entry for key, or None if missing or expired."""
        entry = self._entries.get(key)
        if entry is None or not self.is_valid(entry):
            return None
        return entry

    def set(self, key: str, state: str, confidence: float) -> CacheEntry:
        """Store a result, replacing any previous entry for the key."""
        entry = CacheEntry(state=state, confidence=confidence, timestamp=self._clock())

        # Re-inserting moves the key to the end of the write order
        self._entries.pop(key, None)
        if self.max_entries is not None:
            while len(self._entries) >= self.max_entries:
                oldest = next(iter(self._entries))
                del self._entries[oldest]

        self._entries[key] = entry
        return entry

    def clear(self) -> None:
        """Remove all entries."""
        self._entries.clear()
