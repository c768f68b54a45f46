"""State store: facts in, determined state out.

The store owns the fact list and the current state, asks the LLM
backend to classify facts (debounced and memoized), records transitions
and notifies subscribers with immutable snapshots.
"""

import asyncio
import itertools
import logging
import time
from collections.abc import Callable, Iterable
from datetime import datetime

from .cache import DeterminationCache, make_key
from .config import StateBotConfig
from .errors import UnknownStateError
from .llm import LLMService, create_llm_service
from .logging import JSONLLogger, get_logger
from .models import Fact, StateRecord, Transition, fact_text, freeze_states, utcnow
from .scheduler import DebounceScheduler

logger = logging.getLogger(__name__)

Subscriber = Callable[[StateRecord], None]


class StateBotStore:
    """Holds facts and state for one StateBot and runs determinations.

    Fact mutations (add, add many, remove) schedule a debounced
    determination. ``determine_state()`` runs one immediately. Only one
    determination runs at a time; overlapping requests wait their turn.
    """

    def __init__(
        self,
        config: StateBotConfig,
        llm_service: LLMService | None = None,
        event_logger: JSONLLogger | None = None,
        bot_id: str | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the store.

        Args:
            config: Validated bot configuration.
            llm_service: Backend to use instead of the configured provider.
            event_logger: JSONL event log, defaults to the global logger.
            bot_id: Identifier included in event logs.
            clock: Time source for cache expiry.

        Raises:
            ConfigurationError: If the configured provider is not supported.
        """
        self.config = config
        self.states = freeze_states(config.states)
        self.bot_id = bot_id
        self._llm: LLMService = llm_service or create_llm_service(config)
        self._cache = DeterminationCache(
            expiry=config.cache_expiry,
            max_entries=config.cache_max_entries,
            clock=clock,
        )
        self._scheduler = DebounceScheduler(config.debounce_time, self._run_determination)
        self._lock = asyncio.Lock()
        self._subscribers: dict[int, Subscriber] = {}
        self._subscriber_ids = itertools.count()
        self._epoch = 0
        self._reset_epoch = 0
        self._event_logger = event_logger or get_logger()
        self._reset_record()

    def _reset_record(self) -> None:
        """Restore the initial empty record."""
        self._current_state: str | None = None
        self._previous_state: str | None = None
        self._facts: list[str] = []
        self._confidence = 0.0
        self._last_updated: datetime = utcnow()
        self._transitions: list[Transition] = []
        self._error: str | None = None

    @property
    def llm_service(self) -> LLMService:
        return self._llm

    def set_llm_service(self, service: LLMService) -> None:
        """Replace the backend, e.g. with a custom or test implementation."""
        self._llm = service

    @property
    def cache(self) -> DeterminationCache:
        return self._cache

    @property
    def pending(self) -> bool:
        """True if a debounced determination is waiting to fire."""
        return self._scheduler.pending

    # -- Subscriptions --

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a callback for state snapshots.

        The callback is called right away with the current snapshot, then
        after every change.

        Returns:
            A function that removes the subscription.
        """
        token = next(self._subscriber_ids)
        self._subscribers[token] = callback
        self._notify(callback, self.get_state())

        def unsubscribe() -> None:
            self._subscribers.pop(token, None)

        return unsubscribe

    def _notify(self, callback: Subscriber, snapshot: StateRecord) -> None:
        try:
            callback(snapshot)
        except Exception:
            logger.exception("StateBot subscriber raised")

    def _publish(self) -> None:
        """Send the current snapshot to every subscriber."""
        snapshot = self.get_state()
        for callback in list(self._subscribers.values()):
            self._notify(callback, snapshot)

    # -- Queries --

    def get_state(self) -> StateRecord:
        """Return an immutable snapshot of the current record."""
        return StateRecord(
            current_state=self._current_state,
            previous_state=self._previous_state,
            facts=tuple(self._facts),
            confidence=self._confidence,
            last_updated=self._last_updated,
            transitions=tuple(self._transitions),
            error=self._error,
        )

    # -- Mutations --

    async def add_fact(self, fact: Fact | str) -> None:
        """Append a fact and schedule a determination."""
        self._facts.append(fact_text(fact))
        self._publish()
        self._scheduler.schedule()

    async def add_facts(self, facts: Iterable[Fact | str]) -> None:
        """Append several facts, in order, and schedule one determination."""
        self._facts.extend(fact_text(fact) for fact in facts)
        self._publish()
        self._scheduler.schedule()

    async def remove_fact(self, fact: Fact | str) -> None:
        """Remove every occurrence of a fact and schedule a determination."""
        text = fact_text(fact)
        self._facts = [f for f in self._facts if f != text]
        self._publish()
        self._scheduler.schedule()

    async def clear_facts(self) -> None:
        """Remove all facts and forget the current state.

        No determination is made; a result still in flight is not applied.
        """
        self._scheduler.cancel()
        self._epoch += 1
        self._facts = []
        self._current_state = None
        self._confidence = 0.0
        self._event_logger.log("facts_cleared", bot_id=self.bot_id)
        self._publish()

    def reset(self) -> None:
        """Restore the initial record and empty the cache.

        Subscribers stay registered.
        """
        self._scheduler.cancel()
        self._epoch += 1
        self._reset_epoch += 1
        self._reset_record()
        self._cache.clear()
        self._event_logger.log("reset", bot_id=self.bot_id)
        self._publish()

    # -- Determination --

    async def determine_state(self) -> str | None:
        """Determine the state now, cancelling any pending debounced run.

        Returns:
            The determined state, or the existing one if there are no facts.

        Raises:
            Exception: Whatever the backend raised after its retries, or
                UnknownStateError. The message is also recorded on the
                record's ``error``.
        """
        self._scheduler.cancel()
        return await self._run_determination()

    async def wait_idle(self) -> None:
        """Wait for debounced determinations that already fired."""
        await self._scheduler.wait_idle()

    async def aclose(self) -> None:
        """Cancel the pending timer and let running determinations finish."""
        self._scheduler.cancel()
        await self._scheduler.wait_idle()

    async def _run_determination(self) -> str | None:
        async with self._lock:
            facts = list(self._facts)
            if not facts:
                return self._current_state

            epoch = self._epoch
            reset_epoch = self._reset_epoch
            key = make_key(facts)
            self._event_logger.log(
                "determination_start", bot_id=self.bot_id, facts_count=len(facts)
            )

            entry = self._cache.get(key)
            if entry is not None:
                logger.debug("Cache hit for %d fact(s): %s", len(facts), entry.state)
                self._event_logger.log(
                    "cache_hit",
                    bot_id=self.bot_id,
                    state=entry.state,
                    confidence=entry.confidence,
                    facts_count=len(facts),
                )
                self._apply_result(entry.state, entry.confidence)
                return entry.state

            provider = getattr(self._llm, "provider", type(self._llm).__name__)
            start_time = time.time()
            try:
                response = await self._llm.determine_state(self.states, facts)
            except Exception as e:
                self._event_logger.log_llm_call(
                    provider,
                    False,
                    bot_id=self.bot_id,
                    duration_ms=(time.time() - start_time) * 1000,
                    attempts=getattr(self._llm, "last_attempts", None),
                    error=str(e),
                )
                self._record_error(e, epoch)
                raise

            self._event_logger.log_llm_call(
                provider,
                True,
                bot_id=self.bot_id,
                duration_ms=(time.time() - start_time) * 1000,
                attempts=getattr(self._llm, "last_attempts", None),
                state=response.state,
                confidence=response.confidence,
            )

            if response.state not in self.states:
                error = UnknownStateError(response.state, list(self.states))
                self._record_error(error, epoch)
                raise error

            # Not cached if a reset purged the cache meanwhile
            if reset_epoch == self._reset_epoch:
                self._cache.set(key, response.state, response.confidence)

            if epoch != self._epoch:
                logger.info("Facts were cleared during determination, result not applied")
                return self._current_state

            self._apply_result(response.state, response.confidence)
            return response.state

    def _apply_result(self, new_state: str, confidence: float) -> None:
        """Write a determination to the record and publish it."""
        now = utcnow()

        if new_state != self._current_state:
            self._transitions.append(
                Transition(
                    from_state=self._current_state,
                    to_state=new_state,
                    timestamp=now,
                    facts=tuple(self._facts),
                )
            )
            self._event_logger.log_transition(
                self._current_state,
                new_state,
                bot_id=self.bot_id,
                confidence=confidence,
                facts_count=len(self._facts),
            )
            self._previous_state = self._current_state

        self._current_state = new_state
        self._confidence = confidence
        self._last_updated = now
        self._error = None

        if confidence < self.config.determination_threshold:
            logger.warning(
                "Low confidence for state %s: %.2f < %.2f",
                new_state, confidence, self.config.determination_threshold,
            )
            self._event_logger.log(
                "low_confidence",
                bot_id=self.bot_id,
                state=new_state,
                confidence=confidence,
                threshold=self.config.determination_threshold,
            )

        self._publish()

    def _record_error(self, error: Exception, epoch: int) -> None:
        """Keep the current state but remember why determination failed.

        Failures of a run that started before a clear or reset are only logged.
        """
        if epoch != self._epoch:
            logger.info("Determination failed after facts were cleared: %s", error)
            return
        self._error = str(error) or type(error).__name__
        self._event_logger.log(
            "determination_error", bot_id=self.bot_id, error=self._error
        )
        self._publish()


def create_state_bot(
    config: StateBotConfig,
    llm_service: LLMService | None = None,
    **kwargs,
) -> StateBotStore:
    """Create a StateBot for a configuration.

    Args:
        config: Bot configuration.
        llm_service: Optional backend overriding the configured provider.
        **kwargs: Passed to StateBotStore (event_logger, bot_id, clock).

    Raises:
        ConfigurationError: If the configured provider is not supported.
    """
    return StateBotStore(config, llm_service=llm_service, **kwargs)
