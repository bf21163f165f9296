"""
Counter service: one increment/read contract over the durable store and
the in-process fallback.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Optional

from hitcounter.config import Settings
from hitcounter.fallback import FallbackCounter, SingleCounter
from hitcounter.store import CounterStore, RedisCounterStore, StoreUnavailable

logger = logging.getLogger(__name__)

DEFAULT_IDENTIFIER = "home"


class Source(str, enum.Enum):
    """Which backend answered a call."""

    DURABLE = "durable"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class CounterResult:
    identifier: str
    value: int
    source: Source

    def as_dict(self) -> dict:
        return {
            "id": self.identifier,
            "hits": self.value,
            "source": self.source.value,
        }


class CounterService:
    """
    Prefers the durable store and degrades to the in-process counters.

    A call that falls back is answered entirely from the fallback side; the
    two sides are never merged. Store failures are logged, never raised.
    The default identifier maps onto the legacy single counter on the
    fallback side, so it keeps the seed and file persistence.
    """

    def __init__(
        self,
        store: Optional[CounterStore] = None,
        fallback: Optional[FallbackCounter] = None,
        legacy: Optional[SingleCounter] = None,
        default_identifier: str = DEFAULT_IDENTIFIER,
    ):
        self.store = store
        self.fallback = fallback if fallback is not None else FallbackCounter()
        self.legacy = legacy if legacy is not None else SingleCounter()
        self.default_identifier = default_identifier
        self._closed = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "CounterService":
        store = None
        redis_url = settings.resolved_redis_url()
        if redis_url:
            store = RedisCounterStore(
                url=redis_url,
                key_prefix=settings.redis_key_prefix,
                timeout=settings.redis_timeout_seconds,
                connect_timeout=settings.redis_connect_timeout_seconds,
            )
        legacy = SingleCounter.load(
            settings.persist_file, seed=settings.initial_hit_count
        )
        return cls(
            store=store,
            legacy=legacy,
            default_identifier=settings.default_id,
        )

    def resolve_identifier(self, identifier: Optional[str]) -> str:
        return identifier or self.default_identifier

    @property
    def durable_available(self) -> bool:
        return self.store is not None and self.store.available

    def increment(self, identifier: Optional[str] = None) -> CounterResult:
        ident = self.resolve_identifier(identifier)
        if self.durable_available:
            try:
                value = self.store.increment(ident)
            except StoreUnavailable as exc:
                logger.warning("durable increment failed, falling back: %s", exc)
            else:
                return CounterResult(ident, value, Source.DURABLE)
        if ident == self.default_identifier:
            value = self.legacy.increment()
        else:
            value = self.fallback.increment(ident)
        return CounterResult(ident, value, Source.FALLBACK)

    def read(self, identifier: Optional[str] = None) -> CounterResult:
        ident = self.resolve_identifier(identifier)
        if self.durable_available:
            try:
                value = self.store.read(ident)
            except StoreUnavailable as exc:
                logger.warning("durable read failed, falling back: %s", exc)
            else:
                return CounterResult(ident, value, Source.DURABLE)
        if ident == self.default_identifier:
            value = self.legacy.read()
        else:
            value = self.fallback.read(ident)
        return CounterResult(ident, value, Source.FALLBACK)

    def close(self) -> None:
        """Persist the legacy counter and release the store connection."""
        if self._closed:
            return
        self._closed = True
        self.legacy.save()
        if self.store is not None:
            self.store.close()
