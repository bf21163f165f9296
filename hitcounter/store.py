"""
Durable counter store abstraction.

Supports a Redis-backed implementation for production and an in-memory
double for tests/local runs. Every failure surfaces as StoreUnavailable so
the caller can decide how to degrade.
"""

from __future__ import annotations

import logging
import re
import threading
from dataclasses import dataclass, field
from typing import Dict, Optional, Protocol

import redis
from redis import exceptions as redis_exceptions

logger = logging.getLogger(__name__)

_DECIMAL = re.compile(r"[0-9]+")


class StoreUnavailable(Exception):
    """The durable store could not answer."""


class CounterStore(Protocol):
    """Minimal interface the counter service needs from a durable store."""

    @property
    def available(self) -> bool:
        ...

    def increment(self, identifier: str) -> int:
        ...

    def read(self, identifier: str) -> int:
        ...

    def close(self) -> None:
        ...


def parse_stored_count(raw) -> int:
    """
    Parse a stored decimal count. Anything unusable reads as zero.

    Only plain ASCII digits count, matching what Redis accepts for INCR.
    """
    if raw is None:
        return 0
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("ascii")
        except UnicodeDecodeError:
            logger.debug("non-ascii stored count %r treated as absent", raw)
            return 0
    if not isinstance(raw, str) or not _DECIMAL.fullmatch(raw):
        logger.debug("non-numeric stored count %r treated as absent", raw)
        return 0
    return int(raw)


@dataclass
class InMemoryCounterStore:
    """Dict-backed stand-in for the durable store (tests/dev).

    Setting ``fail`` makes every call raise StoreUnavailable.
    """

    values: Dict[str, str] = field(default_factory=dict)
    key_prefix: str = "hits:"
    fail: bool = False

    def __post_init__(self):
        self._lock = threading.Lock()

    @property
    def available(self) -> bool:
        return True

    def _check(self) -> None:
        if self.fail:
            raise StoreUnavailable("in-memory store configured to fail")

    def increment(self, identifier: str) -> int:
        self._check()
        key = self.key_prefix + identifier
        with self._lock:
            current = self.values.get(key, "0")
            # Redis refuses INCR on non-integer values the same way.
            if not _DECIMAL.fullmatch(current):
                raise StoreUnavailable(f"value at {key} is not an integer")
            value = int(current) + 1
            self.values[key] = str(value)
        return value

    def read(self, identifier: str) -> int:
        self._check()
        return parse_stored_count(self.values.get(self.key_prefix + identifier))

    def close(self) -> None:
        pass


@dataclass
class RedisCounterStore:
    """
    Redis-backed store using INCR/GET on ``<key_prefix><identifier>``.

    The connection is opened lazily on first use and the outcome is cached,
    failure included: a store whose first ping failed stays unavailable for
    the rest of the process.
    """

    url: str
    key_prefix: str = "hits:"
    timeout: float = 1.5
    connect_timeout: float = 2.0

    def __post_init__(self):
        self._client: Optional[redis.Redis] = None
        self._initialized = False
        self._init_lock = threading.Lock()

    def key(self, identifier: str) -> str:
        return self.key_prefix + identifier

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def available(self) -> bool:
        return self._connect() is not None

    def _connect(self) -> Optional[redis.Redis]:
        if self._initialized:
            return self._client
        with self._init_lock:
            if not self._initialized:
                self._client = self._open()
                self._initialized = True
        return self._client

    def _open(self) -> Optional[redis.Redis]:
        try:
            client = redis.Redis.from_url(
                self.url,
                socket_timeout=self.timeout,
                socket_connect_timeout=self.connect_timeout,
            )
        except ValueError as exc:
            logger.warning("parse redis url failed: %s", exc)
            return None
        try:
            client.ping()
        except Exception as exc:
            # Protocol surprises from the handshake are cached as unavailable too.
            logger.warning("redis ping failed: %r", exc)
            client.close()
            return None
        kwargs = client.connection_pool.connection_kwargs
        logger.info(
            "redis enabled (addr=%s:%s)", kwargs.get("host"), kwargs.get("port")
        )
        return client

    def _require_client(self) -> redis.Redis:
        client = self._connect()
        if client is None:
            raise StoreUnavailable("redis not connected")
        return client

    def increment(self, identifier: str) -> int:
        client = self._require_client()
        try:
            return int(client.incr(self.key(identifier)))
        except (redis_exceptions.RedisError, OSError) as exc:
            raise StoreUnavailable(f"redis INCR failed: {exc}") from exc

    def read(self, identifier: str) -> int:
        client = self._require_client()
        try:
            raw = client.get(self.key(identifier))
        except (redis_exceptions.RedisError, OSError) as exc:
            raise StoreUnavailable(f"redis GET failed: {exc}") from exc
        return parse_stored_count(raw)

    def close(self) -> None:
        with self._init_lock:
            client, self._client = self._client, None
        if client is not None:
            client.close()
