from __future__ import annotations

import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Iterator

import structlog

logger = structlog.get_logger()

DEFAULT_TTL_SECONDS = 300


def cache_key(
    operation: str,
    config_id: str,
    cluster: str,
    resource: str,
    range_token: str,
    step: str,
) -> str:
    """Compose the deterministic key for one metrics request."""
    return f"{operation}:{config_id}:{cluster}:{resource}:{range_token}:{step}"


class ReadWriteLock:
    """Many concurrent readers or a single writer."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._readers:
                self._cond.wait()
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


@dataclass(frozen=True)
class CacheEntry:
    payload: Any
    expires_at: float


class ResponseCache:
    """In-process TTL cache for assembled metrics payloads.

    Only successful payloads are stored; failures never reach set().
    """

    def __init__(
        self,
        ttl: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = ReadWriteLock()

    @property
    def ttl(self) -> float:
        return self._ttl

    def get(self, key: str) -> Any | None:
        """Get a payload if present and not yet expired."""
        with self._lock.read():
            entry = self._entries.get(key)
            if entry is not None and self._clock() < entry.expires_at:
                return entry.payload
        return None

    def set(self, key: str, payload: Any, ttl: float | None = None) -> None:
        """Store a payload; an existing entry for the key is overwritten."""
        expires_at = self._clock() + (self._ttl if ttl is None else ttl)
        with self._lock.write():
            self._entries[key] = CacheEntry(payload=payload, expires_at=expires_at)

    def sweep(self) -> int:
        """Delete every expired entry. Returns the number removed."""
        now = self._clock()
        with self._lock.write():
            expired = [k for k, e in self._entries.items() if e.expires_at <= now]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.debug("cache_swept", removed=len(expired))
        return len(expired)

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._entries)
