"""
cache.py — TTL Cache with Stale-on-Error
==========================================
Wraps a zero-argument async producer and caches its result for a fixed
TTL. Used for gateway candidate sets (long TTL) and for pinned routing
decisions (short TTL).

Policy:
    1. A value younger than the TTL is returned as-is
    2. An expired (or missing) value triggers one refresh
    3. A failed refresh keeps and returns the previous value
    4. With nothing cached, a failed refresh propagates its error
    5. Readers arriving while a refresh is in flight get the previous
       value without waiting; with nothing cached they await that same
       refresh
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """A cached value and when it was fetched (monotonic seconds)."""

    value: T
    fetched_at: float
    ttl: float

    def is_fresh(self, now: float) -> bool:
        return now - self.fetched_at < self.ttl


class SimpleCache(Generic[T]):
    """
    TTL cache around an async producer.

    The entry is replaced wholesale on every successful refresh and is
    never fabricated: on failure the caller either gets the last good
    value or the producer's exception.
    """

    def __init__(
        self,
        producer: Callable[[], Awaitable[T]],
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
        name: str = "cache",
    ):
        """
        Args:
            producer: Zero-argument coroutine function producing the value.
            ttl_seconds: Seconds a fetched value stays fresh.
            clock: Monotonic time source (injectable for tests).
            name: Label used in log messages.
        """
        if ttl_seconds < 0:
            raise ValueError("ttl_seconds must not be negative")
        self._producer = producer
        self._ttl = ttl_seconds
        self._clock = clock
        self._name = name
        self._entry: Optional[CacheEntry[T]] = None
        self._pending: Optional[asyncio.Future] = None

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    @property
    def value(self) -> Optional[T]:
        """The cached value, fresh or stale, or None."""
        return self._entry.value if self._entry else None

    @property
    def last_updated(self) -> Optional[float]:
        return self._entry.fetched_at if self._entry else None

    def invalidate(self) -> None:
        """Drop the cached entry so the next read refreshes."""
        self._entry = None

    async def get(self) -> T:
        entry = self._entry
        if entry is not None and entry.is_fresh(self._clock()):
            return entry.value

        if self._pending is not None:
            if entry is not None:
                logger.debug("%s: refresh in flight, serving stale value", self._name)
                return entry.value
            return await asyncio.shield(self._pending)

        self._pending = asyncio.ensure_future(self._refresh())
        return await asyncio.shield(self._pending)

    async def _refresh(self) -> T:
        try:
            value = await self._producer()
        except Exception as e:
            if self._entry is None:
                logger.error("%s: refresh failed with nothing cached: %s", self._name, e)
                raise
            logger.error(
                "%s: refresh failed, keeping value from %.0fs ago: %s",
                self._name,
                self._clock() - self._entry.fetched_at,
                e,
            )
            return self._entry.value
        finally:
            self._pending = None

        self._entry = CacheEntry(value=value, fetched_at=self._clock(), ttl=self._ttl)
        logger.debug("%s: refreshed (ttl=%ss)", self._name, self._ttl)
        return value
