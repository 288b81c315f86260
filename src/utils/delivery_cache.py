"""
In-memory cache of processed webhook deliveries.

JobAdder delivers webhooks at least once. Remembering the webhookId of
every successfully processed delivery for a short while lets exact
redeliveries return early, before any JobAdder API call is made.
Upsert idempotence still guarantees correctness when the cache misses
(restart, multiple workers, expired entry).

Uses TTL to auto-expire stale entries.
"""
import asyncio
import time
import logging
from typing import Callable

logger = logging.getLogger(__name__)


class WebhookDeliveryCache:
    """
    TTL-based set of processed webhook delivery ids.

    A ttl of 0 disables the cache: nothing is remembered and every
    lookup misses.
    """

    def __init__(self, ttl_seconds: int = 600, clock: Callable[[], float] = time.monotonic):
        self._seen: dict[str, float] = {}
        self._ttl = ttl_seconds
        self._clock = clock
        self._lock = asyncio.Lock()

    @property
    def enabled(self) -> bool:
        return self._ttl > 0

    def __len__(self) -> int:
        return len(self._seen)

    def _is_expired(self, marked_at: float, now: float) -> bool:
        return now - marked_at > self._ttl

    async def seen(self, delivery_id: str) -> bool:
        """True if this delivery id was processed within the TTL."""
        if not self.enabled or not delivery_id:
            return False
        async with self._lock:
            marked_at = self._seen.get(delivery_id)
            if marked_at is None:
                return False
            if self._is_expired(marked_at, self._clock()):
                del self._seen[delivery_id]
                return False
            logger.debug(f"Delivery cache HIT for {delivery_id}")
            return True

    async def mark(self, delivery_id: str):
        """Remember a successfully processed delivery id, evicting expired ones."""
        if not self.enabled or not delivery_id:
            return
        async with self._lock:
            now = self._clock()
            self._evict_expired(now)
            self._seen.pop(delivery_id, None)
            self._seen[delivery_id] = now

    def _evict_expired(self, now: float) -> int:
        # Insertion order is mark order, so the expired entries form a prefix.
        expired = 0
        while self._seen:
            key = next(iter(self._seen))
            if not self._is_expired(self._seen[key], now):
                break
            del self._seen[key]
            expired += 1
        if expired:
            logger.debug(f"Delivery cache cleanup: removed {expired} expired entries")
        return expired

    async def cleanup_expired(self) -> int:
        """Remove all expired entries."""
        async with self._lock:
            return self._evict_expired(self._clock())

    async def clear_all(self) -> int:
        """Clear all remembered deliveries."""
        async with self._lock:
            count = len(self._seen)
            self._seen.clear()
            logger.info(f"Delivery cache CLEARED: removed {count} entries")
            return count
