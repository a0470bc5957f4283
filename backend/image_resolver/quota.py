"""
Daily Search Quota

Per-client counters keyed by "<client>:<YYYY-MM-DD>" (UTC). Only cache
misses that resolve successfully are counted; cached images are always
servable. Counters outlive the day (48h TTL) so clock skew between
writers never truncates a day early.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Callable

from cache.base import KeyValueStore

from .models import QuotaStatus

logger = logging.getLogger(__name__)


class QuotaTracker:
    """Check-then-increment daily counter per client."""

    def __init__(
        self,
        store: KeyValueStore,
        daily_limit: int = 25,
        ttl_seconds: int = 48 * 60 * 60,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.daily_limit = daily_limit
        self.ttl_seconds = ttl_seconds
        self._clock = clock

    def key_for(self, client_id: str) -> str:
        today = datetime.fromtimestamp(self._clock(), tz=timezone.utc).strftime("%Y-%m-%d")
        return f"{client_id}:{today}"

    async def _read_count(self, key: str) -> int:
        data = await self.store.get(key)
        if not data:
            return 0
        try:
            return max(0, int(data.get("c", 0)))
        except (TypeError, ValueError):
            return 0

    async def check(self, client_id: str) -> QuotaStatus:
        """Read the client's count for today. Never mutates state."""
        key = self.key_for(client_id)
        count = await self._read_count(key)
        return QuotaStatus(key=key, count=count, limit=self.daily_limit)

    async def increment(self, status: QuotaStatus) -> int:
        """
        Record one successful resolution against the key from check().

        Re-reads the counter so a concurrent increment is not lost where
        the store has already made it visible; the count never goes down.

        Returns:
            The new count.
        """
        current = await self._read_count(status.key)
        new_count = max(current, status.count) + 1
        await self.store.put(status.key, {"c": new_count}, self.ttl_seconds)
        logger.debug(f"[Quota] {status.key} -> {new_count}/{self.daily_limit}")
        return new_count

    def get_stats(self) -> dict:
        return {
            **self.store.stats(),
            "daily_limit": self.daily_limit,
            "ttl_hours": self.ttl_seconds // 3600,
        }
