"""
Day state cache

TTL-based in-memory cache of materialized day states, keyed by
(user_id, date). Reduces repeated materialization for reads of the same day.

Mutations must call invalidate() before returning so the next read sees the
write. Entries are deep-copied on the way in and out; callers can never mutate
a cached value.
"""
import copy
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)

CacheKey = Tuple[str, str]


class CacheConfig:
    """Cache configuration constants"""
    DEFAULT_TTL_MINUTES = 5


class StateCache:
    """
    Per-process cache of day states.

    Expiry is passive: an entry past its TTL is dropped when next read.
    A TTL of 0 disables caching entirely.
    """

    def __init__(
        self,
        ttl_minutes: float = CacheConfig.DEFAULT_TTL_MINUTES,
        clock: Callable[[], float] = time.monotonic,
        on_lookup: Optional[Callable[[bool], None]] = None
    ):
        self.ttl_seconds = ttl_minutes * 60
        self._clock = clock
        self._on_lookup = on_lookup
        # {(user_id, date): (value, expiry_timestamp)}
        self._entries: Dict[CacheKey, Tuple[Any, float]] = {}
        # Bumped by invalidate()/clear(); a load that started under an older
        # generation must not be stored
        self._generations: Dict[str, int] = {}
        self._epoch = 0
        self._stats = {
            "hits": 0,
            "misses": 0,
            "invalidations": 0,
            "total_queries": 0
        }

    def _generation(self, user_id: str) -> Tuple[int, int]:
        return self._epoch, self._generations.get(user_id, 0)

    @property
    def enabled(self) -> bool:
        return self.ttl_seconds > 0

    def _record(self, hit: bool) -> None:
        self._stats["total_queries"] += 1
        self._stats["hits" if hit else "misses"] += 1
        if self._on_lookup:
            self._on_lookup(hit)

    def get(self, user_id: str, date: str) -> Optional[Any]:
        """Cached value for a day, or None on miss or expiry"""
        key = (user_id, date)
        entry = self._entries.get(key)
        if entry is not None:
            value, expiry = entry
            if self._clock() < expiry:
                self._record(hit=True)
                logger.debug(f"Cache HIT: {key}")
                return copy.deepcopy(value)
            del self._entries[key]
            logger.debug(f"Cache EXPIRED: {key}")

        self._record(hit=False)
        logger.debug(f"Cache MISS: {key}")
        return None

    def set(self, user_id: str, date: str, value: Any) -> None:
        if not self.enabled:
            return
        self._entries[(user_id, date)] = (copy.deepcopy(value), self._clock() + self.ttl_seconds)
        logger.debug(f"Cache STORED: {(user_id, date)} (TTL: {int(self.ttl_seconds)}s)")

    async def get_or_load(self, user_id: str, date: str, loader: Callable[[], Awaitable[Any]]) -> Any:
        """
        Read-through lookup.

        Args:
            user_id: Owner of the day
            date: Date key
            loader: Coroutine factory producing the value on a miss

        Returns:
            A copy of the cached or freshly loaded value

        A value loaded while the user was invalidated is returned but not
        cached, so a write that commits during the load is seen by the next
        read.
        """
        cached = self.get(user_id, date)
        if cached is not None:
            return cached

        generation = self._generation(user_id)
        value = await loader()
        if self._generation(user_id) == generation:
            self.set(user_id, date, value)
        else:
            logger.debug(f"Discarding stale load for {(user_id, date)}: invalidated while loading")
        return copy.deepcopy(value)

    def invalidate(self, user_id: str, date: Optional[str] = None) -> int:
        """
        Drop cached days for a user.

        Args:
            user_id: Whose entries to drop
            date: Only this date; all of the user's dates when omitted

        Returns:
            Number of entries removed
        """
        self._generations[user_id] = self._generations.get(user_id, 0) + 1
        if date is not None:
            keys = [(user_id, date)] if (user_id, date) in self._entries else []
        else:
            keys = [key for key in self._entries if key[0] == user_id]

        for key in keys:
            del self._entries[key]

        self._stats["invalidations"] += len(keys)
        if keys:
            logger.debug(f"Invalidated {len(keys)} cache entries (user_id='{user_id}', date='{date}')")
        return len(keys)

    def clear(self) -> int:
        self._epoch += 1
        count = len(self._entries)
        self._entries.clear()
        self._stats["invalidations"] += count
        logger.info(f"Cleared entire cache ({count} entries)")
        return count

    def clear_expired(self) -> int:
        """Remove every expired entry now rather than on next read"""
        now = self._clock()
        expired = [key for key, (_, expiry) in self._entries.items() if now >= expiry]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.info(f"Cleared {len(expired)} expired cache entries")
        return len(expired)

    def stats(self) -> dict:
        """
        Cache performance statistics.

        Returns:
            dict with hits, misses, hit_rate_percent, invalidations, total_queries, cache_size
        """
        hits = self._stats["hits"]
        total = self._stats["total_queries"]
        hit_rate = (hits / total * 100) if total > 0 else 0

        return {
            "hits": hits,
            "misses": self._stats["misses"],
            "hit_rate_percent": round(hit_rate, 2),
            "invalidations": self._stats["invalidations"],
            "total_queries": total,
            "cache_size": len(self._entries)
        }

    def reset_stats(self) -> None:
        for key in self._stats:
            self._stats[key] = 0
