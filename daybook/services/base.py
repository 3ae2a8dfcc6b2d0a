"""Shared plumbing for the services that write journal rows"""

import logging
from typing import Optional

from daybook.models.entry import ActivityEntry
from daybook.utils.cache import StateCache
from daybook.utils.datetime_helpers import TimezoneClock, parse_date_key

logger = logging.getLogger(__name__)


class MutationService:
    """
    Base for write-side services.

    Every public mutation resolves its date, writes through the store and
    invalidates the cache before returning.
    """

    def __init__(self, store, cache: StateCache, clock: TimezoneClock):
        self.store = store
        self.cache = cache
        self.clock = clock

    async def _resolve_date(self, user_id: str, date: Optional[str] = None) -> str:
        """Validated date key, defaulting to the user's today"""
        if date:
            parse_date_key(date)
            return date
        return await self.clock.today(user_id)

    def _invalidate(self, user_id: str, date: Optional[str] = None) -> None:
        self.cache.invalidate(user_id, date)

    async def _append_log(self, user_id: str, date: str, text: str) -> ActivityEntry:
        """Record an automatic activity entry for a date"""
        entry = await self.store.create_entry(user_id, date, text, timestamp=self.clock.now())
        logger.debug(f"Logged activity for user {user_id} on {date}: {text!r}")
        return entry
