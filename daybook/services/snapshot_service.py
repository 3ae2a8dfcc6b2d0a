"""
SnapshotService - Frozen Day Captures

Stores one immutable capture of a materialized day per (user, date) and
enforces the user's retention policy.
"""

import logging
from typing import Optional

from daybook.config import SNAPSHOT_MAX_COUNT_LIMIT, SNAPSHOT_MAX_DAYS_LIMIT
from daybook.exceptions import NotFoundError, ValidationError
from daybook.models.snapshot import (
    RetentionPolicy,
    SnapshotDocument,
    SnapshotInfo,
    SnapshotSource,
    load_snapshot_document,
)
from daybook.models.state import DayState
from daybook.monitoring import track_pruned, track_snapshot
from daybook.utils.datetime_helpers import days_between, parse_date_key

logger = logging.getLogger(__name__)


class SnapshotService:
    """
    Service for day snapshots.

    Responsibilities:
    - Save (overwrite) and read versioned snapshot documents
    - List and delete snapshots
    - Retention policy storage and pruning
    - Searching log entries inside snapshots
    """

    def __init__(self, store, clock):
        """
        Initialize SnapshotService.

        Args:
            store: JournalStore implementation
            clock: TimezoneClock used to resolve the user's today for pruning
        """
        self.store = store
        self.clock = clock

    # ==========================================
    # Save / read / delete
    # ==========================================

    async def save(
        self,
        user_id: str,
        date: str,
        state: DayState,
        source: SnapshotSource = SnapshotSource.MANUAL
    ) -> SnapshotInfo:
        """
        Save a snapshot, replacing any existing one for the date.

        Retention is enforced after every save.

        Returns:
            SnapshotInfo for the saved snapshot
        """
        parse_date_key(date)
        document = SnapshotDocument(state=state, source=source)
        record = await self.store.save_snapshot(user_id, date, document.to_json_dict())
        track_snapshot(source.value)
        logger.info(f"Snapshot saved for user {user_id} on {date} ({source.value})")

        await self.prune(user_id)
        return SnapshotInfo(date=record.date, created_at=record.created_at)

    async def get_document(self, user_id: str, date: str) -> Optional[SnapshotDocument]:
        """Stored snapshot document for a date, upgraded to the current version"""
        parse_date_key(date)
        record = await self.store.get_snapshot(user_id, date)
        if record is None:
            return None
        return load_snapshot_document(record.document, captured_at=record.created_at)

    async def get(self, user_id: str, date: str) -> Optional[DayState]:
        """Frozen state for a date, or None when no snapshot exists"""
        document = await self.get_document(user_id, date)
        return document.state if document else None

    async def get_or_raise(self, user_id: str, date: str) -> DayState:
        state = await self.get(user_id, date)
        if state is None:
            raise NotFoundError(
                f"No snapshot for {date}",
                record_type="Snapshot",
                record_id=date,
                user_id=user_id
            )
        return state

    async def delete(self, user_id: str, date: str) -> list[SnapshotInfo]:
        """
        Delete the snapshot for a date.

        Returns:
            Remaining snapshots, most recent first

        Raises:
            NotFoundError: If no snapshot exists for the date
        """
        parse_date_key(date)
        if not await self.store.delete_snapshot(user_id, date):
            raise NotFoundError(
                f"No snapshot for {date}",
                record_type="Snapshot",
                record_id=date,
                user_id=user_id
            )
        logger.info(f"Snapshot deleted for user {user_id}, date {date}")
        return await self.list_snapshots(user_id)

    async def list_snapshots(self, user_id: str) -> list[SnapshotInfo]:
        """All snapshot dates with their capture time, most recent first"""
        return await self.store.list_snapshots(user_id)

    # ==========================================
    # Retention
    # ==========================================

    async def get_retention_policy(self, user_id: str) -> RetentionPolicy:
        return await self.store.get_retention_policy(user_id)

    async def set_retention_policy(self, user_id: str, max_days: int, max_count: int) -> RetentionPolicy:
        """
        Store a new retention policy and prune immediately.

        Raises:
            ValidationError: If a bound is outside its allowed range
        """
        if not isinstance(max_days, int) or not 1 <= max_days <= SNAPSHOT_MAX_DAYS_LIMIT:
            raise ValidationError(
                f"must be between 1 and {SNAPSHOT_MAX_DAYS_LIMIT}",
                field="maxDays",
                value=max_days,
                user_id=user_id
            )
        if not isinstance(max_count, int) or not 1 <= max_count <= SNAPSHOT_MAX_COUNT_LIMIT:
            raise ValidationError(
                f"must be between 1 and {SNAPSHOT_MAX_COUNT_LIMIT}",
                field="maxCount",
                value=max_count,
                user_id=user_id
            )

        policy = await self.store.set_retention_policy(
            user_id, RetentionPolicy(max_days=max_days, max_count=max_count)
        )
        await self.prune(user_id, policy)
        return policy

    async def would_retain(self, user_id: str, date: str, today: str, also_kept: tuple[str, ...] = ()) -> bool:
        """
        Whether a snapshot saved for date now would survive the next prune.

        Args:
            also_kept: Dates about to be captured as well (counted against
                max_count when newer than date)
        """
        policy = await self.store.get_retention_policy(user_id)
        if days_between(date, today) >= policy.max_days:
            return False
        newer = {s.date for s in await self.store.list_snapshots(user_id) if s.date > date}
        newer.update(d for d in also_kept if d > date)
        return len(newer) < policy.max_count

    async def prune(self, user_id: str, policy: Optional[RetentionPolicy] = None) -> list[str]:
        """
        Delete snapshots outside the retention policy.

        Age first: a snapshot dated max_days or more days before the user's
        today is deleted. Count second: of the survivors only the max_count
        most recent dates are kept.

        Returns:
            Dates that were deleted
        """
        policy = policy or await self.store.get_retention_policy(user_id)
        today = await self.clock.today(user_id)
        snapshots = await self.store.list_snapshots(user_id)

        expired = [s.date for s in snapshots if days_between(s.date, today) >= policy.max_days]
        expired_set = set(expired)
        survivors = sorted((s.date for s in snapshots if s.date not in expired_set), reverse=True)
        overflow = survivors[policy.max_count:]

        to_delete = expired + overflow
        if to_delete:
            deleted = await self.store.delete_snapshots(user_id, to_delete)
            track_pruned(deleted)
            logger.info(
                f"Pruned {deleted} snapshots for user {user_id} "
                f"({len(expired)} by age, {len(overflow)} by count)"
            )
        return to_delete

    # ==========================================
    # Search
    # ==========================================

    async def search_entries(
        self,
        user_id: str,
        text: Optional[str] = None,
        date: Optional[str] = None
    ) -> list[dict]:
        """
        Search log entries stored in snapshots (case-insensitive substring).

        With a date only that snapshot is searched and an empty text matches
        every entry. Without a date all snapshots are searched and a text is
        required.

        Returns:
            Matching entries with their snapshot date, most recent first
        """
        needle = (text or "").strip().lower()

        if date:
            dates = [date]
        elif needle:
            dates = [s.date for s in await self.store.list_snapshots(user_id)]
        else:
            return []

        results = []
        for snapshot_date in dates:
            state = await self.get(user_id, snapshot_date)
            if state is None:
                continue
            for entry in state.entries:
                if needle and needle not in entry.text.lower():
                    continue
                results.append({**entry.model_dump(by_alias=True), "date": snapshot_date})

        results.sort(key=lambda e: (e["date"], e["timestamp"]), reverse=True)
        return results
