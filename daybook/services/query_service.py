"""
QueryService - Range Analytics

Loads raw per-date rows for a date range (never snapshots, never the cache)
and runs them through the aggregation engine in services/analytics.py.
"""

import logging
from typing import Iterable, Optional

from daybook.config import ANALYTICS_MAX_RANGE_DAYS
from daybook.exceptions import NotFoundError, ValidationError
from daybook.models.field import NUMERIC_FIELD_TYPES, FieldType, normalize_boolean
from daybook.monitoring import track_analytics_query
from daybook.services.analytics import (
    Measure,
    Observation,
    SeriesKind,
    SeriesResult,
    TaskSample,
    aggregate_series,
    combine_series,
)
from daybook.utils.datetime_helpers import GROUP_BY_OPTIONS, parse_date_key

logger = logging.getLogger(__name__)

COMPLETION_STATUSES = ("all", "completed", "incomplete")


def field_series_kind(field_type: FieldType) -> SeriesKind:
    """Aggregation kind for a field type"""
    if field_type in NUMERIC_FIELD_TYPES:
        return SeriesKind.NUMERIC
    if field_type == FieldType.BOOLEAN:
        return SeriesKind.BOOLEAN
    return SeriesKind.CATEGORICAL


def _dedupe(keys: Iterable[str]) -> list[str]:
    seen = []
    for key in keys:
        if key not in seen:
            seen.append(key)
    return seen


class QueryService:
    """
    Service for analytics over date ranges.

    Responsibilities:
    - Request validation (dates, range bound, grouping, key lists)
    - Loading field, counter, timer and task series
    - Single-series results and multi-series combinations
    - Discovering which fields, counters and timers have data in a range
    """

    def __init__(self, store):
        self.store = store

    # ==========================================
    # Validation
    # ==========================================

    @staticmethod
    def validate_range(start_date: str, end_date: str) -> None:
        """
        Raises:
            ValidationError: For malformed dates, an end before the start,
                or a range longer than ANALYTICS_MAX_RANGE_DAYS
        """
        start = parse_date_key(start_date, field="startDate")
        end = parse_date_key(end_date, field="endDate")
        if end < start:
            raise ValidationError("must not be before startDate", field="endDate", value=end_date)
        if (end - start).days + 1 > ANALYTICS_MAX_RANGE_DAYS:
            raise ValidationError(
                f"range may span at most {ANALYTICS_MAX_RANGE_DAYS} days",
                field="endDate",
                value=end_date
            )

    @staticmethod
    def validate_group_by(group_by: str) -> None:
        if group_by not in GROUP_BY_OPTIONS:
            raise ValidationError(
                f"must be one of: {', '.join(GROUP_BY_OPTIONS)}",
                field="groupBy",
                value=group_by
            )

    @staticmethod
    def _require_keys(keys: Optional[list[str]], field: str) -> list[str]:
        keys = _dedupe(k for k in (keys or []) if k)
        if not keys:
            raise ValidationError("at least one is required", field=field, value=keys)
        return keys

    # ==========================================
    # Populated series discovery
    # ==========================================

    async def populated_fields(self, user_id: str, start_date: str, end_date: str) -> list[dict]:
        self.validate_range(start_date, end_date)
        return await self.store.get_populated_fields(user_id, start_date, end_date)

    async def populated_counters(self, user_id: str, start_date: str, end_date: str) -> list[str]:
        self.validate_range(start_date, end_date)
        return await self.store.get_populated_counters(user_id, start_date, end_date)

    async def populated_timers(self, user_id: str, start_date: str, end_date: str) -> list[str]:
        self.validate_range(start_date, end_date)
        return await self.store.get_populated_timers(user_id, start_date, end_date)

    # ==========================================
    # Fields
    # ==========================================

    async def _field_series(
        self, user_id: str, key: str, start_date: str, end_date: str, group_by: str
    ) -> tuple[FieldType, SeriesResult]:
        template = await self.store.get_field_template(user_id, key)
        if template is None:
            raise NotFoundError(
                f"Field template '{key}' not found",
                record_type="Field template",
                record_id=key,
                user_id=user_id
            )

        # The template's current type decides how every stored value is read
        field_type = FieldType(template.field_type)
        kind = field_series_kind(field_type)
        rows = await self.store.get_field_values_in_range(user_id, key, start_date, end_date)

        observations = []
        for row in rows:
            raw = (row.value or "").strip()
            if not raw:
                continue
            if kind == SeriesKind.NUMERIC:
                try:
                    observations.append(Observation(row.date, float(raw)))
                except ValueError:
                    logger.warning(f"Skipping non-numeric value {raw!r} for field '{key}' on {row.date}")
            elif kind == SeriesKind.BOOLEAN:
                observations.append(Observation(row.date, normalize_boolean(raw) == "true"))
            else:
                observations.append(Observation(row.date, raw))

        return field_type, aggregate_series(kind, observations, group_by, start_date, Measure.AVG)

    async def query_fields(
        self,
        user_id: str,
        keys: list[str],
        start_date: str,
        end_date: str,
        group_by: str = "day"
    ) -> dict:
        """
        Aggregate one or more field series.

        Returns:
            For one key: {fieldKey, fieldType, data, summary}.
            For several: {fields: [...], fieldKeys, combined: {data, summary}}.
        """
        self.validate_range(start_date, end_date)
        self.validate_group_by(group_by)
        keys = self._require_keys(keys, "fieldKeys")

        with track_analytics_query("field", group_by):
            results = []
            for key in keys:
                field_type, series = await self._field_series(user_id, key, start_date, end_date, group_by)
                results.append((key, field_type, series))

        items = [
            {"fieldKey": key, "fieldType": field_type.value, **series.to_dict()}
            for key, field_type, series in results
        ]
        if len(items) == 1:
            return items[0]
        return {
            "fields": items,
            "fieldKeys": keys,
            "combined": combine_series([series for _, _, series in results]).to_dict(),
        }

    # ==========================================
    # Counters
    # ==========================================

    async def query_counters(
        self,
        user_id: str,
        names: list[str],
        start_date: str,
        end_date: str,
        group_by: str = "day"
    ) -> dict:
        """Aggregate one or more counter series (buckets represented by their sum)"""
        self.validate_range(start_date, end_date)
        self.validate_group_by(group_by)
        names = self._require_keys(names, "counterNames")

        with track_analytics_query("counter", group_by):
            results = []
            for name in names:
                counter = await self.store.get_counter_by_name(user_id, name)
                if counter is None:
                    raise NotFoundError(
                        f"Counter '{name}' not found",
                        record_type="Counter",
                        record_id=name,
                        user_id=user_id
                    )
                rows = await self.store.get_counter_values_in_range(user_id, counter.id, start_date, end_date)
                observations = [Observation(row.date, float(row.value)) for row in rows]
                results.append(
                    (name, aggregate_series(SeriesKind.NUMERIC, observations, group_by, start_date, Measure.SUM))
                )

        items = [{"counterName": name, **series.to_dict()} for name, series in results]
        if len(items) == 1:
            return items[0]
        return {
            "counters": items,
            "counterNames": names,
            "combined": combine_series([series for _, series in results]).to_dict(),
        }

    # ==========================================
    # Timers
    # ==========================================

    async def query_timers(
        self,
        user_id: str,
        names: list[str],
        start_date: str,
        end_date: str,
        group_by: str = "day"
    ) -> dict:
        """Aggregate one or more timer series in minutes (buckets represented by their sum)"""
        self.validate_range(start_date, end_date)
        self.validate_group_by(group_by)
        names = self._require_keys(names, "timerNames")

        with track_analytics_query("timer", group_by):
            results = []
            for name in names:
                timer = await self.store.get_duration_tracker_by_name(user_id, name)
                if timer is None:
                    raise NotFoundError(
                        f"Timer '{name}' not found",
                        record_type="Timer",
                        record_id=name,
                        user_id=user_id
                    )
                rows = await self.store.get_timer_totals_in_range(user_id, timer.id, start_date, end_date)
                observations = [Observation(row.date, round(row.elapsed_ms / 60000, 2)) for row in rows]
                results.append(
                    (name, aggregate_series(SeriesKind.NUMERIC, observations, group_by, start_date, Measure.SUM))
                )

        items = [{"timerName": name, **series.to_dict()} for name, series in results]
        if len(items) == 1:
            return items[0]
        return {
            "timers": items,
            "timerNames": names,
            "combined": combine_series([series for _, series in results]).to_dict(),
        }

    # ==========================================
    # Tasks
    # ==========================================

    async def query_tasks(
        self,
        user_id: str,
        start_date: str,
        end_date: str,
        completion_status: str = "all",
        group_by: str = "none"
    ) -> dict:
        """
        Task completion analytics for tasks created in the range.

        Returns:
            {data: [{date, total, completed, incomplete, completionRate,
            avgTimeToCompleteMinutes, values}], summary: {...}}
        """
        self.validate_range(start_date, end_date)
        self.validate_group_by(group_by)
        if completion_status not in COMPLETION_STATUSES:
            raise ValidationError(
                f"must be one of: {', '.join(COMPLETION_STATUSES)}",
                field="completionStatus",
                value=completion_status
            )

        with track_analytics_query("task", group_by):
            tasks = await self.store.get_tasks_in_range(user_id, start_date, end_date, completion_status)
            samples = [
                TaskSample(
                    id=t.id,
                    date=t.date,
                    text=t.text,
                    done=t.done,
                    created_at=t.created_at,
                    completed_at=t.completed_at,
                )
                for t in tasks
            ]
            series = aggregate_series(SeriesKind.TASK, samples, group_by, start_date)

        return series.to_dict()
