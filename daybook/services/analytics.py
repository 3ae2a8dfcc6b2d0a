"""
Analytics aggregation engine

Pure functions that bucket dated observations by period and aggregate each
bucket according to the series kind. Nothing here touches storage; the
QueryService loads observations and hands them over.

Series kinds form a closed set. Each kind has exactly one aggregator (one
bucket's raw values -> stats) and one merger (many bucket stats -> summary
stats). Dispatch goes through the tables at the bottom of this module and
fails loudly for a kind without an entry.

Summary statistics are always a second pass over the bucket stats, never a
re-scan of the raw observations. This keeps the summary consistent with what
the buckets show under any grouping.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Iterable, Optional, Sequence, Union

from daybook.exceptions import ValidationError
from daybook.utils.datetime_helpers import period_start

logger = logging.getLogger(__name__)

TREND_THRESHOLD = 0.05


class SeriesKind(str, Enum):
    NUMERIC = "numeric"
    BOOLEAN = "boolean"
    CATEGORICAL = "categorical"
    TASK = "task"


class Measure(str, Enum):
    """Which numeric statistic represents a bucket in trends and combinations"""
    AVG = "avg"
    SUM = "sum"


class Trend(str, Enum):
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"
    UNKNOWN = "unknown"


# ==========================================
# Observations
# ==========================================

@dataclass(frozen=True)
class Observation:
    """One dated value: float for numeric, bool for boolean, str for categorical"""
    date: str
    value: Any


@dataclass(frozen=True)
class TaskSample:
    """One task as seen by task analytics"""
    id: int
    date: str
    text: str
    done: bool
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    def minutes_to_complete(self) -> Optional[float]:
        if self.created_at is None or self.completed_at is None:
            return None
        return (self.completed_at - self.created_at).total_seconds() / 60

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": self.date,
            "text": self.text,
            "done": self.done,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "completedAt": self.completed_at.isoformat() if self.completed_at else None,
        }


# ==========================================
# Bucket statistics (one variant per kind)
# ==========================================

@dataclass(frozen=True)
class NumericStats:
    min: Optional[float]
    max: Optional[float]
    avg: Optional[float]
    sum: float
    count: int

    def to_dict(self) -> dict:
        return {"min": self.min, "max": self.max, "avg": self.avg, "sum": self.sum, "count": self.count}


@dataclass(frozen=True)
class BooleanStats:
    true_count: int
    false_count: int
    total_count: int
    true_percentage: float

    def to_dict(self) -> dict:
        return {
            "trueCount": self.true_count,
            "falseCount": self.false_count,
            "totalCount": self.total_count,
            "truePercentage": self.true_percentage,
        }


@dataclass(frozen=True)
class CategoricalStats:
    count: int
    unique_count: int
    most_common_value: Optional[str]
    most_common_count: int
    # (value, count) in first-occurrence order; needed to merge buckets
    frequencies: tuple[tuple[str, int], ...] = ()

    def to_dict(self) -> dict:
        return {
            "count": self.count,
            "uniqueCount": self.unique_count,
            "mostCommonValue": self.most_common_value,
            "mostCommonCount": self.most_common_count,
        }


@dataclass(frozen=True)
class TaskStats:
    total: int
    completed: int
    incomplete: int
    completion_rate: float
    avg_time_to_complete_minutes: Optional[int]
    # Tasks with both timestamps and their summed minutes, for weighted merges
    timed_count: int = 0
    timed_minutes: float = 0.0

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "completed": self.completed,
            "incomplete": self.incomplete,
            "completionRate": self.completion_rate,
            "avgTimeToCompleteMinutes": self.avg_time_to_complete_minutes,
        }


Stats = Union[NumericStats, BooleanStats, CategoricalStats, TaskStats]


@dataclass(frozen=True)
class Bucket:
    date: str
    stats: Stats
    values: tuple = ()

    def to_dict(self) -> dict:
        values = [v.to_dict() if isinstance(v, TaskSample) else v for v in self.values]
        return {"date": self.date, **self.stats.to_dict(), "values": values}


@dataclass(frozen=True)
class SeriesResult:
    """Buckets for one series plus the summary across them"""
    kind: SeriesKind
    measure: Measure
    buckets: tuple[Bucket, ...]
    summary: Stats
    trend: Trend

    def representative_values(self) -> list[float]:
        return [representative_value(b.stats, self.measure) for b in self.buckets]

    def to_dict(self) -> dict:
        return {
            "data": [bucket.to_dict() for bucket in self.buckets],
            "summary": {**self.summary.to_dict(), "trend": self.trend.value},
        }


@dataclass(frozen=True)
class CombinedResult:
    """Per-bucket sums of several series' representative values"""
    data: tuple[dict, ...]
    summary: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {"data": list(self.data), "summary": dict(self.summary)}


# ==========================================
# Aggregators: raw values of one bucket -> stats
# ==========================================

def aggregate_numeric(values: Sequence[float]) -> NumericStats:
    if not values:
        return NumericStats(min=None, max=None, avg=None, sum=0, count=0)
    total = sum(values)
    return NumericStats(
        min=min(values),
        max=max(values),
        avg=total / len(values),
        sum=total,
        count=len(values),
    )


def _boolean_stats(true_count: int, false_count: int) -> BooleanStats:
    total = true_count + false_count
    return BooleanStats(
        true_count=true_count,
        false_count=false_count,
        total_count=total,
        true_percentage=round(true_count / total * 100, 2) if total else 0,
    )


def aggregate_boolean(values: Sequence[bool]) -> BooleanStats:
    true_count = sum(1 for v in values if v)
    return _boolean_stats(true_count, len(values) - true_count)


def _categorical_stats(frequencies: "OrderedDict[str, int]") -> CategoricalStats:
    most_common_value, most_common_count = None, 0
    for value, count in frequencies.items():
        # strictly greater: ties keep the value seen first
        if count > most_common_count:
            most_common_value, most_common_count = value, count
    return CategoricalStats(
        count=sum(frequencies.values()),
        unique_count=len(frequencies),
        most_common_value=most_common_value,
        most_common_count=most_common_count,
        frequencies=tuple(frequencies.items()),
    )


def aggregate_categorical(values: Sequence[str]) -> CategoricalStats:
    frequencies: OrderedDict[str, int] = OrderedDict()
    for value in values:
        frequencies[value] = frequencies.get(value, 0) + 1
    return _categorical_stats(frequencies)


def _task_stats(total: int, completed: int, timed_count: int, timed_minutes: float) -> TaskStats:
    return TaskStats(
        total=total,
        completed=completed,
        incomplete=total - completed,
        completion_rate=completed / total if total else 0,
        avg_time_to_complete_minutes=round(timed_minutes / timed_count) if timed_count else None,
        timed_count=timed_count,
        timed_minutes=timed_minutes,
    )


def aggregate_tasks(values: Sequence[TaskSample]) -> TaskStats:
    durations = [m for m in (t.minutes_to_complete() for t in values) if m is not None]
    return _task_stats(
        total=len(values),
        completed=sum(1 for t in values if t.done),
        timed_count=len(durations),
        timed_minutes=sum(durations),
    )


# ==========================================
# Mergers: bucket stats -> summary stats
# ==========================================

def merge_numeric(stats: Sequence[NumericStats]) -> NumericStats:
    populated = [s for s in stats if s.count]
    if not populated:
        return aggregate_numeric([])
    total = sum(s.sum for s in populated)
    count = sum(s.count for s in populated)
    return NumericStats(
        min=min(s.min for s in populated),
        max=max(s.max for s in populated),
        avg=total / count,
        sum=total,
        count=count,
    )


def merge_boolean(stats: Sequence[BooleanStats]) -> BooleanStats:
    return _boolean_stats(
        sum(s.true_count for s in stats),
        sum(s.false_count for s in stats),
    )


def merge_categorical(stats: Sequence[CategoricalStats]) -> CategoricalStats:
    frequencies: OrderedDict[str, int] = OrderedDict()
    for bucket_stats in stats:
        for value, count in bucket_stats.frequencies:
            frequencies[value] = frequencies.get(value, 0) + count
    return _categorical_stats(frequencies)


def merge_tasks(stats: Sequence[TaskStats]) -> TaskStats:
    return _task_stats(
        total=sum(s.total for s in stats),
        completed=sum(s.completed for s in stats),
        timed_count=sum(s.timed_count for s in stats),
        timed_minutes=sum(s.timed_minutes for s in stats),
    )


_AGGREGATORS: dict[SeriesKind, Callable[[Sequence], Stats]] = {
    SeriesKind.NUMERIC: aggregate_numeric,
    SeriesKind.BOOLEAN: aggregate_boolean,
    SeriesKind.CATEGORICAL: aggregate_categorical,
    SeriesKind.TASK: aggregate_tasks,
}

_MERGERS: dict[SeriesKind, Callable[[Sequence], Stats]] = {
    SeriesKind.NUMERIC: merge_numeric,
    SeriesKind.BOOLEAN: merge_boolean,
    SeriesKind.CATEGORICAL: merge_categorical,
    SeriesKind.TASK: merge_tasks,
}


def _dispatch(table: dict, kind: SeriesKind) -> Callable:
    try:
        return table[SeriesKind(kind)]
    except (KeyError, ValueError):
        raise ValidationError(f"unsupported series kind {kind!r}", field="kind", value=kind)


# ==========================================
# Bucketing, trend, combination
# ==========================================

def representative_value(stats: Stats, measure: Measure = Measure.AVG) -> float:
    """Single number standing for a bucket in trends and combined series"""
    if isinstance(stats, NumericStats):
        if measure == Measure.SUM:
            return stats.sum
        return stats.avg if stats.avg is not None else 0
    if isinstance(stats, BooleanStats):
        return stats.true_count
    if isinstance(stats, CategoricalStats):
        return stats.count
    if isinstance(stats, TaskStats):
        return stats.completed
    raise ValidationError(f"unsupported stats type {type(stats).__name__}", field="stats")


def compute_trend(values: Sequence[float]) -> Trend:
    """
    Compare the mean of the first half of the values with the second half.

    More than 5% higher is increasing, more than 5% lower is decreasing.
    Fewer than two values cannot have a trend.
    """
    if len(values) < 2:
        return Trend.UNKNOWN

    middle = len(values) // 2
    first = values[:middle]
    second = values[middle:]
    first_avg = sum(first) / len(first)
    second_avg = sum(second) / len(second)

    if first_avg == 0:
        if second_avg > 0:
            return Trend.INCREASING
        if second_avg < 0:
            return Trend.DECREASING
        return Trend.STABLE

    change = (second_avg - first_avg) / abs(first_avg)
    if change > TREND_THRESHOLD:
        return Trend.INCREASING
    if change < -TREND_THRESHOLD:
        return Trend.DECREASING
    return Trend.STABLE


def group_observations(
    observations: Iterable[Union[Observation, TaskSample]],
    group_by: str,
    range_start: str
) -> "OrderedDict[str, list]":
    """Observation values grouped by bucket key, keys in ascending order"""
    grouped: dict[str, list] = {}
    for obs in observations:
        key = period_start(obs.date, group_by, range_start)
        value = obs if isinstance(obs, TaskSample) else obs.value
        grouped.setdefault(key, []).append(value)
    return OrderedDict(sorted(grouped.items()))


def aggregate_series(
    kind: SeriesKind,
    observations: Iterable[Union[Observation, TaskSample]],
    group_by: str,
    range_start: str,
    measure: Measure = Measure.AVG
) -> SeriesResult:
    """
    Bucket and aggregate one series.

    Args:
        kind: How values are aggregated
        observations: Dated values (TaskSample for task series)
        group_by: none, day, week, month or year
        range_start: Bucket key used when group_by is none
        measure: Numeric statistic representing a bucket in the trend

    Returns:
        SeriesResult with buckets sorted by date and the summary over them
    """
    aggregate = _dispatch(_AGGREGATORS, kind)
    merge = _dispatch(_MERGERS, kind)
    kind = SeriesKind(kind)

    buckets = tuple(
        Bucket(date=key, stats=aggregate(values), values=tuple(values))
        for key, values in group_observations(observations, group_by, range_start).items()
    )
    summary = merge([b.stats for b in buckets])
    trend = compute_trend([representative_value(b.stats, measure) for b in buckets])

    logger.debug(f"Aggregated {kind.value} series into {len(buckets)} buckets (group_by={group_by})")
    return SeriesResult(kind=kind, measure=measure, buckets=buckets, summary=summary, trend=trend)


def combine_series(results: Sequence[SeriesResult]) -> CombinedResult:
    """
    Sum the representative values of several series per bucket date.

    A date present in any series gets a combined point; count is the number
    of series contributing to it.

    dataPoints counts every per-series value summed in; changePercent is how
    far the highest combined value sits above the second highest.
    """
    per_date: dict[str, list[float]] = {}
    for result in results:
        for bucket in result.buckets:
            per_date.setdefault(bucket.date, []).append(representative_value(bucket.stats, result.measure))

    data = tuple(
        {"date": date, "value": sum(values), "count": len(values)}
        for date, values in sorted(per_date.items())
    )
    combined_values = [point["value"] for point in data]
    stats = aggregate_numeric(combined_values)

    ranked = sorted(combined_values, reverse=True)
    change_percent = 0.0
    if len(ranked) >= 2 and ranked[1] != 0:
        change_percent = round((ranked[0] - ranked[1]) / ranked[1] * 100, 2)

    return CombinedResult(
        data=data,
        summary={
            **stats.to_dict(),
            "seriesCount": len(results),
            "dataPoints": sum(point["count"] for point in data),
            "changePercent": change_percent,
            "trend": compute_trend(combined_values).value,
        },
    )
