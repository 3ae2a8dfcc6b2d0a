"""
Service Layer Package

This package contains business logic services that separate concerns between
the presentation layer (HTTP routes) and the data access layer (JournalStore).

Read Services:
- StateService: Day state reads (clock, cache, materializer, snapshots)
- SnapshotService: Snapshot capture, retention and search
- QueryService: Range analytics over fields, counters, timers and tasks

Write Services:
- JournalService: Field templates and values, entries, sleep, settings, ordering
- TaskService: Tasks and sub-tasks
- TrackerService: Counters, timers and time-since trackers
- PointsService: Task points balance and reward redemptions
"""

from daybook.services.container import ServiceContainer, get_container, init_container, reset_container

__all__ = [
    "ServiceContainer",
    "get_container",
    "init_container",
    "reset_container",
]
