"""
Service Container - Dependency Injection Container

Simple DI container for managing service instances and their dependencies.
Uses lazy loading to only instantiate services when first accessed.
"""

from dataclasses import dataclass, field
from typing import Optional
import logging

from daybook.config import ENABLE_STATE_CACHE, STATE_CACHE_TTL_MINUTES, STORAGE_BACKEND
from daybook.monitoring import track_cache_operation
from daybook.utils.cache import StateCache
from daybook.utils.datetime_helpers import TimezoneClock

logger = logging.getLogger(__name__)


def create_store(backend: str = STORAGE_BACKEND):
    """JournalStore for the configured backend"""
    if backend == "memory":
        from daybook.db.memory_store import InMemoryJournalStore
        return InMemoryJournalStore()

    from daybook.db.store import PostgresJournalStore
    return PostgresJournalStore()


def create_cache() -> StateCache:
    """Process-wide day state cache (TTL 0 when disabled)"""
    ttl = STATE_CACHE_TTL_MINUTES if ENABLE_STATE_CACHE else 0
    return StateCache(ttl_minutes=ttl, on_lookup=track_cache_operation)


@dataclass
class ServiceContainer:
    """
    Simple dependency injection container for services.

    Services are lazy-loaded on first access via properties.
    Infrastructure dependencies (store, cache, clock) are injected.
    """

    # Infrastructure dependencies (injected)
    store: object  # JournalStore implementation
    cache: StateCache
    clock: TimezoneClock

    # Services (lazy-loaded via properties)
    _snapshot_service: Optional[object] = field(default=None, init=False, repr=False)
    _state_service: Optional[object] = field(default=None, init=False, repr=False)
    _query_service: Optional[object] = field(default=None, init=False, repr=False)
    _journal_service: Optional[object] = field(default=None, init=False, repr=False)
    _task_service: Optional[object] = field(default=None, init=False, repr=False)
    _tracker_service: Optional[object] = field(default=None, init=False, repr=False)
    _points_service: Optional[object] = field(default=None, init=False, repr=False)

    @property
    def snapshot_service(self):
        """Get SnapshotService instance (lazy-loaded)"""
        if self._snapshot_service is None:
            from daybook.services.snapshot_service import SnapshotService
            self._snapshot_service = SnapshotService(self.store, self.clock)
            logger.debug("SnapshotService instantiated")
        return self._snapshot_service

    @property
    def state_service(self):
        """Get StateService instance (lazy-loaded)"""
        if self._state_service is None:
            from daybook.services.state_service import StateService
            self._state_service = StateService(self.store, self.cache, self.clock, self.snapshot_service)
            logger.debug("StateService instantiated")
        return self._state_service

    @property
    def query_service(self):
        """Get QueryService instance (lazy-loaded)"""
        if self._query_service is None:
            from daybook.services.query_service import QueryService
            self._query_service = QueryService(self.store)
            logger.debug("QueryService instantiated")
        return self._query_service

    @property
    def journal_service(self):
        """Get JournalService instance (lazy-loaded)"""
        if self._journal_service is None:
            from daybook.services.journal_service import JournalService
            self._journal_service = JournalService(self.store, self.cache, self.clock)
            logger.debug("JournalService instantiated")
        return self._journal_service

    @property
    def task_service(self):
        """Get TaskService instance (lazy-loaded)"""
        if self._task_service is None:
            from daybook.services.task_service import TaskService
            self._task_service = TaskService(self.store, self.cache, self.clock)
            logger.debug("TaskService instantiated")
        return self._task_service

    @property
    def tracker_service(self):
        """Get TrackerService instance (lazy-loaded)"""
        if self._tracker_service is None:
            from daybook.services.tracker_service import TrackerService
            self._tracker_service = TrackerService(self.store, self.cache, self.clock)
            logger.debug("TrackerService instantiated")
        return self._tracker_service

    @property
    def points_service(self):
        """Get PointsService instance (lazy-loaded)"""
        if self._points_service is None:
            from daybook.services.points_service import PointsService
            self._points_service = PointsService(self.store, self.cache, self.clock)
            logger.debug("PointsService instantiated")
        return self._points_service


# Global container instance (initialized in the API lifespan)
_container: Optional[ServiceContainer] = None


def get_container() -> ServiceContainer:
    """
    Get the global service container.

    Returns:
        ServiceContainer: The global container instance

    Raises:
        RuntimeError: If container not initialized (call init_container first)
    """
    if _container is None:
        raise RuntimeError(
            "Service container not initialized. "
            "Call init_container() at startup before using services."
        )
    return _container


def init_container(
    store: Optional[object] = None,
    cache: Optional[StateCache] = None,
    clock: Optional[TimezoneClock] = None
) -> ServiceContainer:
    """
    Initialize the global service container.

    Should be called once at startup after the database pool is open.

    Args:
        store: JournalStore (defaults to the STORAGE_BACKEND store)
        cache: StateCache (defaults to one built from config)
        clock: TimezoneClock (defaults to the wall clock over the store)

    Returns:
        ServiceContainer: The initialized container
    """
    global _container

    store = store if store is not None else create_store()
    _container = ServiceContainer(
        store=store,
        cache=cache if cache is not None else create_cache(),
        clock=clock if clock is not None else TimezoneClock(store)
    )

    logger.info(f"Service container initialized ({type(store).__name__})")
    return _container


def reset_container() -> None:
    """Drop the global container (shutdown and tests)"""
    global _container
    _container = None
