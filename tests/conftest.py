"""Global test fixtures and utilities for daybook tests"""
import pytest
from datetime import datetime, timezone

from daybook.db.memory_store import InMemoryJournalStore
from daybook.services.container import ServiceContainer
from daybook.utils.cache import StateCache
from daybook.utils.datetime_helpers import TimezoneClock


class FrozenClock:
    """Callable wall clock that tests move by hand"""

    def __init__(self, moment: datetime):
        self.moment = moment

    def __call__(self) -> datetime:
        return self.moment

    def set(self, moment: datetime) -> None:
        self.moment = moment


class ManualTicker:
    """Monotonic seconds source for cache TTL tests"""

    def __init__(self):
        self.seconds = 1000.0

    def __call__(self) -> float:
        return self.seconds

    def advance(self, seconds: float) -> None:
        self.seconds += seconds


# ============================================================================
# User Fixtures
# ============================================================================

@pytest.fixture
def test_user_id():
    """Standard test user ID"""
    return "user-123"


@pytest.fixture
def other_user_id():
    return "user-456"


# ============================================================================
# Clock Fixtures
# ============================================================================

@pytest.fixture
def frozen_now():
    """2024-01-05 15:00 UTC, a Friday"""
    return FrozenClock(datetime(2024, 1, 5, 15, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def ticker():
    return ManualTicker()


# ============================================================================
# Storage & Service Fixtures
# ============================================================================

@pytest.fixture
def store():
    """Fresh in-memory store per test"""
    return InMemoryJournalStore()


@pytest.fixture
def clock(store, frozen_now):
    return TimezoneClock(store, now=frozen_now)


@pytest.fixture
def cache(ticker):
    return StateCache(ttl_minutes=5, clock=ticker)


@pytest.fixture
def container(store, cache, clock):
    """Service container over the in-memory store with a frozen clock"""
    return ServiceContainer(store=store, cache=cache, clock=clock)
