import os
from datetime import datetime, timedelta

import pytest

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from backend.scheduling.booking import BookingService  # noqa: E402
from backend.scheduling.entities import UserRole  # noqa: E402
from backend.scheduling.memory_store import (  # noqa: E402
    InMemoryAvailabilityStore,
    InMemoryReservationLedger,
    InMemoryUserDirectory,
)

NOW = datetime(2025, 1, 8, 9, 0)


class FakeClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(NOW)


@pytest.fixture
def ledger() -> InMemoryReservationLedger:
    return InMemoryReservationLedger()


@pytest.fixture
def service(clock: FakeClock, ledger: InMemoryReservationLedger) -> BookingService:
    return BookingService(
        users=InMemoryUserDirectory(),
        availabilities=InMemoryAvailabilityStore(),
        reservations=ledger,
        clock=clock,
        timeout=None,
    )


@pytest.fixture
def provider(service: BookingService):
    return service.create_user(UserRole.PROVIDER)


@pytest.fixture
def client(service: BookingService):
    return service.create_user(UserRole.CLIENT)
