"""Shared fixtures for service level tests."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from libs.core.application.access_service import AccessService
from libs.core.application.contact_service import ContactService
from libs.core.application.dispatch_service import DispatchOptions, DispatchService
from libs.core.application.events import EventBus
from services.api_gateway.infrastructure.memory_store import (
    InMemoryDatabase,
    InMemoryEmergencyContactRepository,
    InMemoryEmergencyRequestRepository,
    InMemoryRescueMissionRepository,
    InMemoryRescueTeamRepository,
    InMemoryUserRepository,
)


class FakeClock:
    """Deterministic clock that only moves when told to."""

    def __init__(self) -> None:
        self.now = datetime(2024, 5, 1, 8, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


@dataclass
class Stack:
    """Services wired to one store."""

    db: Any
    bus: EventBus
    dispatch: DispatchService
    access: AccessService
    contacts: ContactService
    emergencies: Any
    teams: Any
    missions: Any
    users: Any


def build_stack(db: Any, repositories: dict[str, Any], clock: FakeClock) -> Stack:
    bus = EventBus()
    dispatch = DispatchService(
        unit_of_work=db,
        emergency_repository=repositories["emergencies"],
        team_repository=repositories["teams"],
        mission_repository=repositories["missions"],
        user_repository=repositories["users"],
        event_bus=bus,
        options=DispatchOptions(team_speed_kmh=60.0),
        clock=clock,
    )
    access = AccessService(
        unit_of_work=db,
        user_repository=repositories["users"],
        event_bus=bus,
        role_check_delay_sec=0.0,
        clock=clock,
    )
    contacts = ContactService(
        unit_of_work=db,
        contact_repository=repositories["contacts"],
        event_bus=bus,
    )
    return Stack(
        db=db,
        bus=bus,
        dispatch=dispatch,
        access=access,
        contacts=contacts,
        emergencies=repositories["emergencies"],
        teams=repositories["teams"],
        missions=repositories["missions"],
        users=repositories["users"],
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_stack(clock: FakeClock) -> Stack:
    db = InMemoryDatabase()
    return build_stack(
        db,
        {
            "emergencies": InMemoryEmergencyRequestRepository(db),
            "teams": InMemoryRescueTeamRepository(db),
            "missions": InMemoryRescueMissionRepository(db),
            "users": InMemoryUserRepository(db),
            "contacts": InMemoryEmergencyContactRepository(db),
        },
        clock,
    )
