"""In-memory row store for the dispatch workflow.

Rows are stored as private copies so callers only change state through
``add``/``update``. Every repository call takes the database lock, and
``atomic`` holds it for the whole block, restoring a snapshot of every
table when the block raises.
"""

from __future__ import annotations

import copy
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator

from libs.core.domain.entities import (
    ACTIVE_MISSION_STATUSES,
    EmergencyContact,
    EmergencyRequest,
    EmergencyStatus,
    MissionStatus,
    RescueMission,
    RescueTeam,
    Role,
    TeamStatus,
    User,
)


@dataclass
class InMemoryDatabase:
    """Process-local tables keyed by primary id."""

    emergencies: dict[str, EmergencyRequest] = field(default_factory=dict)
    teams: dict[str, RescueTeam] = field(default_factory=dict)
    missions: dict[str, RescueMission] = field(default_factory=dict)
    users: dict[str, User] = field(default_factory=dict)
    contacts: dict[str, EmergencyContact] = field(default_factory=dict)
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False)

    _TABLES = ("emergencies", "teams", "missions", "users", "contacts")

    @contextmanager
    def atomic(self) -> Iterator[None]:
        with self.lock:
            snapshot = {name: copy.deepcopy(getattr(self, name)) for name in self._TABLES}
            try:
                yield
            except BaseException:
                for name, rows in snapshot.items():
                    setattr(self, name, rows)
                raise

    def clear(self) -> None:
        with self.lock:
            for name in self._TABLES:
                getattr(self, name).clear()


class InMemoryEmergencyRequestRepository:
    def __init__(self, db: InMemoryDatabase) -> None:
        self._db = db

    def add(self, emergency: EmergencyRequest) -> None:
        with self._db.lock:
            self._db.emergencies[emergency.emergency_id] = copy.deepcopy(emergency)

    def get(self, emergency_id: str) -> EmergencyRequest | None:
        with self._db.lock:
            return copy.deepcopy(self._db.emergencies.get(emergency_id))

    def list(
        self,
        status: EmergencyStatus | None = None,
        reporter_id: str | None = None,
    ) -> list[EmergencyRequest]:
        with self._db.lock:
            rows = [
                row
                for row in self._db.emergencies.values()
                if (status is None or row.status == status)
                and (reporter_id is None or row.reporter_id == reporter_id)
            ]
            rows.sort(key=lambda item: item.created_at, reverse=True)
            return copy.deepcopy(rows)

    def update(self, emergency: EmergencyRequest) -> None:
        self.add(emergency)


class InMemoryRescueTeamRepository:
    def __init__(self, db: InMemoryDatabase) -> None:
        self._db = db

    def add(self, team: RescueTeam) -> None:
        with self._db.lock:
            self._db.teams[team.team_id] = copy.deepcopy(team)

    def get(self, team_id: str) -> RescueTeam | None:
        with self._db.lock:
            return copy.deepcopy(self._db.teams.get(team_id))

    def get_by_user(self, user_id: str) -> RescueTeam | None:
        with self._db.lock:
            for team in self._db.teams.values():
                if team.user_id == user_id:
                    return copy.deepcopy(team)
            return None

    def list(self, status: TeamStatus | None = None) -> list[RescueTeam]:
        with self._db.lock:
            rows = [
                row
                for row in self._db.teams.values()
                if status is None or row.status == status
            ]
            rows.sort(key=lambda item: (item.created_at, item.team_id))
            return copy.deepcopy(rows)

    def update(self, team: RescueTeam) -> None:
        self.add(team)


class InMemoryRescueMissionRepository:
    def __init__(self, db: InMemoryDatabase) -> None:
        self._db = db

    def add(self, mission: RescueMission) -> None:
        with self._db.lock:
            self._db.missions[mission.mission_id] = copy.deepcopy(mission)

    def get(self, mission_id: str) -> RescueMission | None:
        with self._db.lock:
            return copy.deepcopy(self._db.missions.get(mission_id))

    def list(
        self,
        rescue_team_id: str | None = None,
        emergency_request_id: str | None = None,
        status: MissionStatus | None = None,
    ) -> list[RescueMission]:
        with self._db.lock:
            rows = [
                row
                for row in self._db.missions.values()
                if (rescue_team_id is None or row.rescue_team_id == rescue_team_id)
                and (
                    emergency_request_id is None
                    or row.emergency_request_id == emergency_request_id
                )
                and (status is None or row.status == status)
            ]
            rows.sort(key=lambda item: item.created_at, reverse=True)
            return copy.deepcopy(rows)

    def find_active(
        self,
        emergency_request_id: str | None = None,
        rescue_team_id: str | None = None,
    ) -> RescueMission | None:
        with self._db.lock:
            for status in ACTIVE_MISSION_STATUSES:
                rows = self.list(
                    rescue_team_id=rescue_team_id,
                    emergency_request_id=emergency_request_id,
                    status=status,
                )
                if rows:
                    return rows[0]
            return None

    def update(self, mission: RescueMission) -> None:
        self.add(mission)


class InMemoryUserRepository:
    def __init__(self, db: InMemoryDatabase) -> None:
        self._db = db

    def add(self, user: User) -> None:
        with self._db.lock:
            self._db.users[user.user_id] = copy.deepcopy(user)

    def get(self, user_id: str) -> User | None:
        with self._db.lock:
            return copy.deepcopy(self._db.users.get(user_id))

    def list(self, role: Role | None = None) -> list[User]:
        with self._db.lock:
            rows = [
                row
                for row in self._db.users.values()
                if role is None or role in row.roles
            ]
            rows.sort(key=lambda item: item.created_at, reverse=True)
            return copy.deepcopy(rows)

    def update(self, user: User) -> None:
        self.add(user)


class InMemoryEmergencyContactRepository:
    def __init__(self, db: InMemoryDatabase) -> None:
        self._db = db

    def add(self, contact: EmergencyContact) -> None:
        with self._db.lock:
            self._db.contacts[contact.contact_id] = copy.deepcopy(contact)

    def get(self, contact_id: str) -> EmergencyContact | None:
        with self._db.lock:
            return copy.deepcopy(self._db.contacts.get(contact_id))

    def list_by_user(self, user_id: str) -> list[EmergencyContact]:
        with self._db.lock:
            rows = [row for row in self._db.contacts.values() if row.user_id == user_id]
            rows.sort(key=lambda item: (item.priority, item.created_at))
            return copy.deepcopy(rows)

    def update(self, contact: EmergencyContact) -> None:
        self.add(contact)

    def delete(self, contact_id: str) -> None:
        with self._db.lock:
            self._db.contacts.pop(contact_id, None)
