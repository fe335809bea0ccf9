from typing import ContextManager, Protocol

from libs.core.domain.entities import (
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


class UnitOfWork(Protocol):
    """Groups repository writes into one all-or-nothing transaction."""

    def atomic(self) -> ContextManager[None]: ...


class EmergencyRequestRepository(Protocol):
    """Emergency request persistence contract."""

    def add(self, emergency: EmergencyRequest) -> None: ...

    def get(self, emergency_id: str) -> EmergencyRequest | None: ...

    def list(
        self,
        status: EmergencyStatus | None = None,
        reporter_id: str | None = None,
    ) -> list[EmergencyRequest]: ...

    def update(self, emergency: EmergencyRequest) -> None: ...


class RescueTeamRepository(Protocol):
    """Rescue team persistence contract."""

    def add(self, team: RescueTeam) -> None: ...

    def get(self, team_id: str) -> RescueTeam | None: ...

    def get_by_user(self, user_id: str) -> RescueTeam | None: ...

    def list(self, status: TeamStatus | None = None) -> list[RescueTeam]: ...

    def update(self, team: RescueTeam) -> None: ...


class RescueMissionRepository(Protocol):
    """Rescue mission persistence contract."""

    def add(self, mission: RescueMission) -> None: ...

    def get(self, mission_id: str) -> RescueMission | None: ...

    def list(
        self,
        rescue_team_id: str | None = None,
        emergency_request_id: str | None = None,
        status: MissionStatus | None = None,
    ) -> list[RescueMission]: ...

    def find_active(
        self,
        emergency_request_id: str | None = None,
        rescue_team_id: str | None = None,
    ) -> RescueMission | None: ...

    def update(self, mission: RescueMission) -> None: ...


class UserRepository(Protocol):
    """User profile and role persistence contract."""

    def add(self, user: User) -> None: ...

    def get(self, user_id: str) -> User | None: ...

    def list(self, role: Role | None = None) -> list[User]: ...

    def update(self, user: User) -> None: ...


class EmergencyContactRepository(Protocol):
    """Emergency contact persistence contract."""

    def add(self, contact: EmergencyContact) -> None: ...

    def get(self, contact_id: str) -> EmergencyContact | None: ...

    def list_by_user(self, user_id: str) -> list[EmergencyContact]: ...

    def update(self, contact: EmergencyContact) -> None: ...

    def delete(self, contact_id: str) -> None: ...
