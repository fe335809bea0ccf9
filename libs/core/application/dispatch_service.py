from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable
from uuid import uuid4

from libs.core.application.assignment import (
    TeamCandidate,
    check_coordinates,
    distance_to_team,
    estimate_arrival,
    select_team,
)
from libs.core.application.contracts import (
    EmergencyRequestRepository,
    RescueMissionRepository,
    RescueTeamRepository,
    UnitOfWork,
    UserRepository,
)
from libs.core.application.errors import (
    InvalidStateError,
    NotFoundError,
    PermissionDeniedError,
)
from libs.core.application.events import ChangeEvent, ChangeType, EventBus
from libs.core.application.lifecycle import (
    EMERGENCY_STATUS_FOR_MISSION,
    MISSION_STATUS_FOR_OVERRIDE,
    transition_emergency,
    transition_mission,
)
from libs.core.domain.entities import (
    ACTIVE_MISSION_STATUSES,
    EmergencyRequest,
    EmergencyStatus,
    MissionStatus,
    Priority,
    RescueMission,
    RescueTeam,
    Role,
    TeamStatus,
    User,
)

logger = logging.getLogger(__name__)

DEFAULT_TEAM_SPEED_KMH = 40.0
MISSION_TEAM_STATUSES = frozenset({TeamStatus.DEPLOYED, TeamStatus.BUSY})


class Actor(Enum):
    """Non-user actors allowed past the role and ownership checks."""

    SYSTEM = "system"


SYSTEM_ACTOR = Actor.SYSTEM
ActorId = str | Actor


@dataclass
class DispatchOptions:
    """Tunables for team assignment."""

    max_distance_km: float | None = None
    team_speed_kmh: float = DEFAULT_TEAM_SPEED_KMH


@dataclass
class AssignmentResult:
    """Outcome of an assignment attempt; falsy when no team was available."""

    emergency_id: str
    team: RescueTeam | None = None
    mission: RescueMission | None = None
    distance_km: float | None = None

    def __bool__(self) -> bool:
        return self.team is not None


class DispatchService:
    """Application service for the emergency dispatch workflow."""

    def __init__(
        self,
        unit_of_work: UnitOfWork,
        emergency_repository: EmergencyRequestRepository,
        team_repository: RescueTeamRepository,
        mission_repository: RescueMissionRepository,
        user_repository: UserRepository,
        event_bus: EventBus | None = None,
        options: DispatchOptions | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._uow = unit_of_work
        self._emergencies = emergency_repository
        self._teams = team_repository
        self._missions = mission_repository
        self._users = user_repository
        self._events = event_bus or EventBus()
        self._options = options or DispatchOptions()
        self._clock = clock or _utc_now

    # Emergency requests

    def create_emergency(
        self,
        reporter_id: str,
        emergency_type: str,
        priority: Priority = Priority.MEDIUM,
        description: str | None = None,
        latitude: float | None = None,
        longitude: float | None = None,
    ) -> EmergencyRequest:
        if not emergency_type.strip():
            raise ValueError("Emergency type is required")
        check_coordinates(latitude, longitude, required=False)

        now = self._clock()
        emergency = EmergencyRequest(
            emergency_id=str(uuid4()),
            reporter_id=reporter_id,
            emergency_type=emergency_type.strip(),
            status=EmergencyStatus.PENDING,
            priority=Priority(priority),
            created_at=now,
            updated_at=now,
            description=description,
            latitude=latitude,
            longitude=longitude,
        )
        with self._uow.atomic():
            self._emergencies.add(emergency)
        logger.info(
            "Emergency %s filed by %s (%s, %s)",
            emergency.emergency_id,
            reporter_id,
            emergency.emergency_type,
            emergency.priority.value,
        )
        self._publish([_change("emergency_requests", ChangeType.INSERT, emergency)])
        return emergency

    def get_emergency(self, emergency_id: str) -> EmergencyRequest | None:
        return self._emergencies.get(emergency_id)

    def list_emergencies(
        self,
        status: EmergencyStatus | None = None,
        reporter_id: str | None = None,
    ) -> list[EmergencyRequest]:
        return self._emergencies.list(status=status, reporter_id=reporter_id)

    def update_emergency_status(
        self,
        emergency_id: str,
        status: EmergencyStatus,
        actor_id: ActorId,
    ) -> EmergencyRequest:
        """Operator override that closes a request as resolved or cancelled."""
        status = EmergencyStatus(status)
        if status not in MISSION_STATUS_FOR_OVERRIDE:
            raise InvalidStateError(
                f"Emergency status {status.value} is set by the mission workflow"
            )
        self._require_admin(actor_id)

        changes: list[ChangeEvent] = []
        with self._uow.atomic():
            emergency = self._require_emergency(emergency_id)
            now = self._clock()
            mission = self._missions.find_active(emergency_request_id=emergency_id)
            if mission is not None:
                transition_mission(mission, MISSION_STATUS_FOR_OVERRIDE[status], now)
                self._missions.update(mission)
                changes.append(_change("rescue_missions", ChangeType.UPDATE, mission))
                changes.extend(self._release_team(mission.rescue_team_id, now))

            transition_emergency(emergency, status, now)
            self._emergencies.update(emergency)
            changes.append(_change("emergency_requests", ChangeType.UPDATE, emergency))

        logger.info("Emergency %s closed as %s", emergency_id, status.value)
        self._publish(changes)
        return emergency

    # Assignment

    def auto_assign_rescue_team(self, emergency_id: str) -> AssignmentResult:
        """Bind the best available team to a pending request.

        Returns a falsy result and leaves the request pending when no team
        is eligible.
        """
        changes: list[ChangeEvent] = []
        with self._uow.atomic():
            emergency = self._require_pending_emergency(emergency_id)
            busy_team_ids = {
                mission.rescue_team_id
                for status in ACTIVE_MISSION_STATUSES
                for mission in self._missions.list(status=status)
            }
            candidate = select_team(
                emergency=emergency,
                teams=self._teams.list(status=TeamStatus.AVAILABLE),
                busy_team_ids=busy_team_ids,
                max_distance_km=self._options.max_distance_km,
            )
            if candidate is None:
                logger.warning("No rescue team available for emergency %s", emergency_id)
                return AssignmentResult(emergency_id=emergency_id)

            result = self._bind_team(emergency, candidate, changes)

        logger.info(
            "Emergency %s assigned to team %s (distance_km=%s)",
            emergency_id,
            candidate.team.team_id,
            candidate.distance_km,
        )
        self._publish(changes)
        return result

    def assign_team(
        self,
        emergency_id: str,
        team_id: str,
        actor_id: ActorId,
    ) -> AssignmentResult:
        """Manual assignment of a named team by an operator."""
        self._require_admin(actor_id)

        changes: list[ChangeEvent] = []
        with self._uow.atomic():
            emergency = self._require_pending_emergency(emergency_id)
            team = self._require_team(team_id)
            if team.status != TeamStatus.AVAILABLE:
                raise InvalidStateError(f"Team is {team.status.value}, not available")
            if self._missions.find_active(rescue_team_id=team_id) is not None:
                raise InvalidStateError("Team already holds an active mission")

            candidate = TeamCandidate(
                team=team,
                distance_km=distance_to_team(emergency, team),
            )
            result = self._bind_team(emergency, candidate, changes)

        logger.info("Emergency %s manually assigned to team %s", emergency_id, team_id)
        self._publish(changes)
        return result

    def _bind_team(
        self,
        emergency: EmergencyRequest,
        candidate: TeamCandidate,
        changes: list[ChangeEvent],
    ) -> AssignmentResult:
        if self._missions.find_active(emergency_request_id=emergency.emergency_id):
            raise InvalidStateError("Emergency already has an active mission")

        now = self._clock()
        team = candidate.team
        mission = RescueMission(
            mission_id=str(uuid4()),
            emergency_request_id=emergency.emergency_id,
            rescue_team_id=team.team_id,
            status=MissionStatus.ASSIGNED,
            priority=emergency.priority,
            created_at=now,
            updated_at=now,
            estimated_arrival=estimate_arrival(
                now=now,
                distance_km=candidate.distance_km,
                speed_kmh=self._options.team_speed_kmh,
            ),
        )
        self._missions.add(mission)

        transition_emergency(emergency, EmergencyStatus.ASSIGNED, now)
        self._emergencies.update(emergency)

        team.status = TeamStatus.DEPLOYED
        team.updated_at = now
        self._teams.update(team)

        changes.extend(
            [
                _change("rescue_missions", ChangeType.INSERT, mission),
                _change("emergency_requests", ChangeType.UPDATE, emergency),
                _change("rescue_teams", ChangeType.UPDATE, team),
            ]
        )
        return AssignmentResult(
            emergency_id=emergency.emergency_id,
            team=team,
            mission=mission,
            distance_km=candidate.distance_km,
        )

    # Rescue teams

    def register_team(
        self,
        user_id: str,
        team_name: str,
        specialization: str | None = None,
        contact_phone: str | None = None,
        contact_email: str | None = None,
        full_name: str | None = None,
    ) -> RescueTeam:
        """Create a team and grant its owner the rescue_team role together."""
        if not team_name.strip():
            raise ValueError("Team name is required")

        changes: list[ChangeEvent] = []
        with self._uow.atomic():
            if self._teams.get_by_user(user_id) is not None:
                raise InvalidStateError("User already owns a rescue team")

            now = self._clock()
            team = RescueTeam(
                team_id=str(uuid4()),
                user_id=user_id,
                team_name=team_name.strip(),
                status=TeamStatus.AVAILABLE,
                created_at=now,
                updated_at=now,
                specialization=specialization,
                contact_phone=contact_phone,
                contact_email=contact_email,
            )
            self._teams.add(team)
            changes.append(_change("rescue_teams", ChangeType.INSERT, team))

            user = self._users.get(user_id)
            if user is None:
                user = User(
                    user_id=user_id,
                    full_name=full_name or team.team_name,
                    created_at=now,
                    updated_at=now,
                    phone=contact_phone,
                    roles={Role.RESCUE_TEAM},
                )
                self._users.add(user)
                changes.append(_change("users", ChangeType.INSERT, user))
            elif Role.RESCUE_TEAM not in user.roles:
                user.roles.add(Role.RESCUE_TEAM)
                user.updated_at = now
                self._users.update(user)
                changes.append(_change("users", ChangeType.UPDATE, user))

        logger.info("Rescue team %s registered for user %s", team.team_id, user_id)
        self._publish(changes)
        return team

    def get_team(self, team_id: str) -> RescueTeam | None:
        return self._teams.get(team_id)

    def get_team_by_user(self, user_id: str) -> RescueTeam | None:
        return self._teams.get_by_user(user_id)

    def list_teams(self, status: TeamStatus | None = None) -> list[RescueTeam]:
        return self._teams.list(status=status)

    def update_team_location(
        self,
        team_id: str,
        latitude: float,
        longitude: float,
        actor_id: ActorId,
    ) -> RescueTeam:
        """Overwrite the team's last-known position."""
        check_coordinates(latitude, longitude)
        with self._uow.atomic():
            team = self._require_team(team_id)
            self._require_team_actor(team, actor_id)
            team.current_latitude = latitude
            team.current_longitude = longitude
            team.updated_at = self._clock()
            self._teams.update(team)

        logger.debug("Team %s reported position %.6f, %.6f", team_id, latitude, longitude)
        self._publish([_change("rescue_teams", ChangeType.UPDATE, team)])
        return team

    def update_team_status(
        self,
        team_id: str,
        status: TeamStatus,
        actor_id: ActorId,
    ) -> RescueTeam:
        status = TeamStatus(status)
        with self._uow.atomic():
            team = self._require_team(team_id)
            self._require_team_actor(team, actor_id)
            if (
                status not in MISSION_TEAM_STATUSES
                and self._missions.find_active(rescue_team_id=team_id) is not None
            ):
                raise InvalidStateError(
                    f"Team holds an active mission and cannot be {status.value}"
                )
            team.status = status
            team.updated_at = self._clock()
            self._teams.update(team)

        logger.info("Team %s status set to %s", team_id, status.value)
        self._publish([_change("rescue_teams", ChangeType.UPDATE, team)])
        return team

    # Rescue missions

    def get_mission(self, mission_id: str) -> RescueMission | None:
        return self._missions.get(mission_id)

    def can_view_mission(self, mission: RescueMission, user_id: str) -> bool:
        """Admins, the owner of the assigned team and the reporter may read a mission."""
        if self._is_admin(user_id):
            return True
        team = self._teams.get(mission.rescue_team_id)
        if team is not None and team.user_id == user_id:
            return True
        emergency = self._emergencies.get(mission.emergency_request_id)
        return emergency is not None and emergency.reporter_id == user_id

    def get_active_mission(self, emergency_id: str) -> RescueMission | None:
        return self._missions.find_active(emergency_request_id=emergency_id)

    def list_missions(
        self,
        rescue_team_id: str | None = None,
        emergency_request_id: str | None = None,
        status: MissionStatus | None = None,
    ) -> list[RescueMission]:
        return self._missions.list(
            rescue_team_id=rescue_team_id,
            emergency_request_id=emergency_request_id,
            status=status,
        )

    def start_mission(self, mission_id: str, actor_id: ActorId) -> RescueMission:
        return self._transition_mission(mission_id, MissionStatus.IN_PROGRESS, actor_id)

    def complete_mission(
        self,
        mission_id: str,
        actor_id: ActorId,
    ) -> RescueMission:
        return self._transition_mission(mission_id, MissionStatus.COMPLETED, actor_id)

    def cancel_mission(self, mission_id: str, actor_id: ActorId) -> RescueMission:
        return self._transition_mission(mission_id, MissionStatus.CANCELLED, actor_id)

    def update_mission_notes(
        self,
        mission_id: str,
        notes: str,
        actor_id: ActorId,
    ) -> RescueMission:
        with self._uow.atomic():
            mission = self._require_mission(mission_id)
            self._require_team_actor(self._require_team(mission.rescue_team_id), actor_id)
            if not mission.is_active:
                raise InvalidStateError(
                    f"Mission is {mission.status.value}; notes are closed"
                )
            mission.notes = notes
            mission.updated_at = self._clock()
            self._missions.update(mission)

        self._publish([_change("rescue_missions", ChangeType.UPDATE, mission)])
        return mission

    def _transition_mission(
        self,
        mission_id: str,
        target: MissionStatus,
        actor_id: ActorId,
    ) -> RescueMission:
        changes: list[ChangeEvent] = []
        with self._uow.atomic():
            mission = self._require_mission(mission_id)
            self._require_team_actor(self._require_team(mission.rescue_team_id), actor_id)
            now = self._clock()

            transition_mission(mission, target, now)
            self._missions.update(mission)
            changes.append(_change("rescue_missions", ChangeType.UPDATE, mission))

            emergency = self._require_emergency(mission.emergency_request_id)
            transition_emergency(emergency, EMERGENCY_STATUS_FOR_MISSION[target], now)
            self._emergencies.update(emergency)
            changes.append(_change("emergency_requests", ChangeType.UPDATE, emergency))

            if not mission.is_active:
                changes.extend(self._release_team(mission.rescue_team_id, now))

        logger.info("Mission %s moved to %s", mission_id, target.value)
        self._publish(changes)
        return mission

    def _release_team(self, team_id: str, now: datetime) -> list[ChangeEvent]:
        team = self._teams.get(team_id)
        if team is None or team.status not in MISSION_TEAM_STATUSES:
            return []
        team.status = TeamStatus.AVAILABLE
        team.updated_at = now
        self._teams.update(team)
        return [_change("rescue_teams", ChangeType.UPDATE, team)]

    # Lookups and guards

    def _require_emergency(self, emergency_id: str) -> EmergencyRequest:
        emergency = self._emergencies.get(emergency_id)
        if emergency is None:
            raise NotFoundError("Emergency request not found")
        return emergency

    def _require_pending_emergency(self, emergency_id: str) -> EmergencyRequest:
        emergency = self._require_emergency(emergency_id)
        if emergency.status != EmergencyStatus.PENDING:
            raise InvalidStateError(
                f"Emergency is {emergency.status.value}, not pending"
            )
        return emergency

    def _require_team(self, team_id: str) -> RescueTeam:
        team = self._teams.get(team_id)
        if team is None:
            raise NotFoundError("Rescue team not found")
        return team

    def _require_mission(self, mission_id: str) -> RescueMission:
        mission = self._missions.get(mission_id)
        if mission is None:
            raise NotFoundError("Mission not found")
        return mission

    def _is_admin(self, user_id: ActorId) -> bool:
        if not isinstance(user_id, str) or not user_id:
            return False
        user = self._users.get(user_id)
        return user is not None and Role.ADMIN in user.roles

    def _require_admin(self, actor_id: ActorId) -> None:
        if actor_id is SYSTEM_ACTOR or self._is_admin(actor_id):
            return
        raise PermissionDeniedError("Admin role required")

    def _require_team_actor(self, team: RescueTeam, actor_id: ActorId) -> None:
        if actor_id is SYSTEM_ACTOR or team.user_id == actor_id or self._is_admin(actor_id):
            return
        raise PermissionDeniedError("Only the owning rescue team may do this")

    def _publish(self, changes: list[ChangeEvent]) -> None:
        self._events.publish_all(changes)


def _change(table: str, event_type: ChangeType, entity: object) -> ChangeEvent:
    return ChangeEvent.for_entity(table, event_type, entity)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)
