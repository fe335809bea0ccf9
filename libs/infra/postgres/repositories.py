from datetime import datetime, timezone

from libs.core.application.contracts import (
    EmergencyContactRepository,
    EmergencyRequestRepository,
    RescueMissionRepository,
    RescueTeamRepository,
    UserRepository,
)
from libs.core.domain.entities import (
    ACTIVE_MISSION_STATUSES,
    EmergencyContact,
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
from libs.infra.postgres.database import SqlDatabase
from libs.infra.postgres.models import (
    EmergencyContactRow,
    EmergencyRequestRow,
    RescueMissionRow,
    RescueTeamRow,
    UserRoleRow,
    UserRow,
)


class PostgresEmergencyRequestRepository(EmergencyRequestRepository):
    """SQL implementation of emergency request repository."""

    def __init__(self, db: SqlDatabase) -> None:
        self._db = db

    def add(self, emergency: EmergencyRequest) -> None:
        with self._db.session() as session:
            session.add(_emergency_row(EmergencyRequestRow(), emergency))
            session.flush()

    def get(self, emergency_id: str) -> EmergencyRequest | None:
        with self._db.session() as session:
            row = session.get(EmergencyRequestRow, emergency_id)
            return _emergency_entity(row) if row is not None else None

    def list(
        self,
        status: EmergencyStatus | None = None,
        reporter_id: str | None = None,
    ) -> list[EmergencyRequest]:
        with self._db.session() as session:
            query = session.query(EmergencyRequestRow)
            if status is not None:
                query = query.filter(EmergencyRequestRow.status == EmergencyStatus(status).value)
            if reporter_id is not None:
                query = query.filter(EmergencyRequestRow.reporter_id == reporter_id)
            rows = query.order_by(EmergencyRequestRow.created_at.desc()).all()
            return [_emergency_entity(row) for row in rows]

    def update(self, emergency: EmergencyRequest) -> None:
        with self._db.session() as session:
            row = session.get(EmergencyRequestRow, emergency.emergency_id)
            if row is None:
                raise LookupError(f"Emergency {emergency.emergency_id} not stored")
            _emergency_row(row, emergency)
            session.flush()


class PostgresRescueTeamRepository(RescueTeamRepository):
    """SQL implementation of rescue team repository."""

    def __init__(self, db: SqlDatabase) -> None:
        self._db = db

    def add(self, team: RescueTeam) -> None:
        with self._db.session() as session:
            session.add(_team_row(RescueTeamRow(), team))
            session.flush()

    def get(self, team_id: str) -> RescueTeam | None:
        with self._db.session() as session:
            row = session.get(RescueTeamRow, team_id)
            return _team_entity(row) if row is not None else None

    def get_by_user(self, user_id: str) -> RescueTeam | None:
        with self._db.session() as session:
            row = session.query(RescueTeamRow).filter(RescueTeamRow.user_id == user_id).first()
            return _team_entity(row) if row is not None else None

    def list(self, status: TeamStatus | None = None) -> list[RescueTeam]:
        with self._db.session() as session:
            query = session.query(RescueTeamRow)
            if status is not None:
                query = query.filter(RescueTeamRow.status == TeamStatus(status).value)
            rows = query.order_by(RescueTeamRow.created_at, RescueTeamRow.team_id).all()
            return [_team_entity(row) for row in rows]

    def update(self, team: RescueTeam) -> None:
        with self._db.session() as session:
            row = session.get(RescueTeamRow, team.team_id)
            if row is None:
                raise LookupError(f"Team {team.team_id} not stored")
            _team_row(row, team)
            session.flush()


class PostgresRescueMissionRepository(RescueMissionRepository):
    """SQL implementation of rescue mission repository."""

    def __init__(self, db: SqlDatabase) -> None:
        self._db = db

    def add(self, mission: RescueMission) -> None:
        with self._db.session() as session:
            session.add(_mission_row(RescueMissionRow(), mission))
            session.flush()

    def get(self, mission_id: str) -> RescueMission | None:
        with self._db.session() as session:
            row = session.get(RescueMissionRow, mission_id)
            return _mission_entity(row) if row is not None else None

    def list(
        self,
        rescue_team_id: str | None = None,
        emergency_request_id: str | None = None,
        status: MissionStatus | None = None,
    ) -> list[RescueMission]:
        with self._db.session() as session:
            query = session.query(RescueMissionRow)
            if rescue_team_id is not None:
                query = query.filter(RescueMissionRow.rescue_team_id == rescue_team_id)
            if emergency_request_id is not None:
                query = query.filter(
                    RescueMissionRow.emergency_request_id == emergency_request_id
                )
            if status is not None:
                query = query.filter(RescueMissionRow.status == MissionStatus(status).value)
            rows = query.order_by(RescueMissionRow.created_at.desc()).all()
            return [_mission_entity(row) for row in rows]

    def find_active(
        self,
        emergency_request_id: str | None = None,
        rescue_team_id: str | None = None,
    ) -> RescueMission | None:
        with self._db.session() as session:
            query = session.query(RescueMissionRow).filter(
                RescueMissionRow.status.in_([item.value for item in ACTIVE_MISSION_STATUSES])
            )
            if emergency_request_id is not None:
                query = query.filter(
                    RescueMissionRow.emergency_request_id == emergency_request_id
                )
            if rescue_team_id is not None:
                query = query.filter(RescueMissionRow.rescue_team_id == rescue_team_id)
            row = query.order_by(RescueMissionRow.created_at.desc()).first()
            return _mission_entity(row) if row is not None else None

    def update(self, mission: RescueMission) -> None:
        with self._db.session() as session:
            row = session.get(RescueMissionRow, mission.mission_id)
            if row is None:
                raise LookupError(f"Mission {mission.mission_id} not stored")
            _mission_row(row, mission)
            session.flush()


class PostgresUserRepository(UserRepository):
    """SQL implementation of user repository; roles live in user_roles."""

    def __init__(self, db: SqlDatabase) -> None:
        self._db = db

    def add(self, user: User) -> None:
        with self._db.session() as session:
            row = UserRow(user_id=user.user_id)
            _user_row(row, user)
            session.add(row)
            session.flush()

    def get(self, user_id: str) -> User | None:
        with self._db.session() as session:
            row = session.get(UserRow, user_id)
            return _user_entity(row) if row is not None else None

    def list(self, role: Role | None = None) -> list[User]:
        with self._db.session() as session:
            query = session.query(UserRow)
            if role is not None:
                query = query.join(UserRoleRow).filter(UserRoleRow.role == Role(role).value)
            rows = query.order_by(UserRow.created_at.desc()).all()
            return [_user_entity(row) for row in rows]

    def update(self, user: User) -> None:
        with self._db.session() as session:
            row = session.get(UserRow, user.user_id)
            if row is None:
                raise LookupError(f"User {user.user_id} not stored")
            _user_row(row, user)
            session.flush()


class PostgresEmergencyContactRepository(EmergencyContactRepository):
    """SQL implementation of emergency contact repository."""

    def __init__(self, db: SqlDatabase) -> None:
        self._db = db

    def add(self, contact: EmergencyContact) -> None:
        with self._db.session() as session:
            session.add(_contact_row(EmergencyContactRow(), contact))
            session.flush()

    def get(self, contact_id: str) -> EmergencyContact | None:
        with self._db.session() as session:
            row = session.get(EmergencyContactRow, contact_id)
            return _contact_entity(row) if row is not None else None

    def list_by_user(self, user_id: str) -> list[EmergencyContact]:
        with self._db.session() as session:
            rows = (
                session.query(EmergencyContactRow)
                .filter(EmergencyContactRow.user_id == user_id)
                .order_by(EmergencyContactRow.priority, EmergencyContactRow.created_at)
                .all()
            )
            return [_contact_entity(row) for row in rows]

    def update(self, contact: EmergencyContact) -> None:
        with self._db.session() as session:
            row = session.get(EmergencyContactRow, contact.contact_id)
            if row is None:
                raise LookupError(f"Contact {contact.contact_id} not stored")
            _contact_row(row, contact)
            session.flush()

    def delete(self, contact_id: str) -> None:
        with self._db.session() as session:
            row = session.get(EmergencyContactRow, contact_id)
            if row is not None:
                session.delete(row)
                session.flush()


def _aware(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _emergency_row(row: EmergencyRequestRow, emergency: EmergencyRequest) -> EmergencyRequestRow:
    row.emergency_id = emergency.emergency_id
    row.reporter_id = emergency.reporter_id
    row.emergency_type = emergency.emergency_type
    row.description = emergency.description
    row.latitude = emergency.latitude
    row.longitude = emergency.longitude
    row.priority = Priority(emergency.priority).value
    row.status = EmergencyStatus(emergency.status).value
    row.created_at = emergency.created_at
    row.updated_at = emergency.updated_at
    return row


def _emergency_entity(row: EmergencyRequestRow) -> EmergencyRequest:
    return EmergencyRequest(
        emergency_id=row.emergency_id,
        reporter_id=row.reporter_id,
        emergency_type=row.emergency_type,
        status=EmergencyStatus(row.status),
        priority=Priority(row.priority),
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
        description=row.description,
        latitude=row.latitude,
        longitude=row.longitude,
    )


def _team_row(row: RescueTeamRow, team: RescueTeam) -> RescueTeamRow:
    row.team_id = team.team_id
    row.user_id = team.user_id
    row.team_name = team.team_name
    row.specialization = team.specialization
    row.status = TeamStatus(team.status).value
    row.current_latitude = team.current_latitude
    row.current_longitude = team.current_longitude
    row.contact_phone = team.contact_phone
    row.contact_email = team.contact_email
    row.created_at = team.created_at
    row.updated_at = team.updated_at
    return row


def _team_entity(row: RescueTeamRow) -> RescueTeam:
    return RescueTeam(
        team_id=row.team_id,
        user_id=row.user_id,
        team_name=row.team_name,
        status=TeamStatus(row.status),
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
        specialization=row.specialization,
        current_latitude=row.current_latitude,
        current_longitude=row.current_longitude,
        contact_phone=row.contact_phone,
        contact_email=row.contact_email,
    )


def _mission_row(row: RescueMissionRow, mission: RescueMission) -> RescueMissionRow:
    row.mission_id = mission.mission_id
    row.emergency_request_id = mission.emergency_request_id
    row.rescue_team_id = mission.rescue_team_id
    row.status = MissionStatus(mission.status).value
    row.priority = Priority(mission.priority).value
    row.estimated_arrival = mission.estimated_arrival
    row.actual_arrival = mission.actual_arrival
    row.completion_time = mission.completion_time
    row.notes = mission.notes
    row.created_at = mission.created_at
    row.updated_at = mission.updated_at
    return row


def _mission_entity(row: RescueMissionRow) -> RescueMission:
    return RescueMission(
        mission_id=row.mission_id,
        emergency_request_id=row.emergency_request_id,
        rescue_team_id=row.rescue_team_id,
        status=MissionStatus(row.status),
        priority=Priority(row.priority),
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
        estimated_arrival=_aware(row.estimated_arrival),
        actual_arrival=_aware(row.actual_arrival),
        completion_time=_aware(row.completion_time),
        notes=row.notes,
    )


def _user_row(row: UserRow, user: User) -> UserRow:
    row.full_name = user.full_name
    row.phone = user.phone
    row.created_at = user.created_at
    row.updated_at = user.updated_at

    wanted = {Role(role).value for role in user.roles}
    row.roles = [item for item in row.roles if item.role in wanted]
    existing = {item.role for item in row.roles}
    for role in sorted(wanted - existing):
        row.roles.append(UserRoleRow(user_id=user.user_id, role=role))
    return row


def _user_entity(row: UserRow) -> User:
    return User(
        user_id=row.user_id,
        full_name=row.full_name,
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
        phone=row.phone,
        roles={Role(item.role) for item in row.roles},
    )


def _contact_row(row: EmergencyContactRow, contact: EmergencyContact) -> EmergencyContactRow:
    row.contact_id = contact.contact_id
    row.user_id = contact.user_id
    row.name = contact.name
    row.phone = contact.phone
    row.email = contact.email
    row.relationship = contact.relationship
    row.priority = contact.priority
    row.created_at = contact.created_at
    return row


def _contact_entity(row: EmergencyContactRow) -> EmergencyContact:
    return EmergencyContact(
        contact_id=row.contact_id,
        user_id=row.user_id,
        name=row.name,
        phone=row.phone,
        created_at=_aware(row.created_at),
        email=row.email,
        relationship=row.relationship,
        priority=row.priority,
    )
