import logging

from libs.core.application.access_service import AccessService
from libs.core.application.contact_service import ContactService
from libs.core.application.dispatch_service import DispatchOptions, DispatchService
from libs.core.application.events import EventBus
from libs.infra.postgres.database import SqlDatabase
from libs.infra.postgres.repositories import (
    PostgresEmergencyContactRepository,
    PostgresEmergencyRequestRepository,
    PostgresRescueMissionRepository,
    PostgresRescueTeamRepository,
    PostgresUserRepository,
)
from services.api_gateway.infrastructure.memory_store import (
    InMemoryDatabase,
    InMemoryEmergencyContactRepository,
    InMemoryEmergencyRequestRepository,
    InMemoryRescueMissionRepository,
    InMemoryRescueTeamRepository,
    InMemoryUserRepository,
)
from services.api_gateway.settings import settings

logger = logging.getLogger(__name__)

event_bus = EventBus()

if settings.database_url:
    engine_kwargs = {}
    if settings.database_url.startswith("postgresql"):
        engine_kwargs["pool_timeout"] = settings.db_pool_timeout_sec
    db = SqlDatabase(
        settings.database_url,
        statement_timeout_ms=settings.db_statement_timeout_ms,
        **engine_kwargs,
    )
    db.create_schema()
    emergency_repository = PostgresEmergencyRequestRepository(db)
    team_repository = PostgresRescueTeamRepository(db)
    mission_repository = PostgresRescueMissionRepository(db)
    user_repository = PostgresUserRepository(db)
    contact_repository = PostgresEmergencyContactRepository(db)
    logger.info("Using SQL store at %s", db.engine.url.render_as_string(hide_password=True))
else:
    db = InMemoryDatabase()
    emergency_repository = InMemoryEmergencyRequestRepository(db)
    team_repository = InMemoryRescueTeamRepository(db)
    mission_repository = InMemoryRescueMissionRepository(db)
    user_repository = InMemoryUserRepository(db)
    contact_repository = InMemoryEmergencyContactRepository(db)
    logger.info("Using in-memory store")

dispatch_service = DispatchService(
    unit_of_work=db,
    emergency_repository=emergency_repository,
    team_repository=team_repository,
    mission_repository=mission_repository,
    user_repository=user_repository,
    event_bus=event_bus,
    options=DispatchOptions(
        max_distance_km=settings.assignment_max_distance_km,
        team_speed_kmh=settings.team_speed_kmh,
    ),
)
access_service = AccessService(
    unit_of_work=db,
    user_repository=user_repository,
    event_bus=event_bus,
    role_check_attempts=settings.role_check_attempts,
    role_check_delay_sec=settings.role_check_delay_sec,
)
contact_service = ContactService(
    unit_of_work=db,
    contact_repository=contact_repository,
    event_bus=event_bus,
)


def get_dispatch_service() -> DispatchService:
    return dispatch_service


def get_access_service() -> AccessService:
    return access_service


def get_contact_service() -> ContactService:
    return contact_service


def get_event_bus() -> EventBus:
    return event_bus


def reset_state() -> None:
    if isinstance(db, SqlDatabase):
        db.drop_schema()
        db.create_schema()
    else:
        db.clear()
    event_bus.clear()
