from fastapi import APIRouter, Depends, HTTPException

from libs.core.domain.entities import EmergencyRequest, EmergencyStatus, Role
from services.api_gateway.dependencies import get_access_service, get_dispatch_service
from services.api_gateway.presentation.http.identity import get_caller_id
from services.api_gateway.presentation.http.schemas import (
    EmergencyCreateRequest,
    EmergencyStatusRequest,
)
from services.api_gateway.presentation.http.serializers import (
    assignment_to_dict,
    emergency_to_dict,
)

router = APIRouter(prefix="/v1/emergencies", tags=["emergencies"])


@router.post("")
def create_emergency(
    payload: EmergencyCreateRequest,
    caller_id: str = Depends(get_caller_id),
) -> dict[str, object]:
    service = get_dispatch_service()
    emergency = service.create_emergency(
        reporter_id=caller_id,
        emergency_type=payload.emergency_type,
        priority=payload.priority,
        description=payload.description,
        latitude=payload.latitude,
        longitude=payload.longitude,
    )
    return emergency_to_dict(emergency, service=service)


@router.get("")
def list_emergencies(
    status: EmergencyStatus | None = None,
    caller_id: str = Depends(get_caller_id),
) -> list[dict[str, object]]:
    service = get_dispatch_service()
    reporter_id = None if _sees_all_requests(caller_id) else caller_id
    emergencies = service.list_emergencies(status=status, reporter_id=reporter_id)
    return [emergency_to_dict(item, service=service) for item in emergencies]


@router.get("/{emergency_id}")
def get_emergency(
    emergency_id: str,
    caller_id: str = Depends(get_caller_id),
) -> dict[str, object]:
    service = get_dispatch_service()
    emergency = _visible_emergency(emergency_id, caller_id)
    return emergency_to_dict(emergency, service=service)


@router.post("/{emergency_id}/assign")
def auto_assign_rescue_team(
    emergency_id: str,
    caller_id: str = Depends(get_caller_id),
) -> dict[str, object]:
    _require_admin(caller_id)
    result = get_dispatch_service().auto_assign_rescue_team(emergency_id)
    return assignment_to_dict(result)


@router.post("/{emergency_id}/assign/{team_id}")
def assign_team(
    emergency_id: str,
    team_id: str,
    caller_id: str = Depends(get_caller_id),
) -> dict[str, object]:
    result = get_dispatch_service().assign_team(
        emergency_id=emergency_id,
        team_id=team_id,
        actor_id=caller_id,
    )
    return assignment_to_dict(result)


@router.post("/{emergency_id}/status")
def update_emergency_status(
    emergency_id: str,
    payload: EmergencyStatusRequest,
    caller_id: str = Depends(get_caller_id),
) -> dict[str, object]:
    service = get_dispatch_service()
    emergency = service.update_emergency_status(
        emergency_id=emergency_id,
        status=payload.status,
        actor_id=caller_id,
    )
    return emergency_to_dict(emergency, service=service)


def _sees_all_requests(caller_id: str) -> bool:
    access = get_access_service()
    return access.has_role(caller_id, Role.ADMIN) or access.has_role(
        caller_id, Role.RESCUE_TEAM
    )


def _visible_emergency(emergency_id: str, caller_id: str) -> EmergencyRequest:
    emergency = get_dispatch_service().get_emergency(emergency_id)
    if emergency is None or (
        emergency.reporter_id != caller_id and not _sees_all_requests(caller_id)
    ):
        raise HTTPException(status_code=404, detail="Emergency request not found")
    return emergency


def _require_admin(caller_id: str) -> None:
    if not get_access_service().has_role(caller_id, Role.ADMIN):
        raise HTTPException(status_code=403, detail="Admin role required")
