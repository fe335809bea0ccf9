from fastapi import APIRouter, Depends, HTTPException

from libs.core.domain.entities import Role, TeamStatus
from services.api_gateway.dependencies import get_access_service, get_dispatch_service
from services.api_gateway.presentation.http.identity import get_caller_id
from services.api_gateway.presentation.http.schemas import (
    TeamLocationRequest,
    TeamRegisterRequest,
    TeamStatusRequest,
)
from services.api_gateway.presentation.http.serializers import (
    mission_to_dict,
    team_to_dict,
)

router = APIRouter(prefix="/v1/teams", tags=["teams"])


@router.post("")
def register_team(
    payload: TeamRegisterRequest,
    caller_id: str = Depends(get_caller_id),
) -> dict[str, object]:
    team = get_dispatch_service().register_team(
        user_id=caller_id,
        team_name=payload.team_name,
        specialization=payload.specialization,
        contact_phone=payload.contact_phone,
        contact_email=payload.contact_email,
        full_name=payload.full_name,
    )
    return team_to_dict(team)


@router.get("")
def list_teams(
    status: TeamStatus | None = None,
    _caller_id: str = Depends(get_caller_id),
) -> list[dict[str, object]]:
    return [team_to_dict(team) for team in get_dispatch_service().list_teams(status=status)]


@router.get("/me")
def get_own_team(caller_id: str = Depends(get_caller_id)) -> dict[str, object]:
    team = get_dispatch_service().get_team_by_user(caller_id)
    if team is None:
        raise HTTPException(status_code=404, detail="Rescue team not found")
    return team_to_dict(team)


@router.get("/{team_id}")
def get_team(
    team_id: str,
    _caller_id: str = Depends(get_caller_id),
) -> dict[str, object]:
    team = get_dispatch_service().get_team(team_id)
    if team is None:
        raise HTTPException(status_code=404, detail="Rescue team not found")
    return team_to_dict(team)


@router.put("/{team_id}/location")
def update_team_location(
    team_id: str,
    payload: TeamLocationRequest,
    caller_id: str = Depends(get_caller_id),
) -> dict[str, object]:
    team = get_dispatch_service().update_team_location(
        team_id=team_id,
        latitude=payload.latitude,
        longitude=payload.longitude,
        actor_id=caller_id,
    )
    return team_to_dict(team)


@router.put("/{team_id}/status")
def update_team_status(
    team_id: str,
    payload: TeamStatusRequest,
    caller_id: str = Depends(get_caller_id),
) -> dict[str, object]:
    team = get_dispatch_service().update_team_status(
        team_id=team_id,
        status=payload.status,
        actor_id=caller_id,
    )
    return team_to_dict(team)


@router.get("/{team_id}/missions")
def list_team_missions(
    team_id: str,
    caller_id: str = Depends(get_caller_id),
) -> list[dict[str, object]]:
    service = get_dispatch_service()
    team = service.get_team(team_id)
    if team is None:
        raise HTTPException(status_code=404, detail="Rescue team not found")
    if team.user_id != caller_id and not get_access_service().has_role(caller_id, Role.ADMIN):
        raise HTTPException(
            status_code=403,
            detail="Only the team or an admin may list its missions",
        )
    missions = service.list_missions(rescue_team_id=team_id)
    return [mission_to_dict(mission, service=service) for mission in missions]
