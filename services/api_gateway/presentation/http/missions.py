from fastapi import APIRouter, Depends, HTTPException

from services.api_gateway.dependencies import get_dispatch_service
from services.api_gateway.presentation.http.identity import get_caller_id
from services.api_gateway.presentation.http.schemas import MissionNotesRequest
from services.api_gateway.presentation.http.serializers import mission_to_dict

router = APIRouter(prefix="/v1/missions", tags=["missions"])


@router.get("/{mission_id}")
def get_mission(
    mission_id: str,
    caller_id: str = Depends(get_caller_id),
) -> dict[str, object]:
    service = get_dispatch_service()
    mission = service.get_mission(mission_id)
    if mission is None or not service.can_view_mission(mission, caller_id):
        raise HTTPException(status_code=404, detail="Mission not found")
    return mission_to_dict(mission, service=service)


@router.post("/{mission_id}/start")
def start_mission(
    mission_id: str,
    caller_id: str = Depends(get_caller_id),
) -> dict[str, object]:
    mission = get_dispatch_service().start_mission(mission_id, actor_id=caller_id)
    return mission_to_dict(mission)


@router.post("/{mission_id}/complete")
def complete_mission(
    mission_id: str,
    caller_id: str = Depends(get_caller_id),
) -> dict[str, object]:
    mission = get_dispatch_service().complete_mission(mission_id, actor_id=caller_id)
    return mission_to_dict(mission)


@router.post("/{mission_id}/cancel")
def cancel_mission(
    mission_id: str,
    caller_id: str = Depends(get_caller_id),
) -> dict[str, object]:
    mission = get_dispatch_service().cancel_mission(mission_id, actor_id=caller_id)
    return mission_to_dict(mission)


@router.put("/{mission_id}/notes")
def update_mission_notes(
    mission_id: str,
    payload: MissionNotesRequest,
    caller_id: str = Depends(get_caller_id),
) -> dict[str, object]:
    mission = get_dispatch_service().update_mission_notes(
        mission_id=mission_id,
        notes=payload.notes,
        actor_id=caller_id,
    )
    return mission_to_dict(mission)
