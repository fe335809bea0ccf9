from datetime import datetime

from libs.core.application.dispatch_service import AssignmentResult, DispatchService
from libs.core.domain.entities import (
    EmergencyContact,
    EmergencyRequest,
    RescueMission,
    RescueTeam,
    User,
)


def emergency_to_dict(
    emergency: EmergencyRequest,
    service: DispatchService,
) -> dict[str, object]:
    missions = []
    for mission in service.list_missions(emergency_request_id=emergency.emergency_id):
        team = service.get_team(mission.rescue_team_id)
        missions.append(
            {
                "mission_id": mission.mission_id,
                "status": mission.status.value,
                "rescue_team_id": mission.rescue_team_id,
                "team_name": team.team_name if team is not None else None,
            }
        )
    return {
        "emergency_id": emergency.emergency_id,
        "reporter_id": emergency.reporter_id,
        "emergency_type": emergency.emergency_type,
        "description": emergency.description,
        "latitude": emergency.latitude,
        "longitude": emergency.longitude,
        "priority": emergency.priority.value,
        "status": emergency.status.value,
        "created_at": _iso(emergency.created_at),
        "updated_at": _iso(emergency.updated_at),
        "missions": missions,
    }


def team_to_dict(team: RescueTeam) -> dict[str, object]:
    return {
        "team_id": team.team_id,
        "user_id": team.user_id,
        "team_name": team.team_name,
        "specialization": team.specialization,
        "status": team.status.value,
        "current_latitude": team.current_latitude,
        "current_longitude": team.current_longitude,
        "contact_phone": team.contact_phone,
        "contact_email": team.contact_email,
        "created_at": _iso(team.created_at),
        "updated_at": _iso(team.updated_at),
    }


def mission_to_dict(
    mission: RescueMission,
    service: DispatchService | None = None,
) -> dict[str, object]:
    payload: dict[str, object] = {
        "mission_id": mission.mission_id,
        "emergency_request_id": mission.emergency_request_id,
        "rescue_team_id": mission.rescue_team_id,
        "status": mission.status.value,
        "priority": mission.priority.value,
        "estimated_arrival": _iso(mission.estimated_arrival),
        "actual_arrival": _iso(mission.actual_arrival),
        "completion_time": _iso(mission.completion_time),
        "notes": mission.notes,
        "created_at": _iso(mission.created_at),
        "updated_at": _iso(mission.updated_at),
    }
    if service is not None:
        emergency = service.get_emergency(mission.emergency_request_id)
        payload["emergency"] = (
            {
                "emergency_type": emergency.emergency_type,
                "description": emergency.description,
                "latitude": emergency.latitude,
                "longitude": emergency.longitude,
                "status": emergency.status.value,
            }
            if emergency is not None
            else None
        )
    return payload


def assignment_to_dict(result: AssignmentResult) -> dict[str, object]:
    return {
        "emergency_id": result.emergency_id,
        "assigned": bool(result),
        "team_id": result.team.team_id if result.team is not None else None,
        "team_name": result.team.team_name if result.team is not None else None,
        "mission_id": result.mission.mission_id if result.mission is not None else None,
        "distance_km": (
            round(result.distance_km, 3) if result.distance_km is not None else None
        ),
    }


def user_to_dict(user: User) -> dict[str, object]:
    return {
        "user_id": user.user_id,
        "full_name": user.full_name,
        "phone": user.phone,
        "roles": sorted(role.value for role in user.roles),
        "created_at": _iso(user.created_at),
    }


def contact_to_dict(contact: EmergencyContact) -> dict[str, object]:
    return {
        "contact_id": contact.contact_id,
        "name": contact.name,
        "phone": contact.phone,
        "email": contact.email,
        "relationship": contact.relationship,
        "priority": contact.priority,
    }


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None
