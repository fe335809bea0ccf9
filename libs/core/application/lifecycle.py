"""Mission and emergency request status rules."""

from __future__ import annotations

from datetime import datetime

from libs.core.application.errors import InvalidStateError
from libs.core.domain.entities import (
    EmergencyRequest,
    EmergencyStatus,
    MissionStatus,
    RescueMission,
)

MISSION_TRANSITIONS: dict[MissionStatus, frozenset[MissionStatus]] = {
    MissionStatus.ASSIGNED: frozenset(
        {MissionStatus.IN_PROGRESS, MissionStatus.CANCELLED}
    ),
    MissionStatus.IN_PROGRESS: frozenset(
        {MissionStatus.IN_PROGRESS, MissionStatus.COMPLETED, MissionStatus.CANCELLED}
    ),
    MissionStatus.COMPLETED: frozenset(),
    MissionStatus.CANCELLED: frozenset(),
}

EMERGENCY_TRANSITIONS: dict[EmergencyStatus, frozenset[EmergencyStatus]] = {
    EmergencyStatus.PENDING: frozenset(
        {EmergencyStatus.ASSIGNED, EmergencyStatus.CANCELLED}
    ),
    EmergencyStatus.ASSIGNED: frozenset(
        {
            EmergencyStatus.IN_PROGRESS,
            EmergencyStatus.RESOLVED,
            EmergencyStatus.CANCELLED,
        }
    ),
    EmergencyStatus.IN_PROGRESS: frozenset(
        {EmergencyStatus.RESOLVED, EmergencyStatus.CANCELLED}
    ),
    EmergencyStatus.RESOLVED: frozenset(),
    EmergencyStatus.CANCELLED: frozenset(),
}

# Emergency status mirrored from the status of its mission.
EMERGENCY_STATUS_FOR_MISSION: dict[MissionStatus, EmergencyStatus] = {
    MissionStatus.ASSIGNED: EmergencyStatus.ASSIGNED,
    MissionStatus.IN_PROGRESS: EmergencyStatus.IN_PROGRESS,
    MissionStatus.COMPLETED: EmergencyStatus.RESOLVED,
    MissionStatus.CANCELLED: EmergencyStatus.CANCELLED,
}

MISSION_STATUS_FOR_OVERRIDE: dict[EmergencyStatus, MissionStatus] = {
    EmergencyStatus.RESOLVED: MissionStatus.COMPLETED,
    EmergencyStatus.CANCELLED: MissionStatus.CANCELLED,
}


def can_transition_mission(current: MissionStatus, target: MissionStatus) -> bool:
    return target in MISSION_TRANSITIONS.get(current, frozenset())


def can_transition_emergency(
    current: EmergencyStatus,
    target: EmergencyStatus,
) -> bool:
    return target in EMERGENCY_TRANSITIONS.get(current, frozenset())


def transition_mission(
    mission: RescueMission,
    target: MissionStatus,
    now: datetime,
) -> RescueMission:
    """Move a mission to ``target`` and stamp its lifecycle timestamps.

    ``actual_arrival`` is written only on the first entry into
    ``in_progress``; ``completion_time`` is the time of completion.
    """
    if not can_transition_mission(mission.status, target):
        raise InvalidStateError(
            f"Mission cannot move from {mission.status.value} to {target.value}"
        )

    if target == MissionStatus.IN_PROGRESS and mission.actual_arrival is None:
        mission.actual_arrival = now
    if target == MissionStatus.COMPLETED:
        mission.completion_time = now

    mission.status = target
    mission.updated_at = now
    return mission


def transition_emergency(
    emergency: EmergencyRequest,
    target: EmergencyStatus,
    now: datetime,
) -> EmergencyRequest:
    if emergency.status == target == EmergencyStatus.IN_PROGRESS:
        return emergency
    if not can_transition_emergency(emergency.status, target):
        raise InvalidStateError(
            f"Emergency cannot move from {emergency.status.value} to {target.value}"
        )
    emergency.status = target
    emergency.updated_at = now
    return emergency
