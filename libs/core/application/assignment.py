"""Rescue team selection policy.

Nearest available team wins when both the request and the team have a
known position. Teams without a position rank after every located team,
and remaining ties go to the earliest registered team.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable

from libs.core.domain.entities import EmergencyRequest, RescueTeam, TeamStatus

EARTH_RADIUS_KM = 6371.0


@dataclass
class TeamCandidate:
    """Eligible team together with its distance to the incident."""

    team: RescueTeam
    distance_km: float | None


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance between two points in kilometers."""
    lat1_r = math.radians(lat1)
    lat2_r = math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlng = math.radians(lng2 - lng1)

    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1_r) * math.cos(lat2_r) * math.sin(dlng / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def check_coordinates(
    latitude: float | None,
    longitude: float | None,
    required: bool = True,
) -> None:
    """Raise ValueError unless both coordinates are given and in range.

    With ``required=False`` both may also be missing together.
    """
    if latitude is None and longitude is None and not required:
        return
    if latitude is None or longitude is None:
        raise ValueError("Latitude and longitude must be given together")
    if not -90.0 <= latitude <= 90.0:
        raise ValueError(f"Latitude {latitude} is out of range")
    if not -180.0 <= longitude <= 180.0:
        raise ValueError(f"Longitude {longitude} is out of range")


def distance_to_team(emergency: EmergencyRequest, team: RescueTeam) -> float | None:
    if not emergency.has_location or not team.has_location:
        return None
    return haversine_km(
        emergency.latitude,
        emergency.longitude,
        team.current_latitude,
        team.current_longitude,
    )


def rank_candidates(
    emergency: EmergencyRequest,
    teams: Iterable[RescueTeam],
    busy_team_ids: set[str] | None = None,
    max_distance_km: float | None = None,
) -> list[TeamCandidate]:
    """Return eligible teams ordered best first."""
    busy_team_ids = busy_team_ids or set()
    candidates: list[TeamCandidate] = []

    for team in teams:
        if team.status != TeamStatus.AVAILABLE or team.team_id in busy_team_ids:
            continue
        distance = distance_to_team(emergency, team)
        if (
            distance is not None
            and max_distance_km is not None
            and distance > max_distance_km
        ):
            continue
        candidates.append(TeamCandidate(team=team, distance_km=distance))

    candidates.sort(key=_candidate_sort_key)
    return candidates


def select_team(
    emergency: EmergencyRequest,
    teams: Iterable[RescueTeam],
    busy_team_ids: set[str] | None = None,
    max_distance_km: float | None = None,
) -> TeamCandidate | None:
    ranked = rank_candidates(
        emergency=emergency,
        teams=teams,
        busy_team_ids=busy_team_ids,
        max_distance_km=max_distance_km,
    )
    return ranked[0] if ranked else None


def estimate_arrival(
    now: datetime,
    distance_km: float | None,
    speed_kmh: float,
) -> datetime | None:
    if distance_km is None or speed_kmh <= 0:
        return None
    return now + timedelta(hours=distance_km / speed_kmh)


def _candidate_sort_key(candidate: TeamCandidate) -> tuple[int, float, datetime, str]:
    # Located teams first, then closest, then earliest registered.
    if candidate.distance_km is None:
        return (1, 0.0, candidate.team.created_at, candidate.team.team_id)
    return (0, candidate.distance_km, candidate.team.created_at, candidate.team.team_id)
