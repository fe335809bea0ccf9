"""Team selection policy tests."""

import random
from datetime import datetime, timedelta, timezone

import pytest

from libs.core.application.assignment import (
    estimate_arrival,
    haversine_km,
    rank_candidates,
    select_team,
)
from libs.core.domain.entities import (
    EmergencyRequest,
    EmergencyStatus,
    Priority,
    RescueTeam,
    TeamStatus,
)

BASE_TIME = datetime(2024, 5, 1, 8, 0, tzinfo=timezone.utc)


def _emergency(latitude: float | None = None, longitude: float | None = None) -> EmergencyRequest:
    return EmergencyRequest(
        emergency_id="e-1",
        reporter_id="citizen-1",
        emergency_type="flood",
        status=EmergencyStatus.PENDING,
        priority=Priority.HIGH,
        created_at=BASE_TIME,
        updated_at=BASE_TIME,
        latitude=latitude,
        longitude=longitude,
    )


def _team(
    team_id: str,
    location: tuple[float, float] | None = None,
    status: TeamStatus = TeamStatus.AVAILABLE,
    registered_minute: int = 0,
) -> RescueTeam:
    created_at = BASE_TIME + timedelta(minutes=registered_minute)
    return RescueTeam(
        team_id=team_id,
        user_id=f"owner-{team_id}",
        team_name=f"Team {team_id}",
        status=status,
        created_at=created_at,
        updated_at=created_at,
        current_latitude=location[0] if location else None,
        current_longitude=location[1] if location else None,
    )


def test_haversine_one_degree_at_equator() -> None:
    assert haversine_km(0.0, 0.0, 0.0, 1.0) == pytest.approx(111.19, abs=0.01)
    assert haversine_km(10.0, 10.0, 10.0, 10.0) == 0.0


def test_nearest_available_team_wins() -> None:
    teams = [
        _team("far", location=(20.0, 20.0)),
        _team("busy", location=(10.001, 10.001), status=TeamStatus.BUSY),
        _team("near", location=(10.0, 10.0), registered_minute=5),
    ]

    chosen = select_team(_emergency(10.001, 10.001), teams)

    assert chosen is not None
    assert chosen.team.team_id == "near"
    assert chosen.distance_km == pytest.approx(0.156, abs=0.001)


def test_teams_with_active_missions_are_skipped() -> None:
    teams = [_team("near", location=(10.0, 10.0)), _team("far", location=(11.0, 11.0))]

    chosen = select_team(_emergency(10.0, 10.0), teams, busy_team_ids={"near"})

    assert chosen is not None
    assert chosen.team.team_id == "far"


def test_unlocated_teams_rank_after_located_ones() -> None:
    teams = [
        _team("nowhere", registered_minute=0),
        _team("located", location=(40.0, 40.0), registered_minute=9),
    ]

    ranked = rank_candidates(_emergency(0.0, 0.0), teams)

    assert [item.team.team_id for item in ranked] == ["located", "nowhere"]
    assert ranked[1].distance_km is None


def test_unlocated_request_falls_back_to_earliest_team() -> None:
    teams = [
        _team("late", location=(1.0, 1.0), registered_minute=10),
        _team("early", location=(50.0, 50.0), registered_minute=1),
    ]

    chosen = select_team(_emergency(), teams)

    assert chosen is not None
    assert chosen.team.team_id == "early"
    assert chosen.distance_km is None


def test_max_distance_excludes_remote_teams() -> None:
    teams = [_team("remote", location=(30.0, 30.0))]

    assert select_team(_emergency(0.0, 0.0), teams, max_distance_km=100.0) is None
    assert select_team(_emergency(0.0, 0.0), teams) is not None


def test_no_eligible_team_returns_none() -> None:
    teams = [
        _team("busy", status=TeamStatus.BUSY),
        _team("deployed", status=TeamStatus.DEPLOYED),
        _team("off", status=TeamStatus.OFF_DUTY),
    ]

    assert select_team(_emergency(1.0, 1.0), teams) is None
    assert select_team(_emergency(1.0, 1.0), []) is None


def test_estimate_arrival_from_distance_and_speed() -> None:
    assert estimate_arrival(BASE_TIME, 30.0, 60.0) == BASE_TIME + timedelta(minutes=30)
    assert estimate_arrival(BASE_TIME, None, 60.0) is None
    assert estimate_arrival(BASE_TIME, 10.0, 0.0) is None


def test_selected_team_is_always_nearest_eligible() -> None:
    rng = random.Random(20240501)
    statuses = list(TeamStatus)

    for _ in range(200):
        emergency = _emergency(rng.uniform(-60.0, 60.0), rng.uniform(-170.0, 170.0))
        teams = [
            _team(
                f"t{index}",
                location=(rng.uniform(-60.0, 60.0), rng.uniform(-170.0, 170.0)),
                status=rng.choice(statuses),
                registered_minute=index,
            )
            for index in range(rng.randint(0, 8))
        ]
        busy = {team.team_id for team in teams if rng.random() < 0.2}

        chosen = select_team(emergency, teams, busy_team_ids=busy)

        eligible = [
            team
            for team in teams
            if team.status == TeamStatus.AVAILABLE and team.team_id not in busy
        ]
        if not eligible:
            assert chosen is None
            continue
        assert chosen is not None
        assert chosen.team.status == TeamStatus.AVAILABLE
        assert chosen.team.team_id not in busy
        nearest = min(
            haversine_km(
                emergency.latitude,
                emergency.longitude,
                team.current_latitude,
                team.current_longitude,
            )
            for team in eligible
        )
        assert chosen.distance_km == pytest.approx(nearest)
