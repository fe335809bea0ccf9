"""Change feed tests."""

from dataclasses import dataclass

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from libs.core.application.events import ChangeEvent, ChangeType, EventBus
from services.api_gateway.app import app
from services.api_gateway.dependencies import reset_state

client = TestClient(app)


@dataclass
class _Row:
    emergency_id: str
    status: str


def setup_function() -> None:
    reset_state()


def _as(user_id: str) -> dict[str, str]:
    return {"X-User-Id": user_id}


def _register(user_id: str, role: str = "user") -> None:
    response = client.post(
        "/v1/users",
        json={"full_name": user_id.title(), "role": role},
        headers=_as(user_id),
    )
    assert response.status_code == 200


def _event(emergency_id: str = "e-1", status: str = "pending") -> ChangeEvent:
    return ChangeEvent.for_entity(
        "emergency_requests",
        ChangeType.UPDATE,
        _Row(emergency_id=emergency_id, status=status),
    )


def test_subscriber_receives_matching_table_only() -> None:
    bus = EventBus()
    seen: list[str] = []
    bus.subscribe("emergency_requests", lambda event: seen.append(event.record_id))
    bus.subscribe("rescue_teams", lambda event: seen.append("wrong table"))

    delivered = bus.publish(_event("e-7"))

    assert delivered == 1
    assert seen == ["e-7"]


def test_column_filter_compares_as_text() -> None:
    bus = EventBus()
    seen: list[str] = []
    bus.subscribe(
        "emergency_requests",
        lambda event: seen.append(event.record["status"]),
        column="status",
        value="assigned",
    )

    bus.publish(_event(status="pending"))
    bus.publish(_event(status="assigned"))

    assert seen == ["assigned"]


def test_scope_cannot_be_widened_by_column_filter() -> None:
    bus = EventBus()
    seen: list[str] = []
    bus.subscribe(
        "emergency_requests",
        lambda event: seen.append(event.record["status"]),
        column="status",
        value="pending",
        scope={"emergency_id": "e-1"},
    )

    bus.publish(_event("e-2", "pending"))
    bus.publish(_event("e-1", "assigned"))
    bus.publish(_event("e-1", "pending"))

    assert seen == ["pending"]


def test_unsubscribe_stops_delivery() -> None:
    bus = EventBus()
    seen: list[ChangeEvent] = []
    subscription = bus.subscribe("emergency_requests", seen.append)

    subscription.unsubscribe()
    subscription.unsubscribe()

    assert bus.publish(_event()) == 0
    assert seen == []


def test_failing_subscriber_does_not_block_others() -> None:
    bus = EventBus()
    seen: list[ChangeEvent] = []

    def _explode(_event: ChangeEvent) -> None:
        raise RuntimeError("socket gone")

    bus.subscribe("emergency_requests", _explode)
    bus.subscribe("emergency_requests", seen.append)

    assert bus.publish(_event()) == 1
    assert len(seen) == 1


def test_unknown_table_is_rejected() -> None:
    with pytest.raises(ValueError):
        EventBus().subscribe("vehicles", lambda event: None)


def test_event_serializes_to_json_primitives() -> None:
    payload = _event("e-9", "resolved").to_dict()

    assert payload["table"] == "emergency_requests"
    assert payload["event_type"] == "UPDATE"
    assert payload["record_id"] == "e-9"
    assert payload["record"] == {"emergency_id": "e-9", "status": "resolved"}
    assert isinstance(payload["occurred_at"], str)


def test_websocket_streams_new_requests() -> None:
    with client.websocket_connect(
        "/v1/realtime/emergency_requests",
        headers=_as("citizen-1"),
    ) as websocket:
        created = client.post(
            "/v1/emergencies",
            json={"emergency_type": "earthquake", "priority": "critical"},
            headers=_as("citizen-1"),
        ).json()

        message = websocket.receive_json()

    assert message["table"] == "emergency_requests"
    assert message["event_type"] == "INSERT"
    assert message["record_id"] == created["emergency_id"]
    assert message["record"]["priority"] == "critical"
    assert message["record"]["status"] == "pending"


def test_websocket_applies_column_filter() -> None:
    _register("ops", role="admin")
    url = "/v1/realtime/emergency_requests?column=reporter_id&value=citizen-2"
    with client.websocket_connect(url, headers=_as("ops")) as websocket:
        for reporter in ("citizen-1", "citizen-2"):
            client.post(
                "/v1/emergencies",
                json={"emergency_type": "fire"},
                headers=_as(reporter),
            )

        message = websocket.receive_json()

    assert message["record"]["reporter_id"] == "citizen-2"


def test_websocket_rejects_unknown_table() -> None:
    with pytest.raises(WebSocketDisconnect) as error:
        with client.websocket_connect("/v1/realtime/vehicles"):
            pass

    assert error.value.code == 1008


def test_websocket_requires_identity() -> None:
    with pytest.raises(WebSocketDisconnect) as error:
        with client.websocket_connect("/v1/realtime/emergency_contacts"):
            pass

    assert error.value.code == 1008


def test_contact_feed_carries_only_own_contacts() -> None:
    url = "/v1/realtime/emergency_contacts?user_id=stranger"
    with client.websocket_connect(url) as websocket:
        for owner, name in (("victim", "Mom"), ("stranger", "Brother")):
            client.post(
                "/v1/contacts",
                json={"name": name, "phone": "555-0100"},
                headers=_as(owner),
            )

        message = websocket.receive_json()

    assert message["record"]["user_id"] == "stranger"
    assert message["record"]["name"] == "Brother"


def test_citizen_request_feed_carries_only_own_requests() -> None:
    with client.websocket_connect(
        "/v1/realtime/emergency_requests",
        headers=_as("stranger"),
    ) as websocket:
        for reporter in ("victim", "stranger"):
            client.post(
                "/v1/emergencies",
                json={"emergency_type": "fire", "latitude": 1.0, "longitude": 2.0},
                headers=_as(reporter),
            )

        message = websocket.receive_json()

    assert message["record"]["reporter_id"] == "stranger"


def test_user_feed_limited_to_own_profile_for_non_admins() -> None:
    with client.websocket_connect("/v1/realtime/users", headers=_as("stranger")) as websocket:
        _register("victim")
        _register("stranger")

        message = websocket.receive_json()

    assert message["record"]["user_id"] == "stranger"


def test_mission_feed_refused_without_team() -> None:
    with pytest.raises(WebSocketDisconnect) as error:
        with client.websocket_connect("/v1/realtime/rescue_missions", headers=_as("citizen-1")):
            pass

    assert error.value.code == 1008


def test_team_mission_feed_scoped_to_own_team() -> None:
    _register("ops", role="admin")
    team_ids = [
        client.post("/v1/teams", json={"team_name": owner}, headers=_as(owner)).json()["team_id"]
        for owner in ("team-a", "team-b")
    ]

    with client.websocket_connect(
        "/v1/realtime/rescue_missions",
        headers=_as("team-b"),
    ) as websocket:
        for team_id in team_ids:
            created = client.post(
                "/v1/emergencies",
                json={"emergency_type": "fire"},
                headers=_as("citizen-1"),
            ).json()
            client.post(
                f"/v1/emergencies/{created['emergency_id']}/assign/{team_id}",
                headers=_as("ops"),
            )

        message = websocket.receive_json()

    assert message["event_type"] == "INSERT"
    assert message["record"]["rescue_team_id"] == team_ids[1]
