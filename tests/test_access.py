"""Role management tests."""

import pytest

from libs.core.application.access_service import AccessService
from libs.core.application.errors import (
    InvalidStateError,
    NotFoundError,
    PermissionDeniedError,
)
from libs.core.domain.entities import Role
from tests.conftest import Stack


def test_first_admin_can_self_register(memory_stack: Stack) -> None:
    admin = memory_stack.access.register_user("root", "Root", role=Role.ADMIN)

    assert admin.roles == {Role.ADMIN}
    with pytest.raises(PermissionDeniedError):
        memory_stack.access.register_user("mallory", "Mallory", role=Role.ADMIN)


def test_duplicate_registration_is_rejected(memory_stack: Stack) -> None:
    memory_stack.access.register_user("u1", "User One")

    with pytest.raises(InvalidStateError):
        memory_stack.access.register_user("u1", "User One Again")
    with pytest.raises(ValueError):
        memory_stack.access.register_user("u2", "  ")


def test_admin_grants_and_revokes_roles(memory_stack: Stack) -> None:
    memory_stack.access.register_user("root", "Root", role=Role.ADMIN)
    memory_stack.access.register_user("u1", "User One")

    granted = memory_stack.access.grant_role("root", "u1", Role.RESCUE_TEAM)
    assert granted.roles == {Role.USER, Role.RESCUE_TEAM}
    assert memory_stack.access.has_role("u1", Role.RESCUE_TEAM)

    revoked = memory_stack.access.revoke_role("root", "u1", Role.USER)
    assert revoked.roles == {Role.RESCUE_TEAM}
    assert [user.user_id for user in memory_stack.access.list_users(role=Role.RESCUE_TEAM)] == [
        "u1"
    ]


def test_non_admin_cannot_change_roles(memory_stack: Stack) -> None:
    memory_stack.access.register_user("u1", "User One")
    memory_stack.access.register_user("u2", "User Two")

    with pytest.raises(PermissionDeniedError):
        memory_stack.access.grant_role("u1", "u2", Role.ADMIN)
    with pytest.raises(PermissionDeniedError):
        memory_stack.access.set_role("u1", "u1", Role.ADMIN)


def test_unknown_user_raises_not_found(memory_stack: Stack) -> None:
    memory_stack.access.register_user("root", "Root", role=Role.ADMIN)

    with pytest.raises(NotFoundError):
        memory_stack.access.grant_role("root", "ghost", Role.USER)


def test_last_admin_cannot_be_removed(memory_stack: Stack) -> None:
    memory_stack.access.register_user("root", "Root", role=Role.ADMIN)

    with pytest.raises(InvalidStateError):
        memory_stack.access.revoke_role("root", "root", Role.ADMIN)
    with pytest.raises(InvalidStateError):
        memory_stack.access.set_role("root", "root", Role.USER)

    memory_stack.access.register_user("deputy", "Deputy")
    memory_stack.access.grant_role("root", "deputy", Role.ADMIN)
    demoted = memory_stack.access.set_role("deputy", "root", Role.USER)

    assert demoted.roles == {Role.USER}
    assert not memory_stack.access.has_role("root", Role.ADMIN)


def test_verify_role_retries_until_grant_is_visible(memory_stack: Stack) -> None:
    pauses: list[float] = []

    def _sleep(seconds: float) -> None:
        pauses.append(seconds)
        if len(pauses) == 2:
            memory_stack.access.register_user("late", "Late Joiner", role=Role.RESCUE_TEAM)

    access = AccessService(
        unit_of_work=memory_stack.db,
        user_repository=memory_stack.users,
        role_check_attempts=4,
        role_check_delay_sec=0.25,
        sleep=_sleep,
    )

    assert access.verify_role("late", Role.RESCUE_TEAM)
    assert pauses == [0.25, 0.25]


def test_verify_role_gives_up_after_attempts(memory_stack: Stack) -> None:
    pauses: list[float] = []
    access = AccessService(
        unit_of_work=memory_stack.db,
        user_repository=memory_stack.users,
        role_check_attempts=3,
        role_check_delay_sec=0.1,
        sleep=pauses.append,
    )

    assert not access.verify_role("nobody", Role.ADMIN)
    assert pauses == [0.1, 0.1]


def test_role_changes_are_published(memory_stack: Stack) -> None:
    seen: list[tuple[str, list[str]]] = []
    memory_stack.bus.subscribe(
        "users",
        lambda event: seen.append((event.event_type.value, event.record["roles"])),
        column="user_id",
        value="u1",
    )
    memory_stack.access.register_user("root", "Root", role=Role.ADMIN)
    memory_stack.access.register_user("u1", "User One")
    memory_stack.access.grant_role("root", "u1", Role.RESCUE_TEAM)

    assert seen == [("INSERT", ["user"]), ("UPDATE", ["rescue_team", "user"])]
