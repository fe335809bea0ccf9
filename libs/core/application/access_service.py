"""Role based access for dispatch users."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Callable

from libs.core.application.contracts import UnitOfWork, UserRepository
from libs.core.application.errors import (
    InvalidStateError,
    NotFoundError,
    PermissionDeniedError,
)
from libs.core.application.events import ChangeEvent, ChangeType, EventBus
from libs.core.domain.entities import Role, User

logger = logging.getLogger(__name__)

ROLE_CHECK_ATTEMPTS = 3
ROLE_CHECK_DELAY_SEC = 0.5
SELF_SERVICE_ROLES = frozenset({Role.USER, Role.RESCUE_TEAM})


class AccessService:
    """Grants, revokes and checks user roles."""

    def __init__(
        self,
        unit_of_work: UnitOfWork,
        user_repository: UserRepository,
        event_bus: EventBus | None = None,
        role_check_attempts: int = ROLE_CHECK_ATTEMPTS,
        role_check_delay_sec: float = ROLE_CHECK_DELAY_SEC,
        clock: Callable[[], datetime] | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._uow = unit_of_work
        self._users = user_repository
        self._events = event_bus or EventBus()
        self._attempts = max(1, role_check_attempts)
        self._delay = role_check_delay_sec
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._sleep = sleep

    def register_user(
        self,
        user_id: str,
        full_name: str,
        phone: str | None = None,
        role: Role = Role.USER,
    ) -> User:
        """Create a user profile with its initial role.

        Admin may only be self-assigned while no admin exists yet.
        """
        role = Role(role)
        if not full_name.strip():
            raise ValueError("Full name is required")

        with self._uow.atomic():
            if self._users.get(user_id) is not None:
                raise InvalidStateError("User already registered")
            if role not in SELF_SERVICE_ROLES and self._users.list(role=Role.ADMIN):
                raise PermissionDeniedError("Admin role must be granted by an admin")

            now = self._clock()
            user = User(
                user_id=user_id,
                full_name=full_name.strip(),
                created_at=now,
                updated_at=now,
                phone=phone,
                roles={role},
            )
            self._users.add(user)

        logger.info("User %s registered with role %s", user_id, role.value)
        self._publish(ChangeType.INSERT, user)
        return user

    def get_user(self, user_id: str) -> User | None:
        return self._users.get(user_id)

    def list_users(self, role: Role | None = None) -> list[User]:
        return self._users.list(role=role)

    def has_role(self, user_id: str, role: Role) -> bool:
        user = self._users.get(user_id)
        return user is not None and Role(role) in user.roles

    def verify_role(self, user_id: str, role: Role) -> bool:
        """Check a role, retrying while a fresh grant may not be visible yet."""
        for attempt in range(1, self._attempts + 1):
            if self.has_role(user_id, role):
                return True
            logger.debug(
                "Role check %d/%d for %s as %s came back empty",
                attempt,
                self._attempts,
                user_id,
                Role(role).value,
            )
            if attempt < self._attempts:
                self._sleep(self._delay)
        return False

    def grant_role(self, actor_id: str, user_id: str, role: Role) -> User:
        role = Role(role)
        with self._uow.atomic():
            self._require_admin(actor_id)
            user = self._require_user(user_id)
            user.roles.add(role)
            user.updated_at = self._clock()
            self._users.update(user)

        logger.info("%s granted %s to %s", actor_id, role.value, user_id)
        self._publish(ChangeType.UPDATE, user)
        return user

    def revoke_role(self, actor_id: str, user_id: str, role: Role) -> User:
        role = Role(role)
        with self._uow.atomic():
            self._require_admin(actor_id)
            user = self._require_user(user_id)
            if role == Role.ADMIN:
                self._ensure_other_admin(user_id)
            user.roles.discard(role)
            user.updated_at = self._clock()
            self._users.update(user)

        logger.info("%s revoked %s from %s", actor_id, role.value, user_id)
        self._publish(ChangeType.UPDATE, user)
        return user

    def set_role(self, actor_id: str, user_id: str, role: Role) -> User:
        """Replace every role of a user with a single one."""
        role = Role(role)
        with self._uow.atomic():
            self._require_admin(actor_id)
            user = self._require_user(user_id)
            if Role.ADMIN in user.roles and role != Role.ADMIN:
                self._ensure_other_admin(user_id)
            user.roles = {role}
            user.updated_at = self._clock()
            self._users.update(user)

        logger.info("%s set role of %s to %s", actor_id, user_id, role.value)
        self._publish(ChangeType.UPDATE, user)
        return user

    def _require_user(self, user_id: str) -> User:
        user = self._users.get(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    def _require_admin(self, actor_id: str) -> None:
        if not self.has_role(actor_id, Role.ADMIN):
            raise PermissionDeniedError("Admin role required")

    def _ensure_other_admin(self, user_id: str) -> None:
        admins = [user for user in self._users.list(role=Role.ADMIN) if user.user_id != user_id]
        if not admins:
            raise InvalidStateError("Cannot remove the last admin")

    def _publish(self, event_type: ChangeType, user: User) -> None:
        self._events.publish(ChangeEvent.for_entity("users", event_type, user))
