from __future__ import annotations

import logging
from datetime import datetime, timezone
from uuid import uuid4

from libs.core.application.contracts import EmergencyContactRepository, UnitOfWork
from libs.core.application.errors import NotFoundError
from libs.core.application.events import ChangeEvent, ChangeType, EventBus
from libs.core.domain.entities import EmergencyContact

logger = logging.getLogger(__name__)


class ContactService:
    """Per-user emergency contact book."""

    def __init__(
        self,
        unit_of_work: UnitOfWork,
        contact_repository: EmergencyContactRepository,
        event_bus: EventBus | None = None,
    ) -> None:
        self._uow = unit_of_work
        self._contacts = contact_repository
        self._events = event_bus or EventBus()

    def list_contacts(self, user_id: str) -> list[EmergencyContact]:
        return self._contacts.list_by_user(user_id)

    def save_contact(
        self,
        user_id: str,
        name: str,
        phone: str,
        email: str | None = None,
        relationship: str | None = None,
        priority: int = 1,
        contact_id: str | None = None,
    ) -> EmergencyContact:
        if not name.strip() or not phone.strip():
            raise ValueError("Contact name and phone are required")

        with self._uow.atomic():
            if contact_id is None:
                contact = EmergencyContact(
                    contact_id=str(uuid4()),
                    user_id=user_id,
                    name=name.strip(),
                    phone=phone.strip(),
                    created_at=datetime.now(timezone.utc),
                    email=email,
                    relationship=relationship,
                    priority=priority,
                )
                self._contacts.add(contact)
                event_type = ChangeType.INSERT
            else:
                contact = self._require_own_contact(user_id, contact_id)
                contact.name = name.strip()
                contact.phone = phone.strip()
                contact.email = email
                contact.relationship = relationship
                contact.priority = priority
                self._contacts.update(contact)
                event_type = ChangeType.UPDATE

        self._events.publish(
            ChangeEvent.for_entity("emergency_contacts", event_type, contact)
        )
        return contact

    def delete_contact(self, user_id: str, contact_id: str) -> None:
        with self._uow.atomic():
            contact = self._require_own_contact(user_id, contact_id)
            self._contacts.delete(contact_id)

        logger.info("User %s removed contact %s", user_id, contact_id)
        self._events.publish(
            ChangeEvent.for_entity("emergency_contacts", ChangeType.DELETE, contact)
        )

    def _require_own_contact(self, user_id: str, contact_id: str) -> EmergencyContact:
        contact = self._contacts.get(contact_id)
        if contact is None or contact.user_id != user_id:
            raise NotFoundError("Contact not found")
        return contact
