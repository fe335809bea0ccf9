"""In-process change feed for dispatch records.

Writers publish one event per inserted or updated row once their
transaction has committed. Delivery is best-effort and unordered across
concurrent writers, so subscribers should treat an event as a hint to
re-read the record rather than as its authoritative state.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable
from uuid import uuid4

logger = logging.getLogger(__name__)

# Table name -> primary key field of the record published for it.
TABLES: dict[str, str] = {
    "emergency_requests": "emergency_id",
    "rescue_teams": "team_id",
    "rescue_missions": "mission_id",
    "users": "user_id",
    "emergency_contacts": "contact_id",
}


class ChangeType(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


@dataclass
class ChangeEvent:
    """Single row change on a named table."""

    table: str
    event_type: ChangeType
    record_id: str
    record: dict[str, Any]
    occurred_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    @classmethod
    def for_entity(
        cls,
        table: str,
        event_type: ChangeType,
        entity: Any,
    ) -> ChangeEvent:
        record = to_record(entity)
        return cls(
            table=table,
            event_type=event_type,
            record_id=str(record[TABLES[table]]),
            record=record,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "table": self.table,
            "event_type": self.event_type.value,
            "record_id": self.record_id,
            "record": self.record,
            "occurred_at": self.occurred_at.isoformat(),
        }


def to_record(entity: Any) -> dict[str, Any]:
    """Flatten a domain dataclass into JSON-safe primitives."""
    return {key: _plain(value) for key, value in asdict(entity).items()}


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (set, frozenset)):
        return sorted(_plain(item) for item in value)
    return value


@dataclass
class _Subscriber:
    subscription_id: str
    table: str
    callback: Callable[[ChangeEvent], None]
    column: str | None
    value: Any
    scope: dict[str, Any] = field(default_factory=dict)

    def matches(self, event: ChangeEvent) -> bool:
        if event.table != self.table:
            return False
        for key, required in self.scope.items():
            if str(event.record.get(key)) != str(required):
                return False
        if self.column is None:
            return True
        return str(event.record.get(self.column)) == str(self.value)


class Subscription:
    """Handle returned by EventBus.subscribe."""

    def __init__(self, bus: EventBus, subscription_id: str) -> None:
        self._bus = bus
        self.subscription_id = subscription_id

    def unsubscribe(self) -> None:
        self._bus.unsubscribe(self.subscription_id)


class EventBus:
    """Thread-safe publish/subscribe registry keyed by table name."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscribers: dict[str, _Subscriber] = {}

    def subscribe(
        self,
        table: str,
        callback: Callable[[ChangeEvent], None],
        column: str | None = None,
        value: Any = None,
        scope: dict[str, Any] | None = None,
    ) -> Subscription:
        """Register ``callback`` for changes on ``table``.

        ``column``/``value`` is the subscriber's own filter; every entry of
        ``scope`` must match as well.
        """
        if table not in TABLES:
            raise ValueError(f"Unknown table: {table}")
        subscriber = _Subscriber(
            subscription_id=str(uuid4()),
            table=table,
            callback=callback,
            column=column,
            value=value,
            scope=dict(scope or {}),
        )
        with self._lock:
            self._subscribers[subscriber.subscription_id] = subscriber
        return Subscription(self, subscriber.subscription_id)

    def unsubscribe(self, subscription_id: str) -> None:
        with self._lock:
            self._subscribers.pop(subscription_id, None)

    def publish(self, event: ChangeEvent) -> int:
        """Deliver an event to matching subscribers, returning how many got it."""
        with self._lock:
            targets = [item for item in self._subscribers.values() if item.matches(event)]

        delivered = 0
        for subscriber in targets:
            try:
                subscriber.callback(event)
            except Exception:  # pylint: disable=broad-except
                logger.exception(
                    "Subscriber %s failed on %s %s",
                    subscriber.subscription_id,
                    event.table,
                    event.event_type.value,
                )
                continue
            delivered += 1
        return delivered

    def publish_all(self, events: list[ChangeEvent]) -> None:
        for event in events:
            self.publish(event)

    def clear(self) -> None:
        with self._lock:
            self._subscribers.clear()
