from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class EmergencyStatus(str, Enum):
    PENDING = "pending"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CANCELLED = "cancelled"


class TeamStatus(str, Enum):
    AVAILABLE = "available"
    DEPLOYED = "deployed"
    BUSY = "busy"
    OFF_DUTY = "off_duty"


class MissionStatus(str, Enum):
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Role(str, Enum):
    USER = "user"
    RESCUE_TEAM = "rescue_team"
    ADMIN = "admin"


ACTIVE_MISSION_STATUSES = frozenset(
    {MissionStatus.ASSIGNED, MissionStatus.IN_PROGRESS}
)
TERMINAL_EMERGENCY_STATUSES = frozenset(
    {EmergencyStatus.RESOLVED, EmergencyStatus.CANCELLED}
)


@dataclass
class EmergencyRequest:
    """Incident filed by a citizen."""

    emergency_id: str
    reporter_id: str
    emergency_type: str
    status: EmergencyStatus
    priority: Priority
    created_at: datetime
    updated_at: datetime
    description: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @property
    def has_location(self) -> bool:
        return self.latitude is not None and self.longitude is not None


@dataclass
class RescueTeam:
    """Responder unit with availability and last-known position."""

    team_id: str
    user_id: str
    team_name: str
    status: TeamStatus
    created_at: datetime
    updated_at: datetime
    specialization: Optional[str] = None
    current_latitude: Optional[float] = None
    current_longitude: Optional[float] = None
    contact_phone: Optional[str] = None
    contact_email: Optional[str] = None

    @property
    def has_location(self) -> bool:
        return self.current_latitude is not None and self.current_longitude is not None


@dataclass
class RescueMission:
    """Binding between one emergency request and one rescue team."""

    mission_id: str
    emergency_request_id: str
    rescue_team_id: str
    status: MissionStatus
    priority: Priority
    created_at: datetime
    updated_at: datetime
    estimated_arrival: Optional[datetime] = None
    actual_arrival: Optional[datetime] = None
    completion_time: Optional[datetime] = None
    notes: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_MISSION_STATUSES


@dataclass
class User:
    """Application user with its role tags."""

    user_id: str
    full_name: str
    created_at: datetime
    updated_at: datetime
    phone: Optional[str] = None
    roles: set[Role] = field(default_factory=set)


@dataclass
class EmergencyContact:
    """Person to notify on behalf of a user."""

    contact_id: str
    user_id: str
    name: str
    phone: str
    created_at: datetime
    email: Optional[str] = None
    relationship: Optional[str] = None
    priority: int = 1
