from pydantic import BaseModel, EmailStr, Field

from libs.core.domain.entities import EmergencyStatus, Priority, Role, TeamStatus


class EmergencyCreateRequest(BaseModel):
    emergency_type: str = Field(min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=2000)
    priority: Priority = Priority.MEDIUM
    latitude: float | None = Field(default=None, ge=-90.0, le=90.0)
    longitude: float | None = Field(default=None, ge=-180.0, le=180.0)


class EmergencyStatusRequest(BaseModel):
    status: EmergencyStatus


class TeamRegisterRequest(BaseModel):
    team_name: str = Field(min_length=1, max_length=100)
    specialization: str | None = None
    contact_phone: str | None = None
    contact_email: EmailStr | None = None
    full_name: str | None = None


class TeamLocationRequest(BaseModel):
    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)


class TeamStatusRequest(BaseModel):
    status: TeamStatus


class MissionNotesRequest(BaseModel):
    notes: str = Field(max_length=4000)


class UserRegisterRequest(BaseModel):
    full_name: str = Field(min_length=1, max_length=200)
    phone: str | None = None
    role: Role = Role.USER


class UserRoleRequest(BaseModel):
    role: Role


class ContactRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    phone: str = Field(min_length=3, max_length=40)
    email: EmailStr | None = None
    relationship: str | None = None
    priority: int = Field(default=1, ge=1, le=10)
