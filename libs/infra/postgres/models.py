from sqlalchemy import (
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


class UserRow(Base):
    __tablename__ = "users"

    user_id = Column(Text, primary_key=True)
    full_name = Column(Text, nullable=False)
    phone = Column(Text)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    roles = relationship(
        "UserRoleRow",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class UserRoleRow(Base):
    __tablename__ = "user_roles"
    __table_args__ = (UniqueConstraint("user_id", "role", name="uq_user_roles_user_role"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Text, ForeignKey("users.user_id"), nullable=False, index=True)
    role = Column(Text, nullable=False, index=True)


class EmergencyRequestRow(Base):
    __tablename__ = "emergency_requests"

    emergency_id = Column(Text, primary_key=True)
    reporter_id = Column(Text, nullable=False, index=True)
    emergency_type = Column(Text, nullable=False)
    description = Column(Text)
    latitude = Column(Float)
    longitude = Column(Float)
    priority = Column(Text, nullable=False)
    status = Column(Text, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False)


class RescueTeamRow(Base):
    __tablename__ = "rescue_teams"

    team_id = Column(Text, primary_key=True)
    user_id = Column(Text, nullable=False, unique=True)
    team_name = Column(Text, nullable=False)
    specialization = Column(Text)
    status = Column(Text, nullable=False, index=True)
    current_latitude = Column(Float)
    current_longitude = Column(Float)
    contact_phone = Column(Text)
    contact_email = Column(Text)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)


class RescueMissionRow(Base):
    __tablename__ = "rescue_missions"

    mission_id = Column(Text, primary_key=True)
    emergency_request_id = Column(
        Text,
        ForeignKey("emergency_requests.emergency_id"),
        nullable=False,
        index=True,
    )
    rescue_team_id = Column(
        Text,
        ForeignKey("rescue_teams.team_id"),
        nullable=False,
        index=True,
    )
    status = Column(Text, nullable=False, index=True)
    priority = Column(Text, nullable=False)
    estimated_arrival = Column(DateTime(timezone=True))
    actual_arrival = Column(DateTime(timezone=True))
    completion_time = Column(DateTime(timezone=True))
    notes = Column(Text)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False)


# One non-terminal mission per emergency request and per team.
Index(
    "uq_rescue_missions_active_request",
    RescueMissionRow.emergency_request_id,
    unique=True,
    postgresql_where=RescueMissionRow.status.in_(["assigned", "in_progress"]),
    sqlite_where=RescueMissionRow.status.in_(["assigned", "in_progress"]),
)
Index(
    "uq_rescue_missions_active_team",
    RescueMissionRow.rescue_team_id,
    unique=True,
    postgresql_where=RescueMissionRow.status.in_(["assigned", "in_progress"]),
    sqlite_where=RescueMissionRow.status.in_(["assigned", "in_progress"]),
)


class EmergencyContactRow(Base):
    __tablename__ = "emergency_contacts"

    contact_id = Column(Text, primary_key=True)
    user_id = Column(Text, nullable=False, index=True)
    name = Column(Text, nullable=False)
    phone = Column(Text, nullable=False)
    email = Column(Text)
    relationship = Column(Text)
    priority = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), nullable=False)
