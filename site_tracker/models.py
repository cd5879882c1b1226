from __future__ import annotations

import enum
import json
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    false,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.types import TypeDecorator

from site_tracker.db import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserRole(str, enum.Enum):
    ADMIN = "Admin"
    PROJECT_MANAGER = "Project Manager"
    DATA_ANALYST = "Data Analyst"
    FIELD_ASSESSOR = "Field Assessor"
    VIEWER = "Viewer"


class UserStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class AssetCondition(str, enum.Enum):
    GOOD = "Good"
    FAIR = "Fair"
    POOR = "Poor"
    CRITICAL = "Critical"


class ProgramStatus(str, enum.Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"
    PLANNED = "Planned"


class RelatedEntityType(str, enum.Enum):
    SITE = "site"
    STAFF = "staff"
    ASSET = "asset"
    PROGRAM = "program"
    USER = "user"
    DISTRICT = "district"


def _enum_column(enum_cls: type[enum.Enum], name: str) -> Enum:
    # Persist the human-facing values ("Project Manager"), not member names.
    return Enum(
        enum_cls,
        name=name,
        values_callable=lambda members: [member.value for member in members],
        validate_strings=True,
    )


class JsonTextList(TypeDecorator):
    """List of strings stored as JSON-encoded text.

    Empty lists are written as NULL unless ``empty_as_array`` is set, in which
    case an explicit ``[]`` is stored. NULL always reads back as ``[]``.
    """

    impl = Text
    cache_ok = True

    def __init__(self, empty_as_array: bool = False, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.empty_as_array = empty_as_array

    def process_bind_param(self, value, dialect):  # type: ignore[no-untyped-def]
        if not value:
            return "[]" if self.empty_as_array else None
        return json.dumps([str(item) for item in value])

    def process_result_value(self, value, dialect):  # type: ignore[no-untyped-def]
        if value is None or value == "":
            return []
        decoded = json.loads(value)
        if not isinstance(decoded, list):
            return []
        return [str(item) for item in decoded]


class JSONColumn(TypeDecorator):
    """JSON column that uses JSONB for PostgreSQL and JSON for other databases."""

    impl = JSON
    cache_ok = True

    def load_dialect_impl(self, dialect):  # type: ignore[no-untyped-def]
        if dialect.name == "postgresql":
            return dialect.type_descriptor(JSONB())
        return dialect.type_descriptor(JSON())


class District(Base):
    __tablename__ = "districts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    region: Mapped[str | None] = mapped_column(String(255), nullable=True)
    contact_person: Mapped[str | None] = mapped_column(String(255), nullable=True)
    contact_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    contact_phone: Mapped[str | None] = mapped_column(String(64), nullable=True)


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    username: Mapped[str] = mapped_column(String(100), nullable=False, unique=True, index=True)
    password_hash: Mapped[str] = mapped_column("password", String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[UserRole] = mapped_column(_enum_column(UserRole, "user_role"), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    status: Mapped[UserStatus] = mapped_column(
        _enum_column(UserStatus, "user_status"),
        nullable=False,
        default=UserStatus.ACTIVE,
        server_default=UserStatus.ACTIVE.value,
    )
    last_login: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=_utcnow,
    )


class Site(Base):
    __tablename__ = "sites"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    site_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(64), nullable=False)
    district: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    physical_address: Mapped[str | None] = mapped_column(Text, nullable=True)
    gps_lat: Mapped[float | None] = mapped_column(Float, nullable=True)
    gps_lng: Mapped[float | None] = mapped_column(Float, nullable=True)
    host_department: Mapped[str | None] = mapped_column(String(255), nullable=True)
    agreement_type: Mapped[str | None] = mapped_column(String(64), nullable=True)
    agreement_details: Mapped[str | None] = mapped_column(Text, nullable=True)
    contract_number: Mapped[str | None] = mapped_column(String(128), nullable=True)
    contract_term: Mapped[str | None] = mapped_column(String(128), nullable=True)
    renewal_date: Mapped[str | None] = mapped_column(String(10), nullable=True)
    contact_person: Mapped[str | None] = mapped_column(String(255), nullable=True)
    contact_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    contact_phone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    establishment_date: Mapped[str | None] = mapped_column(String(10), nullable=True)
    operational_status: Mapped[str] = mapped_column(String(64), nullable=False)
    assessment_status: Mapped[str] = mapped_column(String(64), nullable=False)

    total_area: Mapped[int | None] = mapped_column(Integer, nullable=True)
    classrooms: Mapped[int | None] = mapped_column(Integer, nullable=True)
    offices: Mapped[int | None] = mapped_column(Integer, nullable=True)
    computer_labs: Mapped[int | None] = mapped_column(Integer, nullable=True)
    workshops: Mapped[int | None] = mapped_column(Integer, nullable=True)
    has_library: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    has_student_common_areas: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    has_staff_facilities: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    accessibility_features: Mapped[str | None] = mapped_column(Text, nullable=True)
    internet_connectivity: Mapped[str | None] = mapped_column(String(255), nullable=True)
    security_features: Mapped[str | None] = mapped_column(Text, nullable=True)

    building_condition: Mapped[str | None] = mapped_column(String(32), nullable=True)
    electrical_condition: Mapped[str | None] = mapped_column(String(32), nullable=True)
    plumbing_condition: Mapped[str | None] = mapped_column(String(32), nullable=True)
    interior_condition: Mapped[str | None] = mapped_column(String(32), nullable=True)
    exterior_condition: Mapped[str | None] = mapped_column(String(32), nullable=True)
    last_renovation_date: Mapped[str | None] = mapped_column(String(10), nullable=True)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    images: Mapped[list[str]] = mapped_column(JsonTextList(), nullable=True, default=list)
    created_by: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    last_visited_by: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    last_visit_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    staff: Mapped[list[Staff]] = relationship(back_populates="site")
    assets: Mapped[list[Asset]] = relationship(back_populates="site")
    programs: Mapped[list[Program]] = relationship(back_populates="site")


class Staff(Base):
    __tablename__ = "staff"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    staff_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True, index=True)
    first_name: Mapped[str] = mapped_column(String(255), nullable=False)
    last_name: Mapped[str] = mapped_column(String(255), nullable=False)
    position: Mapped[str | None] = mapped_column(String(255), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    qualifications: Mapped[list[str]] = mapped_column(JsonTextList(), nullable=True, default=list)
    skills: Mapped[list[str]] = mapped_column(JsonTextList(), nullable=True, default=list)
    workload: Mapped[int | None] = mapped_column(Integer, nullable=True)
    department: Mapped[str | None] = mapped_column(String(255), nullable=True)
    start_date: Mapped[str | None] = mapped_column(String(10), nullable=True)
    contract_end_date: Mapped[str | None] = mapped_column(String(10), nullable=True)
    employment_status: Mapped[str | None] = mapped_column(String(64), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    site_id: Mapped[int | None] = mapped_column(
        ForeignKey("sites.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    site: Mapped[Site | None] = relationship(back_populates="staff")


class Asset(Base):
    __tablename__ = "assets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    asset_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str | None] = mapped_column(String(128), nullable=True)
    category: Mapped[str] = mapped_column(String(128), nullable=False)
    manufacturer: Mapped[str | None] = mapped_column(String(255), nullable=True)
    model: Mapped[str | None] = mapped_column(String(255), nullable=True)
    serial_numbers: Mapped[list[str]] = mapped_column(
        JsonTextList(empty_as_array=True),
        nullable=False,
        default=list,
        server_default=text("'[]'"),
    )
    purchase_date: Mapped[str | None] = mapped_column(String(10), nullable=True)
    purchase_price: Mapped[float | None] = mapped_column(Float, nullable=True)
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    assigned_to: Mapped[str | None] = mapped_column(String(255), nullable=True)
    last_maintenance_date: Mapped[str | None] = mapped_column(String(10), nullable=True)
    next_maintenance_date: Mapped[str | None] = mapped_column(String(10), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    condition: Mapped[AssetCondition] = mapped_column(
        _enum_column(AssetCondition, "asset_condition"),
        nullable=False,
    )
    acquisition_date: Mapped[str | None] = mapped_column(String(10), nullable=True)
    last_service_date: Mapped[str | None] = mapped_column(String(10), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    images: Mapped[list[str]] = mapped_column(JsonTextList(), nullable=True, default=list)
    site_id: Mapped[int | None] = mapped_column(
        ForeignKey("sites.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    site: Mapped[Site | None] = relationship(back_populates="assets")


class Program(Base):
    __tablename__ = "programs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    program_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    enrollment_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    start_date: Mapped[str | None] = mapped_column(String(10), nullable=True)
    end_date: Mapped[str | None] = mapped_column(String(10), nullable=True)
    status: Mapped[ProgramStatus] = mapped_column(
        _enum_column(ProgramStatus, "program_status"),
        nullable=False,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    site_id: Mapped[int | None] = mapped_column(
        ForeignKey("sites.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    site: Mapped[Site | None] = relationship(back_populates="programs")


class Activity(Base):
    __tablename__ = "activities"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    type: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    related_entity_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    related_entity_type: Mapped[RelatedEntityType | None] = mapped_column(
        _enum_column(RelatedEntityType, "related_entity_type"),
        nullable=True,
    )
    performed_by: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
        index=True,
    )
    # "metadata" is reserved on declarative classes.
    activity_metadata: Mapped[dict[str, Any]] = mapped_column(
        "metadata",
        JSONColumn(),
        nullable=True,
        default=dict,
    )
