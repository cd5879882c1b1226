from __future__ import annotations

from datetime import date, datetime
from typing import Annotated, Any, ClassVar

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    EmailStr,
    Field,
    StringConstraints,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from site_tracker.models import (
    AssetCondition,
    ProgramStatus,
    RelatedEntityType,
    UserRole,
    UserStatus,
)


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _check_calendar_date(value: str) -> str:
    date.fromisoformat(value)
    return value


CalendarDate = Annotated[
    str,
    StringConstraints(strip_whitespace=True, pattern=r"^\d{4}-\d{2}-\d{2}$"),
    AfterValidator(_check_calendar_date),
]
OptionalDate = Annotated[CalendarDate | None, BeforeValidator(_blank_to_none)]
OptionalEmail = Annotated[EmailStr | None, BeforeValidator(_blank_to_none)]
RequiredText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=255)]
BusinessKey = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=64)]
Count = Annotated[int, Field(ge=0)]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ReadModel(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class PartialModel(CamelModel):
    """Update payload where every field is optional.

    Only fields present in the request body are applied; ``changes()`` returns
    them keyed by model attribute name. Fields listed in ``non_nullable_fields`` may
    be omitted but not explicitly set to null.
    """

    non_nullable_fields: ClassVar[frozenset[str]] = frozenset()

    @model_validator(mode="after")
    def _reject_null_for_required_columns(self) -> PartialModel:
        for name in sorted(self.model_fields_set & self.non_nullable_fields):
            if getattr(self, name) is None:
                raise ValueError(f"{to_camel(name)} cannot be null")
        return self

    def changes(self) -> dict[str, Any]:
        return {name: getattr(self, name) for name in self.model_fields_set}


# --- Districts ---


class DistrictCreate(CamelModel):
    name: RequiredText
    region: str | None = None
    contact_person: str | None = None
    contact_email: OptionalEmail = None
    contact_phone: str | None = None


class DistrictUpdate(PartialModel):
    non_nullable_fields: ClassVar[frozenset[str]] = frozenset({"name"})

    name: RequiredText | None = None
    region: str | None = None
    contact_person: str | None = None
    contact_email: OptionalEmail = None
    contact_phone: str | None = None


class DistrictRead(ReadModel):
    id: int
    name: str
    region: str | None = None
    contact_person: str | None = None
    contact_email: str | None = None
    contact_phone: str | None = None


# --- Users ---


class UserCreate(CamelModel):
    username: Annotated[str, StringConstraints(strip_whitespace=True, min_length=3, max_length=100)]
    password: str = Field(min_length=6, max_length=128)
    name: RequiredText
    role: UserRole
    email: OptionalEmail = None
    phone: str | None = None


class UserUpdate(PartialModel):
    non_nullable_fields: ClassVar[frozenset[str]] = frozenset({"username", "name", "role", "status"})

    username: Annotated[str, StringConstraints(strip_whitespace=True, min_length=3, max_length=100)] | None = None
    # Empty string means "keep the current password".
    password: str | None = Field(default=None, max_length=128)
    name: RequiredText | None = None
    role: UserRole | None = None
    email: OptionalEmail = None
    phone: str | None = None
    status: UserStatus | None = None

    @field_validator("password")
    @classmethod
    def _password_length(cls, value: str | None) -> str | None:
        if value and len(value) < 6:
            raise ValueError("Password must be at least 6 characters")
        return value


class UserRead(ReadModel):
    id: int
    username: str
    name: str
    role: UserRole
    email: str | None = None
    phone: str | None = None
    status: UserStatus
    last_login: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class LoginRequest(CamelModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class LoginResponse(CamelModel):
    token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserRead


# --- Sites ---


class _SiteFields(CamelModel):
    physical_address: str | None = None
    gps_lat: float | None = Field(default=None, ge=-90, le=90)
    gps_lng: float | None = Field(default=None, ge=-180, le=180)
    host_department: str | None = None
    agreement_type: str | None = None
    agreement_details: str | None = None
    contract_number: str | None = None
    contract_term: str | None = None
    renewal_date: OptionalDate = None
    contact_person: str | None = None
    contact_email: OptionalEmail = None
    contact_phone: str | None = None
    establishment_date: OptionalDate = None
    total_area: Count | None = None
    classrooms: Count | None = None
    offices: Count | None = None
    computer_labs: Count | None = None
    workshops: Count | None = None
    accessibility_features: str | None = None
    internet_connectivity: str | None = None
    security_features: str | None = None
    building_condition: str | None = None
    electrical_condition: str | None = None
    plumbing_condition: str | None = None
    interior_condition: str | None = None
    exterior_condition: str | None = None
    last_renovation_date: OptionalDate = None
    notes: str | None = None
    images: list[str] | None = None


class SiteCreate(_SiteFields):
    site_id: BusinessKey
    name: RequiredText
    type: RequiredText
    district: RequiredText
    operational_status: RequiredText
    assessment_status: RequiredText
    has_library: bool = False
    has_student_common_areas: bool = False
    has_staff_facilities: bool = False
    created_by: int | None = Field(default=None, ge=1)


class SiteUpdate(_SiteFields, PartialModel):
    non_nullable_fields: ClassVar[frozenset[str]] = frozenset(
        {
            "site_id",
            "name",
            "type",
            "district",
            "operational_status",
            "assessment_status",
            "has_library",
            "has_student_common_areas",
            "has_staff_facilities",
        }
    )

    site_id: BusinessKey | None = None
    name: RequiredText | None = None
    type: RequiredText | None = None
    district: RequiredText | None = None
    operational_status: RequiredText | None = None
    assessment_status: RequiredText | None = None
    has_library: bool | None = None
    has_student_common_areas: bool | None = None
    has_staff_facilities: bool | None = None


class SiteRead(ReadModel):
    id: int
    site_id: str
    name: str
    type: str
    district: str
    physical_address: str | None = None
    gps_lat: float | None = None
    gps_lng: float | None = None
    host_department: str | None = None
    agreement_type: str | None = None
    agreement_details: str | None = None
    contract_number: str | None = None
    contract_term: str | None = None
    renewal_date: str | None = None
    contact_person: str | None = None
    contact_email: str | None = None
    contact_phone: str | None = None
    establishment_date: str | None = None
    operational_status: str
    assessment_status: str
    total_area: int | None = None
    classrooms: int | None = None
    offices: int | None = None
    computer_labs: int | None = None
    workshops: int | None = None
    has_library: bool
    has_student_common_areas: bool
    has_staff_facilities: bool
    accessibility_features: str | None = None
    internet_connectivity: str | None = None
    security_features: str | None = None
    building_condition: str | None = None
    electrical_condition: str | None = None
    plumbing_condition: str | None = None
    interior_condition: str | None = None
    exterior_condition: str | None = None
    last_renovation_date: str | None = None
    notes: str | None = None
    images: list[str] = Field(default_factory=list)
    created_by: int | None = None
    last_visited_by: int | None = None
    last_visit_date: datetime | None = None


class SiteImagesAppendRequest(CamelModel):
    urls: list[Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]] = Field(min_length=1)


# --- Staff ---


class _StaffFields(CamelModel):
    position: str | None = None
    email: OptionalEmail = None
    phone: str | None = None
    qualifications: list[str] | None = None
    skills: list[str] | None = None
    workload: Annotated[int, Field(ge=0, le=168)] | None = None
    department: str | None = None
    start_date: OptionalDate = None
    contract_end_date: OptionalDate = None
    employment_status: str | None = None
    notes: str | None = None
    site_id: int | None = Field(default=None, ge=1)


class StaffCreate(_StaffFields):
    staff_id: BusinessKey
    first_name: RequiredText
    last_name: RequiredText
    verified: bool = False


class StaffUpdate(_StaffFields, PartialModel):
    non_nullable_fields: ClassVar[frozenset[str]] = frozenset({"staff_id", "first_name", "last_name", "verified"})

    staff_id: BusinessKey | None = None
    first_name: RequiredText | None = None
    last_name: RequiredText | None = None
    verified: bool | None = None


class StaffRead(ReadModel):
    id: int
    staff_id: str
    first_name: str
    last_name: str
    position: str | None = None
    email: str | None = None
    phone: str | None = None
    verified: bool
    qualifications: list[str] = Field(default_factory=list)
    skills: list[str] = Field(default_factory=list)
    workload: int | None = None
    department: str | None = None
    start_date: str | None = None
    contract_end_date: str | None = None
    employment_status: str | None = None
    notes: str | None = None
    site_id: int | None = None


# --- Assets ---


class _AssetFields(CamelModel):
    type: str | None = None
    manufacturer: str | None = None
    model: str | None = None
    serial_numbers: list[str] | None = None
    purchase_date: OptionalDate = None
    purchase_price: Annotated[float, Field(ge=0)] | None = None
    location: str | None = None
    assigned_to: str | None = None
    last_maintenance_date: OptionalDate = None
    next_maintenance_date: OptionalDate = None
    description: str | None = None
    acquisition_date: OptionalDate = None
    last_service_date: OptionalDate = None
    notes: str | None = None
    images: list[str] | None = None
    site_id: int | None = Field(default=None, ge=1)

    @field_validator("purchase_price", mode="before")
    @classmethod
    def _blank_price(cls, value: Any) -> Any:
        return _blank_to_none(value)


class AssetCreate(_AssetFields):
    asset_id: BusinessKey
    name: RequiredText
    category: RequiredText
    condition: AssetCondition


class AssetUpdate(_AssetFields, PartialModel):
    non_nullable_fields: ClassVar[frozenset[str]] = frozenset({"asset_id", "name", "category", "condition"})

    asset_id: BusinessKey | None = None
    name: RequiredText | None = None
    category: RequiredText | None = None
    condition: AssetCondition | None = None


class AssetRead(ReadModel):
    id: int
    asset_id: str
    name: str
    type: str | None = None
    category: str
    manufacturer: str | None = None
    model: str | None = None
    serial_numbers: list[str] = Field(default_factory=list)
    purchase_date: str | None = None
    purchase_price: float | None = None
    location: str | None = None
    assigned_to: str | None = None
    last_maintenance_date: str | None = None
    next_maintenance_date: str | None = None
    description: str | None = None
    condition: AssetCondition
    acquisition_date: str | None = None
    last_service_date: str | None = None
    notes: str | None = None
    images: list[str] = Field(default_factory=list)
    site_id: int | None = None


# --- Programs ---


class _ProgramFields(CamelModel):
    description: str | None = None
    enrollment_count: Count | None = None
    start_date: OptionalDate = None
    end_date: OptionalDate = None
    notes: str | None = None
    site_id: int | None = Field(default=None, ge=1)


class ProgramCreate(_ProgramFields):
    program_id: BusinessKey
    name: RequiredText
    category: RequiredText
    status: ProgramStatus

    @model_validator(mode="after")
    def _validate_date_range(self) -> ProgramCreate:
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("endDate must be on or after startDate")
        return self


class ProgramUpdate(_ProgramFields, PartialModel):
    non_nullable_fields: ClassVar[frozenset[str]] = frozenset({"program_id", "name", "category", "status"})

    program_id: BusinessKey | None = None
    name: RequiredText | None = None
    category: RequiredText | None = None
    status: ProgramStatus | None = None


class ProgramRead(ReadModel):
    id: int
    program_id: str
    name: str
    category: str
    description: str | None = None
    enrollment_count: int | None = None
    start_date: str | None = None
    end_date: str | None = None
    status: ProgramStatus
    notes: str | None = None
    site_id: int | None = None


# --- Activities ---


class ActivityCreate(CamelModel):
    type: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=64)]
    description: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
    related_entity_type: RelatedEntityType | None = None
    related_entity_id: int | None = Field(default=None, ge=1)
    performed_by: int | None = Field(default=None, ge=1)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _validate_reference(self) -> ActivityCreate:
        if (self.related_entity_type is None) != (self.related_entity_id is None):
            raise ValueError("relatedEntityType and relatedEntityId must be provided together")
        return self


class UserActivityCreate(CamelModel):
    type: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=64)]
    description: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
    metadata: dict[str, Any] = Field(default_factory=dict)


class ActivityMetadataUpdate(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    metadata: dict[str, Any] = Field(default_factory=dict)


class ActivityRead(CamelModel):
    id: int
    type: str
    description: str
    related_entity_id: int | None = None
    related_entity_type: RelatedEntityType | None = None
    performed_by: int | None = None
    timestamp: datetime
    metadata: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_activity(cls, activity: Any) -> ActivityRead:
        return cls(
            id=activity.id,
            type=activity.type,
            description=activity.description,
            related_entity_id=activity.related_entity_id,
            related_entity_type=activity.related_entity_type,
            performed_by=activity.performed_by,
            timestamp=activity.timestamp,
            metadata=activity.activity_metadata or {},
        )
