"""Appointment schemas for request/response validation."""

from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(UTC)


class AppointmentStatus(str, Enum):
    """Appointment status enumeration.

    The only transition is ``pending -> completed``. Re-applying
    ``completed`` is allowed so duplicate completion events stay harmless.
    """

    PENDING = "pending"
    COMPLETED = "completed"

    def can_transition_to(self, target: "AppointmentStatus") -> bool:
        """Check whether moving from this status to ``target`` is allowed."""
        return target in _ALLOWED_TRANSITIONS[self]


_ALLOWED_TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.PENDING: frozenset({AppointmentStatus.COMPLETED}),
    AppointmentStatus.COMPLETED: frozenset({AppointmentStatus.COMPLETED}),
}


class CountryCode(str, Enum):
    """Countries with a regional worker."""

    PE = "PE"
    CL = "CL"


class Appointment(BaseModel):
    """Appointment record as held by the appointment record store."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    appointment_id: str
    subject_id: str
    schedule_slot_id: int
    country_code: CountryCode
    status: AppointmentStatus = AppointmentStatus.PENDING
    created_at: datetime
    updated_at: datetime

    @classmethod
    def new_pending(
        cls,
        subject_id: str,
        schedule_slot_id: int,
        country_code: CountryCode,
        appointment_id: str | None = None,
    ) -> "Appointment":
        """Build a pending appointment stamped with the current time."""
        now = utcnow()
        return cls(
            appointment_id=appointment_id or str(uuid4()),
            subject_id=subject_id,
            schedule_slot_id=schedule_slot_id,
            country_code=country_code,
            status=AppointmentStatus.PENDING,
            created_at=now,
            updated_at=now,
        )


class AppointmentCreate(BaseModel):
    """Schema for creating a new appointment.

    The original field names (``insuredId``, ``scheduleId``, ``countryISO``)
    are accepted as well.
    """

    model_config = ConfigDict(populate_by_name=True)

    subject_id: str = Field(
        ...,
        min_length=1,
        max_length=100,
        validation_alias=AliasChoices("subjectId", "insuredId", "subject_id"),
    )
    schedule_slot_id: int = Field(
        ...,
        gt=0,
        validation_alias=AliasChoices("scheduleSlotId", "scheduleId", "schedule_slot_id"),
    )
    country_code: CountryCode = Field(
        ...,
        validation_alias=AliasChoices("countryCode", "countryISO", "country_code"),
    )

    @field_validator("subject_id")
    @classmethod
    def validate_subject_id(cls, v: str) -> str:
        """Reject blank subject identifiers."""
        if not v.strip():
            raise ValueError("subjectId must not be blank")
        return v

    @field_validator("schedule_slot_id", mode="before")
    @classmethod
    def reject_boolean_slot(cls, v: object) -> object:
        """Reject booleans; numeric strings still coerce."""
        if isinstance(v, bool):
            raise ValueError("scheduleSlotId must be an integer")
        return v


class AppointmentListResponse(BaseModel):
    """Schema for a subject's appointments."""

    total: int
    items: list[Appointment]


class RegionalAppointment(BaseModel):
    """Country-local copy of an appointment in a regional store."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    id: int | None = None
    appointment_id: str
    subject_id: str
    schedule_slot_id: int
    country_code: CountryCode
    status: AppointmentStatus = AppointmentStatus.PENDING
    created_at: datetime
    updated_at: datetime


class RegionalInsertResult(BaseModel):
    """Outcome of a regional insert."""

    regional_id: int
    created: bool
