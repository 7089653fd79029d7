"""Integration events exchanged over the event bus."""

import json
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from medical_appointments.core.exceptions import MalformedMessageError
from medical_appointments.schemas.appointments import Appointment, CountryCode

APPOINTMENT_COMPLETED_DETAIL_TYPE = "AppointmentCompleted"


class AppointmentEvent(BaseModel):
    """Fields shared by every appointment event.

    Decoding accepts both the current and the original field names;
    encoding always emits the camelCase names.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    appointment_id: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("appointmentId", "appointment_id"),
        serialization_alias="appointmentId",
    )
    subject_id: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("subjectId", "insuredId", "subject_id"),
        serialization_alias="subjectId",
    )
    schedule_slot_id: int = Field(
        ...,
        validation_alias=AliasChoices("scheduleSlotId", "scheduleId", "schedule_slot_id"),
        serialization_alias="scheduleSlotId",
    )
    country_code: CountryCode = Field(
        ...,
        validation_alias=AliasChoices("countryCode", "countryISO", "country_code"),
        serialization_alias="countryCode",
    )

    @classmethod
    def from_appointment(cls, appointment: Appointment) -> "AppointmentEvent":
        """Build the event from an appointment record."""
        return cls(
            appointment_id=appointment.appointment_id,
            subject_id=appointment.subject_id,
            schedule_slot_id=appointment.schedule_slot_id,
            country_code=appointment.country_code,
        )

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> "AppointmentEvent":
        """Decode an unwrapped event document.

        Raises:
            MalformedMessageError: If required fields are missing or invalid
        """
        try:
            return cls.model_validate(document)
        except ValidationError as e:
            fields = sorted({str(err["loc"][-1]) for err in e.errors() if err["loc"]})
            raise MalformedMessageError(
                f"{cls.__name__} is missing or has invalid fields: {', '.join(fields)}",
                body=json.dumps(document, default=str),
            ) from e

    def to_document(self) -> dict[str, Any]:
        """Encode as a JSON-compatible dict."""
        return self.model_dump(mode="json", by_alias=True)

    def to_json(self) -> str:
        """Encode as a JSON string."""
        return json.dumps(self.to_document())


class AppointmentRequested(AppointmentEvent):
    """Published once per appointment by the intake service."""


class AppointmentCompleted(AppointmentEvent):
    """Published by a regional worker after the regional insert."""
