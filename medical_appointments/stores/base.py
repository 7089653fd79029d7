"""Store interfaces shared by the SQL and in-memory implementations."""

from typing import Any, Protocol

from medical_appointments.core.exceptions import InvalidStatusTransitionError
from medical_appointments.schemas.appointments import (
    Appointment,
    AppointmentStatus,
    RegionalAppointment,
    RegionalInsertResult,
)

KEY_FIELDS = frozenset({"subject_id", "appointment_id"})


class AppointmentRecordStore(Protocol):
    """Authoritative store of appointment status, keyed by (subject, appointment)."""

    async def put(self, appointment: Appointment) -> None: ...

    async def query(self, subject_id: str) -> list[Appointment]: ...

    async def update(self, subject_id: str, appointment_id: str, fields: dict[str, Any]) -> bool: ...


class RegionalStore(Protocol):
    """Country-local system of record. Inserts are idempotent on appointment id."""

    country_code: str

    async def insert(self, appointment: RegionalAppointment) -> RegionalInsertResult: ...


def prepare_update_fields(fields: dict[str, Any]) -> dict[str, Any]:
    """Normalize and check the fields of a record update.

    Key fields cannot be changed and status may only be set to ``completed``;
    ``pending`` is only ever written at creation.

    Raises:
        ValueError: If a key field or an empty update is given
        InvalidStatusTransitionError: If status would move back to pending
    """
    if not fields:
        raise ValueError("No fields to update")

    forbidden = KEY_FIELDS.intersection(fields)
    if forbidden:
        raise ValueError(f"Key fields cannot be updated: {', '.join(sorted(forbidden))}")

    values = dict(fields)
    if "status" in values:
        target = AppointmentStatus(values["status"])
        # Blind write: the target must be reachable from any current status
        for current in AppointmentStatus:
            if not current.can_transition_to(target):
                raise InvalidStatusTransitionError(current.value, target.value)
        values["status"] = target.value
    return values
