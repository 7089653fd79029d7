"""In-memory stores for tests and local runs."""

from typing import Any

from medical_appointments.schemas.appointments import (
    Appointment,
    RegionalAppointment,
    RegionalInsertResult,
)
from medical_appointments.stores.base import prepare_update_fields


class InMemoryAppointmentRecordStore:
    """Appointment record store backed by an insertion-ordered dict."""

    def __init__(self) -> None:
        self._records: dict[tuple[str, str], Appointment] = {}

    async def put(self, appointment: Appointment) -> None:
        self._records[(appointment.subject_id, appointment.appointment_id)] = appointment

    async def query(self, subject_id: str) -> list[Appointment]:
        return [record for (subject, _), record in self._records.items() if subject == subject_id]

    async def update(self, subject_id: str, appointment_id: str, fields: dict[str, Any]) -> bool:
        values = prepare_update_fields(fields)
        key = (subject_id, appointment_id)
        current = self._records.get(key)
        if current is None:
            return False
        self._records[key] = Appointment.model_validate({**current.model_dump(), **values})
        return True

    def get(self, subject_id: str, appointment_id: str) -> Appointment | None:
        """Read one record directly."""
        return self._records.get((subject_id, appointment_id))

    def __len__(self) -> int:
        return len(self._records)


class InMemoryRegionalStore:
    """Regional store with a unique index on appointment id."""

    def __init__(self, country_code: str) -> None:
        self.country_code = country_code
        self._rows: dict[str, RegionalAppointment] = {}
        self._next_id = 1

    async def insert(self, appointment: RegionalAppointment) -> RegionalInsertResult:
        existing = self._rows.get(appointment.appointment_id)
        if existing is not None:
            return RegionalInsertResult(regional_id=existing.id, created=False)

        row = appointment.model_copy(update={"id": self._next_id})
        self._rows[appointment.appointment_id] = row
        self._next_id += 1
        return RegionalInsertResult(regional_id=row.id, created=True)

    def rows(self) -> list[RegionalAppointment]:
        """All stored rows in insertion order."""
        return list(self._rows.values())
