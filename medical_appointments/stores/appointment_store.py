"""PostgreSQL-backed appointment record store."""

from typing import Any

import structlog
from sqlalchemy import and_, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from medical_appointments.models.appointments import appointments
from medical_appointments.schemas.appointments import Appointment
from medical_appointments.stores.base import prepare_update_fields

logger = structlog.get_logger(__name__)


class SqlAppointmentRecordStore:
    """Appointment record store on the ``appointments`` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        """Initialize store with a session factory."""
        self.session_factory = session_factory

    async def put(self, appointment: Appointment) -> None:
        """
        Persist a new appointment record.

        Args:
            appointment: Appointment to store
        """
        values = appointment.model_dump(mode="python")
        values["country_code"] = appointment.country_code.value
        values["status"] = appointment.status.value

        async with self.session_factory() as session:
            await session.execute(insert(appointments).values(**values))
            await session.commit()

        logger.debug(
            "appointment_record_stored",
            appointment_id=appointment.appointment_id,
            subject_id=appointment.subject_id,
        )

    async def query(self, subject_id: str) -> list[Appointment]:
        """
        List a subject's appointments in insertion order.

        Args:
            subject_id: Subject whose appointments to return

        Returns:
            Appointments of the subject, oldest first
        """
        stmt = (
            select(appointments)
            .where(appointments.c.subject_id == subject_id)
            .order_by(appointments.c.created_at.asc(), appointments.c.appointment_id.asc())
        )

        async with self.session_factory() as session:
            result = await session.execute(stmt)
            rows = result.fetchall()

        return [Appointment.model_validate(dict(row._mapping)) for row in rows]

    async def update(self, subject_id: str, appointment_id: str, fields: dict[str, Any]) -> bool:
        """
        Overwrite fields of an existing record.

        Never creates a record; updating a missing key affects no rows.

        Args:
            subject_id: Subject key
            appointment_id: Appointment key
            fields: Column values to set

        Returns:
            True if a record was updated, False if none matched
        """
        values = prepare_update_fields(fields)

        stmt = (
            update(appointments)
            .where(
                and_(
                    appointments.c.subject_id == subject_id,
                    appointments.c.appointment_id == appointment_id,
                )
            )
            .values(**values)
        )

        async with self.session_factory() as session:
            result = await session.execute(stmt)
            await session.commit()

        return bool(result.rowcount)
