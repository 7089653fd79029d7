"""PostgreSQL-backed regional store."""

import structlog
from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from medical_appointments.models.regional_appointments import regional_appointments
from medical_appointments.schemas.appointments import RegionalAppointment, RegionalInsertResult

logger = structlog.get_logger(__name__)


class SqlRegionalStore:
    """Regional store on a country's ``regional_appointments`` table."""

    def __init__(self, country_code: str, session_factory: async_sessionmaker[AsyncSession]):
        """Initialize store for a country."""
        self.country_code = country_code
        self.session_factory = session_factory

    async def insert(self, appointment: RegionalAppointment) -> RegionalInsertResult:
        """
        Insert the appointment unless its appointment id is already stored.

        Args:
            appointment: Regional appointment to insert

        Returns:
            Regional id of the row and whether this call created it
        """
        values = appointment.model_dump(mode="python", exclude={"id"})
        values["country_code"] = appointment.country_code.value
        values["status"] = appointment.status.value

        stmt = (
            insert(regional_appointments)
            .values(**values)
            .on_conflict_do_nothing(index_elements=[regional_appointments.c.appointment_id])
            .returning(regional_appointments.c.id)
        )

        async with self.session_factory() as session:
            result = await session.execute(stmt)
            regional_id = result.scalar_one_or_none()

            if regional_id is not None:
                await session.commit()
                return RegionalInsertResult(regional_id=regional_id, created=True)

            # Duplicate delivery, return the row stored by the first one
            existing = await session.execute(
                select(regional_appointments.c.id).where(
                    regional_appointments.c.appointment_id == appointment.appointment_id
                )
            )
            regional_id = existing.scalar_one()
            await session.commit()

        logger.info(
            "regional_appointment_already_stored",
            country_code=self.country_code,
            appointment_id=appointment.appointment_id,
            regional_id=regional_id,
        )
        return RegionalInsertResult(regional_id=regional_id, created=False)
