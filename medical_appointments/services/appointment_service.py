"""Appointment intake and query service."""

import structlog

from medical_appointments.messaging.policy import Criticality, run_side_effect
from medical_appointments.messaging.publishers import AppointmentRequestedPublisher
from medical_appointments.schemas.appointments import Appointment, AppointmentCreate
from medical_appointments.stores.base import AppointmentRecordStore

logger = structlog.get_logger(__name__)


class AppointmentService:
    """Service for submitting and listing appointments."""

    def __init__(
        self,
        record_store: AppointmentRecordStore,
        publisher: AppointmentRequestedPublisher,
    ):
        """Initialize service with the record store and request publisher."""
        self.record_store = record_store
        self.publisher = publisher

    async def submit(self, data: AppointmentCreate) -> Appointment:
        """
        Create a pending appointment and request regional processing.

        The pending record is stored before the request event is published,
        so no regional worker sees an appointment that cannot be queried.

        Args:
            data: Validated appointment request

        Returns:
            Created appointment in pending status

        Raises:
            Exception: Store failures (nothing published) and publish
                failures (record stays pending) both propagate
        """
        appointment = Appointment.new_pending(
            subject_id=data.subject_id,
            schedule_slot_id=data.schedule_slot_id,
            country_code=data.country_code,
        )

        await self.record_store.put(appointment)

        # The record is durable from here on; a failed publish leaves it pending
        await run_side_effect(
            self.publisher.publish(appointment),
            name="appointment_request_publish",
            criticality=Criticality.CRITICAL,
            appointment_id=appointment.appointment_id,
            subject_id=appointment.subject_id,
            country_code=appointment.country_code.value,
            reconciliation_required=True,
        )

        logger.info(
            "appointment_submitted",
            appointment_id=appointment.appointment_id,
            subject_id=appointment.subject_id,
            country_code=appointment.country_code.value,
        )
        return appointment

    async def list_by_subject(self, subject_id: str) -> list[Appointment]:
        """
        List a subject's appointments with their current status.

        Args:
            subject_id: Subject identifier

        Returns:
            Appointments in insertion order
        """
        return await self.record_store.query(subject_id)
