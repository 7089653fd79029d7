"""Completion of appointments once a regional worker processed them."""

import structlog

from medical_appointments.core.exceptions import MalformedMessageError
from medical_appointments.messaging.bus import MessageOutcome, QueueMessage
from medical_appointments.messaging.envelope import unwrap_event
from medical_appointments.schemas.appointments import AppointmentStatus, utcnow
from medical_appointments.schemas.events import AppointmentCompleted
from medical_appointments.stores.base import AppointmentRecordStore

logger = structlog.get_logger(__name__)


def parse_completed_event(body: str | bytes) -> AppointmentCompleted:
    """
    Unwrap one envelope level and decode an AppointmentCompleted.

    Raises:
        MalformedMessageError: If the body, envelope or event is invalid
    """
    _, document = unwrap_event(body)
    return AppointmentCompleted.from_document(document)


class CompletionService:
    """Marks appointment records completed."""

    def __init__(self, record_store: AppointmentRecordStore):
        """Initialize service with the record store."""
        self.record_store = record_store

    async def complete(self, appointment_id: str, subject_id: str) -> bool:
        """
        Set the record to completed.

        An unconditional overwrite, so duplicate completion events leave the
        same terminal state. A missing record is logged, not created.

        Args:
            appointment_id: Appointment identifier
            subject_id: Subject identifier

        Returns:
            True if a record was updated, False if none exists

        Raises:
            Exception: Store failures, so the message is retried
        """
        updated = await self.record_store.update(
            subject_id,
            appointment_id,
            {"status": AppointmentStatus.COMPLETED, "updated_at": utcnow()},
        )

        if not updated:
            logger.warning(
                "appointment_to_complete_not_found",
                appointment_id=appointment_id,
                subject_id=subject_id,
            )
            return False

        logger.info("appointment_completed", appointment_id=appointment_id, subject_id=subject_id)
        return True

    async def handle_message(self, message: QueueMessage) -> MessageOutcome:
        """Handle one confirmation queue message."""
        try:
            event = parse_completed_event(message.body)
        except MalformedMessageError as e:
            logger.error(
                "malformed_appointment_completion_dropped",
                message_id=message.message_id,
                reason=str(e),
                body=message.body[:500],
            )
            return MessageOutcome.DROP

        await self.complete(event.appointment_id, event.subject_id)
        return MessageOutcome.ACK
