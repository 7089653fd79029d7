"""Regional processing of appointment requests."""

import structlog

from medical_appointments.core.exceptions import MalformedMessageError
from medical_appointments.messaging.bus import MessageOutcome, QueueMessage
from medical_appointments.messaging.envelope import unwrap_event
from medical_appointments.messaging.policy import Criticality, run_side_effect
from medical_appointments.messaging.publishers import AppointmentCompletedPublisher
from medical_appointments.schemas.appointments import (
    AppointmentStatus,
    RegionalAppointment,
    RegionalInsertResult,
    utcnow,
)
from medical_appointments.schemas.events import AppointmentCompleted, AppointmentRequested
from medical_appointments.stores.base import RegionalStore

logger = structlog.get_logger(__name__)


def parse_requested_event(body: str | bytes) -> AppointmentRequested:
    """
    Unwrap one envelope level and decode an AppointmentRequested.

    Raises:
        MalformedMessageError: If the body, envelope or event is invalid
    """
    _, document = unwrap_event(body)
    return AppointmentRequested.from_document(document)


class RegionalAppointmentService:
    """Stores appointment requests of one country and signals completion."""

    def __init__(
        self,
        country_code: str,
        store: RegionalStore,
        completed_publisher: AppointmentCompletedPublisher,
        publish_timeout: float = 5.0,
    ):
        """Initialize service for a country."""
        self.country_code = country_code
        self.store = store
        self.completed_publisher = completed_publisher
        self.publish_timeout = publish_timeout

    async def process(self, event: AppointmentRequested) -> RegionalInsertResult:
        """
        Persist the request regionally, then publish completion.

        The completion publish is non-critical: once the regional row exists
        a failed or timed-out publish is logged and the request still counts
        as processed.

        Args:
            event: Decoded request event

        Returns:
            Regional insert outcome

        Raises:
            Exception: Regional store failures, so the message is retried
        """
        now = utcnow()
        record = RegionalAppointment(
            appointment_id=event.appointment_id,
            subject_id=event.subject_id,
            schedule_slot_id=event.schedule_slot_id,
            country_code=event.country_code,
            status=AppointmentStatus.PENDING,
            created_at=now,
            updated_at=now,
        )
        result = await self.store.insert(record)

        logger.info(
            "regional_appointment_stored",
            country_code=self.country_code,
            appointment_id=event.appointment_id,
            regional_id=result.regional_id,
            created=result.created,
        )

        # Republished on duplicates too; completing twice is harmless
        completed = AppointmentCompleted(**event.model_dump())
        await run_side_effect(
            self.completed_publisher.publish(completed),
            name="appointment_completed_publish",
            criticality=Criticality.NON_CRITICAL,
            timeout=self.publish_timeout,
            appointment_id=event.appointment_id,
            country_code=self.country_code,
        )
        return result

    async def handle_message(self, message: QueueMessage) -> MessageOutcome:
        """
        Handle one queue message.

        Malformed and misrouted messages are dropped since redelivery cannot
        fix them. Store failures propagate to the consumer for a retry.
        """
        try:
            event = parse_requested_event(message.body)
        except MalformedMessageError as e:
            logger.error(
                "malformed_appointment_request_dropped",
                country_code=self.country_code,
                message_id=message.message_id,
                reason=str(e),
                body=message.body[:500],
            )
            return MessageOutcome.DROP

        if event.country_code.value != self.country_code:
            logger.error(
                "misrouted_appointment_request_dropped",
                country_code=self.country_code,
                event_country_code=event.country_code.value,
                appointment_id=event.appointment_id,
            )
            return MessageOutcome.DROP

        await self.process(event)
        return MessageOutcome.ACK
