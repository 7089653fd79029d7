"""Publishers for appointment events."""

import json
from datetime import UTC, datetime
from uuid import uuid4

import structlog

from medical_appointments.core.exceptions import PublishError
from medical_appointments.messaging.bus import Topic
from medical_appointments.schemas.appointments import Appointment
from medical_appointments.schemas.events import (
    APPOINTMENT_COMPLETED_DETAIL_TYPE,
    AppointmentCompleted,
    AppointmentRequested,
)

logger = structlog.get_logger(__name__)

COUNTRY_CODE_ATTRIBUTE = "countryCode"


class AppointmentRequestedPublisher:
    """Publishes AppointmentRequested with the country as a filter attribute."""

    def __init__(self, topic: Topic):
        """Initialize publisher with the request topic."""
        self.topic = topic

    async def publish(self, appointment: Appointment) -> list[str]:
        """
        Publish the request event for a stored appointment.

        Args:
            appointment: Pending appointment already persisted

        Returns:
            Queues the event was delivered to

        Raises:
            PublishError: If the topic fails or no subscription matched
        """
        event = AppointmentRequested.from_appointment(appointment)
        attributes = {COUNTRY_CODE_ATTRIBUTE: event.country_code.value}

        delivered = await self.topic.publish(event.to_json(), attributes)
        if not delivered:
            raise PublishError(
                self.topic.name,
                f"no subscription for {COUNTRY_CODE_ATTRIBUTE}={event.country_code.value}",
            )

        logger.info(
            "appointment_requested_published",
            appointment_id=event.appointment_id,
            country_code=event.country_code.value,
            queues=delivered,
        )
        return delivered


class AppointmentCompletedPublisher:
    """Publishes AppointmentCompleted wrapped in a relay event."""

    def __init__(self, topic: Topic, source: str = "appointment.service"):
        """Initialize publisher with the events topic and the event source."""
        self.topic = topic
        self.source = source

    def build_relay_event(self, event: AppointmentCompleted) -> str:
        """Serialize the relay envelope carrying ``event`` as its detail."""
        return json.dumps(
            {
                "version": "0",
                "id": str(uuid4()),
                "source": self.source,
                "detail-type": APPOINTMENT_COMPLETED_DETAIL_TYPE,
                "time": datetime.now(UTC).isoformat(),
                "detail": event.to_document(),
            }
        )

    async def publish(self, event: AppointmentCompleted) -> list[str]:
        """Publish the completion event."""
        attributes = {"source": self.source, "detailType": APPOINTMENT_COMPLETED_DETAIL_TYPE}
        delivered = await self.topic.publish(self.build_relay_event(event), attributes)

        logger.info(
            "appointment_completed_published",
            appointment_id=event.appointment_id,
            country_code=event.country_code.value,
            queues=delivered,
        )
        return delivered
