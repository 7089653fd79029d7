"""FastAPI dependencies."""

from typing import Annotated

from fastapi import Depends

from medical_appointments.config import settings
from medical_appointments.core.redis_client import get_redis_pool
from medical_appointments.database import AsyncSessionLocal
from medical_appointments.messaging.bus import Topic
from medical_appointments.messaging.publishers import AppointmentRequestedPublisher
from medical_appointments.messaging.topology import build_request_topic
from medical_appointments.services.appointment_service import AppointmentService
from medical_appointments.stores.appointment_store import SqlAppointmentRecordStore
from medical_appointments.stores.base import AppointmentRecordStore


def get_record_store() -> AppointmentRecordStore:
    """Appointment record store on the main database."""
    return SqlAppointmentRecordStore(AsyncSessionLocal)


async def get_request_topic() -> Topic:
    """Topic receiving AppointmentRequested events."""
    return build_request_topic(await get_redis_pool(), settings)


def get_appointment_service(
    record_store: Annotated[AppointmentRecordStore, Depends(get_record_store)],
    topic: Annotated[Topic, Depends(get_request_topic)],
) -> AppointmentService:
    """
    Build the appointment service for a request.

    Args:
        record_store: Appointment record store
        topic: Request topic

    Returns:
        Appointment service
    """
    return AppointmentService(record_store, AppointmentRequestedPublisher(topic))


# Type aliases for dependency injection
AppointmentServiceDep = Annotated[AppointmentService, Depends(get_appointment_service)]
