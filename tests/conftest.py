import json
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from dotenv import load_dotenv
from httpx import ASGITransport, AsyncClient

# Load environment variables from .env file
load_dotenv()

from medical_appointments.config import settings
from medical_appointments.dependencies import get_record_store, get_request_topic
from medical_appointments.main import app
from medical_appointments.messaging.bus import QueueMessage, build_notification
from medical_appointments.messaging.memory import InMemoryQueue, InMemoryTopic
from medical_appointments.messaging.publishers import (
    AppointmentCompletedPublisher,
    AppointmentRequestedPublisher,
)
from medical_appointments.messaging.topology import completion_subscription, request_subscriptions
from medical_appointments.services.appointment_service import AppointmentService
from medical_appointments.services.completion_service import CompletionService
from medical_appointments.services.regional_service import RegionalAppointmentService
from medical_appointments.stores.memory import InMemoryAppointmentRecordStore, InMemoryRegionalStore
from medical_appointments.workers.jobs import process_message


def job_ctx(handler, queue_name: str, job_id: str = "job-1", job_try: int = 1) -> dict:
    """arq job context as built by a worker for ``process_message``."""
    return {
        "handler": handler,
        "job_id": job_id,
        "job_try": job_try,
        "queue_name": queue_name,
        "max_tries": settings.queue_max_receive_count,
        "retry_delay": 0,
    }


async def run_queued(queue: InMemoryQueue, handler) -> list[str]:
    """Run every waiting message of ``queue`` through the arq job function."""
    outcomes = []
    for message in queue.take():
        ctx = job_ctx(handler, queue.name, job_id=message.message_id)
        outcomes.append(await process_message(ctx, message.body))
    return outcomes


@pytest.fixture
def pe_queue() -> InMemoryQueue:
    return InMemoryQueue(settings.queue_name_pe)


@pytest.fixture
def cl_queue() -> InMemoryQueue:
    return InMemoryQueue(settings.queue_name_cl)


@pytest.fixture
def confirmation_queue() -> InMemoryQueue:
    return InMemoryQueue(settings.confirmation_queue_name)


@pytest.fixture
def request_topic(pe_queue: InMemoryQueue, cl_queue: InMemoryQueue) -> InMemoryTopic:
    """Request topic wired like production: one filtered queue per country."""
    topic = InMemoryTopic(settings.request_topic_name)
    queues = {pe_queue.name: pe_queue, cl_queue.name: cl_queue}
    for subscription in request_subscriptions(settings):
        topic.subscribe(subscription, queues[subscription.queue_name])
    return topic


@pytest.fixture
def events_topic(confirmation_queue: InMemoryQueue) -> InMemoryTopic:
    topic = InMemoryTopic(settings.events_topic_name)
    topic.subscribe(completion_subscription(settings), confirmation_queue)
    return topic


@pytest.fixture
def record_store() -> InMemoryAppointmentRecordStore:
    return InMemoryAppointmentRecordStore()


@pytest.fixture
def pe_store() -> InMemoryRegionalStore:
    return InMemoryRegionalStore("PE")


@pytest.fixture
def appointment_service(
    record_store: InMemoryAppointmentRecordStore,
    request_topic: InMemoryTopic,
) -> AppointmentService:
    return AppointmentService(record_store, AppointmentRequestedPublisher(request_topic))


@pytest.fixture
def pe_service(pe_store: InMemoryRegionalStore, events_topic: InMemoryTopic) -> RegionalAppointmentService:
    return RegionalAppointmentService(
        "PE",
        pe_store,
        AppointmentCompletedPublisher(events_topic, source=settings.event_source),
        publish_timeout=settings.completion_publish_timeout_seconds,
    )


@pytest.fixture
def completion_service(record_store: InMemoryAppointmentRecordStore) -> CompletionService:
    return CompletionService(record_store)


@pytest.fixture
def requested_event() -> dict:
    """AppointmentRequested body for appointment A1."""
    return {
        "appointmentId": "A1",
        "subjectId": "S1",
        "scheduleSlotId": 10,
        "countryCode": "PE",
    }


def notification_message(event: dict, message_id: str = "m1", country: str = "PE") -> QueueMessage:
    """Queue message as delivered by the request topic."""
    return QueueMessage(
        message_id=message_id,
        body=build_notification(settings.request_topic_name, json.dumps(event), {"countryCode": country}),
    )


@pytest_asyncio.fixture
async def client(
    record_store: InMemoryAppointmentRecordStore,
    request_topic: InMemoryTopic,
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client backed by in-memory stores and topics."""
    app.dependency_overrides[get_record_store] = lambda: record_store
    app.dependency_overrides[get_request_topic] = lambda: request_topic

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def sample_appointment_data() -> dict:
    """Sample appointment request for testing."""
    return {
        "subjectId": "S1",
        "scheduleSlotId": 10,
        "countryCode": "PE",
    }
