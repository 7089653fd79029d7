"""End-to-end tests of the intake, regional and completion choreography."""

import pytest

from conftest import job_ctx, run_queued
from medical_appointments.messaging.memory import InMemoryQueue
from medical_appointments.schemas.appointments import AppointmentCreate
from medical_appointments.services.appointment_service import AppointmentService
from medical_appointments.services.completion_service import CompletionService
from medical_appointments.services.regional_service import RegionalAppointmentService
from medical_appointments.stores.memory import InMemoryAppointmentRecordStore, InMemoryRegionalStore
from medical_appointments.workers.jobs import process_message


@pytest.mark.asyncio
async def test_appointment_is_completed_end_to_end(
    appointment_service: AppointmentService,
    pe_service: RegionalAppointmentService,
    completion_service: CompletionService,
    record_store: InMemoryAppointmentRecordStore,
    pe_store: InMemoryRegionalStore,
    pe_queue: InMemoryQueue,
    cl_queue: InMemoryQueue,
    confirmation_queue: InMemoryQueue,
) -> None:
    """Test a PE request flows through its regional worker to completion."""
    appointment = await appointment_service.submit(
        AppointmentCreate(subjectId="00012", scheduleSlotId=100, countryCode="PE")
    )
    [pending] = await record_store.query("00012")
    assert pending.status == "pending"

    assert await run_queued(pe_queue, pe_service.handle_message) == ["ack"]
    assert await run_queued(confirmation_queue, completion_service.handle_message) == ["ack"]

    [completed] = await record_store.query("00012")
    assert completed.appointment_id == appointment.appointment_id
    assert completed.status == "completed"
    assert completed.updated_at >= completed.created_at

    [row] = pe_store.rows()
    assert row.appointment_id == appointment.appointment_id
    assert len(cl_queue) == 0
    assert len(confirmation_queue) == 0


@pytest.mark.asyncio
async def test_redelivered_request_completes_once(
    appointment_service: AppointmentService,
    pe_service: RegionalAppointmentService,
    completion_service: CompletionService,
    record_store: InMemoryAppointmentRecordStore,
    pe_store: InMemoryRegionalStore,
    pe_queue: InMemoryQueue,
    confirmation_queue: InMemoryQueue,
) -> None:
    """Test a request processed twice leaves one row and one completed record."""
    await appointment_service.submit(
        AppointmentCreate(subjectId="S1", scheduleSlotId=7, countryCode="PE")
    )
    [message] = pe_queue.take()

    # Worker crashes after the insert, so arq runs the job again
    await pe_service.handle_message(message)
    ctx = job_ctx(pe_service.handle_message, pe_queue.name, job_id=message.message_id, job_try=2)
    assert await process_message(ctx, message.body) == "ack"

    outcomes = await run_queued(confirmation_queue, completion_service.handle_message)
    assert outcomes == ["ack", "ack"]

    assert len(pe_store.rows()) == 1
    [record] = await record_store.query("S1")
    assert record.status == "completed"
