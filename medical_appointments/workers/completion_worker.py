"""Completion worker wiring."""

from typing import Any

from arq import Worker

from medical_appointments.config import Settings
from medical_appointments.database import AsyncSessionLocal
from medical_appointments.messaging.topology import declare_topology
from medical_appointments.services.completion_service import CompletionService
from medical_appointments.stores.appointment_store import SqlAppointmentRecordStore
from medical_appointments.workers.jobs import StartupHook, build_worker


def completion_startup(settings: Settings) -> StartupHook:
    async def startup(ctx: dict[str, Any]) -> None:
        await declare_topology(ctx["redis"], settings)
        service = CompletionService(SqlAppointmentRecordStore(AsyncSessionLocal))
        ctx["handler"] = service.handle_message

    return startup


def build_completion_worker(settings: Settings, **overrides: Any) -> Worker:
    """Build the worker of the confirmation queue."""
    return build_worker(
        settings.confirmation_queue_name,
        completion_startup(settings),
        settings,
        **overrides,
    )
