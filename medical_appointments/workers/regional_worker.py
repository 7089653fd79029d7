"""Regional worker wiring for one country."""

from typing import Any

from arq import Worker

from medical_appointments.config import Settings
from medical_appointments.database import get_regional_sessionmaker
from medical_appointments.messaging.publishers import AppointmentCompletedPublisher
from medical_appointments.messaging.topology import build_events_topic, declare_topology
from medical_appointments.schemas.appointments import CountryCode
from medical_appointments.services.regional_service import RegionalAppointmentService
from medical_appointments.stores.regional_store import SqlRegionalStore
from medical_appointments.workers.jobs import StartupHook, build_worker


def regional_startup(country: CountryCode, settings: Settings) -> StartupHook:
    """Startup hook building the regional service on the worker's Redis pool."""

    async def startup(ctx: dict[str, Any]) -> None:
        redis = ctx["redis"]
        await declare_topology(redis, settings)

        store = SqlRegionalStore(country.value, get_regional_sessionmaker(country.value))
        publisher = AppointmentCompletedPublisher(
            build_events_topic(redis, settings),
            source=settings.event_source,
        )
        service = RegionalAppointmentService(
            country.value,
            store,
            publisher,
            publish_timeout=settings.completion_publish_timeout_seconds,
        )
        ctx["handler"] = service.handle_message

    return startup


def build_regional_worker(country: CountryCode, settings: Settings, **overrides: Any) -> Worker:
    """
    Build the worker of a country's request queue.

    Args:
        country: Country served by the worker
        settings: Application settings
        **overrides: Extra ``Worker`` options

    Returns:
        Worker ready to run
    """
    return build_worker(
        settings.regional_queue_names[country.value],
        regional_startup(country, settings),
        settings,
        **overrides,
    )
