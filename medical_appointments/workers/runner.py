"""Worker process lifecycle."""

import asyncio

import structlog
from arq import Worker

from medical_appointments.config import settings
from medical_appointments.core.redis_client import close_redis_connection
from medical_appointments.database import dispose_engines
from medical_appointments.schemas.appointments import CountryCode
from medical_appointments.workers.completion_worker import build_completion_worker
from medical_appointments.workers.regional_worker import build_regional_worker

logger = structlog.get_logger(__name__)


def build_worker_for(kind: str, country: CountryCode | None = None) -> Worker:
    """
    Build the worker for a worker kind (``regional`` or ``completion``).

    Must be called with a running event loop.
    """
    if kind == "regional":
        if country is None:
            raise ValueError("A regional worker needs a country")
        return build_regional_worker(country, settings)
    if kind == "completion":
        return build_completion_worker(settings)
    raise ValueError(f"Unknown worker kind: {kind}")


async def run_worker(kind: str, country: CountryCode | None = None) -> None:
    """
    Run a worker until SIGINT or SIGTERM.

    arq installs the signal handlers and cancels the worker's main task.

    Args:
        kind: ``regional`` or ``completion``
        country: Country of a regional worker
    """
    logger.info("worker_startup", kind=kind, country=country.value if country else None)

    worker = build_worker_for(kind, country)
    try:
        await worker.async_run()
    except asyncio.CancelledError:
        logger.info("worker_stopping", kind=kind)
    finally:
        await worker.close()
        await dispose_engines()
        await close_redis_connection()
        logger.info("worker_shutdown", kind=kind)
