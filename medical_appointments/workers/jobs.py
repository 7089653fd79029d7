"""
arq job running queued messages through a worker's message handler.

Every queue has its own arq worker. The worker's startup hook puts the
message handler in ``ctx["handler"]``; ``process_message`` turns the
handler's outcome into arq semantics. Processed and dropped messages finish
the job, anything else raises ``Retry`` until ``max_tries`` is reached,
after which arq keeps the job as a failed result.
"""

from collections.abc import Awaitable, Callable
from typing import Any

import structlog
from arq import Retry, Worker, func

from medical_appointments.config import Settings
from medical_appointments.core.redis_client import get_redis_settings
from medical_appointments.messaging.bus import MessageOutcome, QueueMessage
from medical_appointments.messaging.redis_bus import PROCESS_MESSAGE_JOB

logger = structlog.get_logger(__name__)

MessageHandler = Callable[[QueueMessage], Awaitable[MessageOutcome]]
StartupHook = Callable[[dict[str, Any]], Awaitable[None]]


async def process_message(ctx: dict[str, Any], body: str) -> str:
    """
    Handle one queued message.

    Args:
        ctx: arq job context with the worker's handler
        body: Message body as delivered by the topic

    Returns:
        Outcome of a finished job (``ack`` or ``drop``)

    Raises:
        Retry: If the handler failed or asked for a retry
    """
    handler: MessageHandler = ctx["handler"]
    message = QueueMessage(message_id=ctx["job_id"], body=body, receive_count=ctx["job_try"])

    with structlog.contextvars.bound_contextvars(
        queue=ctx.get("queue_name"),
        message_id=message.message_id,
        receive_count=message.receive_count,
    ):
        try:
            outcome = await handler(message)
        except Exception as e:
            logger.error("message_processing_failed", error=str(e), exc_info=True)
            outcome = MessageOutcome.RETRY

        if outcome is MessageOutcome.RETRY:
            if message.receive_count >= ctx.get("max_tries", 1):
                logger.error("message_retries_exhausted")
            raise Retry(defer=ctx.get("retry_delay"))

        return outcome.value


def build_worker(
    queue_name: str,
    on_startup: StartupHook,
    settings: Settings,
    **overrides: Any,
) -> Worker:
    """
    Build the arq worker of one queue.

    Args:
        queue_name: Queue the worker listens on
        on_startup: Hook setting ``ctx["handler"]``
        settings: Application settings
        **overrides: Extra ``Worker`` options, e.g. ``redis_pool`` or ``burst``

    Returns:
        Worker ready to run
    """
    options: dict[str, Any] = {
        "functions": [func(process_message, name=PROCESS_MESSAGE_JOB)],
        "queue_name": queue_name,
        "redis_settings": get_redis_settings(),
        "on_startup": on_startup,
        "ctx": {
            "queue_name": queue_name,
            "max_tries": settings.queue_max_receive_count,
            "retry_delay": settings.worker_retry_delay_seconds,
        },
        "max_jobs": settings.worker_batch_size,
        "job_timeout": settings.worker_job_timeout_seconds,
        "max_tries": settings.queue_max_receive_count,
        "keep_result": settings.worker_keep_result_seconds,
        "poll_delay": settings.worker_poll_interval_seconds,
    }
    options.update(overrides)
    return Worker(**options)
