"""Criticality policy for side effects performed while handling a message."""

import asyncio
from collections.abc import Awaitable
from enum import Enum
from typing import Any, TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class Criticality(str, Enum):
    """Whether a failed side effect fails the surrounding operation."""

    CRITICAL = "critical"
    NON_CRITICAL = "non_critical"


async def run_side_effect(
    operation: Awaitable[T],
    *,
    name: str,
    criticality: Criticality,
    timeout: float | None = None,
    **context: Any,
) -> bool:
    """
    Await a side effect under an explicit criticality policy.

    Args:
        operation: Awaitable performing the side effect
        name: Side effect name used in log events
        criticality: CRITICAL re-raises failures, NON_CRITICAL logs and swallows them
        timeout: Seconds before the side effect counts as failed
        **context: Extra log context

    Returns:
        True if the side effect succeeded, False if a non-critical one failed

    Raises:
        Exception: Any failure of a CRITICAL side effect, including TimeoutError
    """
    try:
        if timeout is not None:
            await asyncio.wait_for(operation, timeout=timeout)
        else:
            await operation
        return True
    except Exception as e:
        if criticality is Criticality.CRITICAL:
            logger.error(f"{name}_failed", error=str(e), criticality=criticality.value, **context)
            raise
        logger.warning(
            f"{name}_failed",
            error=str(e) or e.__class__.__name__,
            criticality=criticality.value,
            **context,
        )
        return False
