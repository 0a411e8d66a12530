"""Shared utility functions for service layer."""
import asyncio
import logging
from collections.abc import Awaitable
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def settle(awaitable: Awaitable[T], fallback: T, label: str = "effect") -> T:
    """
    Await a single effect, converting any failure into a fallback value.

    Cancellation is not a failure and still propagates.

    Args:
        awaitable: The effect to run.
        fallback: Value returned if the effect raises.
        label: Name used in the diagnostic log line.

    Returns:
        The effect's result, or ``fallback`` if it raised.
    """
    try:
        return await awaitable
    except Exception as e:
        logger.warning("%s failed, using fallback: %s", label, e, exc_info=True)
        return fallback


async def gather_settled(*effects: tuple[Awaitable[T], T]) -> list[T]:
    """
    Run independent effects concurrently and join when all have settled.

    Each effect is a ``(awaitable, fallback)`` pair. One failing effect never
    aborts the others. Results are returned in argument order.
    """
    return list(
        await asyncio.gather(
            *(settle(awaitable, fallback) for awaitable, fallback in effects),
        ),
    )
