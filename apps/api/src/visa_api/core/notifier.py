"""
Notification Dispatcher

Services hand outbound notifications (emails) to `notify` after their
transaction has committed. Delivery runs as a background asyncio task, so
the request never waits on the mail provider and a failed delivery never
reaches the caller.
"""

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any

logger = logging.getLogger(__name__)

# Strong references keep in-flight tasks from being garbage collected
_pending: set[asyncio.Task] = set()


async def _deliver(coro: Coroutine[Any, Any, Any], description: str) -> None:
    try:
        result = await coro
        if result is False:
            logger.error(f"Notification not delivered: {description}")
    except Exception as e:
        logger.error(f"Failed to send {description}: {e}", exc_info=True)


def notify(coro: Coroutine[Any, Any, Any], description: str) -> None:
    """
    Schedule a notification coroutine for best-effort delivery.

    Args:
        coro: An awaitable send, e.g. send_application_submitted(...)
        description: Human-readable label used in failure logs
    """
    task = asyncio.get_running_loop().create_task(_deliver(coro, description))
    _pending.add(task)
    task.add_done_callback(_pending.discard)


def pending_count() -> int:
    return len(_pending)


async def drain(timeout: float | None = 10.0) -> None:
    """Wait for in-flight notifications. Called on shutdown."""
    if not _pending:
        return
    logger.info(f"Waiting for {len(_pending)} pending notification(s)")
    _done, still_pending = await asyncio.wait(set(_pending), timeout=timeout)
    if still_pending:
        logger.warning(f"{len(still_pending)} notification(s) still pending after drain")
