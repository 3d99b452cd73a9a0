"""
Task Registry for graceful shutdown management.

Tracks background tasks (store lookups, log monitors) and cancels them
when the host shuts down.
"""

import asyncio
import threading
from .logger import setup_logger

logger = setup_logger()

_registry_lock = threading.Lock()
_background_tasks: list[asyncio.Task] = []
_shutdown_in_progress = False


def register_task(task: asyncio.Task, name: str = "") -> asyncio.Task:
    """Register a background task for tracking.

    The lock is held across the shutdown check and the append so a task
    created during shutdown is never left running.

    Args:
        task: The asyncio.Task to track
        name: Optional name for logging

    Returns:
        The same task (for chaining)
    """
    with _registry_lock:
        if _shutdown_in_progress:
            logger.warning(f"Task '{name}' created during shutdown - cancelling immediately")
            task.cancel()
            return task

        # Drop finished tasks so the list doesn't grow without bound
        _background_tasks[:] = [t for t in _background_tasks if not t.done()]

        _background_tasks.append(task)
        logger.debug(f"Registered background task: {name or task.get_name()}")
    return task


def spawn(coro, name: str = "") -> asyncio.Task:
    """Create a task on the running loop and register it."""
    task = asyncio.get_running_loop().create_task(coro, name=name or None)
    return register_task(task, name)


def reset_shutdown_state() -> None:
    """Clear all tasks and the shutdown flag (tests and restarts)."""
    global _shutdown_in_progress
    with _registry_lock:
        _shutdown_in_progress = False
        _background_tasks.clear()
        logger.debug("Task registry reset: shutdown state cleared")


async def cancel_all_tasks(timeout: float = 3.0) -> int:
    """Cancel all registered background tasks.

    Args:
        timeout: Maximum time to wait for task cancellation

    Returns:
        Number of tasks cancelled
    """
    global _shutdown_in_progress

    with _registry_lock:
        _shutdown_in_progress = True
        tasks = _background_tasks.copy()
        _background_tasks.clear()

    if not tasks:
        logger.debug("No background tasks to cancel")
        return 0

    logger.info(f"Cancelling {len(tasks)} background tasks...")

    for task in tasks:
        if not task.done():
            task.cancel()

    try:
        await asyncio.wait_for(
            asyncio.gather(*tasks, return_exceptions=True),
            timeout=timeout
        )
    except asyncio.TimeoutError:
        logger.warning(f"Some tasks did not complete within {timeout}s timeout")

    cancelled = sum(1 for t in tasks if t.cancelled())
    logger.info(f"Cancelled {cancelled}/{len(tasks)} background tasks")
    return cancelled
