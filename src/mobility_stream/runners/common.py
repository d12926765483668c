"""Common worker execution patterns and utilities.

Provides reusable templates for running workers with consistent:
- Shutdown handling
- Logging context
- Health server lifecycle
"""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any, TypeVar

from core.logging.context import set_log_context
from mobility_stream.common.health import HealthCheckServer

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def _cleanup_watcher_task(task: asyncio.Task) -> None:
    """Cancel and await watcher task, suppressing expected exceptions.

    Handles CancelledError and RuntimeError (when event loop closed during shutdown).
    """
    try:
        task.cancel()
        await task
    except (asyncio.CancelledError, RuntimeError):
        pass


def apply_log_context(stage_name: str, instance_id: str | None = None) -> str:
    """Set the stage (and instance) log context; returns a suffix for log lines."""
    context: dict[str, Any] = {"stage": stage_name}
    if instance_id is not None:
        context["instance_id"] = instance_id
        context["worker_id"] = f"{stage_name}-{instance_id}"
        set_log_context(**context)
        return f" (instance {instance_id})"
    set_log_context(**context)
    return ""


async def execute_worker_with_shutdown(
    run: Callable[[], Awaitable[T]],
    stop: Callable[[], Any],
    stage_name: str,
    shutdown_event: asyncio.Event,
    instance_id: str | None = None,
) -> T:
    """Run ``run()`` to completion, calling ``stop()`` once shutdown is signalled.

    ``stop`` may be sync or async. Startup errors are not retried; they
    propagate to the caller.

    Args:
        run: Coroutine function that performs the worker's main loop
        stop: Callable requesting the main loop to exit
        stage_name: Name for logging context
        shutdown_event: Event to signal graceful shutdown
        instance_id: Instance identifier for multi-instance deployments (optional)
    """
    logger_suffix = apply_log_context(stage_name, instance_id)
    logger.info("Starting %s%s...", stage_name, logger_suffix)

    async def shutdown_watcher():
        await shutdown_event.wait()
        logger.info(f"Shutdown signal received, stopping {stage_name}{logger_suffix}...")
        result = stop()
        if inspect.isawaitable(result):
            await result

    watcher_task = asyncio.create_task(shutdown_watcher(), name=f"{stage_name}-shutdown-watcher")
    try:
        return await run()
    finally:
        await _cleanup_watcher_task(watcher_task)


@asynccontextmanager
async def health_server_scope(
    port: int | None,
    worker_name: str,
    readiness_check: Callable[[], bool],
):
    """Run a HealthCheckServer for the duration of the block. ``port=None`` disables it."""
    health_server = HealthCheckServer(
        port=port,
        worker_name=worker_name,
        readiness_check=readiness_check,
    )
    await health_server.start()
    try:
        yield health_server
    finally:
        await health_server.stop()


__all__ = [
    "apply_log_context",
    "execute_worker_with_shutdown",
    "health_server_scope",
]
