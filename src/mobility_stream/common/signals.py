"""Cross-platform signal handler setup for graceful shutdown."""

import asyncio
import logging
import signal
from collections.abc import Callable

logger = logging.getLogger(__name__)

SHUTDOWN_SIGNALS = (signal.SIGTERM, signal.SIGINT)


def setup_shutdown_signal_handlers(
    callback: Callable[[], None],
    loop: asyncio.AbstractEventLoop | None = None,
) -> None:
    """Register SIGTERM/SIGINT handlers that invoke callback on signal.

    On Unix, uses the event loop's add_signal_handler(). On Windows,
    falls back to signal.signal() since add_signal_handler() is not supported.
    """
    loop = loop or asyncio.get_running_loop()
    try:
        for sig in SHUTDOWN_SIGNALS:
            loop.add_signal_handler(sig, callback)
    except NotImplementedError:
        def _handler(signum, frame):
            logger.info("Received signal %s, initiating shutdown", signum)
            loop.call_soon_threadsafe(callback)

        for sig in SHUTDOWN_SIGNALS:
            signal.signal(sig, _handler)


def remove_shutdown_signal_handlers(loop: asyncio.AbstractEventLoop | None = None) -> None:
    loop = loop or asyncio.get_running_loop()
    for sig in SHUTDOWN_SIGNALS:
        try:
            loop.remove_signal_handler(sig)
        except NotImplementedError:
            signal.signal(sig, signal.SIG_DFL)


class ShutdownCoordinator:
    """Two-stage shutdown driven by process signals.

    The first signal sets ``shutdown_event`` so workers can finish their
    current unit of work. A second signal cancels every task passed to
    ``track()``.
    """

    def __init__(self, shutdown_event: asyncio.Event):
        self.shutdown_event = shutdown_event
        self._tasks: list[asyncio.Task] = []

    def track(self, *tasks: asyncio.Task) -> None:
        self._tasks.extend(tasks)

    def request_shutdown(self) -> None:
        if not self.shutdown_event.is_set():
            logger.info("Shutdown signal received, stopping workers gracefully")
            self.shutdown_event.set()
            return

        logger.warning("Second shutdown signal received, cancelling all workers")
        for task in self._tasks:
            if not task.done():
                task.cancel()


__all__ = [
    "ShutdownCoordinator",
    "remove_shutdown_signal_handlers",
    "setup_shutdown_signal_handlers",
]
