"""Periodic statistics logging utility for workers."""

import asyncio
import logging
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)


def format_cycle_output(
    cycle_count: int,
    processed: int,
    failed: int,
    since_last: dict[str, int] | None = None,
    interval_seconds: int = 0,
) -> str:
    """Format a one-line throughput summary, e.g. ``Cycle 3: processed=120 (+40, 0.7/s) failed=1 (+0)``."""
    if since_last is None:
        return f"Cycle {cycle_count}: processed={processed} failed={failed}"

    delta_processed = since_last.get("processed", 0)
    rate = delta_processed / interval_seconds if interval_seconds > 0 else 0.0
    return (
        f"Cycle {cycle_count}: processed={processed} (+{delta_processed}, {rate:.1f}/s) "
        f"failed={failed} (+{since_last.get('failed', 0)})"
    )


class PeriodicStatsLogger:
    """
    Logs worker throughput at a fixed interval with deltas between cycles.

    The worker provides a callback returning cumulative counts as a dict with
    ``records_processed`` and ``records_failed``.
    """

    def __init__(
        self,
        interval_seconds: int,
        get_stats: Callable[[], dict[str, Any]],
        stage: str,
    ):
        self.interval_seconds = interval_seconds
        self.get_stats = get_stats
        self.stage = stage
        self._task: asyncio.Task | None = None
        self._cycle_count = 0
        self._previous: dict[str, int] = {"processed": 0, "failed": 0}

    def start(self) -> None:
        """Start the periodic logging task."""
        if self._task is not None:
            logger.warning("Periodic logger already running")
            return
        if self.interval_seconds <= 0:
            logger.debug("Periodic stats logging disabled", extra={"stage": self.stage})
            return

        self._task = asyncio.create_task(self._run(), name=f"{self.stage}-stats")

    async def stop(self) -> None:
        """Stop the periodic logging task."""
        if self._task is None:
            return

        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    def log_cycle(self) -> None:
        """Emit one stats line and advance the cycle counter."""
        stats = self.get_stats()
        current = {
            "processed": stats.get("records_processed", 0),
            "failed": stats.get("records_failed", 0),
        }
        deltas = {key: current[key] - self._previous.get(key, 0) for key in current}
        rate = deltas["processed"] / self.interval_seconds if self.interval_seconds > 0 else 0

        msg = format_cycle_output(
            cycle_count=self._cycle_count,
            processed=current["processed"],
            failed=current["failed"],
            since_last=deltas if self._cycle_count > 0 else None,
            interval_seconds=self.interval_seconds,
        )
        logger.info(
            msg,
            extra={
                "cycle": self._cycle_count,
                "delta_processed": deltas["processed"],
                "delta_failed": deltas["failed"],
                "rate_msg_per_sec": round(rate, 1),
                **stats,
            },
        )

        self._previous = current
        self._cycle_count += 1

    async def _run(self) -> None:
        try:
            self.log_cycle()
            while True:
                await asyncio.sleep(self.interval_seconds)
                self.log_cycle()
        except asyncio.CancelledError:
            logger.debug("Periodic stats logger task cancelled")
            raise
