"""
Periodic mobility event generator.

Publishes one synthetic event per tick to the configured topic, keyed by
vehicle id, until stopped or until ``max_events`` have been published.
"""

import asyncio
import contextlib
import logging
import random
import threading
from collections.abc import Callable
from datetime import datetime
from enum import Enum

from config.config import GeneratorConfig
from core.errors.kafka_classifier import classify_error
from mobility_stream.common.metrics import (
    record_event_generated,
    record_publish_error,
    update_generator_state,
)
from mobility_stream.common.types import MessagePublisher
from mobility_stream.generator.events import MobilityEvent, produce_event

logger = logging.getLogger(__name__)

PROGRESS_LOG_EVERY = 10


class GeneratorState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"
    COMPLETED = "completed"


class EventGenerator:
    """
    Emits mobility events at a fixed interval.

    The generator does not own its publisher: the caller starts it before
    ``run()`` and stops it afterwards. Publish failures are logged and the
    event is dropped; the loop carries on with the next tick.

    Lifecycle:
        IDLE -> RUNNING -> STOPPED    (stop() or cancellation)
        IDLE -> RUNNING -> COMPLETED  (max_events reached)

    A disabled generator returns immediately and stays IDLE.

    Example:
        >>> generator = EventGenerator(config.generator, producer)
        >>> task = asyncio.create_task(generator.run())
        >>> generator.stop()
        >>> emitted = await task
    """

    def __init__(
        self,
        config: GeneratorConfig,
        publisher: MessagePublisher,
        rand: random.Random | None = None,
        clock: Callable[[], datetime] = datetime.now,
        factory: Callable[[random.Random, datetime], MobilityEvent] = produce_event,
    ):
        self.config = config
        self._publisher = publisher
        self._rand = rand or random.Random()
        self._clock = clock
        self._factory = factory

        self._state = GeneratorState.IDLE
        self._events_emitted = 0

        # stop() may be called from any thread
        self._stop_requested = threading.Event()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._wakeup: asyncio.Event | None = None

    @property
    def state(self) -> GeneratorState:
        return self._state

    @property
    def events_emitted(self) -> int:
        return self._events_emitted

    def _set_state(self, state: GeneratorState) -> None:
        self._state = state
        update_generator_state(state.value, [s.value for s in GeneratorState])

    def stop(self) -> None:
        """Request the loop to exit.

        Safe to call from any thread and more than once. A publish already
        in flight is allowed to finish; the interval sleep is cut short.
        """
        self._stop_requested.set()
        loop = self._loop
        wakeup = self._wakeup
        if loop is not None and wakeup is not None and not loop.is_closed():
            with contextlib.suppress(RuntimeError):
                loop.call_soon_threadsafe(wakeup.set)

    def _should_continue(self) -> bool:
        if self._stop_requested.is_set():
            return False
        return not self.config.bounded or self._events_emitted < self.config.max_events

    async def run(self) -> int:
        """Run the generation loop.

        Returns:
            Number of events successfully published.

        Raises:
            RuntimeError: If this generator has already run.
        """
        if self._state is not GeneratorState.IDLE:
            raise RuntimeError(f"Generator cannot run from state {self._state.value}")

        if not self.config.enabled:
            logger.info("Event generation is disabled", extra={"topic": self.config.topic})
            return 0

        self._wakeup = asyncio.Event()
        self._loop = asyncio.get_running_loop()
        self._set_state(GeneratorState.RUNNING)

        logger.info(
            "Starting event generation",
            extra={"topic": self.config.topic, "interval_ms": self.config.interval_ms},
        )
        if self.config.bounded:
            logger.info(
                "Test mode: will generate %s events then stop",
                self.config.max_events,
                extra={"max_events": self.config.max_events},
            )

        try:
            while self._should_continue():
                await self._publish_next()
                if self._stop_requested.is_set():
                    break
                try:
                    await self._sleep()
                except asyncio.CancelledError:
                    self._cancelled()
                    break
        finally:
            self._finish()

        return self._events_emitted

    def _cancelled(self) -> None:
        # Treated as a stop request; the task stays marked as cancelling
        logger.warning(
            "Event generation cancelled",
            extra={"events_emitted": self._events_emitted},
        )
        self._stop_requested.set()

    async def _send(self, event: MobilityEvent) -> None:
        """Publish ``event``, letting a send already in flight finish if cancelled."""
        send = asyncio.ensure_future(
            self._publisher.send(self.config.topic, event.vehicle_id, event)
        )
        try:
            await asyncio.shield(send)
        except asyncio.CancelledError:
            self._cancelled()
            await send

    async def _publish_next(self) -> None:
        event = self._factory(self._rand, self._clock())
        try:
            await self._send(event)
        except Exception as e:
            category = classify_error(e)
            logger.error(
                "Failed to publish event",
                extra={
                    "topic": self.config.topic,
                    "event_id": event.event_id,
                    "vehicle_id": event.vehicle_id,
                    "error": str(e),
                    "error_category": category.value,
                },
            )
            record_publish_error(self.config.topic, category.value)
            return

        self._events_emitted += 1
        record_event_generated(self.config.topic, event.event_type.value)
        logger.debug(
            "Published event",
            extra={
                "event_id": event.event_id,
                "vehicle_id": event.vehicle_id,
                "event_type": event.event_type.value,
            },
        )
        if self._events_emitted % PROGRESS_LOG_EVERY == 0:
            logger.info(
                "Generated %s events",
                self._events_emitted,
                extra={"events_emitted": self._events_emitted},
            )

    async def _sleep(self) -> None:
        interval = self.config.interval_seconds
        if interval <= 0:
            await asyncio.sleep(0)
            return
        with contextlib.suppress(TimeoutError):
            await asyncio.wait_for(self._wakeup.wait(), timeout=interval)

    def _finish(self) -> None:
        bound_reached = self.config.bounded and self._events_emitted >= self.config.max_events
        if bound_reached:
            self._set_state(GeneratorState.COMPLETED)
            logger.info(
                "Test mode complete: generated %s events",
                self._events_emitted,
                extra={"events_emitted": self._events_emitted, "state": self._state.value},
            )
        else:
            self._set_state(GeneratorState.STOPPED)
            logger.info(
                "Event generation stopped after %s events",
                self._events_emitted,
                extra={"events_emitted": self._events_emitted, "state": self._state.value},
            )
        self._loop = None


__all__ = [
    "EventGenerator",
    "GeneratorState",
]
