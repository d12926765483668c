"""
Sequential topic consumption with a per-record handler.

Each record is handed to the handler before the next one is taken, so
records with the same key are handled in the order they were published.
A record's offset is committed only once its handler call has returned.
"""

import asyncio
import logging
import time
from typing import Any

from core.logging.context import record_log_context
from core.logging.periodic_logger import PeriodicStatsLogger
from mobility_stream.common.metrics import (
    record_handler_duration,
    record_handler_error,
    record_message_consumed,
)
from mobility_stream.common.types import MessageSource, PipelineMessage
from mobility_stream.processor.handlers import EventHandler, RecordHandler, as_record_handler

logger = logging.getLogger(__name__)


class StreamConsumer:
    """
    Feeds records from a message source to a handler, one at a time.

    Handler errors are logged and counted and the record is committed
    anyway; consumption moves on to the next record. Errors raised by the
    source itself (including failure to subscribe) propagate.

    Example:
        >>> consumer = StreamConsumer(message_consumer, consumer_group="analytics-engine")
        >>> await consumer.subscribe("mobility-events", LoggingEventHandler())
    """

    def __init__(
        self,
        source: MessageSource,
        consumer_group: str,
        stats_interval_seconds: int = 60,
    ):
        self.source = source
        self.consumer_group = consumer_group
        self.stats_interval_seconds = stats_interval_seconds
        self._records_processed = 0
        self._records_failed = 0

    @property
    def records_processed(self) -> int:
        return self._records_processed

    @property
    def records_failed(self) -> int:
        return self._records_failed

    def get_stats(self) -> dict[str, Any]:
        return {
            "records_processed": self._records_processed,
            "records_failed": self._records_failed,
        }

    async def subscribe(self, topic: str, handler: EventHandler | RecordHandler) -> None:
        """Consume ``topic`` until the source ends the stream.

        Returns None at end-of-stream. ``asyncio.CancelledError`` propagates
        after the subscription has been released.
        """
        handle = as_record_handler(handler)
        stats_logger = PeriodicStatsLogger(
            interval_seconds=self.stats_interval_seconds,
            get_stats=self.get_stats,
            stage="analytics-processor",
        )

        logger.info(
            "Starting stream consumption",
            extra={"topic": topic, "consumer_group": self.consumer_group},
        )
        stats_logger.start()
        try:
            async with self.source.subscribe(topic) as records:
                async for message in records:
                    await self._process_record(message, handle)
        except asyncio.CancelledError:
            logger.info("Stream consumption cancelled", extra={"topic": topic})
            raise
        finally:
            await stats_logger.stop()

        logger.info(
            "Stream ended",
            extra={
                "topic": topic,
                "records_processed": self._records_processed,
                "records_failed": self._records_failed,
            },
        )

    async def _process_record(self, message: PipelineMessage, handle: RecordHandler) -> None:
        key = message.key_str
        with record_log_context(
            message.topic,
            message.partition,
            message.offset,
            vehicle_id=key,
            consumer_group=self.consumer_group,
        ):
            start_time = time.perf_counter()
            success = False
            try:
                await handle(key, message.value)
                success = True
            except Exception as e:
                duration = time.perf_counter() - start_time
                self._records_failed += 1
                record_handler_error(message.topic, self.consumer_group, type(e).__name__)
                logger.error(
                    "Handler failed, skipping record",
                    extra={
                        "error": str(e),
                        "error_type": type(e).__name__,
                        "duration_ms": round(duration * 1000, 2),
                    },
                    exc_info=True,
                )
            finally:
                record_handler_duration(
                    message.topic, self.consumer_group, time.perf_counter() - start_time
                )
                record_message_consumed(message.topic, self.consumer_group, success=success)

            if success:
                self._records_processed += 1

            try:
                await self.source.commit(message)
            except Exception as e:
                logger.warning(
                    "Offset commit failed, continuing",
                    extra={"error": str(e), "error_type": type(e).__name__},
                )


__all__ = ["StreamConsumer"]
