"""Runner functions for the event generator and analytics processor workers."""

import asyncio
import logging

from config.config import MobilityConfig
from core.logging.setup import log_worker_startup
from mobility_stream.common.consumer import MessageConsumer
from mobility_stream.common.producer import MessageProducer
from mobility_stream.generator.generator import EventGenerator
from mobility_stream.processor.handlers import LoggingEventHandler
from mobility_stream.processor.runner import PipelineRunner
from mobility_stream.processor.stream_consumer import StreamConsumer
from mobility_stream.runners.common import (
    apply_log_context,
    execute_worker_with_shutdown,
    health_server_scope,
)

logger = logging.getLogger(__name__)

GENERATOR_STAGE = "event-generator"
PROCESSOR_STAGE = "analytics-processor"


async def run_event_generator(
    config: MobilityConfig,
    shutdown_event: asyncio.Event,
    health_port: int | None = None,
    instance_id: str | None = None,
) -> int:
    """Publishes synthetic mobility events until stopped or max_events is reached.
    The producer is started here and stopped after the generator returns."""
    generator_config = config.generator
    log_worker_startup(
        logger,
        GENERATOR_STAGE,
        config.kafka.bootstrap_servers,
        topic=generator_config.topic,
        interval_ms=generator_config.interval_ms,
        max_events=generator_config.max_events or "unbounded",
        enabled=generator_config.enabled,
    )

    producer = MessageProducer(config=config.kafka, worker_name=GENERATOR_STAGE)
    generator = EventGenerator(generator_config, producer)

    async with health_server_scope(health_port, GENERATOR_STAGE, lambda: producer.is_started):
        try:
            if generator_config.enabled:
                # Not retried: an unreachable broker is fatal at startup
                await producer.start()
            return await execute_worker_with_shutdown(
                generator.run,
                generator.stop,
                stage_name=GENERATOR_STAGE,
                shutdown_event=shutdown_event,
                instance_id=instance_id,
            )
        finally:
            await producer.stop()


async def run_analytics_processor(
    config: MobilityConfig,
    shutdown_event: asyncio.Event,
    health_port: int | None = None,
    instance_id: str | None = None,
) -> None:
    """Consumes mobility events and hands each one to the logging analytics handler."""
    processor_config = config.processor
    apply_log_context(PROCESSOR_STAGE, instance_id)
    log_worker_startup(
        logger,
        PROCESSOR_STAGE,
        config.kafka.bootstrap_servers,
        topic=processor_config.topic,
        consumer_group=processor_config.consumer_group,
        auto_offset_reset=processor_config.auto_offset_reset,
    )

    message_consumer = MessageConsumer(
        config=config.kafka,
        worker_name=PROCESSOR_STAGE,
        group_id=processor_config.consumer_group,
        auto_offset_reset=processor_config.auto_offset_reset,
        instance_id=instance_id,
    )
    stream_consumer = StreamConsumer(
        message_consumer,
        consumer_group=processor_config.consumer_group,
        stats_interval_seconds=processor_config.stats_interval_seconds,
    )
    runner = PipelineRunner(
        stream_consumer,
        topic=processor_config.topic,
        handler=LoggingEventHandler(),
        shutdown_grace_seconds=processor_config.shutdown_grace_seconds,
    )

    async with health_server_scope(
        health_port, PROCESSOR_STAGE, lambda: message_consumer.is_running
    ):
        await runner.run_blocking(shutdown_event)

    logger.info(
        "Analytics processor finished",
        extra={
            "records_processed": stream_consumer.records_processed,
            "records_failed": stream_consumer.records_failed,
        },
    )


__all__ = [
    "GENERATOR_STAGE",
    "PROCESSOR_STAGE",
    "run_analytics_processor",
    "run_event_generator",
]
