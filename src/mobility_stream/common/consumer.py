"""Kafka message consumer providing scoped topic subscriptions."""

import itertools
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from aiokafka import AIOKafkaConsumer
from aiokafka.errors import ConsumerStoppedError
from aiokafka.structs import TopicPartition

from config.config import MessageConfig
from core.errors.exceptions import SubscriptionError
from core.errors.kafka_classifier import classify_error
from mobility_stream.common.kafka_config import build_kafka_security_config
from mobility_stream.common.metrics import update_connection_status
from mobility_stream.common.types import PipelineMessage, from_consumer_record

logger = logging.getLogger(__name__)


class MessageConsumer:
    """Async Kafka consumer with manual commits.

    ``subscribe(topic)`` owns the underlying AIOKafkaConsumer for the life
    of the ``async with`` block and always commits and stops it on exit,
    including on cancellation and handler errors. Only offsets of records
    passed to ``commit()`` are ever committed.

    Usage:
        consumer = MessageConsumer(config, worker_name="analytics-processor", group_id="analytics-engine")
        async with consumer.subscribe("mobility-events") as records:
            async for message in records:
                ...
                await consumer.commit(message)
    """

    # Optional consumer config keys forwarded to AIOKafkaConsumer if present
    _OPTIONAL_CONSUMER_KEYS = (
        "heartbeat_interval_ms",
        "fetch_min_bytes",
        "fetch_max_wait_ms",
        "max_partition_fetch_bytes",
    )

    def __init__(
        self,
        config: MessageConfig,
        worker_name: str,
        group_id: str,
        auto_offset_reset: str = "earliest",
        instance_id: str | None = None,
        poll_timeout_ms: int = 1000,
    ):
        self.config = config
        self.worker_name = worker_name
        self.group_id = group_id
        self.auto_offset_reset = auto_offset_reset
        self.instance_id = instance_id
        self.poll_timeout_ms = poll_timeout_ms
        self.consumer_config = dict(config.consumer)
        self._consumer: AIOKafkaConsumer | None = None
        self._running = False
        # Next offset to commit per partition, advanced only by handled records
        self._handled: dict[TopicPartition, int] = {}

        logger.info(
            "Initialized message consumer",
            extra={
                "worker_name": worker_name,
                "consumer_group": group_id,
                "bootstrap_servers": config.bootstrap_servers,
            },
        )

    def _build_kafka_config(self) -> dict:
        client_id = self.worker_name
        if self.instance_id:
            client_id = f"{client_id}-{self.instance_id}"

        cfg = {
            "bootstrap_servers": self.config.bootstrap_servers,
            "group_id": self.group_id,
            "client_id": client_id,
            "request_timeout_ms": self.config.request_timeout_ms,
            "metadata_max_age_ms": self.config.metadata_max_age_ms,
            "connections_max_idle_ms": self.config.connections_max_idle_ms,
            "enable_auto_commit": False,
            "auto_offset_reset": self.auto_offset_reset,
            "max_poll_records": self.consumer_config.get("max_poll_records", 100),
            "max_poll_interval_ms": self.consumer_config.get("max_poll_interval_ms", 300000),
            "session_timeout_ms": self.consumer_config.get("session_timeout_ms", 30000),
        }

        for key in self._OPTIONAL_CONSUMER_KEYS:
            if key in self.consumer_config:
                cfg[key] = self.consumer_config[key]

        cfg.update(build_kafka_security_config(self.config))
        return cfg

    @asynccontextmanager
    async def subscribe(self, topic: str) -> AsyncIterator[AsyncIterator[PipelineMessage]]:
        """Open a subscription to ``topic``.

        Raises:
            SubscriptionError: If the consumer cannot connect or join the group.
                Not retried; the caller decides whether the process restarts.
        """
        if self._consumer is not None:
            raise RuntimeError("Consumer already has an active subscription")

        logger.info(
            "Subscribing to topic",
            extra={"topic": topic, "consumer_group": self.group_id},
        )

        consumer = AIOKafkaConsumer(topic, **self._build_kafka_config())
        started = False
        try:
            await consumer.start()
            started = True
        except Exception as e:
            raise SubscriptionError(
                f"Failed to subscribe to topic {topic}",
                topic=topic,
                consumer_group=self.group_id,
                cause=e,
                category=classify_error(e),
            ) from e
        finally:
            if not started:
                await self._close_client(consumer)

        self._consumer = consumer
        self._running = True
        update_connection_status("consumer", connected=True)
        logger.info(
            "Message consumer started successfully",
            extra={"topic": topic, "consumer_group": self.group_id},
        )

        records = self._iter_messages()
        try:
            yield records
        finally:
            await records.aclose()
            await self._release()

    async def _iter_messages(self) -> AsyncIterator[PipelineMessage]:
        while self._consumer is not None:
            try:
                data = await self._consumer.getmany(timeout_ms=self.poll_timeout_ms)
            except ConsumerStoppedError:
                logger.info("Consumer stopped, ending subscription")
                return

            # getmany groups by partition; order within each partition is preserved
            for record in itertools.chain.from_iterable(data.values()):
                yield from_consumer_record(record)

    async def commit(self, message: PipelineMessage) -> None:
        """Commit the offset after ``message`` on its partition.

        The fetch position can be a whole ``getmany`` batch ahead of the
        handler and is never committed.
        """
        if self._consumer is None:
            logger.warning("Cannot commit: consumer not started")
            return

        tp = TopicPartition(message.topic, message.partition)
        self._handled[tp] = message.offset + 1
        await self._consumer.commit({tp: message.offset + 1})

    async def _close_client(self, consumer: AIOKafkaConsumer) -> None:
        try:
            await consumer.stop()
        except Exception:
            logger.error("Error stopping message consumer", exc_info=True)

    async def _release(self) -> None:
        consumer = self._consumer
        if consumer is None:
            return

        logger.info("Stopping message consumer", extra={"consumer_group": self.group_id})
        self._running = False
        try:
            if self._handled:
                await consumer.commit(dict(self._handled))
        except Exception as e:
            logger.warning(
                "Final offset commit failed",
                extra={"consumer_group": self.group_id, "error": str(e)},
            )
        try:
            await self._close_client(consumer)
            logger.info("Message consumer stopped")
        finally:
            update_connection_status("consumer", connected=False)
            self._consumer = None
            self._handled = {}

    @property
    def is_running(self) -> bool:
        return self._running and self._consumer is not None


__all__ = [
    "MessageConsumer",
    "PipelineMessage",
]
