"""Kafka message producer used by the event generator."""

import json
import logging
from typing import Any

from aiokafka import AIOKafkaProducer
from pydantic import BaseModel

from config.config import MessageConfig
from core.errors.exceptions import PublishError
from core.errors.kafka_classifier import classify_error
from core.types import ErrorCategory
from core.utils.json_serializers import json_serializer
from mobility_stream.common.kafka_config import build_kafka_security_config
from mobility_stream.common.metrics import update_connection_status
from mobility_stream.common.types import ProduceResult

logger = logging.getLogger(__name__)


def encode_value(value: BaseModel | dict[str, Any] | bytes) -> bytes:
    """Serialize a payload to UTF-8 JSON bytes.

    Pydantic models are dumped by alias so the wire format uses the
    model's external (camelCase) field names.
    """
    if isinstance(value, bytes):
        return value
    if isinstance(value, BaseModel):
        return value.model_dump_json(by_alias=True).encode("utf-8")
    return json.dumps(value, default=json_serializer).encode("utf-8")


def encode_key(key: str | bytes | None) -> bytes | None:
    if key is None or isinstance(key, bytes):
        return key
    return key.encode("utf-8")


def _record_ids(key: Any, value: Any) -> dict[str, str | None]:
    """Vehicle and event ids to attach to a PublishError."""
    return {
        "vehicle_id": key if isinstance(key, str) else None,
        "event_id": getattr(value, "event_id", None),
    }


class MessageProducer:
    """Async message producer.

    The producer is owned by the worker runner: it is started before the
    generator runs and stopped after it returns. ``send`` waits for the
    broker acknowledgement so a publish is either complete or failed when
    it returns.
    """

    def __init__(self, config: MessageConfig, worker_name: str):
        self.config = config
        self.worker_name = worker_name
        self._producer: AIOKafkaProducer | None = None
        self._started = False
        self.producer_config = dict(config.producer)

        logger.info(
            "Initialized message producer",
            extra={
                "worker_name": worker_name,
                "bootstrap_servers": config.bootstrap_servers,
            },
        )

    def _resolve_acks(self) -> Any:
        acks_value = self.producer_config.get("acks", "all")
        if isinstance(acks_value, str) and acks_value.isdigit():
            acks_value = int(acks_value)
        return acks_value

    def _build_kafka_config(self) -> dict[str, Any]:
        kafka_config = {
            "bootstrap_servers": self.config.bootstrap_servers,
            "client_id": self.worker_name,
            "request_timeout_ms": self.config.request_timeout_ms,
            "metadata_max_age_ms": self.config.metadata_max_age_ms,
            "connections_max_idle_ms": self.config.connections_max_idle_ms,
            "acks": self._resolve_acks(),
            "retry_backoff_ms": self.producer_config.get("retry_backoff_ms", 100),
        }

        if "linger_ms" in self.producer_config:
            kafka_config["linger_ms"] = self.producer_config["linger_ms"]
        if "batch_size" in self.producer_config:
            kafka_config["max_batch_size"] = self.producer_config["batch_size"]
        if "compression_type" in self.producer_config:
            compression = self.producer_config["compression_type"]
            kafka_config["compression_type"] = None if compression == "none" else compression

        kafka_config.update(build_kafka_security_config(self.config))
        return kafka_config

    async def start(self) -> None:
        if self._started:
            logger.warning("Producer already started, ignoring duplicate start call")
            return

        logger.info("Starting message producer")

        producer = AIOKafkaProducer(**self._build_kafka_config())
        started = False
        try:
            await producer.start()
            started = True
        finally:
            if not started:
                # A failed or cancelled start can leave the client's connections open
                await self._close_client(producer)
        self._producer = producer
        self._started = True
        update_connection_status("producer", connected=True)

        logger.info(
            "Message producer started successfully",
            extra={"bootstrap_servers": self.config.bootstrap_servers},
        )

    async def stop(self) -> None:
        # Errors during stop are logged, not re-raised
        if self._producer is None:
            logger.debug("Producer already stopped")
            return

        logger.info("Stopping message producer")

        try:
            await self._close_client(self._producer, flush=self._started)
        finally:
            update_connection_status("producer", connected=False)
            self._producer = None
            self._started = False

    @staticmethod
    async def _close_client(producer: AIOKafkaProducer, flush: bool = False) -> None:
        try:
            try:
                if flush:
                    await producer.flush()
            finally:
                await producer.stop()
            logger.info("Message producer stopped successfully")
        except Exception as e:
            logger.error(
                "Error stopping message producer",
                extra={"error": str(e)},
                exc_info=True,
            )

    async def send(
        self,
        topic: str,
        key: str | bytes | None,
        value: BaseModel | dict[str, Any] | bytes,
        headers: dict[str, str] | None = None,
    ) -> ProduceResult:
        """Publish one record and wait for the broker acknowledgement.

        Raises:
            RuntimeError: If the producer has not been started
            PublishError: If serialization or the broker send fails
        """
        if not self._started or self._producer is None:
            raise RuntimeError("Producer not started. Call start() first.")

        try:
            value_bytes = encode_value(value)
            key_bytes = encode_key(key)
        except (TypeError, ValueError) as e:
            raise PublishError(
                f"Failed to serialize message for topic {topic}",
                topic=topic,
                **_record_ids(key, value),
                cause=e,
                category=ErrorCategory.PERMANENT,
            ) from e

        headers_list = None
        if headers:
            headers_list = [(k, v.encode("utf-8")) for k, v in headers.items()]

        logger.debug(
            "Sending message",
            extra={"topic": topic, "value_size": len(value_bytes)},
        )

        try:
            metadata = await self._producer.send_and_wait(
                topic,
                key=key_bytes,
                value=value_bytes,
                headers=headers_list,
            )
        except Exception as e:
            # Keep the transport's own category (auth, permanent) for reporting
            raise PublishError(
                f"Failed to send message to {topic}",
                topic=topic,
                **_record_ids(key, value),
                cause=e,
                category=classify_error(e),
            ) from e

        logger.debug(
            "Message sent successfully",
            extra={
                "topic": metadata.topic,
                "partition": metadata.partition,
                "offset": metadata.offset,
            },
        )

        return ProduceResult(
            topic=metadata.topic,
            partition=metadata.partition,
            offset=metadata.offset,
        )

    @property
    def is_started(self) -> bool:
        return self._started and self._producer is not None


__all__ = [
    "MessageProducer",
    "ProduceResult",
    "encode_key",
    "encode_value",
]
