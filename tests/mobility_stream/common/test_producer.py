"""
Tests for the Kafka message producer.

These are unit tests that use mocks - no Docker/Kafka required.
"""

import asyncio
import json
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from aiokafka.errors import KafkaConnectionError, TopicAuthorizationFailedError
from aiokafka.structs import RecordMetadata

from config.config import MessageConfig
from core.errors.exceptions import PublishError
from core.types import ErrorCategory
from mobility_stream.common.producer import MessageProducer, encode_key, encode_value
from mobility_stream.common.types import ProduceResult
from mobility_stream.generator.events import EventType, MobilityEvent


@pytest.fixture
def kafka_config():
    return MessageConfig(
        bootstrap_servers="localhost:9092",
        producer={"acks": "1", "linger_ms": 5, "compression_type": "none"},
    )


@pytest.fixture
def mock_aiokafka_producer():
    """Create mock AIOKafkaProducer."""
    producer = MagicMock()
    producer.start = AsyncMock()
    producer.stop = AsyncMock()
    producer.flush = AsyncMock()
    producer.send_and_wait = AsyncMock(
        return_value=RecordMetadata(
            topic="mobility-events",
            partition=1,
            topic_partition=None,
            offset=42,
            timestamp=0,
            timestamp_type=0,
            log_start_offset=0,
        )
    )
    return producer


@pytest.fixture
def event():
    return MobilityEvent(
        event_id="1b4e28ba-2fa1-4d3b-a3f5-ef19b5a7633b",
        timestamp=datetime(2026, 10, 19, 14, 30, 0, 123456),
        vehicle_id="VH-427",
        latitude=40.73,
        longitude=-74.02,
        speed=63.2,
        event_type=EventType.SPEED_CHANGE,
    )


@pytest.fixture
def started_producer(kafka_config, mock_aiokafka_producer):
    """Producer in the started state, backed by the mock client."""
    producer = MessageProducer(kafka_config, worker_name="event-generator")
    producer._producer = mock_aiokafka_producer
    producer._started = True
    return producer


class TestEncoding:
    def test_encode_model_uses_camel_case(self, event):
        payload = json.loads(encode_value(event))
        assert payload["vehicleId"] == "VH-427"
        assert payload["eventType"] == "SPEED_CHANGE"
        assert payload["timestamp"] == "2026-10-19T14:30:00.123456"

    def test_encode_dict(self):
        assert json.loads(encode_value({"a": 1})) == {"a": 1}

    def test_encode_bytes_passthrough(self):
        assert encode_value(b"raw") == b"raw"

    def test_encode_key(self):
        assert encode_key("VH-1") == b"VH-1"
        assert encode_key(None) is None
        assert encode_key(b"VH-1") == b"VH-1"


class TestKafkaConfig:
    def test_builds_producer_config(self, kafka_config):
        producer = MessageProducer(kafka_config, worker_name="event-generator")
        cfg = producer._build_kafka_config()

        assert cfg["bootstrap_servers"] == "localhost:9092"
        assert cfg["client_id"] == "event-generator"
        assert cfg["acks"] == 1
        assert cfg["linger_ms"] == 5
        assert cfg["compression_type"] is None
        assert "security_protocol" not in cfg


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_start_and_stop(self, kafka_config, mock_aiokafka_producer):
        with patch(
            "mobility_stream.common.producer.AIOKafkaProducer",
            return_value=mock_aiokafka_producer,
        ):
            producer = MessageProducer(kafka_config, worker_name="event-generator")
            await producer.start()
            assert producer.is_started

            await producer.stop()

        mock_aiokafka_producer.start.assert_awaited_once()
        mock_aiokafka_producer.flush.assert_awaited_once()
        mock_aiokafka_producer.stop.assert_awaited_once()
        assert not producer.is_started

    @pytest.mark.asyncio
    async def test_start_failure_propagates(self, kafka_config, mock_aiokafka_producer):
        mock_aiokafka_producer.start.side_effect = KafkaConnectionError("Unable to bootstrap")
        with patch(
            "mobility_stream.common.producer.AIOKafkaProducer",
            return_value=mock_aiokafka_producer,
        ):
            producer = MessageProducer(kafka_config, worker_name="event-generator")
            with pytest.raises(KafkaConnectionError):
                await producer.start()

        mock_aiokafka_producer.stop.assert_awaited_once()
        mock_aiokafka_producer.flush.assert_not_awaited()
        assert not producer.is_started

    @pytest.mark.asyncio
    async def test_start_cancelled_stops_client(self, kafka_config, mock_aiokafka_producer):
        connecting = asyncio.Event()

        async def hang():
            connecting.set()
            await asyncio.Event().wait()

        mock_aiokafka_producer.start.side_effect = hang
        with patch(
            "mobility_stream.common.producer.AIOKafkaProducer",
            return_value=mock_aiokafka_producer,
        ):
            producer = MessageProducer(kafka_config, worker_name="event-generator")
            task = asyncio.create_task(producer.start())
            await connecting.wait()
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        mock_aiokafka_producer.stop.assert_awaited_once()
        assert not producer.is_started

    @pytest.mark.asyncio
    async def test_stop_after_failed_flush_still_stops_client(
        self, started_producer, mock_aiokafka_producer
    ):
        mock_aiokafka_producer.flush.side_effect = KafkaConnectionError("gone")
        await started_producer.stop()
        mock_aiokafka_producer.stop.assert_awaited_once()
        assert not started_producer.is_started

    @pytest.mark.asyncio
    async def test_stop_swallows_errors(self, started_producer, mock_aiokafka_producer):
        mock_aiokafka_producer.stop.side_effect = RuntimeError("already closed")
        await started_producer.stop()
        assert not started_producer.is_started

    @pytest.mark.asyncio
    async def test_stop_when_never_started(self, kafka_config):
        producer = MessageProducer(kafka_config, worker_name="event-generator")
        await producer.stop()


class TestSend:
    @pytest.mark.asyncio
    async def test_send_requires_start(self, kafka_config, event):
        producer = MessageProducer(kafka_config, worker_name="event-generator")
        with pytest.raises(RuntimeError):
            await producer.send("mobility-events", "VH-427", event)

    @pytest.mark.asyncio
    async def test_send_keyed_event(self, started_producer, mock_aiokafka_producer, event):
        result = await started_producer.send("mobility-events", "VH-427", event)

        assert result == ProduceResult(topic="mobility-events", partition=1, offset=42)
        call = mock_aiokafka_producer.send_and_wait.await_args
        assert call.args == ("mobility-events",)
        assert call.kwargs["key"] == b"VH-427"
        assert json.loads(call.kwargs["value"])["eventId"] == event.event_id
        assert call.kwargs["headers"] is None

    @pytest.mark.asyncio
    async def test_send_with_headers(self, started_producer, mock_aiokafka_producer):
        await started_producer.send("t", None, {"a": 1}, headers={"source": "test"})
        call = mock_aiokafka_producer.send_and_wait.await_args
        assert call.kwargs["headers"] == [("source", b"test")]

    @pytest.mark.asyncio
    async def test_broker_error_becomes_publish_error(self, started_producer, mock_aiokafka_producer, event):
        mock_aiokafka_producer.send_and_wait.side_effect = KafkaConnectionError("gone")

        with pytest.raises(PublishError) as exc_info:
            await started_producer.send("mobility-events", "VH-427", event)

        assert exc_info.value.category == ErrorCategory.TRANSIENT
        assert isinstance(exc_info.value.cause, KafkaConnectionError)
        assert exc_info.value.topic == "mobility-events"
        assert exc_info.value.vehicle_id == "VH-427"
        assert exc_info.value.event_id == event.event_id

    @pytest.mark.asyncio
    async def test_auth_error_keeps_category(self, started_producer, mock_aiokafka_producer, event):
        mock_aiokafka_producer.send_and_wait.side_effect = TopicAuthorizationFailedError()

        with pytest.raises(PublishError) as exc_info:
            await started_producer.send("mobility-events", "VH-427", event)

        assert exc_info.value.category == ErrorCategory.AUTH

    @pytest.mark.asyncio
    async def test_unserializable_payload_is_permanent(self, started_producer, mock_aiokafka_producer):
        payload = {}
        payload["self"] = payload

        with pytest.raises(PublishError) as exc_info:
            await started_producer.send("t", "k", payload)

        mock_aiokafka_producer.send_and_wait.assert_not_awaited()
        assert exc_info.value.category == ErrorCategory.PERMANENT
