"""Tests for the generator and processor runner functions."""

import asyncio
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, patch

import pytest

from config.config import GeneratorConfig, MessageConfig, MobilityConfig, ProcessorConfig
from mobility_stream.common.types import PipelineMessage
from mobility_stream.runners.mobility_runners import run_analytics_processor, run_event_generator


def make_config(**generator) -> MobilityConfig:
    settings = {"interval_ms": 0, "max_events": 3}
    settings.update(generator)
    return MobilityConfig(
        kafka=MessageConfig(bootstrap_servers="localhost:9092"),
        generator=GeneratorConfig(**settings),
        processor=ProcessorConfig(stats_interval_seconds=3600),
    )


@pytest.fixture
def producer():
    with patch("mobility_stream.runners.mobility_runners.MessageProducer") as producer_cls:
        instance = producer_cls.return_value
        instance.start = AsyncMock()
        instance.stop = AsyncMock()
        instance.send = AsyncMock()
        instance.is_started = True
        yield instance


class TestRunEventGenerator:
    @pytest.mark.asyncio
    async def test_bounded_run_publishes_and_stops_producer(self, producer):
        emitted = await run_event_generator(make_config(), asyncio.Event())

        assert emitted == 3
        producer.start.assert_awaited_once()
        assert producer.send.await_count == 3
        producer.stop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_disabled_does_not_start_producer(self, producer):
        emitted = await run_event_generator(make_config(enabled=False), asyncio.Event())

        assert emitted == 0
        producer.start.assert_not_awaited()
        producer.send.assert_not_awaited()
        producer.stop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_shutdown_event_stops_generation(self, producer):
        shutdown = asyncio.Event()
        task = asyncio.create_task(
            run_event_generator(make_config(interval_ms=60_000, max_events=0), shutdown)
        )
        while producer.send.await_count < 1:
            await asyncio.sleep(0.001)

        shutdown.set()

        assert await asyncio.wait_for(task, timeout=1) == 1
        producer.stop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_start_failure_propagates(self, producer):
        producer.start.side_effect = ConnectionError("no brokers")

        with pytest.raises(ConnectionError):
            await run_event_generator(make_config(), asyncio.Event())

        producer.send.assert_not_awaited()
        producer.stop.assert_awaited_once()


class FakeMessageConsumer:
    def __init__(self, messages):
        self.messages = messages
        self.is_running = False
        self.commit = AsyncMock()

    @asynccontextmanager
    async def subscribe(self, topic):
        self.is_running = True
        try:
            yield self._records()
        finally:
            self.is_running = False

    async def _records(self):
        for message in self.messages:
            yield message


class TestRunAnalyticsProcessor:
    @pytest.mark.asyncio
    async def test_processes_until_end_of_stream(self):
        messages = [
            PipelineMessage(topic="mobility-events", partition=0, offset=i, timestamp=0, key=b"VH-1", value=b"{}")
            for i in range(2)
        ]
        fake = FakeMessageConsumer(messages)

        with patch(
            "mobility_stream.runners.mobility_runners.MessageConsumer", return_value=fake
        ) as consumer_cls:
            await asyncio.wait_for(
                run_analytics_processor(make_config(), asyncio.Event()), timeout=1
            )

        assert consumer_cls.call_args.kwargs["group_id"] == "analytics-engine"
        assert fake.commit.await_count == 2
