"""Shared fakes for processor tests."""

import asyncio
from contextlib import asynccontextmanager

import pytest

from mobility_stream.common.types import PipelineMessage


def make_message(offset: int, key: str | None = "VH-1", value: bytes | None = b"{}") -> PipelineMessage:
    return PipelineMessage(
        topic="mobility-events",
        partition=0,
        offset=offset,
        timestamp=1_700_000_000_000 + offset,
        key=key.encode() if key is not None else None,
        value=value,
    )


class FakeSource:
    """In-memory MessageSource.

    Yields ``messages`` and then either ends the stream or, with
    ``block_at_end``, waits until cancelled.
    """

    def __init__(self, messages=(), block_at_end=False, subscribe_error=None):
        self.messages = list(messages)
        self.block_at_end = block_at_end
        self.subscribe_error = subscribe_error
        self.commits = 0
        self.committed: list[int] = []
        self.commit_error: Exception | None = None
        self.released = False
        self.subscribed_topic: str | None = None

    @asynccontextmanager
    async def subscribe(self, topic):
        if self.subscribe_error is not None:
            raise self.subscribe_error
        self.subscribed_topic = topic
        try:
            yield self._records()
        finally:
            self.released = True

    async def _records(self):
        for message in self.messages:
            yield message
        if self.block_at_end:
            await asyncio.Event().wait()

    async def commit(self, message):
        self.commits += 1
        self.committed.append(message.offset)
        if self.commit_error is not None:
            raise self.commit_error


@pytest.fixture
def messages():
    return [make_message(i, key=f"VH-{i % 2}") for i in range(3)]


@pytest.fixture
def fake_source():
    return FakeSource
