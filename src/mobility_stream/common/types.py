"""Transport-agnostic message types."""

from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from typing import Any, Protocol

__all__ = [
    "PipelineMessage",
    "ProduceResult",
    "MessagePublisher",
    "MessageSource",
    "from_consumer_record",
]


@dataclass(frozen=True)
class PipelineMessage:
    """Transport-agnostic record received from the topic."""

    topic: str
    partition: int
    offset: int
    timestamp: int
    key: bytes | None = None
    value: bytes | None = None
    headers: list[tuple[str, bytes]] | None = None

    @property
    def key_str(self) -> str | None:
        return self.key.decode("utf-8", errors="replace") if self.key is not None else None


@dataclass(frozen=True)
class ProduceResult:
    """Transport-agnostic confirmation of a published message."""

    topic: str
    partition: int
    offset: int


class MessagePublisher(Protocol):
    """Anything that can publish a keyed value to a topic."""

    async def send(self, topic: str, key: str | bytes | None, value: Any) -> ProduceResult: ...


class MessageSource(Protocol):
    """A subscription provider.

    ``subscribe(topic)`` is an async context manager yielding a lazy,
    non-restartable async iterator of records. Leaving the context releases
    the subscription.
    """

    def subscribe(self, topic: str) -> AbstractAsyncContextManager[AsyncIterator[PipelineMessage]]: ...

    async def commit(self, message: PipelineMessage) -> None: ...


def from_consumer_record(record) -> PipelineMessage:
    """Convert aiokafka ConsumerRecord to PipelineMessage."""
    headers = None
    if getattr(record, "headers", None):
        headers = [(k, v) for k, v in record.headers]

    return PipelineMessage(
        topic=record.topic,
        partition=record.partition,
        offset=record.offset,
        timestamp=record.timestamp,
        key=record.key,
        value=record.value,
        headers=headers,
    )
