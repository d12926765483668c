"""Per-record handlers invoked by the stream consumer."""

import logging
from collections.abc import Awaitable, Callable
from typing import Protocol

logger = logging.getLogger(__name__)

RecordHandler = Callable[[str | None, bytes | None], Awaitable[None]]


class EventHandler(Protocol):
    """Analytics collaborator receiving each record's key and raw value."""

    async def handle(self, key: str | None, value: bytes | None) -> None: ...


class LoggingEventHandler:
    """Logs every record it receives. Default analytics behaviour."""

    def __init__(self, log_level: int = logging.INFO):
        self.log_level = log_level

    async def handle(self, key: str | None, value: bytes | None) -> None:
        text = value.decode("utf-8", errors="replace") if value is not None else None
        logger.log(
            self.log_level,
            "Processing event: %s -> %s",
            key,
            text,
            extra={"value_size": len(value) if value is not None else 0},
        )

    async def __call__(self, key: str | None, value: bytes | None) -> None:
        await self.handle(key, value)


def as_record_handler(handler: EventHandler | RecordHandler) -> RecordHandler:
    """Accept either an EventHandler or a plain async callable."""
    if getattr(type(handler), "handle", None) is not None:
        return handler.handle
    return handler


__all__ = [
    "EventHandler",
    "LoggingEventHandler",
    "RecordHandler",
    "as_record_handler",
]
