"""Context variables that tag every log line.

Two layers are kept apart: the worker layer (stage, worker id, instance)
is set once per worker task, and the record layer is set only while the
processor is handling one record.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any

_worker_context: ContextVar[dict[str, str]] = ContextVar("worker_context", default={})
_record_context: ContextVar[dict[str, Any]] = ContextVar("record_context", default={})


def set_log_context(**fields: Any) -> None:
    """Merge ``stage``, ``worker_id`` or ``instance_id`` into the worker layer.

    ``None`` values are ignored. The stored dict is replaced, never mutated,
    so tasks that copied the context earlier keep their own view.
    """
    updates = {name: str(value) for name, value in fields.items() if value is not None}
    _worker_context.set({**_worker_context.get(), **updates})


def get_log_context() -> dict[str, str]:
    return dict(_worker_context.get())


@contextmanager
def record_log_context(
    topic: str,
    partition: int,
    offset: int,
    vehicle_id: str | None = None,
    consumer_group: str | None = None,
) -> Iterator[None]:
    """Tag log lines emitted inside the block with the record being handled.

    Usage:
        with record_log_context("mobility-events", 0, 12345, vehicle_id="VH-17"):
            await handler(key, value)
    """
    fields: dict[str, Any] = {"topic": topic, "partition": partition, "offset": offset}
    if vehicle_id:
        fields["vehicle_id"] = vehicle_id
    if consumer_group:
        fields["consumer_group"] = consumer_group

    token = _record_context.set(fields)
    try:
        yield
    finally:
        _record_context.reset(token)


def get_record_context() -> dict[str, Any]:
    """Fields of the record being handled; empty outside ``record_log_context``."""
    return dict(_record_context.get())
