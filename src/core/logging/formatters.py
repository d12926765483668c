"""Log formatters: one JSON object per line for files, a compact line for consoles."""

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any

from core.logging.context import get_log_context, get_record_context
from core.utils.json_serializers import json_serializer

# extra= fields copied into JSON lines; when a type is given the value is coerced to it
LOGGED_FIELDS: dict[str, type | None] = {
    # generated events
    "topic": None,
    "event_id": None,
    "vehicle_id": None,
    "event_type": None,
    "events_emitted": int,
    "interval_ms": int,
    "max_events": int,
    "state": None,
    "value_size": int,
    # consumed records
    "consumer_group": None,
    "partition": int,
    "offset": int,
    "records_processed": int,
    "records_failed": int,
    "cycle": int,
    "delta_processed": int,
    "delta_failed": int,
    "rate_msg_per_sec": float,
    "duration_ms": float,
    "grace_seconds": float,
    # failures
    "error": None,
    "error_type": None,
    "error_category": None,
    # process
    "worker_name": None,
    "bootstrap_servers": None,
    "port": int,
    "path": None,
    "section": None,
    "keys": None,
}

LEVEL_COLORS = {
    logging.DEBUG: "\033[36m",
    logging.INFO: "\033[32m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
    logging.CRITICAL: "\033[35m",
}
RESET = "\033[0m"


def _coerce(value: Any, kind: type | None) -> Any:
    if kind is None:
        return value
    try:
        return kind(value)
    except (TypeError, ValueError):
        return None


class JSONFormatter(logging.Formatter):
    """
    Writes each record as a single JSON object.

    Keys, in order: ``ts``, ``level``, ``logger``, ``message``, the worker
    context (stage, worker_id, instance_id), the record context (topic,
    partition, offset, vehicle_id, consumer_group), then any
    ``LOGGED_FIELDS`` passed as ``extra=``. Debug and error lines also carry
    ``source`` as ``file:line``.
    """

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, UTC)
        entry: dict[str, Any] = {
            "ts": created.strftime("%Y-%m-%dT%H:%M:%S.") + f"{created.microsecond // 1000:03d}Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update((name, value) for name, value in get_log_context().items() if value)
        entry.update(get_record_context())

        for name, kind in LOGGED_FIELDS.items():
            value = getattr(record, name, None)
            if value is not None:
                entry[name] = _coerce(value, kind)

        if record.levelno == logging.DEBUG or record.levelno >= logging.ERROR:
            entry["source"] = f"{record.filename}:{record.lineno}"

        if record.exc_info:
            exc_type, exc_value, _ = record.exc_info
            entry["exception"] = {
                "type": exc_type.__name__ if exc_type else None,
                "message": str(exc_value) if exc_value else None,
                "stacktrace": self.formatException(record.exc_info),
            }

        return json.dumps(entry, default=json_serializer, ensure_ascii=False)


class ConsoleFormatter(logging.Formatter):
    """
    ``14:30:00 INFO    [analytics-processor] [mobility-events:0@42 VH-17] message``

    The stage and record tags appear only when set. Level names are
    coloured when stdout is a terminal.
    """

    def __init__(self, use_colors: bool | None = None):
        super().__init__()
        self.use_colors = sys.stdout.isatty() if use_colors is None else use_colors

    def _level(self, record: logging.LogRecord) -> str:
        level = f"{record.levelname:<7}"
        color = LEVEL_COLORS.get(record.levelno)
        if self.use_colors and color:
            return f"{color}{level}{RESET}"
        return level

    @staticmethod
    def _record_tag(record: logging.LogRecord) -> str:
        context = get_record_context()
        position = f"{context['topic']}:{context['partition']}@{context['offset']}" if context else ""
        vehicle_id = getattr(record, "vehicle_id", None) or context.get("vehicle_id")
        inner = " ".join(part for part in (position, vehicle_id) if part)
        return f"[{inner}]" if inner else ""

    def format(self, record: logging.LogRecord) -> str:
        parts = [datetime.fromtimestamp(record.created).strftime("%H:%M:%S"), self._level(record)]

        stage = get_log_context().get("stage")
        if stage:
            parts.append(f"[{stage}]")
        tag = self._record_tag(record)
        if tag:
            parts.append(tag)
        parts.append(record.getMessage())

        line = " ".join(parts)
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line
