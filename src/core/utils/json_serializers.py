"""Shared JSON serialization helpers for log records and message payloads."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any
from uuid import UUID


def json_serializer(obj: Any) -> Any:
    """
    Type-preserving ``default=`` hook for ``json.dumps``.

    - datetime/date -> ISO 8601 string
    - Decimal -> float
    - Enum -> value
    - UUID/Path -> string
    - pydantic models -> JSON-mode dump using field aliases
    - Everything else -> string (fallback)

    Numbers stay numbers, so structured log fields like ``duration_ms``
    remain aggregatable downstream.
    """
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, Decimal):
        return float(obj)
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (UUID, Path)):
        return str(obj)
    if hasattr(obj, "model_dump"):
        return obj.model_dump(mode="json", by_alias=True)
    if isinstance(obj, (set, frozenset)):
        return sorted(obj, key=str)
    return str(obj)


__all__ = ["json_serializer"]
