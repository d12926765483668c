"""
Exceptions raised by the mobility stream workers.

Each one carries an ErrorCategory and the topic it concerns, and
``log_fields()`` turns it into ``extra=`` fields for a log line. None of
them implies a retry: publish failures are dropped after logging and
startup failures surface to the process owner.
"""

from typing import Any

from core.types import ErrorCategory


class PipelineError(Exception):
    """
    Base exception for worker failures.

    Attributes:
        message: Human-readable description
        topic: Kafka topic involved, if any
        cause: Underlying exception, if wrapping one
        category: Error classification
    """

    category: ErrorCategory = ErrorCategory.UNKNOWN

    def __init__(
        self,
        message: str,
        *,
        topic: str | None = None,
        cause: Exception | None = None,
        category: ErrorCategory | None = None,
    ):
        self.message = message
        self.topic = topic
        self.cause = cause
        if category is not None:
            self.category = category
        super().__init__(message)

    def log_fields(self) -> dict[str, Any]:
        fields: dict[str, Any] = {
            "error": str(self),
            "error_category": self.category.value,
            "error_type": type(self.cause or self).__name__,
        }
        if self.topic:
            fields["topic"] = self.topic
        return fields

    def __str__(self) -> str:
        if self.cause:
            return f"{self.message} | Caused by: {self.cause}"
        return self.message


class ConfigurationError(PipelineError):
    """Invalid or missing configuration detected at startup."""

    category = ErrorCategory.PERMANENT


class PublishError(PipelineError):
    """A single event could not be published to its topic."""

    category = ErrorCategory.TRANSIENT

    def __init__(
        self,
        message: str,
        *,
        topic: str,
        vehicle_id: str | None = None,
        event_id: str | None = None,
        cause: Exception | None = None,
        category: ErrorCategory | None = None,
    ):
        super().__init__(message, topic=topic, cause=cause, category=category)
        self.vehicle_id = vehicle_id
        self.event_id = event_id

    def log_fields(self) -> dict[str, Any]:
        fields = super().log_fields()
        if self.vehicle_id:
            fields["vehicle_id"] = self.vehicle_id
        if self.event_id:
            fields["event_id"] = self.event_id
        return fields


class SubscriptionError(PipelineError):
    """The subscription to a topic could not be established.

    Raised at startup and never retried; the category follows the
    underlying transport error.
    """

    def __init__(
        self,
        message: str,
        *,
        topic: str,
        consumer_group: str,
        cause: Exception | None = None,
        category: ErrorCategory | None = None,
    ):
        super().__init__(message, topic=topic, cause=cause, category=category)
        self.consumer_group = consumer_group

    def log_fields(self) -> dict[str, Any]:
        return {**super().log_fields(), "consumer_group": self.consumer_group}


__all__ = [
    "ErrorCategory",
    "PipelineError",
    "ConfigurationError",
    "PublishError",
    "SubscriptionError",
]
