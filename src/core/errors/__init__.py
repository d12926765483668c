"""
Exception hierarchy and Kafka error classification.
"""

from core.errors.exceptions import (
    ConfigurationError,
    ErrorCategory,
    PipelineError,
    PublishError,
    SubscriptionError,
)
from core.errors.kafka_classifier import classify_error

__all__ = [
    "ErrorCategory",
    "PipelineError",
    "ConfigurationError",
    "PublishError",
    "SubscriptionError",
    "classify_error",
]
