"""
Kafka error classification for consumer and producer operations.

Maps aiokafka exceptions (by class name, so the classifier does not import
aiokafka) onto ErrorCategory for logging and metric labels.
"""

from typing import Optional

from core.errors.exceptions import PipelineError
from core.types import ErrorCategory

# Kafka error classifications based on aiokafka exception types
KAFKA_ERROR_MAPPINGS = {
    ErrorCategory.TRANSIENT: [
        "BrokerNotAvailableError",
        "KafkaConnectionError",
        "NodeNotReadyError",
        "LeaderNotAvailableError",
        "NotLeaderForPartitionError",
        "RequestTimedOutError",
        "KafkaTimeoutError",
        "NotEnoughReplicasError",
        "NotEnoughReplicasAfterAppendError",
        "CorrelationIdError",
        "ProducerClosed",
    ],
    ErrorCategory.AUTH: [
        "TopicAuthorizationFailedError",
        "GroupAuthorizationFailedError",
        "ClusterAuthorizationFailedError",
        "SaslAuthenticationFailedError",
        "SaslAuthenticationError",
    ],
    ErrorCategory.PERMANENT: [
        "UnknownTopicOrPartitionError",
        "MessageSizeTooLargeError",
        "RecordTooLargeError",
        "InvalidTopicError",
        "UnsupportedVersionError",
        "IllegalStateError",
        "OffsetOutOfRangeError",
        "UnsupportedCodecError",
    ],
}


def classify_kafka_error_type(error_type_name: str) -> Optional[ErrorCategory]:
    """
    Classify Kafka error by exception type name.

    Args:
        error_type_name: Name of the exception class

    Returns:
        ErrorCategory, or None if the name is not a known aiokafka error
    """
    for category, error_types in KAFKA_ERROR_MAPPINGS.items():
        if error_type_name in error_types:
            return category
    return None


def classify_error(error: Exception) -> ErrorCategory:
    """Classify any exception raised around a Kafka operation."""
    if isinstance(error, PipelineError):
        return error.category

    for klass in type(error).__mro__:
        category = classify_kafka_error_type(klass.__name__)
        if category is not None:
            return category

    if isinstance(error, (ConnectionError, TimeoutError, OSError)):
        return ErrorCategory.TRANSIENT
    if isinstance(error, (TypeError, ValueError, UnicodeError)):
        # Serialization and encoding problems do not fix themselves
        return ErrorCategory.PERMANENT

    error_str = str(error).lower()
    if any(m in error_str for m in ("unauthorized", "authentication", "authorization")):
        return ErrorCategory.AUTH
    if any(m in error_str for m in ("timeout", "connection", "broker", "node not ready")):
        return ErrorCategory.TRANSIENT

    return ErrorCategory.UNKNOWN


__all__ = [
    "KAFKA_ERROR_MAPPINGS",
    "classify_error",
    "classify_kafka_error_type",
]
