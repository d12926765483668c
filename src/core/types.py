"""
Core types shared across modules.

The error category enum lives here so that both the exception hierarchy
and the Kafka classifier can import it without a cycle.
"""

from enum import Enum


class ErrorCategory(Enum):
    """
    Classification of error types for handling decisions.

    Categories:
        TRANSIENT: Temporary failures; the next attempt may succeed
                   (e.g., broker unavailable, request timeout)
        AUTH: Authentication or authorization failures
              (e.g., SASL handshake rejected, topic not authorized)
        PERMANENT: Failures that won't succeed on a later attempt
                   (e.g., unknown topic, oversized record, bad configuration)
        UNKNOWN: Unclassified errors
    """

    TRANSIENT = "transient"
    AUTH = "auth"
    PERMANENT = "permanent"
    UNKNOWN = "unknown"


__all__ = [
    "ErrorCategory",
]
