"""
Tests for Kafka error classification.
"""

import pytest
from aiokafka.errors import (
    KafkaConnectionError,
    KafkaTimeoutError,
    TopicAuthorizationFailedError,
    UnknownTopicOrPartitionError,
)

from core.errors.exceptions import ConfigurationError, PublishError, SubscriptionError
from core.errors.kafka_classifier import (
    KAFKA_ERROR_MAPPINGS,
    classify_error,
    classify_kafka_error_type,
)
from core.types import ErrorCategory


class TestKafkaErrorTypeClassification:
    """Test Kafka error type classification by name."""

    @pytest.mark.parametrize("category", list(KAFKA_ERROR_MAPPINGS))
    def test_every_mapped_name_resolves_to_its_category(self, category):
        for error_type in KAFKA_ERROR_MAPPINGS[category]:
            assert classify_kafka_error_type(error_type) == category

    def test_unknown_name_returns_none(self):
        assert classify_kafka_error_type("SomethingElseError") is None


class TestClassifyError:
    def test_aiokafka_connection_error_is_transient(self):
        assert classify_error(KafkaConnectionError("no brokers")) == ErrorCategory.TRANSIENT

    def test_aiokafka_timeout_is_transient(self):
        assert classify_error(KafkaTimeoutError()) == ErrorCategory.TRANSIENT

    def test_topic_authorization_is_auth(self):
        assert classify_error(TopicAuthorizationFailedError()) == ErrorCategory.AUTH

    def test_unknown_topic_is_permanent(self):
        assert classify_error(UnknownTopicOrPartitionError()) == ErrorCategory.PERMANENT

    def test_subclass_of_mapped_error_uses_parent_mapping(self):
        class WrappedConnectionError(KafkaConnectionError):
            pass

        assert classify_error(WrappedConnectionError()) == ErrorCategory.TRANSIENT

    def test_builtin_connection_errors_are_transient(self):
        assert classify_error(ConnectionRefusedError()) == ErrorCategory.TRANSIENT
        assert classify_error(TimeoutError()) == ErrorCategory.TRANSIENT

    def test_value_errors_are_permanent(self):
        assert classify_error(ValueError("bad payload")) == ErrorCategory.PERMANENT

    def test_pipeline_error_keeps_its_category(self):
        assert classify_error(PublishError("x", topic="t")) == ErrorCategory.TRANSIENT
        assert classify_error(ConfigurationError("x")) == ErrorCategory.PERMANENT
        error = SubscriptionError(
            "x",
            topic="mobility-events",
            consumer_group="analytics-engine",
            category=ErrorCategory.AUTH,
        )
        assert classify_error(error) == ErrorCategory.AUTH

    def test_message_markers(self):
        assert classify_error(RuntimeError("Authentication rejected")) == ErrorCategory.AUTH
        assert classify_error(RuntimeError("broker went away")) == ErrorCategory.TRANSIENT

    def test_unclassified(self):
        assert classify_error(RuntimeError("boom")) == ErrorCategory.UNKNOWN
