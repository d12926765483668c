"""
Prometheus metrics for generator and processor monitoring.

Focused on essential metrics:
- Events generated and publish failures
- Records consumed and handler failures
- Handler latency
- Connection and generator state
"""

from prometheus_client import Counter, Gauge, Histogram

events_generated_total = Counter(
    "mobility_events_generated_total",
    "Mobility events successfully published by the generator",
    ["topic", "event_type"],
)

event_publish_errors_total = Counter(
    "mobility_event_publish_errors_total",
    "Generator ticks whose publish failed and was dropped",
    ["topic", "error_category"],
)

records_consumed_total = Counter(
    "mobility_records_consumed_total",
    "Records delivered to the processor handler",
    ["topic", "consumer_group", "status"],
)

handler_errors_total = Counter(
    "mobility_handler_errors_total",
    "Handler invocations that raised",
    ["topic", "consumer_group", "error_type"],
)

handler_duration_seconds = Histogram(
    "mobility_handler_duration_seconds",
    "Time spent in the per-record handler",
    ["topic", "consumer_group"],
    buckets=(0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 30.0),
)

connection_status = Gauge(
    "mobility_connection_status",
    "1 when the transport client is connected",
    ["component"],
)

generator_state = Gauge(
    "mobility_generator_state",
    "1 for the generator's current state, 0 for the others",
    ["state"],
)


def record_event_generated(topic: str, event_type: str) -> None:
    events_generated_total.labels(topic=topic, event_type=event_type).inc()


def record_publish_error(topic: str, error_category: str) -> None:
    event_publish_errors_total.labels(topic=topic, error_category=error_category).inc()


def record_message_consumed(topic: str, consumer_group: str, success: bool) -> None:
    status = "success" if success else "error"
    records_consumed_total.labels(topic=topic, consumer_group=consumer_group, status=status).inc()


def record_handler_error(topic: str, consumer_group: str, error_type: str) -> None:
    handler_errors_total.labels(topic=topic, consumer_group=consumer_group, error_type=error_type).inc()


def update_connection_status(component: str, connected: bool) -> None:
    connection_status.labels(component=component).set(1 if connected else 0)


def update_generator_state(current: str, all_states: list[str]) -> None:
    for state in all_states:
        generator_state.labels(state=state).set(1 if state == current else 0)


def record_handler_duration(topic: str, consumer_group: str, duration_seconds: float) -> None:
    handler_duration_seconds.labels(topic=topic, consumer_group=consumer_group).observe(duration_seconds)
