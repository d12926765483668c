"""Synthetic mobility event generation."""

from mobility_stream.generator.events import EventType, MobilityEvent, produce_event
from mobility_stream.generator.generator import EventGenerator, GeneratorState

__all__ = [
    "EventGenerator",
    "EventType",
    "GeneratorState",
    "MobilityEvent",
    "produce_event",
]
