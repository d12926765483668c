"""Topic consumption and per-record handling."""

from mobility_stream.processor.handlers import EventHandler, LoggingEventHandler
from mobility_stream.processor.runner import PipelineRunner
from mobility_stream.processor.stream_consumer import StreamConsumer

__all__ = [
    "EventHandler",
    "LoggingEventHandler",
    "PipelineRunner",
    "StreamConsumer",
]
