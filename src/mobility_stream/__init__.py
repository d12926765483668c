"""Mobility event streaming: a periodic event generator and an analytics processor.

The generator publishes synthetic vehicle telemetry to a Kafka topic keyed
by vehicle id; the processor consumes that topic and hands each record to
an analytics handler.

Run with ``python -m mobility_stream --help``.
"""

__version__ = "0.1.0"
