"""
Structured logging: JSON files and console output tagged with worker and
record context.
"""

from core.logging.context import (
    get_log_context,
    get_record_context,
    record_log_context,
    set_log_context,
)
from core.logging.formatters import ConsoleFormatter, JSONFormatter
from core.logging.periodic_logger import PeriodicStatsLogger
from core.logging.setup import log_file_path, log_worker_startup, setup_logging

__all__ = [
    "ConsoleFormatter",
    "JSONFormatter",
    "PeriodicStatsLogger",
    "get_log_context",
    "get_record_context",
    "log_file_path",
    "log_worker_startup",
    "record_log_context",
    "set_log_context",
    "setup_logging",
]
