"""
Core library: transport-agnostic building blocks for the mobility workers.

Modules:
    logging     - Structured JSON/console logging with context propagation
    errors      - Error classification and exception hierarchy
    utils       - JSON serialization and worker id helpers

Design Principles:
    - No dependencies on the mobility_stream package
    - All modules are independently testable
"""

from .types import ErrorCategory

__version__ = "0.1.0"

__all__ = [
    "ErrorCategory",
]
