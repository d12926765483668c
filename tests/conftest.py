"""
pytest configuration for mobility stream tests.

Adds src directory to Python path for imports and resets shared logging
and configuration state between tests.
"""

import sys
from pathlib import Path

import pytest

# Add src directory to Python path
src_dir = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_dir))

from config.config import reset_config  # noqa: E402
from core.logging import context as log_context  # noqa: E402

# Environment variables that load_config() reads as overrides
CONFIG_ENV_VARS = (
    "KAFKA_BOOTSTRAP_SERVERS",
    "KAFKA_SECURITY_PROTOCOL",
    "EVENT_GENERATION_TOPIC",
    "EVENT_GENERATION_INTERVAL_MS",
    "EVENT_GENERATION_ENABLED",
    "EVENT_GENERATION_MAX_EVENTS",
    "PROCESSOR_TOPIC",
    "PROCESSOR_CONSUMER_GROUP",
    "MOBILITY_CONFIG",
)


def _clear_log_context():
    log_context._worker_context.set({})
    log_context._record_context.set({})


@pytest.fixture(autouse=True)
def _isolate_state(monkeypatch):
    for name in CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    _clear_log_context()
    reset_config()
    yield
    _clear_log_context()
    reset_config()
