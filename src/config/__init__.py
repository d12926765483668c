"""Configuration loading for the mobility stream workers.

Configuration Structure
-----------------------

config/
    config.yaml          # Kafka connection, generator and processor settings

Main Functions
--------------

    - load_config(): Load configuration from YAML + environment
    - get_config(): Get or load singleton config instance
    - set_config(): Replace the singleton (tests, CLI overrides)
    - reset_config(): Reset singleton config instance

Usage Examples
--------------

    >>> from config import get_config
    >>>
    >>> config = get_config()
    >>> config.kafka.bootstrap_servers
    'localhost:9092'
    >>> config.generator.interval_seconds
    1.0

Custom config path:
    >>> from pathlib import Path
    >>> config = load_config(config_path=Path("/custom/path/config.yaml"))

Configuration Priority
---------------------

1. Environment variables (KAFKA_BOOTSTRAP_SERVERS, EVENT_GENERATION_*, PROCESSOR_*)
2. YAML configuration file (MOBILITY_CONFIG or config/config.yaml)
3. Dataclass defaults
"""

from config.config import (
    GeneratorConfig,
    MessageConfig,
    MobilityConfig,
    ProcessorConfig,
    get_config,
    load_config,
    reset_config,
    set_config,
)

__all__ = [
    "load_config",
    "get_config",
    "set_config",
    "reset_config",
    "MobilityConfig",
    "MessageConfig",
    "GeneratorConfig",
    "ProcessorConfig",
]
