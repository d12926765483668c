"""Mobility stream configuration from YAML file.

Loads from config/config.yaml with all settings in one place:
- Kafka connection settings shared by producer and consumer
- Event generator settings (topic, interval, enabled, max events)
- Analytics processor settings (topic, consumer group, shutdown grace)

Environment variables ARE supported using ${VAR_NAME} syntax in YAML files,
and a small set of well-known variables override the loaded values.
"""

import logging
import os
import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from core.errors.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def load_yaml(path: Path) -> Dict[str, Any]:
    """Load YAML file and return dict."""
    if not path.exists():
        return {}
    with open(path, "r") as f:
        return yaml.safe_load(f) or {}


def _expand_env_vars(data: Any) -> Any:
    """Recursively expand ${VAR_NAME} and ${VAR_NAME:-default} environment variables in config data."""
    if isinstance(data, dict):
        return {key: _expand_env_vars(value) for key, value in data.items()}
    elif isinstance(data, list):
        return [_expand_env_vars(item) for item in data]
    elif isinstance(data, str):
        pattern = r"\$\{([^}:]+)(?::-(([^}]*))?)?\}"

        def replacer(match):
            var_name = match.group(1)
            default_value = match.group(2) if match.group(2) is not None else match.group(0)
            return os.getenv(var_name, default_value)

        return re.sub(pattern, replacer, data)
    else:
        return data


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("true", "1", "yes", "on")


# Default config file: config/config.yaml in src/ directory
DEFAULT_CONFIG_FILE = Path(__file__).parent / "config.yaml"


@dataclass
class MessageConfig:
    """Kafka connection configuration shared by producers and consumers.

    All timing values in milliseconds.
    """

    bootstrap_servers: str = ""
    security_protocol: str = "PLAINTEXT"
    sasl_mechanism: str = "PLAIN"
    sasl_plain_username: str = ""
    sasl_plain_password: str = ""
    request_timeout_ms: int = 40000
    metadata_max_age_ms: int = 300000  # 5 minutes
    connections_max_idle_ms: int = 540000  # 9 minutes

    # Free-form overrides forwarded to AIOKafkaProducer / AIOKafkaConsumer
    producer: Dict[str, Any] = field(default_factory=dict)
    consumer: Dict[str, Any] = field(default_factory=dict)

    _SECURITY_PROTOCOLS = ("PLAINTEXT", "SSL", "SASL_PLAINTEXT", "SASL_SSL")
    _SASL_MECHANISMS = ("PLAIN", "SCRAM-SHA-256", "SCRAM-SHA-512")

    def validate(self) -> None:
        if not self.bootstrap_servers:
            raise ConfigurationError(
                "kafka.bootstrap_servers is required (set KAFKA_BOOTSTRAP_SERVERS)"
            )
        if self.security_protocol not in self._SECURITY_PROTOCOLS:
            raise ConfigurationError(
                f"Invalid kafka.security_protocol: {self.security_protocol}. "
                f"Must be one of {list(self._SECURITY_PROTOCOLS)}"
            )
        if "SASL" in self.security_protocol and self.sasl_mechanism not in self._SASL_MECHANISMS:
            raise ConfigurationError(
                f"Invalid kafka.sasl_mechanism: {self.sasl_mechanism}. "
                f"Must be one of {list(self._SASL_MECHANISMS)}"
            )


@dataclass(frozen=True)
class GeneratorConfig:
    """Event generator settings, immutable for the process lifetime."""

    topic: str = "mobility-events"
    interval_ms: int = 1000
    enabled: bool = True
    max_events: int = 0  # 0 = unbounded

    @property
    def interval_seconds(self) -> float:
        return self.interval_ms / 1000.0

    @property
    def bounded(self) -> bool:
        return self.max_events > 0

    def validate(self) -> None:
        if not self.topic:
            raise ConfigurationError("generator.topic must not be empty")
        if self.interval_ms < 0:
            raise ConfigurationError(
                f"generator.interval_ms must be >= 0, got {self.interval_ms}"
            )
        if self.max_events < 0:
            raise ConfigurationError(
                f"generator.max_events must be >= 0 (0 = unbounded), got {self.max_events}"
            )


@dataclass(frozen=True)
class ProcessorConfig:
    """Analytics processor settings."""

    topic: str = "mobility-events"
    consumer_group: str = "analytics-engine"
    auto_offset_reset: str = "earliest"
    shutdown_grace_seconds: float = 10.0
    stats_interval_seconds: int = 60

    def validate(self) -> None:
        if not self.topic:
            raise ConfigurationError("processor.topic must not be empty")
        if not self.consumer_group:
            raise ConfigurationError("processor.consumer_group must not be empty")
        if self.auto_offset_reset not in ("earliest", "latest"):
            raise ConfigurationError(
                f"processor.auto_offset_reset must be 'earliest' or 'latest', "
                f"got {self.auto_offset_reset}"
            )
        if self.shutdown_grace_seconds <= 0:
            raise ConfigurationError("processor.shutdown_grace_seconds must be > 0")


@dataclass
class MobilityConfig:
    """Top-level configuration.

    Configuration structure:
        kafka: {...}        # Shared connection settings
        generator: {...}    # Event generator
        processor: {...}    # Analytics processor
        logging: {...}      # Optional log_dir / json_logs
    """

    kafka: MessageConfig = field(default_factory=MessageConfig)
    generator: GeneratorConfig = field(default_factory=GeneratorConfig)
    processor: ProcessorConfig = field(default_factory=ProcessorConfig)
    logging_config: Dict[str, Any] = field(default_factory=dict)

    def validate(self) -> None:
        self.kafka.validate()
        self.generator.validate()
        self.processor.validate()

    def with_generator_overrides(self, **overrides: Any) -> "MobilityConfig":
        """Return a copy with generator fields replaced (None values ignored)."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        if not changes:
            return self
        return replace(self, generator=replace(self.generator, **changes))


# Environment variable -> (section, key, converter)
_ENV_OVERRIDES = {
    "KAFKA_BOOTSTRAP_SERVERS": ("kafka", "bootstrap_servers", str),
    "KAFKA_SECURITY_PROTOCOL": ("kafka", "security_protocol", str),
    "EVENT_GENERATION_TOPIC": ("generator", "topic", str),
    "EVENT_GENERATION_INTERVAL_MS": ("generator", "interval_ms", int),
    "EVENT_GENERATION_ENABLED": ("generator", "enabled", _parse_bool),
    "EVENT_GENERATION_MAX_EVENTS": ("generator", "max_events", int),
    "PROCESSOR_TOPIC": ("processor", "topic", str),
    "PROCESSOR_CONSUMER_GROUP": ("processor", "consumer_group", str),
}


def _apply_env_overrides(data: Dict[str, Any]) -> None:
    for env_name, (section, key, convert) in _ENV_OVERRIDES.items():
        raw = os.getenv(env_name)
        if raw is None or raw == "":
            continue
        try:
            data.setdefault(section, {})[key] = convert(raw)
        except ValueError as e:
            raise ConfigurationError(f"Invalid value for {env_name}: {raw!r}", cause=e)


def _build_section(cls, values: Dict[str, Any], section: str):
    known = {f for f in cls.__dataclass_fields__ if not f.startswith("_")}
    unknown = set(values) - known
    if unknown:
        logger.warning(
            "Ignoring unknown configuration keys",
            extra={"section": section, "keys": sorted(unknown)},
        )
    kwargs = {k: v for k, v in values.items() if k in known}
    try:
        return cls(**kwargs)
    except TypeError as e:
        raise ConfigurationError(f"Invalid {section} configuration", cause=e)


def _coerce_types(data: Dict[str, Any]) -> None:
    """YAML values produced by ${VAR} expansion arrive as strings."""
    generator = data.get("generator", {})
    for key in ("interval_ms", "max_events"):
        if isinstance(generator.get(key), str):
            generator[key] = int(generator[key])
    if "enabled" in generator:
        generator["enabled"] = _parse_bool(generator["enabled"])

    processor = data.get("processor", {})
    if isinstance(processor.get("shutdown_grace_seconds"), str):
        processor["shutdown_grace_seconds"] = float(processor["shutdown_grace_seconds"])
    if isinstance(processor.get("stats_interval_seconds"), str):
        processor["stats_interval_seconds"] = int(processor["stats_interval_seconds"])


def load_config(config_path: Optional[Path] = None) -> MobilityConfig:
    """Load configuration from YAML, then apply environment overrides.

    Merge priority (highest to lowest):
    1. Environment variables (KAFKA_BOOTSTRAP_SERVERS, EVENT_GENERATION_*, PROCESSOR_*)
    2. YAML configuration file
    3. Dataclass defaults

    Raises:
        ConfigurationError: If the resulting configuration is invalid
    """
    if config_path is None:
        env_path = os.getenv("MOBILITY_CONFIG")
        config_path = Path(env_path) if env_path else DEFAULT_CONFIG_FILE

    raw = _expand_env_vars(load_yaml(config_path))
    if config_path.exists():
        logger.debug("Loaded configuration file", extra={"path": str(config_path)})

    data = {
        "kafka": dict(raw.get("kafka") or {}),
        "generator": dict(raw.get("generator") or {}),
        "processor": dict(raw.get("processor") or {}),
    }
    _apply_env_overrides(data)
    try:
        _coerce_types(data)
    except ValueError as e:
        raise ConfigurationError("Invalid numeric value in configuration", cause=e)

    config = MobilityConfig(
        kafka=_build_section(MessageConfig, data["kafka"], "kafka"),
        generator=_build_section(GeneratorConfig, data["generator"], "generator"),
        processor=_build_section(ProcessorConfig, data["processor"], "processor"),
        logging_config=dict(raw.get("logging") or {}),
    )
    config.validate()
    return config


_config: Optional[MobilityConfig] = None


def get_config() -> MobilityConfig:
    global _config
    if _config is None:
        _config = load_config()
    return _config


def set_config(config: MobilityConfig) -> None:
    global _config
    _config = config


def reset_config() -> None:
    global _config
    _config = None
