"""Mobility stream worker orchestration. Use --help for usage."""

import argparse
import asyncio
import logging
import os
import socket
import sys
from pathlib import Path

from dotenv import load_dotenv
from prometheus_client import start_http_server

from config.config import MobilityConfig, load_config
from core.errors.exceptions import ConfigurationError, PipelineError
from core.errors.kafka_classifier import classify_error
from core.logging.setup import setup_logging
from core.utils import generate_worker_id
from mobility_stream.common.signals import (
    ShutdownCoordinator,
    remove_shutdown_signal_handlers,
    setup_shutdown_signal_handlers,
)
from mobility_stream.runners.registry import WORKER_REGISTRY, run_worker_from_registry

# __main__.py is at src/mobility_stream/__main__.py, so root is 3 levels up
PROJECT_ROOT = Path(__file__).parent.parent.parent

WORKER_STAGES = list(WORKER_REGISTRY.keys())

EXIT_OK = 0
EXIT_FATAL = 1

# Placeholder logger until setup_logging() is called in main()
logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="python -m mobility_stream",
        description="Run mobility stream workers",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Run generator and processor in one process
    python -m mobility_stream

    # Run only the generator, 50 events at 100ms spacing
    python -m mobility_stream --worker event-generator --max-events 50 --interval-ms 100

    # Run only the processor, logging to stdout
    python -m mobility_stream --worker analytics-processor --log-to-stdout
        """,
    )

    parser.add_argument(
        "--worker",
        choices=WORKER_STAGES + ["all"],
        default="all",
        help="Which worker(s) to run (default: all)",
    )

    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to config YAML (default: MOBILITY_CONFIG env var or bundled config.yaml)",
    )

    parser.add_argument(
        "--metrics-port",
        type=int,
        default=8000,
        help="Port for Prometheus metrics server (default: 8000, 0 disables)",
    )

    parser.add_argument(
        "--health-port",
        type=int,
        default=8080,
        help="Port for health check endpoints (default: 8080, 0 = dynamic, -1 disables)",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level (default: INFO)",
    )

    parser.add_argument(
        "--log-dir",
        type=str,
        default=None,
        help="Log directory path (default: from LOG_DIR env var, config, or ./logs)",
    )

    parser.add_argument(
        "--log-to-stdout",
        action="store_true",
        help="Send all log output to stdout only, skipping file handlers. "
        "Can also be set via LOG_TO_STDOUT environment variable.",
    )

    parser.add_argument(
        "--max-events",
        type=int,
        default=None,
        help="Stop the generator after N published events (0 = unbounded)",
    )

    parser.add_argument(
        "--interval-ms",
        type=int,
        default=None,
        help="Milliseconds between generated events",
    )

    parser.add_argument(
        "--disable-generation",
        action="store_true",
        help="Start the generator in disabled mode (publishes nothing)",
    )

    return parser.parse_args(argv)


def start_metrics_server(preferred_port: int) -> int:
    """Start Prometheus metrics server with automatic port fallback.
    Returns actual port number that the server is listening on."""
    try:
        start_http_server(preferred_port)
        return preferred_port
    except OSError as e:
        if e.errno != 98:
            raise

        logger.info(
            "Port already in use, finding available port",
            extra={"port": preferred_port},
        )
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            s.bind(("", 0))
            s.listen(1)
            available_port = s.getsockname()[1]

        start_http_server(available_port)
        return available_port


def _env_flag(name: str) -> bool:
    return os.getenv(name, "false").lower() in ("true", "1", "yes")


def build_config(args: argparse.Namespace) -> MobilityConfig:
    """Load configuration and apply CLI generator overrides.

    Raises:
        ConfigurationError: If the configuration or an override is invalid
    """
    config_path = Path(args.config) if args.config else None
    config = load_config(config_path)
    config = config.with_generator_overrides(
        max_events=args.max_events,
        interval_ms=args.interval_ms,
        enabled=False if args.disable_generation else None,
    )
    config.generator.validate()
    return config


def _setup_logging(args: argparse.Namespace, worker_id: str, config: MobilityConfig | None) -> None:
    logging_config = config.logging_config if config else {}

    json_logs = os.getenv("JSON_LOGS")
    json_format = _env_flag("JSON_LOGS") if json_logs else bool(logging_config.get("json_logs", True))

    log_dir = Path(
        args.log_dir or os.getenv("LOG_DIR") or logging_config.get("log_dir") or "logs"
    )

    setup_logging(
        stage=args.worker,
        log_dir=log_dir,
        json_format=json_format,
        console_level=getattr(logging, args.log_level),
        worker_id=worker_id,
        log_to_stdout=args.log_to_stdout or _env_flag("LOG_TO_STDOUT"),
    )


def _health_port(args: argparse.Namespace) -> int | None:
    return None if args.health_port < 0 else args.health_port


async def run_workers(
    args: argparse.Namespace,
    config: MobilityConfig,
    coordinator: ShutdownCoordinator,
) -> None:
    """Run the selected worker(s) until they finish.

    In ``all`` mode, a fatal error in one worker triggers graceful shutdown
    of the others and is then re-raised.
    """
    worker_names = WORKER_STAGES if args.worker == "all" else [args.worker]
    tasks = [
        asyncio.create_task(
            run_worker_from_registry(
                name,
                config,
                coordinator.shutdown_event,
                health_port=_health_port(args),
            ),
            name=name,
        )
        for name in worker_names
    ]
    coordinator.track(*tasks)

    done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
    failed = [t for t in done if not t.cancelled() and t.exception() is not None]
    if failed:
        coordinator.shutdown_event.set()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        raise failed[0].exception()

    for task in tasks:
        if task.cancelled():
            raise asyncio.CancelledError()


async def main_async(args: argparse.Namespace, config: MobilityConfig) -> int:
    coordinator = ShutdownCoordinator(asyncio.Event())
    setup_shutdown_signal_handlers(coordinator.request_shutdown)

    try:
        await run_workers(args, config, coordinator)
    except asyncio.CancelledError:
        logger.info("Workers cancelled, shutting down...")
        return EXIT_OK
    except Exception as e:
        if isinstance(e, PipelineError):
            fields = e.log_fields()
        else:
            fields = {"error": str(e), "error_category": classify_error(e).value}
        logger.error(
            "Fatal error",
            extra=fields,
            exc_info=True,
        )
        return EXIT_FATAL
    finally:
        remove_shutdown_signal_handlers()

    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    global logger

    load_dotenv(PROJECT_ROOT / ".env")
    args = parse_args(argv)
    worker_id = os.getenv("WORKER_ID") or generate_worker_id(args.worker)

    config: MobilityConfig | None = None
    config_error: ConfigurationError | None = None
    try:
        config = build_config(args)
    except ConfigurationError as e:
        config_error = e

    _setup_logging(args, worker_id, config)
    logger = logging.getLogger(__name__)

    if config_error is not None:
        logger.error("Configuration error", extra=config_error.log_fields())
        return EXIT_FATAL

    logger.info("Worker ID: %s", worker_id)

    if args.metrics_port > 0:
        actual_port = start_metrics_server(args.metrics_port)
        logger.info("Metrics server started", extra={"port": actual_port})

    try:
        exit_code = asyncio.run(main_async(args, config))
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received, shutting down...")
        exit_code = EXIT_OK

    logger.info("Mobility stream shutdown complete (exit code %s)", exit_code)
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
