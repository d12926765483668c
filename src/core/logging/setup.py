"""Root logger configuration for a worker process."""

import logging
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from core.logging.context import set_log_context
from core.logging.formatters import ConsoleFormatter, JSONFormatter

DEFAULT_LOG_DIR = Path("logs")
BACKUP_DAYS = 7
PLAIN_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Client libraries that log every reconnect and rebalance at INFO
QUIET_LOGGERS = ("aiokafka", "aiohttp.access", "asyncio")


def log_file_path(log_dir: Path, stage: str | None = None) -> Path:
    """``logs/event-generator/event-generator.log``; rotated files get a date suffix."""
    name = stage or "mobility"
    return log_dir / name / f"{name}.log"


def setup_logging(
    stage: str | None = None,
    log_dir: Path | None = None,
    json_format: bool = True,
    console_level: int = logging.INFO,
    worker_id: str | None = None,
    log_to_stdout: bool = False,
) -> None:
    """
    Replace the root logger's handlers.

    A console handler at ``console_level`` is always installed. Unless
    ``log_to_stdout`` is set, a DEBUG-level file handler rotating at
    midnight is added under ``log_dir/<stage>/``, writing JSON lines when
    ``json_format`` is true.
    """
    set_log_context(stage=stage, worker_id=worker_id)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for handler in list(root.handlers):
        root.removeHandler(handler)

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(console_level)
    console.setFormatter(ConsoleFormatter())
    root.addHandler(console)

    if not log_to_stdout:
        path = log_file_path(log_dir or DEFAULT_LOG_DIR, stage)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = TimedRotatingFileHandler(
            path, when="midnight", backupCount=BACKUP_DAYS, encoding="utf-8"
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(JSONFormatter() if json_format else logging.Formatter(PLAIN_FORMAT))
        root.addHandler(file_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(
        "Logging initialized",
        extra={"path": None if log_to_stdout else str(path)},
    )


def log_worker_startup(
    logger: logging.Logger,
    stage: str,
    bootstrap_servers: str,
    **settings: object,
) -> None:
    """Log the broker and settings a worker starts with, one line each.

    Generator and processor both log this first, so a topic or broker
    mismatch between them shows up at the top of each log.
    """
    logger.info(
        "Starting %s against %s",
        stage,
        bootstrap_servers,
        extra={"bootstrap_servers": bootstrap_servers},
    )
    for name, value in settings.items():
        logger.info("  %s: %s", name.replace("_", " "), value)
