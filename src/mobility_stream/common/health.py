"""
Health check endpoints for mobility stream workers.

Provides Kubernetes-compatible health check endpoints:
- /health/live - Liveness probe (is the worker process serving?)
- /health/ready - Readiness probe (is the worker connected to the broker?)

Usage:
    from mobility_stream.common.health import HealthCheckServer

    health_server = HealthCheckServer(
        port=8080,
        worker_name="event-generator",
        readiness_check=lambda: producer.is_started,
    )
    await health_server.start()
    ...
    await health_server.stop()
"""

import logging
from collections.abc import Callable
from datetime import UTC, datetime

from aiohttp import web

logger = logging.getLogger(__name__)

# errno for "address already in use" on Linux and Windows
_ADDRESS_IN_USE = (98, 10048)


class HealthCheckServer:
    """
    HTTP server for liveness and readiness probes.

    Runs on the worker's own event loop. Readiness is computed on every
    request by calling ``readiness_check``; it returns 200 when the check
    is true and 503 otherwise. Liveness always returns 200 while the
    server is up.
    """

    def __init__(
        self,
        port: int | None = 8080,
        worker_name: str = "worker",
        readiness_check: Callable[[], bool] | None = None,
        host: str = "0.0.0.0",
    ):
        """
        Args:
            port: HTTP port to listen on. Use 0 for dynamic port assignment,
                  or None to disable the server
            worker_name: Name of the worker for logging and responses
            readiness_check: Callable returning True when the worker is ready
            host: Interface to bind
        """
        self.port = port
        self.host = host
        self.worker_name = worker_name
        self._readiness_check = readiness_check or (lambda: True)
        self._enabled = port is not None
        self._started_at = datetime.now(UTC)
        self._actual_port: int | None = None
        self._runner: web.AppRunner | None = None
        self._site: web.TCPSite | None = None

    async def handle_liveness(self, request: web.Request) -> web.Response:
        uptime_seconds = (datetime.now(UTC) - self._started_at).total_seconds()
        return web.json_response(
            {
                "status": "alive",
                "worker": self.worker_name,
                "uptime_seconds": int(uptime_seconds),
                "timestamp": datetime.now(UTC).isoformat(),
            },
            status=200,
        )

    async def handle_readiness(self, request: web.Request) -> web.Response:
        try:
            ready = bool(self._readiness_check())
        except Exception as e:
            logger.warning(
                "Readiness check raised",
                extra={"worker_name": self.worker_name, "error": str(e)},
            )
            ready = False

        return web.json_response(
            {
                "status": "ready" if ready else "not_ready",
                "worker": self.worker_name,
                "timestamp": datetime.now(UTC).isoformat(),
            },
            status=200 if ready else 503,
        )

    def create_app(self) -> web.Application:
        """Create aiohttp application with health endpoints."""
        app = web.Application()
        app.router.add_get("/health/live", self.handle_liveness)
        app.router.add_get("/health/ready", self.handle_readiness)
        return app

    async def _try_start_on_port(self, port: int) -> bool:
        runner = web.AppRunner(self.create_app())
        await runner.setup()
        site = web.TCPSite(runner, self.host, port, reuse_address=True)
        try:
            await site.start()
        except OSError as e:
            await runner.cleanup()
            if e.errno in _ADDRESS_IN_USE:
                return False
            raise

        self._runner = runner
        self._site = site
        sockets = site._server.sockets if site._server else None
        self._actual_port = sockets[0].getsockname()[1] if sockets else port
        return True

    async def start(self) -> None:
        """
        Start listening for probe requests.

        If the configured port is in use, falls back to dynamic port
        assignment. Startup failures are logged and the worker continues
        without health checks.
        """
        if not self._enabled:
            logger.debug(
                "Health check server is disabled, skipping start",
                extra={"worker_name": self.worker_name},
            )
            return

        if self._runner is not None:
            return

        try:
            started = await self._try_start_on_port(self.port)
            if not started and self.port != 0:
                logger.warning(
                    f"Port {self.port} in use, falling back to dynamic port assignment",
                    extra={"worker_name": self.worker_name, "port": self.port},
                )
                started = await self._try_start_on_port(0)
        except Exception as e:
            logger.error(
                f"Failed to start health check server: {e}",
                extra={"worker_name": self.worker_name, "port": self.port},
                exc_info=True,
            )
            started = False

        if not started:
            logger.warning(
                "Continuing without health checks",
                extra={"worker_name": self.worker_name},
            )
            self._enabled = False
            return

        logger.info(
            "Health check server started",
            extra={"worker_name": self.worker_name, "port": self._actual_port},
        )

    async def stop(self) -> None:
        if self._runner is None:
            return

        try:
            await self._runner.cleanup()
            logger.info(
                "Health check server stopped",
                extra={"worker_name": self.worker_name},
            )
        except Exception as e:
            logger.error(
                f"Error stopping health check server: {e}",
                extra={"worker_name": self.worker_name},
                exc_info=True,
            )
        finally:
            self._runner = None
            self._site = None
            self._actual_port = None

    @property
    def actual_port(self) -> int | None:
        """Port the server is listening on, or None when not running."""
        return self._actual_port

    @property
    def is_enabled(self) -> bool:
        return self._enabled


__all__ = ["HealthCheckServer"]
