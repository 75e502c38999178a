"""
Status server for the explorer engine.

Provides HTTP endpoints for:
- /explorer/v0/health - Health check endpoint
- /explorer/v0/stats - Latest published network statistics
- /metrics - Prometheus metrics endpoint
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from aiohttp import web

from chert_explorer.services.metrics import generate_metrics
from chert_explorer.types import NetworkStatistics

logger = logging.getLogger(__name__)


def _no_stats() -> NetworkStatistics | None:
    """Default statistics getter that returns None."""
    return None


async def _handle_health(_request: web.Request) -> web.Response:
    """Handle health check endpoint."""
    return web.json_response({"status": "healthy", "service": "chert-explorer"})


async def _handle_metrics(_request: web.Request) -> web.Response:
    """Handle Prometheus metrics endpoint."""
    return web.Response(
        body=generate_metrics(),
        content_type="text/plain; version=0.0.4",
        charset="utf-8",
    )


@dataclass(frozen=True, slots=True)
class ApiServerConfig:
    """Configuration for the status server."""

    host: str = "127.0.0.1"
    """Host address to bind to."""

    port: int = 5053
    """Port to listen on."""

    enabled: bool = True
    """Whether the status server is enabled."""


@dataclass(slots=True)
class ApiServer:
    """
    HTTP status server for a running explorer engine.

    Serves read-only views of the published state. It never triggers a
    refresh or a node request.
    """

    config: ApiServerConfig
    """Server configuration."""

    stats_getter: Callable[[], NetworkStatistics | None] = _no_stats
    """Callable that returns the latest statistics, or None before the first cycle."""

    _runner: web.AppRunner | None = field(default=None, init=False)
    """The aiohttp application runner."""

    _site: web.TCPSite | None = field(default=None, init=False)
    """The TCP site for the server."""

    _stop_task: asyncio.Task[None] | None = field(default=None, init=False)
    """Pending shutdown started by `stop`, held so it is not collected early."""

    @property
    def stats(self) -> NetworkStatistics | None:
        """Get the latest published statistics."""
        return self.stats_getter()

    @property
    def is_running(self) -> bool:
        return self._runner is not None

    async def start(self) -> None:
        """Start the status server in the background."""
        if not self.config.enabled:
            logger.info("Status server is disabled")
            return

        app = web.Application()
        app.add_routes(
            [
                web.get("/explorer/v0/health", _handle_health),
                web.get("/explorer/v0/stats", self._handle_stats),
                web.get("/metrics", _handle_metrics),
            ]
        )

        self._runner = web.AppRunner(app)
        await self._runner.setup()

        self._site = web.TCPSite(self._runner, self.config.host, self.config.port)
        await self._site.start()

        logger.info(f"Status server listening on {self.config.host}:{self.config.port}")

    async def run(self) -> None:
        """
        Run the status server until shutdown.

        This method blocks until stop() is called.
        """
        await self.start()

        while self._runner is not None:
            await asyncio.sleep(1)

    def stop(self) -> asyncio.Task[None] | None:
        """
        Request graceful shutdown without waiting for it.

        Returns:
            The shutdown task, or None if the server is not running.
        """
        if self._runner is None:
            return None
        if self._stop_task is None or self._stop_task.done():
            self._stop_task = asyncio.create_task(self.aclose())
        return self._stop_task

    async def aclose(self) -> None:
        """Stop the server and wait until the socket is released."""
        if self._runner:
            runner, self._runner = self._runner, None
            self._site = None
            await runner.cleanup()
            logger.info("Status server stopped")

    async def _handle_stats(self, _request: web.Request) -> web.Response:
        """
        Handle the network statistics endpoint.

        Returns the latest `NetworkStatistics` as camelCase JSON at
        /explorer/v0/stats, or 503 before the engine has produced any.
        """
        stats = self.stats
        if stats is None:
            raise web.HTTPServiceUnavailable(reason="No statistics published yet")
        return web.json_response(stats.model_dump(mode="json", by_alias=True))
