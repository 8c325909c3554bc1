"""Lifecycle adapter bridging an async host's start/stop hooks to a ProbeServer."""

from __future__ import annotations

from typing import TYPE_CHECKING

from healthprobe.logger import get_logger

if TYPE_CHECKING:
    from healthprobe.logger import LogSink
    from healthprobe.server import ProbeServer


class ProbeService:
    """Starts the probe server at host startup and stops it at shutdown."""

    def __init__(self, server: ProbeServer, logger: LogSink | None = None) -> None:
        self.server = server
        self._log = logger if logger is not None else get_logger("probe_service")

    async def start(self) -> None:
        self._log.info("starting health-check server", prefix=self.server.prefix)
        self.server.start()
        self._log.info("health-check server started", prefix=self.server.prefix)

    async def stop(self) -> None:
        self._log.info("stopping health-check server", prefix=self.server.prefix)
        await self.server.stop_async()
        self._log.info("health-check server stopped", prefix=self.server.prefix)
