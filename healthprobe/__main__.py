"""Standalone entry point: serve a liveness probe until SIGINT/SIGTERM."""

from __future__ import annotations

import asyncio
import signal

import structlog

from healthprobe.config import ProbeSettings
from healthprobe.evaluator import StaticHealthEvaluator
from healthprobe.lifecycle import ProbeService
from healthprobe.logger import setup_logging, stop_logging
from healthprobe.server import ProbeServer

logger = structlog.get_logger()


async def main() -> None:
    """Run a probe server with a static Healthy evaluator until signalled."""
    settings = ProbeSettings()
    setup_logging(service=settings.log_service, level=settings.log_level)

    server = ProbeServer.from_config(settings.server_config(), StaticHealthEvaluator())
    service = ProbeService(server)

    shutdown = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, shutdown.set)

    try:
        await service.start()
        await shutdown.wait()
        logger.info("shutdown signal received")
        await service.stop()
    finally:
        stop_logging()


def run() -> None:
    """Console script wrapper around :func:`main`."""
    asyncio.run(main())


if __name__ == "__main__":
    run()


__all__ = ["main", "run"]
