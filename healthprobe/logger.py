"""JSON log output for the probe server and its entry point.

Each record is one JSON object per line on stdout. Probe server records
carry ``component="probe_server"`` plus ``prefix``, ``port`` or ``client``
where they apply; the lifecycle adapter adds ``component="probe_service"``.
Every record gets the ``service`` name given to :func:`setup_logging`.
"""

from __future__ import annotations

import logging
import queue
import sys
from logging.handlers import QueueHandler, QueueListener
from typing import Any, Protocol

import structlog

_listener: QueueListener | None = None


class LogSink(Protocol):
    """The subset of a structlog logger the probe server writes to.

    Any object with these methods can be injected in place of structlog.
    """

    def debug(self, event: str, **kw: Any) -> Any: ...

    def info(self, event: str, **kw: Any) -> Any: ...

    def warning(self, event: str, **kw: Any) -> Any: ...

    def exception(self, event: str, **kw: Any) -> Any: ...


def get_logger(component: str) -> LogSink:
    """Return a structlog logger bound to *component*."""
    return structlog.get_logger().bind(component=component)


def setup_logging(service: str = "healthprobe", level: str = "info") -> None:
    """Route structlog records through a background listener to stdout as JSON.

    Calling it again replaces the previous listener, so tests and restarts
    may reconfigure freely. The accept thread only enqueues records.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    log_queue: queue.Queue[logging.LogRecord] = queue.Queue(maxsize=10_000)
    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setLevel(log_level)

    global _listener
    if _listener is not None:
        _listener.stop()
    _listener = QueueListener(log_queue, stream_handler, respect_handler_level=True)
    _listener.start()

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(QueueHandler(log_queue))
    root.setLevel(log_level)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            _add_service(service),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def stop_logging() -> None:
    """Drain queued records and stop the listener. Safe to call twice."""
    global _listener
    if _listener is not None:
        _listener.stop()
        _listener = None


def _add_service(service: str) -> structlog.types.Processor:
    """Processor stamping *service* on every record."""

    def processor(
        _logger: structlog.types.WrappedLogger,
        _method_name: str,
        event_dict: structlog.types.EventDict,
    ) -> structlog.types.EventDict:
        event_dict["service"] = service
        return event_dict

    return processor
