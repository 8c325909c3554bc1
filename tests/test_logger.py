"""Tests for async logging setup."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest
import structlog

from healthprobe.logger import get_logger, setup_logging, stop_logging

if TYPE_CHECKING:
    from collections.abc import Iterator


@pytest.fixture(autouse=True)
def _restore_logging() -> Iterator[None]:
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    stop_logging()
    structlog.reset_defaults()
    root.handlers[:] = handlers
    root.setLevel(level)


def test_async_logging_writes(capsys: pytest.CaptureFixture[str]) -> None:
    """Log messages travel through the queue to stdout as JSON."""
    setup_logging(service="test-probe", level="info")
    structlog.get_logger("test_async").info("hello from async test", port=8081)
    stop_logging()

    out = capsys.readouterr().out
    assert '"event": "hello from async test"' in out
    assert '"service": "test-probe"' in out
    assert '"port": 8081' in out


def test_level_filters_debug(capsys: pytest.CaptureFixture[str]) -> None:
    setup_logging(service="test-probe", level="warning")
    structlog.get_logger("test_level").info("quiet")
    stop_logging()

    assert "quiet" not in capsys.readouterr().out


def test_stop_logging_is_idempotent() -> None:
    setup_logging(service="test-probe", level="info")
    logging.getLogger("test_flush").info("flush test message")
    stop_logging()
    stop_logging()


def test_setup_twice_replaces_listener() -> None:
    setup_logging(service="first", level="info")
    setup_logging(service="second", level="info")
    stop_logging()


def test_get_logger_binds_component(capsys: pytest.CaptureFixture[str]) -> None:
    setup_logging(service="test-probe", level="info")
    get_logger("probe_server").info("bound")
    stop_logging()

    assert '"component": "probe_server"' in capsys.readouterr().out
