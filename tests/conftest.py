"""Shared fixtures for the probe server test suite."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from healthprobe.server import ProbeServer
from tests.fake_evaluator import FakeEvaluator

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

LOCALHOST = "127.0.0.1"


@pytest.fixture
def make_server() -> Iterator[Callable[..., ProbeServer]]:
    """Factory for localhost servers on ephemeral ports; every server is stopped at teardown."""
    servers: list[ProbeServer] = []

    def factory(evaluator: object | None = None, **kwargs: object) -> ProbeServer:
        kwargs.setdefault("hostname", LOCALHOST)
        port = kwargs.pop("port", 0)
        server = ProbeServer(port, evaluator or FakeEvaluator(), **kwargs)  # type: ignore[arg-type]
        servers.append(server)
        return server

    yield factory

    for server in servers:
        server.stop()
