"""Tests for the standalone entry point."""

from __future__ import annotations

import asyncio
import os
import signal
from unittest.mock import MagicMock, patch

import pytest

from healthprobe import __main__ as entry
from healthprobe.errors import BindError


@pytest.fixture
def probe_env() -> dict[str, str]:
    return {"HEALTHPROBE_HOST": "127.0.0.1", "HEALTHPROBE_PORT": "0"}


async def test_main_runs_until_sigterm(probe_env: dict[str, str]) -> None:
    setup, stop = MagicMock(), MagicMock()
    loop = asyncio.get_running_loop()
    loop.call_later(0.3, os.kill, os.getpid(), signal.SIGTERM)

    with (
        patch.dict(os.environ, probe_env, clear=True),
        patch.object(entry, "setup_logging", setup),
        patch.object(entry, "stop_logging", stop),
    ):
        await asyncio.wait_for(entry.main(), timeout=10)

    setup.assert_called_once_with(service="healthprobe", level="info")
    stop.assert_called_once_with()


async def test_main_surfaces_bind_error(probe_env: dict[str, str]) -> None:
    stop = MagicMock()
    service = MagicMock()
    service.start.side_effect = BindError(("127.0.0.1", 0), "Address already in use")

    with (
        patch.dict(os.environ, probe_env, clear=True),
        patch.object(entry, "setup_logging", MagicMock()),
        patch.object(entry, "stop_logging", stop),
        patch.object(entry, "ProbeService", return_value=service),
        pytest.raises(BindError),
    ):
        await entry.main()

    stop.assert_called_once_with()
