"""Tests for environment-based probe settings."""

from __future__ import annotations

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from healthprobe.config import ProbeSettings, env_flag


def test_defaults() -> None:
    with patch.dict(os.environ, {}, clear=True):
        settings = ProbeSettings()

    assert settings.host == "+"
    assert settings.port == 8081
    assert settings.path == "/health"
    assert settings.use_tls is False
    assert settings.log_level == "info"
    assert settings.log_service == "healthprobe"
    assert settings.server_config().prefix == "http://+:8081/health/"


def test_env_overrides() -> None:
    env = {
        "HEALTHPROBE_HOST": "0.0.0.0",
        "HEALTHPROBE_PORT": "9443",
        "HEALTHPROBE_PATH": "/status/ready/",
        "HEALTHPROBE_USE_TLS": "true",
        "HEALTHPROBE_LOG_LEVEL": "debug",
    }
    with patch.dict(os.environ, env, clear=True):
        config = ProbeSettings().server_config()

    assert config.prefix == "https://0.0.0.0:9443/status/ready/"


@pytest.mark.parametrize(("raw", "expected"), [("1", True), ("YES", True), (" on ", True), ("0", False), ("no", False)])
def test_env_flag(raw: str, expected: bool) -> None:
    with patch.dict(os.environ, {"FLAG": raw}):
        assert env_flag("FLAG") is expected


def test_env_flag_default() -> None:
    with patch.dict(os.environ, {}, clear=True):
        assert env_flag("FLAG", default=True) is True


def test_invalid_port_rejected() -> None:
    with patch.dict(os.environ, {"HEALTHPROBE_PORT": "70000"}, clear=True):
        settings = ProbeSettings()

    with pytest.raises(ValidationError):
        settings.server_config()
