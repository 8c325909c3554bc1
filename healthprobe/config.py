"""Probe configuration loaded from environment variables."""

from __future__ import annotations

import os

from healthprobe.constants import DEFAULT_HOSTNAME, DEFAULT_PATH, DEFAULT_PORT
from healthprobe.models import ServerConfig

_TRUTHY = frozenset({"1", "true", "yes", "on"})


def env_flag(name: str, default: bool = False) -> bool:
    """Read a boolean environment variable (``1/true/yes/on`` are true)."""
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUTHY


class ProbeSettings:
    """Configuration for the standalone probe process, loaded from environment variables.

    Prefix: HEALTHPROBE_ for every setting.
    """

    host: str
    port: int
    path: str
    use_tls: bool
    log_level: str
    log_service: str

    def __init__(self) -> None:
        self.host = os.environ.get("HEALTHPROBE_HOST", DEFAULT_HOSTNAME)
        self.port = int(os.environ.get("HEALTHPROBE_PORT", str(DEFAULT_PORT)))
        self.path = os.environ.get("HEALTHPROBE_PATH", DEFAULT_PATH)
        self.use_tls = env_flag("HEALTHPROBE_USE_TLS")
        self.log_level = os.environ.get("HEALTHPROBE_LOG_LEVEL", "info")
        self.log_service = os.environ.get("HEALTHPROBE_LOG_SERVICE", "healthprobe")

    def server_config(self) -> ServerConfig:
        """Build the validated listening configuration."""
        return ServerConfig(hostname=self.host, port=self.port, path=self.path, use_tls=self.use_tls)
