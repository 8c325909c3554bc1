"""Domain models for health results and probe server configuration."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from healthprobe.constants import DEFAULT_HOSTNAME, DEFAULT_PATH, MAX_PORT, WILDCARD_HOSTNAMES


class HealthStatus(StrEnum):
    """Aggregate health verdict. The value is the keyword written to the probe body."""

    UNHEALTHY = "Unhealthy"
    DEGRADED = "Degraded"
    HEALTHY = "Healthy"

    @property
    def severity(self) -> int:
        """Rank used for worst-status aggregation: lower is worse."""
        return _SEVERITY[self]

    @classmethod
    def worst(cls, statuses: list[HealthStatus]) -> HealthStatus:
        """Return the worst of *statuses*, or HEALTHY when empty."""
        if not statuses:
            return cls.HEALTHY
        return min(statuses, key=lambda s: s.severity)


_SEVERITY = {
    HealthStatus.UNHEALTHY: 0,
    HealthStatus.DEGRADED: 1,
    HealthStatus.HEALTHY: 2,
}


class ServerState(StrEnum):
    """Lifecycle state of a probe server."""

    NOT_STARTED = "not_started"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"


class HealthCheckEntry(BaseModel):
    """Outcome of one named check inside a health evaluation."""

    status: HealthStatus
    description: str | None = None
    duration_ms: float = 0.0
    error: str | None = None


class HealthResult(BaseModel):
    """Verdict returned by a health evaluator for a single probe."""

    status: HealthStatus
    message: str | None = None
    entries: dict[str, HealthCheckEntry] = Field(default_factory=dict)

    @property
    def is_healthy(self) -> bool:
        return self.status is HealthStatus.HEALTHY


class ServerConfig(BaseModel):
    """Listening address of a probe server.

    ``path`` is stored without leading or trailing slashes; ``prefix``
    re-adds exactly one on each side.
    """

    model_config = ConfigDict(frozen=True)

    hostname: str = DEFAULT_HOSTNAME
    port: int = Field(ge=0, le=MAX_PORT)
    path: str = DEFAULT_PATH
    use_tls: bool = False

    @field_validator("hostname", mode="before")
    @classmethod
    def _strip_hostname(cls, v: str | None) -> str:
        """Treat a missing hostname as the wildcard."""
        return DEFAULT_HOSTNAME if v is None else str(v).strip()

    @field_validator("path", mode="before")
    @classmethod
    def _normalize_path(cls, v: str | None) -> str:
        """Drop surrounding slashes and empty segments: ``//a//b/`` becomes ``a/b``."""
        if v is None:
            return ""
        return "/".join(segment for segment in str(v).split("/") if segment)

    @property
    def scheme(self) -> str:
        return "https" if self.use_tls else "http"

    @property
    def is_ipv6(self) -> bool:
        return ":" in self.bind_host

    @property
    def bind_host(self) -> str:
        """Host handed to ``bind()``: wildcards become all interfaces, brackets are removed."""
        if self.hostname in WILDCARD_HOSTNAMES:
            return ""
        return self.hostname.removeprefix("[").removesuffix("]")

    @property
    def request_path(self) -> str:
        """Absolute URL path probes are served on."""
        return f"/{self.path}" if self.path else "/"

    @property
    def prefix(self) -> str:
        """Listening prefix, ``http{s}://{hostname}:{port}/{path}/``."""
        host = f"[{self.bind_host}]" if self.is_ipv6 else self.hostname
        suffix = f"{self.path}/" if self.path else ""
        return f"{self.scheme}://{host}:{self.port}/{suffix}"

    def matches(self, url_path: str) -> bool:
        """Return True if *url_path* (query string ignored) is served by this config.

        Comparison is case-insensitive: ``/Health`` and ``/health`` are the same endpoint.
        """
        if not self.path:
            return True
        path = url_path.split("?", 1)[0].split("#", 1)[0]
        normalized = "/".join(segment for segment in path.split("/") if segment).casefold()
        served = self.path.casefold()
        return normalized == served or normalized.startswith(f"{served}/")
