"""Health probe HTTP server for liveness and readiness checks."""

from healthprobe.errors import (
    AlreadyStartedError,
    BindError,
    EvaluationError,
    ProbeServerError,
    ShutdownRequested,
)
from healthprobe.evaluator import HealthCheckRegistry, HealthEvaluator, StaticHealthEvaluator
from healthprobe.lifecycle import ProbeService
from healthprobe.models import HealthCheckEntry, HealthResult, HealthStatus, ServerConfig, ServerState
from healthprobe.server import ProbeServer

__all__ = [
    "AlreadyStartedError",
    "BindError",
    "EvaluationError",
    "HealthCheckEntry",
    "HealthCheckRegistry",
    "HealthEvaluator",
    "HealthResult",
    "HealthStatus",
    "ProbeServer",
    "ProbeServerError",
    "ProbeService",
    "ServerConfig",
    "ServerState",
    "ShutdownRequested",
    "StaticHealthEvaluator",
]
