"""Health evaluators consumed by the probe server.

The server only depends on :class:`HealthEvaluator`. The two concrete
evaluators here cover the common cases: a fixed answer for pure liveness
probes, and a registry of named checks aggregated by worst status.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Protocol

import structlog

from healthprobe.errors import ShutdownRequested
from healthprobe.models import HealthCheckEntry, HealthResult, HealthStatus

if TYPE_CHECKING:
    import threading
    from collections.abc import Callable

    CheckResult = HealthStatus | HealthCheckEntry | bool
    HealthCheck = Callable[[threading.Event], CheckResult]

logger = structlog.get_logger()


class HealthEvaluator(Protocol):
    """Produces a health verdict for one probe.

    *cancel* is the server's stop signal. Long evaluations should check it
    and raise :class:`ShutdownRequested` once it is set.
    """

    def evaluate(self, cancel: threading.Event) -> HealthResult: ...


class StaticHealthEvaluator:
    """Evaluator that always reports the same status."""

    def __init__(self, status: HealthStatus = HealthStatus.HEALTHY, message: str | None = None) -> None:
        self.status = status
        self.message = message

    def evaluate(self, cancel: threading.Event) -> HealthResult:
        return HealthResult(status=self.status, message=self.message)


class HealthCheckRegistry:
    """Runs registered checks in order and reports the worst status.

    A check receives the stop signal and returns a :class:`HealthStatus`,
    a :class:`HealthCheckEntry`, or a bool (``False`` maps to the check's
    failure status). A check that raises is reported with its failure
    status and the exception message.

    Example:
        registry = HealthCheckRegistry()

        @registry.check("database")
        def database(cancel: threading.Event) -> bool:
            return db.ping()

        server = ProbeServer(8081, registry)
    """

    def __init__(self) -> None:
        self._checks: dict[str, tuple[HealthCheck, HealthStatus]] = {}

    def register(
        self,
        name: str,
        check: HealthCheck,
        *,
        failure_status: HealthStatus = HealthStatus.UNHEALTHY,
    ) -> None:
        """Add *check* under *name*. Names must be unique."""
        if name in self._checks:
            raise ValueError(f"health check {name!r} is already registered")
        self._checks[name] = (check, failure_status)

    def check(
        self,
        name: str,
        *,
        failure_status: HealthStatus = HealthStatus.UNHEALTHY,
    ) -> Callable[[HealthCheck], HealthCheck]:
        """Decorator form of :meth:`register`."""

        def decorator(fn: HealthCheck) -> HealthCheck:
            self.register(name, fn, failure_status=failure_status)
            return fn

        return decorator

    @property
    def names(self) -> list[str]:
        return list(self._checks)

    def evaluate(self, cancel: threading.Event) -> HealthResult:
        entries: dict[str, HealthCheckEntry] = {}
        for name, (check, failure_status) in self._checks.items():
            if cancel.is_set():
                raise ShutdownRequested(f"health evaluation interrupted before check {name!r}")
            entries[name] = self._run_check(name, check, failure_status, cancel)

        status = HealthStatus.worst([entry.status for entry in entries.values()])
        failing = [name for name, entry in entries.items() if entry.status is not HealthStatus.HEALTHY]
        message = f"{status.value.lower()}: {', '.join(failing)}" if failing else None
        return HealthResult(status=status, message=message, entries=entries)

    @staticmethod
    def _run_check(
        name: str,
        check: HealthCheck,
        failure_status: HealthStatus,
        cancel: threading.Event,
    ) -> HealthCheckEntry:
        started = time.perf_counter()
        try:
            outcome = check(cancel)
        except ShutdownRequested:
            raise
        except Exception as exc:
            logger.warning("health check failed", check=name, error=str(exc))
            return HealthCheckEntry(
                status=failure_status,
                duration_ms=(time.perf_counter() - started) * 1000,
                error=str(exc) or type(exc).__name__,
            )
        duration_ms = (time.perf_counter() - started) * 1000

        if isinstance(outcome, HealthCheckEntry):
            return outcome.model_copy(update={"duration_ms": duration_ms})
        if isinstance(outcome, bool):
            status = HealthStatus.HEALTHY if outcome else failure_status
            return HealthCheckEntry(status=status, duration_ms=duration_ms)
        return HealthCheckEntry(status=HealthStatus(outcome), duration_ms=duration_ms)
