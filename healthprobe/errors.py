"""Exceptions raised by the probe server and by cooperative health checks."""

from __future__ import annotations


class ProbeServerError(Exception):
    """Base class for lifecycle errors raised by the probe server."""


class AlreadyStartedError(ProbeServerError):
    """Raised when ``start()`` is called while the server is running or stopping."""

    def __init__(self, prefix: str) -> None:
        self.prefix = prefix
        super().__init__(f"probe server for {prefix} has already been started")


class BindError(ProbeServerError):
    """Raised when the listening socket cannot be bound.

    The underlying ``OSError`` is chained as ``__cause__``.
    """

    def __init__(self, address: tuple[str, int], reason: str) -> None:
        self.address = address
        self.reason = reason
        host, port = address
        super().__init__(f"cannot bind probe server to {host or '*'}:{port}: {reason}")


class EvaluationError(ProbeServerError):
    """Raised by an evaluator to report a failure with a client-facing message.

    Any exception escaping an evaluator is answered with a 503; this class
    only exists so evaluators have a dedicated type to raise.
    """


class ShutdownRequested(Exception):  # noqa: N818
    """Raised by cooperative code when the stop signal has been set.

    Deliberately not a :class:`ProbeServerError`: the accept loop treats it
    as a normal shutdown rather than a failure.
    """
