"""Single-endpoint HTTP server reporting process health to probes.

The server owns one listening socket and one background thread. Probes
are served one at a time on that thread; ``stop()`` wakes the thread,
waits for any in-flight probe to finish and releases the socket before
returning.
"""

from __future__ import annotations

import asyncio
import selectors
import socket
import socketserver
import ssl
import sys
import threading
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import TYPE_CHECKING

from healthprobe.constants import (
    ACCEPT_THREAD_NAME,
    BODY_ENCODING,
    CONTENT_TYPE,
    DEFAULT_HOSTNAME,
    DEFAULT_PATH,
    MESSAGE_CONTENT_TYPE,
    MESSAGE_ENCODING,
    REQUEST_TIMEOUT_SECONDS,
)
from healthprobe.errors import AlreadyStartedError, BindError, ShutdownRequested
from healthprobe.logger import get_logger
from healthprobe.models import HealthStatus, ServerConfig, ServerState

if TYPE_CHECKING:
    from types import TracebackType

    from healthprobe.evaluator import HealthEvaluator
    from healthprobe.logger import LogSink


class _ProbeHTTPServer(HTTPServer):
    """HTTPServer carrying the collaborators the request handler needs."""

    # A second listener on the same port must fail to bind.
    allow_reuse_port = False

    def __init__(
        self,
        config: ServerConfig,
        evaluator: HealthEvaluator,
        stop_event: threading.Event,
        log: LogSink,
        request_timeout: float,
        ssl_context: ssl.SSLContext | None = None,
    ) -> None:
        self.config = config
        self.evaluator = evaluator
        self.stop_event = stop_event
        self.log = log
        self.request_timeout = request_timeout
        self.address_family = socket.AF_INET6 if config.is_ipv6 else socket.AF_INET
        super().__init__((config.bind_host, config.port), ProbeRequestHandler)
        try:
            if ssl_context is not None:
                # The handshake runs in the handler, under the request timeout.
                self.socket = ssl_context.wrap_socket(
                    self.socket,
                    server_side=True,
                    do_handshake_on_connect=False,
                )
            # accept() must not block if the pending connection went away after select.
            self.socket.setblocking(False)
        except Exception:
            self.server_close()
            raise

    def server_bind(self) -> None:
        # Skip HTTPServer's reverse DNS lookup of the bind address.
        socketserver.TCPServer.server_bind(self)
        host, port = self.server_address[:2]
        self.server_name = str(host)
        self.server_port = port

    def handle_error(self, request: object, client_address: tuple[str, int]) -> None:
        exc = sys.exc_info()[1]
        if isinstance(exc, ShutdownRequested):
            self.log.debug("probe interrupted by shutdown", client=client_address[0])
            return
        self.log.exception("unhandled error serving probe", client=client_address[0])


class ProbeRequestHandler(BaseHTTPRequestHandler):
    """Answers a probe with the evaluator's status keyword."""

    server: _ProbeHTTPServer
    protocol_version = "HTTP/1.1"
    server_version = "healthprobe"

    def setup(self) -> None:
        self.timeout = self.server.request_timeout
        self._response_started = False
        super().setup()

    def handle(self) -> None:
        if isinstance(self.connection, ssl.SSLSocket):
            try:
                self.connection.do_handshake()
            except OSError as exc:
                self.server.log.debug("tls handshake failed", client=self.client_address[0], error=str(exc))
                self.close_connection = True
                return
        super().handle()

    def do_GET(self) -> None:  # noqa: N802 (BaseHTTPRequestHandler hook)
        self._serve_probe(include_body=True)

    def do_HEAD(self) -> None:  # noqa: N802 (BaseHTTPRequestHandler hook)
        self._serve_probe(include_body=False)

    def flush_headers(self) -> None:
        self._response_started = True
        super().flush_headers()

    def log_message(self, fmt: str, *args: object) -> None:
        self.server.log.debug("probe request", client=self.client_address[0], line=fmt % args)

    def log_error(self, fmt: str, *args: object) -> None:
        self.server.log.warning("probe request error", client=self.client_address[0], error=fmt % args)

    def _serve_probe(self, *, include_body: bool) -> None:
        try:
            if not self.server.config.matches(self.path):
                self._write(HTTPStatus.NOT_FOUND, "Not Found", include_body=include_body)
                return

            try:
                result = self.server.evaluator.evaluate(self.server.stop_event)
            except Exception as exc:
                # Nothing has been written yet, so the status line can still change.
                message = str(exc)
                self.server.log.warning(
                    "health evaluation failed",
                    error=message,
                    error_type=type(exc).__name__,
                )
                self._write(
                    HTTPStatus.SERVICE_UNAVAILABLE,
                    message if message.strip() else "",
                    include_body=include_body,
                    content_type=MESSAGE_CONTENT_TYPE,
                    encoding=MESSAGE_ENCODING,
                )
                return

            status = HealthStatus(result.status)
            code = HTTPStatus.OK if status is HealthStatus.HEALTHY else HTTPStatus.SERVICE_UNAVAILABLE
            self._write(code, status.value, include_body=include_body)
        except ShutdownRequested:
            self.server.log.debug("probe interrupted by shutdown", client=self.client_address[0])
        except Exception:
            self.server.log.exception("error handling probe", client=self.client_address[0], path=self.path)
            self._send_internal_error()
        finally:
            self._finish_response()

    def _write(
        self,
        code: HTTPStatus,
        body: str,
        *,
        include_body: bool,
        content_type: str = CONTENT_TYPE,
        encoding: str = BODY_ENCODING,
    ) -> None:
        payload = body.encode(encoding)
        self.send_response(code)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(payload)))
        self.send_header("Connection", "close")
        self.end_headers()
        if include_body and payload:
            self.wfile.write(payload)

    def _send_internal_error(self) -> None:
        if self._response_started:
            self.server.log.debug("response already started, keeping the sent status")
            return
        # Drop any half-built header block before writing a fresh status line.
        self._headers_buffer = []
        try:
            self._write(HTTPStatus.INTERNAL_SERVER_ERROR, "", include_body=False)
        except Exception as exc:
            self.server.log.debug("failed to send 500 response", error=str(exc))

    def _finish_response(self) -> None:
        self.close_connection = True
        try:
            self.wfile.flush()
        except (OSError, ValueError) as exc:
            self.server.log.debug("failed to flush probe response", error=str(exc))


class ProbeServer:
    """Serves health probes on ``http{s}://{hostname}:{port}/{path}/``.

    ``start()`` binds synchronously and returns once the accept loop thread
    is running. ``stop()`` raises the stop signal, wakes the loop, waits for
    the in-flight probe (if any) and returns after the socket is closed.

    Example:
        server = ProbeServer(8081, HealthCheckRegistry())
        server.start()
        ...
        server.stop()
    """

    request_timeout: float = REQUEST_TIMEOUT_SECONDS

    def __init__(
        self,
        port: int,
        evaluator: HealthEvaluator,
        *,
        hostname: str = DEFAULT_HOSTNAME,
        path: str = DEFAULT_PATH,
        use_tls: bool = False,
        ssl_context: ssl.SSLContext | None = None,
        logger: LogSink | None = None,
    ) -> None:
        self._config = ServerConfig(hostname=hostname, port=port, path=path, use_tls=use_tls)
        self._evaluator = evaluator
        self._ssl_context = ssl_context
        self._log = logger if logger is not None else get_logger("probe_server")
        self._lock = threading.Lock()
        self._state = ServerState.NOT_STARTED
        self._stop_event: threading.Event | None = None
        self._wakeup: tuple[socket.socket, socket.socket] | None = None
        self._httpd: _ProbeHTTPServer | None = None
        self._thread: threading.Thread | None = None
        self._loop_error: Exception | None = None

    @classmethod
    def from_config(cls, config: ServerConfig, evaluator: HealthEvaluator, **kwargs: object) -> ProbeServer:
        """Build a server from an existing :class:`ServerConfig`."""
        return cls(
            config.port,
            evaluator,
            hostname=config.hostname,
            path=config.path,
            use_tls=config.use_tls,
            **kwargs,  # type: ignore[arg-type]
        )

    @property
    def config(self) -> ServerConfig:
        return self._config

    @property
    def prefix(self) -> str:
        return self._config.prefix

    @property
    def state(self) -> ServerState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is ServerState.RUNNING

    @property
    def bound_port(self) -> int | None:
        """Port the listening socket is bound to, or None when not listening."""
        httpd = self._httpd
        if httpd is None:
            return None
        return int(httpd.server_address[1])

    def start(self) -> ProbeServer:
        """Bind the listening socket and launch the accept loop.

        Raises:
            AlreadyStartedError: The server is running or stopping.
            BindError: The address is in use or cannot be bound.
        """
        with self._lock:
            if self._state in (ServerState.RUNNING, ServerState.STOPPING):
                raise AlreadyStartedError(self.prefix)

            stop_event = threading.Event()
            wakeup = socket.socketpair()
            try:
                httpd = self._bind(stop_event)
            except BindError:
                for sock in wakeup:
                    sock.close()
                raise

            self._stop_event = stop_event
            self._wakeup = wakeup
            self._httpd = httpd
            self._loop_error = None
            self._thread = threading.Thread(
                target=self._serve,
                args=(httpd, stop_event, wakeup[0]),
                name=ACCEPT_THREAD_NAME,
                daemon=True,
            )
            self._state = ServerState.RUNNING
            self._thread.start()

        self._log.info("probe server started", prefix=self.prefix, port=self.bound_port)
        return self

    def stop(self) -> None:
        """Stop the accept loop and release the socket. Safe to call at any time.

        Re-raises an exception that terminated the accept loop, unless it was
        the shutdown signal itself.
        """
        with self._lock:
            if self._state in (ServerState.NOT_STARTED, ServerState.STOPPED):
                return
            if self._state is ServerState.RUNNING:
                self._state = ServerState.STOPPING
                self._signal_stop()
                self._log.info("stopping probe server", prefix=self.prefix)
            thread = self._thread

        if thread is not None:
            thread.join()

        with self._lock:
            if self._state is not ServerState.STOPPING:
                return  # Another caller finished the shutdown.
            error, self._loop_error = self._loop_error, None
            self._release()
            self._state = ServerState.STOPPED

        self._log.info("probe server stopped", prefix=self.prefix)
        if error is not None:
            raise error

    async def stop_async(self) -> None:
        """Awaitable :meth:`stop` that keeps the event loop free while joining."""
        await asyncio.to_thread(self.stop)

    def __enter__(self) -> ProbeServer:
        return self.start()

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.stop()

    def _bind(self, stop_event: threading.Event) -> _ProbeHTTPServer:
        config = self._config
        if config.use_tls and self._ssl_context is None:
            self._log.warning("tls requested without an ssl context, serving plain http", prefix=self.prefix)
        try:
            return _ProbeHTTPServer(
                config,
                self._evaluator,
                stop_event,
                self._log,
                self.request_timeout,
                self._ssl_context,
            )
        except OSError as exc:
            address = (config.bind_host, config.port)
            self._log.warning("probe server bind failed", prefix=self.prefix, error=str(exc))
            raise BindError(address, exc.strerror or str(exc)) from exc

    def _signal_stop(self) -> None:
        if self._stop_event is not None:
            self._stop_event.set()
        if self._wakeup is not None:
            try:
                self._wakeup[1].send(b"\0")
            except OSError as exc:
                # The loop still sees the stop signal after the request it is serving.
                self._log.debug("failed to wake accept loop", error=str(exc))

    def _release(self) -> None:
        if self._wakeup is not None:
            for sock in self._wakeup:
                sock.close()
        self._wakeup = None
        self._httpd = None
        self._thread = None
        self._stop_event = None

    def _serve(self, httpd: _ProbeHTTPServer, stop_event: threading.Event, wake_reader: socket.socket) -> None:
        """Accept loop: one probe at a time until the stop signal is set."""
        try:
            with selectors.DefaultSelector() as selector:
                selector.register(httpd, selectors.EVENT_READ)
                selector.register(wake_reader, selectors.EVENT_READ)
                while not stop_event.is_set():
                    ready = selector.select()
                    if stop_event.is_set():
                        break
                    if any(key.fileobj is httpd for key, _ in ready):
                        # Non-blocking accept: a vanished connection returns here instead of waiting.
                        httpd._handle_request_noblock()
        except ShutdownRequested:
            self._log.debug("accept loop interrupted by shutdown")
        except Exception as exc:
            self._loop_error = exc
            self._log.exception("accept loop failed", prefix=self.prefix)
        finally:
            httpd.server_close()
            self._log.debug("listening socket released", prefix=self.prefix)


__all__ = ["ProbeRequestHandler", "ProbeServer"]
