"""
=============================================================================
HTTP SERVER
=============================================================================

Ties the pieces together:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                          HTTPServer                                 │
    │                                                                      │
    │   SocketServer ──accept──► ThreadPool ──worker──► _process_connection│
    │                                                        │             │
    │                         ┌──────────────────────────────┘             │
    │                         ▼                                            │
    │   Connection.read_request() ─► Router.dispatch() ─► Response.to_bytes│
    │            ▲                                              │          │
    │            └──────────── keep-alive ◄─────────────────────┘          │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PER-CONNECTION LOOP
=============================================================================

    read_request()
        ├── None (peer closed / idle)  → close, nothing written
        ├── HTTPParseError             → 400/413 with the diagnostic, close
        ├── TimeoutError               → 408, close
        └── OSError                    → 500 (best effort), close
    dispatch()
        ├── handler found              → its Response
        ├── no handler                 → 404 "page not found"
        └── handler raised             → 500
    send_response()
    request.keep_alive ? loop : close

Every failure stays inside its own connection; nothing here stops the
process except a bind or accept failure in run().

=============================================================================
"""

import logging
import time
from typing import Callable, Optional, Tuple

from .access_log import RequestLog, log_request, timestamp
from .config import ServerConfig, parse_address
from .core import Connection, ConnectionState, SocketServer, ThreadPool
from .http import (
    Handler,
    HTTPParseError,
    Request,
    RequestParser,
    Response,
    Router,
    bad_request,
    internal_error,
    request_timeout,
    service_unavailable,
)


logger = logging.getLogger(__name__)


class HTTPServer:
    """
    HTTP/1.1 server with an exact-match routing table.

    Usage:
        app = HTTPServer()

        @app.route("/")
        def index(request, response):
            response.set_body("hello, world")

        app.run("127.0.0.1:8080")   # blocks until Ctrl+C

    Routes must be registered before run(); the table is frozen when the
    server starts and shared read-only by every worker.
    """

    def __init__(self, config: Optional[ServerConfig] = None, router: Optional[Router] = None):
        self.config = config or ServerConfig()
        self.config.validate()

        self._parser = RequestParser(max_request_size=self.config.max_request_size)
        self._router = router or Router()
        self._socket_server = SocketServer(self.config, self._parser)
        self._thread_pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
            queue_size=self.config.queue_size,
        )
        self._running = False

    # =========================================================================
    # ROUTE REGISTRATION
    # =========================================================================

    @property
    def router(self) -> Router:
        return self._router

    def register(self, path: str, handler: Handler) -> "HTTPServer":
        """
        Serve ``path`` (exact match) with ``handler``.

        Returns:
            Self, so registrations can be chained:
                app.register("/", index).register("/health", health)
        """
        self._router.register(path, handler)
        return self

    def route(self, path: str) -> Callable[[Handler], Handler]:
        """Decorator form of register()."""
        return self._router.route(path)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (host, port); the real port once a port-0 server is up."""
        return self._socket_server.address

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        return self._socket_server.wait_until_ready(timeout)

    def run(self, address: Optional[str] = None):
        """
        Bind ``address`` ("host:port") and serve until stopped.

        Args:
            address: Overrides config.host/config.port when given.

        Raises:
            ValueError: If ``address`` is not "host:port".
            OSError: If the address cannot be bound, or accept() fails.
        """
        if address:
            self.config.host, self.config.port = parse_address(address)
            self.config.validate()

        self._setup_logging()
        self._router.freeze()
        logger.info(f"Routes: {', '.join(self._router.paths) or '(none)'}")

        self._running = True
        self._thread_pool.start()
        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def shutdown(self):
        """Ask a running server to stop (any thread)."""
        self._socket_server.shutdown()

    def _setup_logging(self):
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)
        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("minihttp").setLevel(level)

    def _shutdown(self):
        logger.info("Shutting down server...")
        self._running = False
        self._thread_pool.shutdown(wait=True, timeout=5.0)
        logger.info("Server stopped")

    # =========================================================================
    # CONNECTION HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """Hand ``conn`` to a worker, or turn it away with 503."""
        if not self._thread_pool.submit(self._process_connection, args=(conn,)):
            logger.warning(f"[{conn.id}] Thread pool full, rejecting connection")
            self._send_error(conn, service_unavailable())
            conn.close()

    def _process_connection(self, conn: Connection):
        """Request/response loop for one connection (runs on a worker)."""
        with conn:
            while self._running:
                try:
                    request = conn.read_request()
                except HTTPParseError as e:
                    logger.info(f"[{conn.id}] Bad request from {conn.client_ip}: {e.message}")
                    self._send_error(conn, bad_request(e.message, e.status_code))
                    break
                except TimeoutError:
                    logger.info(f"[{conn.id}] Timed out waiting for request")
                    self._send_error(conn, request_timeout())
                    break
                except OSError as e:
                    logger.error(f"[{conn.id}] Failed to read from socket: {e}")
                    self._send_error(conn, internal_error())
                    break

                if request is None:
                    break

                start = time.time()
                response = self._dispatch(conn, request)
                if not conn.send_response(response.to_bytes()):
                    break
                self._log_access(conn, request, response, start)

                if not request.keep_alive:
                    break
                conn.set_keep_alive()

    def _dispatch(self, conn: Connection, request: Request) -> Response:
        conn.state = ConnectionState.DISPATCHING
        try:
            return self._router.dispatch(request)
        except Exception as e:
            logger.exception(f"[{conn.id}] Handler error for {request.path}: {e}")
            return internal_error()

    def _send_error(self, conn: Connection, response: Response):
        """Best-effort error reply ahead of a close; write failures are ignored."""
        conn.send_response(response.to_bytes(keep_alive=False))

    def _log_access(self, conn: Connection, request: Request, response: Response, start: float):
        if not self.config.access_log:
            return
        log_request(
            RequestLog(
                connection_id=conn.id,
                client_ip=conn.client_ip,
                method=request.method,
                url=request.url,
                version=request.version,
                status_code=int(response.status),
                content_length=len(response.body_bytes),
                duration_ms=(time.time() - start) * 1000,
                timestamp=timestamp(),
            ),
            self.config.log_format,
        )


# The routing table plus its server: registered handlers, then run(address).
App = HTTPServer


def create_app(config: Optional[ServerConfig] = None) -> HTTPServer:
    """Factory for a server with an empty routing table."""
    return HTTPServer(config)
