"""
=============================================================================
CLIENT CONNECTION
=============================================================================

Wraps one accepted socket: buffered reads, request framing, writes, close.

=============================================================================
WHY FRAMING NEEDS A STATE MACHINE
=============================================================================

TCP is a byte stream. recv() returns whatever has arrived, which can be
half a request line, exactly one request, or one and a half requests:

    recv #1:  b"GET / HTTP/1.1\\r\\nHo"
    recv #2:  b"st: x\\r\\nContent-Length: 5\\r\\n\\r\\nhel"
    recv #3:  b"loGET /next HTTP/1.1\\r\\n..."
                 ─┬─
                  └── the next request already started

So reading one request means moving through three phases, each waiting for
a different condition:

    ┌──────────┐  boundary found,   ┌──────────┐  body_length bytes  ┌──────────┐
    │   HEAD   │ ─────────────────► │   BODY   │ ──────────────────► │   DONE   │
    │          │  head parsed       │          │  buffered           │          │
    └────┬─────┘                    └────┬─────┘                     └──────────┘
         │ no boundary yet               │ body short
         └──► recv() more                └──► recv() more

_advance() is the single transition function; read_request() just calls it
after every recv() until it reports DONE. A head with no body goes straight
from HEAD to DONE in one call.

Bytes past the end of the framed request stay in the buffer and seed the
next read_request() call (pipelining on keep-alive connections).

=============================================================================
CONNECTION LIFECYCLE
=============================================================================

    NEW ──► READING ──► DISPATCHING ──► RESPONDING ──► KEEP_ALIVE ──┐
               ▲                                                     │
               └─────────────────────────────────────────────────────┘
               │                                  │
               └──────────────► CLOSING ◄─────────┘
                                   │
                                   ▼
                                 CLOSED

=============================================================================
"""

import socket
import time
import logging
import uuid
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional

from ..http.request import HTTPParseError, Request, RequestParser


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Where a connection is in its request/response cycle."""
    NEW = "new"
    READING = "reading"
    DISPATCHING = "dispatching"
    RESPONDING = "responding"
    KEEP_ALIVE = "keep_alive"
    CLOSING = "closing"
    CLOSED = "closed"


class ReadState(Enum):
    """Framing progress of the request currently being read."""
    HEAD = "head"    # waiting for the blank line
    BODY = "body"    # head parsed, waiting for body bytes
    DONE = "done"    # one complete request is buffered


@dataclass
class Connection:
    """
    One client connection.

    Attributes:
        socket: The accepted client socket.
        address: Client (ip, port).
        parser: Shared RequestParser (stateless, safe across threads).
        id: Short random id used to correlate log lines.
        state: Current ConnectionState.
        requests_handled: Requests fully read on this socket so far.
    """

    socket: socket.socket
    address: tuple[str, int]
    parser: RequestParser = field(default_factory=RequestParser)

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    last_activity: float = field(default_factory=time.time)
    requests_handled: int = 0

    buffer_size: int = 1024
    timeout: Optional[float] = 30.0
    keep_alive_timeout: float = 5.0
    max_request_size: int = 10 * 1024 * 1024

    _buffer: bytes = field(default=b"", repr=False)
    # Framing of the request in flight (valid in ReadState.BODY)
    _pending: Optional[Request] = field(default=None, repr=False)
    _body_start: int = field(default=0, repr=False)
    _body_length: int = field(default=0, repr=False)

    def __post_init__(self):
        self.socket.setblocking(True)
        self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def buffered(self) -> int:
        """Bytes received but not yet consumed by a framed request."""
        return len(self._buffer)

    # =========================================================================
    # READING
    # =========================================================================

    def read_request(self) -> Optional[Request]:
        """
        Read and frame the next request on this connection.

        Returns:
            The parsed Request, or None if the peer closed the connection
            (or went idle past keep_alive_timeout between requests).

        Raises:
            HTTPParseError: Malformed head or body framing (400), or the
                            request outgrew max_request_size (413).
            TimeoutError: The first request did not arrive in time.
            OSError: The socket read failed.
        """
        self.state = ConnectionState.READING
        self.last_activity = time.time()

        # Between requests the client gets a shorter grace period
        if self.requests_handled > 0:
            self.socket.settimeout(self.keep_alive_timeout)

        read_state = ReadState.HEAD
        try:
            while True:
                read_state = self._advance(read_state)
                if read_state is ReadState.DONE:
                    break

                chunk = self._recv()
                if not chunk:
                    return None  # Peer closed

                self._buffer += chunk
                if len(self._buffer) > self.max_request_size:
                    raise HTTPParseError(
                        f"Request too large: {len(self._buffer)} bytes",
                        status_code=413,
                    )

            request = self._take_request()
            self.requests_handled += 1
            self.last_activity = time.time()
            return request

        except socket.timeout:
            if self.requests_handled > 0 and not self._buffer:
                logger.debug(f"[{self.id}] Keep-alive timeout")
                return None
            raise TimeoutError("Request read timeout")

        finally:
            self.socket.settimeout(self.timeout)

    def _advance(self, state: ReadState) -> ReadState:
        """
        Transition function of the framing state machine.

        Looks at the buffer and moves ``state`` as far forward as the bytes
        allow. Returning the same state means "need more bytes".
        """
        if state is ReadState.HEAD:
            boundary = self.parser.find_boundary(self._buffer)
            if boundary is None:
                return ReadState.HEAD

            head_end, body_start = boundary
            head = self._buffer[:head_end].decode("utf-8", errors="replace")
            self._pending = self.parser.parse_head(head, self.address)
            self._body_start = body_start
            self._body_length = self.parser.body_length(
                self._pending, len(self._buffer) - body_start
            )
            state = ReadState.BODY

        if state is ReadState.BODY:
            if len(self._buffer) - self._body_start >= self._body_length:
                return ReadState.DONE
            return ReadState.BODY

        return state

    def _take_request(self) -> Request:
        """Cut the framed request out of the buffer, keeping any extra bytes."""
        end = self._body_start + self._body_length
        body = self._buffer[self._body_start:end]
        self._buffer = self._buffer[end:]

        request = self.parser.with_body(self._pending, body)
        self._pending = None
        self._body_start = self._body_length = 0
        return request

    def _recv(self) -> bytes:
        data = self.socket.recv(self.buffer_size)
        self.last_activity = time.time()
        return data

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_response(self, data: bytes) -> bool:
        """
        Write ``data`` in full.

        Returns:
            True on success, False if the client is gone.
        """
        self.state = ConnectionState.RESPONDING
        try:
            self.socket.sendall(data)
            self.last_activity = time.time()
            return True
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False

    def set_keep_alive(self):
        """Response sent; waiting for the next request."""
        self.state = ConnectionState.KEEP_ALIVE

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection: send FIN, drain briefly, release the socket.

        Safe to call more than once.
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Peer already gone

        try:
            # Unread client bytes would turn our FIN into an RST
            self.socket.settimeout(0.5)
            while self.socket.recv(1024):
                pass
        except OSError:
            pass

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.requests_handled} requests")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
