"""
=============================================================================
HTTP RESPONSE BUILDER
=============================================================================

A mutable Response that handlers fill in, and the serializer that turns it
into wire bytes.

=============================================================================
WIRE FORMAT
=============================================================================

    HTTP/1.1 200 OK\r\n                ← status line
    Content-Type: text/plain\r\n       ← handler headers, values joined by ","
    Connection: keep-alive\r\n         ← always injected
    Content-Length: 12\r\n             ← always injected (UTF-8 byte count)
    \r\n
    hello, world                       ← body (may be empty)

Connection and Content-Length are written by to_bytes() on every call and
overwrite whatever the handler put there: the server owns framing, the
handler owns content.

=============================================================================
USAGE
=============================================================================

    # One-argument handler: build and return
    def hello(request):
        response = Response(200)
        response.set_body("hello, world")
        return response

    # Two-argument handler: mutate the response the server hands in
    def hello(request, response):
        response.set_header("Content-Type", "text/plain")
        response.append_body("hello, ")
        response.append_body("world")

=============================================================================
"""

from typing import Iterable, Optional, Union

from .headers import HeaderMap
from .status_codes import HTTPStatus, reason_phrase, validate_status


HTTP_VERSION = "HTTP/1.1"
TEXT_PLAIN = "text/plain"


class Response:
    """
    HTTP response under construction.

    Raises InvalidStatusCode (a ValueError) from the constructor and from
    set_status() when the code is outside 100..999. That error belongs to
    whoever called the handler, it is never written to the wire as-is.
    """

    def __init__(
        self,
        status: int = HTTPStatus.OK,
        body: Optional[str] = None,
        headers: Optional[HeaderMap] = None,
    ):
        self.status = validate_status(status)
        self.headers = HeaderMap(headers) if headers is not None else HeaderMap()
        self.body = body

    def __repr__(self) -> str:
        return f"Response(status={int(self.status)}, headers={self.headers!r}, body={self.body!r})"

    # =========================================================================
    # BUILDER METHODS (each returns self so calls can be chained)
    # =========================================================================

    def set_status(self, status: int) -> "Response":
        self.status = validate_status(status)
        return self

    def set_header(self, name: str, values: Union[str, Iterable[str]]) -> "Response":
        """
        Replace header ``name`` with ``values``.

        Args:
            name: Header name, written out with this spelling
            values: One string, or several that go out comma-joined
        """
        self.headers.set(name, values)
        return self

    def add_header(self, name: str, value: str) -> "Response":
        """Append one more value to header ``name``."""
        self.headers.add(name, value)
        return self

    def set_body(self, body: str) -> "Response":
        self.body = body
        return self

    def append_body(self, body: str) -> "Response":
        """Concatenate onto the current body, or start one if there is none."""
        self.body = body if self.body is None else self.body + body
        return self

    # =========================================================================
    # SERIALIZATION
    # =========================================================================

    @property
    def status_line(self) -> str:
        """e.g. "HTTP/1.1 404 Not Found"."""
        return f"{HTTP_VERSION} {int(self.status)} {reason_phrase(self.status)}"

    @property
    def body_bytes(self) -> bytes:
        return self.body.encode("utf-8") if self.body is not None else b""

    def to_bytes(self, keep_alive: bool = True) -> bytes:
        """
        Serialize the response.

        The response itself is left untouched; the injected headers are
        applied to a copy.

        Args:
            keep_alive: Value of the injected Connection header. The server
                        only passes False for its own error replies that
                        are followed by a close.

        Returns:
            Complete response bytes ready for socket.sendall()
        """
        body = self.body_bytes

        headers = HeaderMap(self.headers)
        headers.set("Connection", "keep-alive" if keep_alive else "close")
        headers.set("Content-Length", str(len(body)))

        lines = [self.status_line]
        for name, values in headers.items():
            lines.append(f"{name}: {','.join(values)}")
        lines.append("")

        return "\r\n".join(lines).encode("utf-8") + b"\r\n" + body


# =============================================================================
# CONVENIENCE CONSTRUCTORS
# =============================================================================
#
# Fixed replies the server writes on its own. All plain text.
#
# =============================================================================

PAGE_NOT_FOUND = "page not found"
INTERNAL_SERVER_ERROR = "Internal server error"


def text_response(status: int, text: str) -> Response:
    """Plain-text response with ``text`` as the body."""
    response = Response(status, body=text)
    response.set_header("Content-Type", TEXT_PLAIN)
    return response


def not_found() -> Response:
    """The fixed 404 for paths with no registered handler."""
    return text_response(HTTPStatus.NOT_FOUND, PAGE_NOT_FOUND)


def bad_request(message: str, status: int = HTTPStatus.BAD_REQUEST) -> Response:
    """Parse failure; ``message`` is the parser's diagnostic."""
    return text_response(status, message)


def internal_error() -> Response:
    return text_response(HTTPStatus.INTERNAL_SERVER_ERROR, INTERNAL_SERVER_ERROR)


def request_timeout() -> Response:
    return text_response(HTTPStatus.REQUEST_TIMEOUT, "Request timeout")


def service_unavailable() -> Response:
    """Sent when the worker pool cannot take another connection."""
    return text_response(HTTPStatus.SERVICE_UNAVAILABLE, "Server overloaded")
