"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Turns the raw bytes of one HTTP/1.1 request into an immutable Request.
Nothing in this module touches a socket: the Connection decides WHEN there
are enough bytes, this module decides WHAT they mean.

=============================================================================
HTTP REQUEST ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  GET /search?q=http&page=2 HTTP/1.1\r\n      ← request line         │
    │  ─┬─ ───────────┬───────── ────┬───                                 │
    │   │             │              └── protocol / major.minor           │
    │   │             └── request-target = path ? query                   │
    │   └── method (standard registry only)                               │
    │                                                                      │
    │  Host: example.com\r\n                       ← header lines          │
    │  Accept: text/html, application/json\r\n     ← "," = several values │
    │  Content-Length: 11\r\n                                             │
    │  \r\n                                        ← framing boundary      │
    │  hello world                                 ← body (11 bytes)       │
    └─────────────────────────────────────────────────────────────────────┘

The boundary may also be a bare "\n\n" (lenient clients, netcat, tests).

=============================================================================
TWO-PHASE PARSING
=============================================================================

The body length is only known once the head is parsed, so parsing is split:

    1. parse_head(head_text)      → Request with an empty body
    2. body_length(request, n)    → how many body bytes frame this request
    3. with_body(request, bytes)  → final immutable Request

parse() chains the three for a request that is already fully in memory.

=============================================================================
BODY FRAMING RULES
=============================================================================

    Transfer-Encoding present            → 400 (chunked is not supported)
    Content-Length present, valid        → exactly that many bytes
    Content-Length present, garbage      → 400 (never guess a length)
    no Content-Length, Connection: close → whatever was already buffered
    no Content-Length otherwise          → no body

=============================================================================
"""

import dataclasses
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .headers import HeaderMap


class HTTPParseError(Exception):
    """
    Raised when request bytes cannot be turned into a Request.

    The message is sent back to the client verbatim as the plain-text body
    of the error response, so keep it short and free of internals.

    Attributes:
        status_code: HTTP status to answer with (400 unless stated).
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


# RFC 7231 section 4 + RFC 5789 (PATCH). Anything else is rejected.
VALID_METHODS = frozenset({
    "GET",
    "HEAD",
    "POST",
    "PUT",
    "DELETE",
    "CONNECT",
    "OPTIONS",
    "TRACE",
    "PATCH",
})

# Diagnostics written back to the client. Existing clients match on these
# strings, so the wording (typo included) is part of the wire contract.
INVALID_REQUEST_LINE = "Invalid request headers"
UNKNOWN_METHOD = "Unknow method"
UNKNOWN_PROTOCOL = "Unknown protocol"
INVALID_VERSION = "Invalid http version info"
UNSUPPORTED_VERSION = "Feature not supported"
MISSING_HOST = "Missing host in header"
INVALID_CONTENT_LENGTH = "Invalid content length"
CHUNKED_NOT_SUPPORTED = "Chunked transfer encoding not supported"
UNSUPPORTED_TRANSFER_ENCODING = "Unsupported transfer encoding"


@dataclass(frozen=True, eq=False)
class Request:
    """
    A parsed HTTP request.

    Frozen: once the parser hands it out, nothing reassigns its fields.
    A keep-alive connection builds a brand new Request for every message.

    The immutability is shallow: headers and query_params are HeaderMaps
    and can still be mutated in place. Requests compare and hash by
    identity.

    Attributes:
        method:             Standard method token ("GET", "POST", ...)
        url:                The request-target as sent ("/a?b=1")
        path:               The target without its query string ("/a")
        http_major_version: 1 (nothing else gets past the parser)
        http_minor_version: 0 or 1 in practice
        query_params:       HeaderMap of well-formed key=value pairs
        headers:            HeaderMap, case-insensitive names
        body:               Body decoded as UTF-8 (bad bytes replaced)
        raw_body:           Body bytes exactly as framed
        client_address:     Peer (ip, port), for logging
    """

    method: str
    url: str
    path: str
    http_major_version: int = 1
    http_minor_version: int = 1
    query_params: HeaderMap = field(default_factory=HeaderMap)
    headers: HeaderMap = field(default_factory=HeaderMap)
    body: str = ""
    raw_body: bytes = field(default=b"", repr=False)
    client_address: Tuple[str, int] = ("", 0)

    @property
    def version(self) -> str:
        """Protocol string, e.g. "HTTP/1.1"."""
        return f"HTTP/{self.http_major_version}.{self.http_minor_version}"

    @property
    def host(self) -> str:
        return self.headers.get("host", "")

    @property
    def keep_alive(self) -> bool:
        """
        True only when the first Connection value is "keep-alive" (any case).

        There is no implicit HTTP/1.1 persistence: a request without a
        Connection header is answered and the socket is closed. Later values
        are ignored, so "Connection: close, keep-alive" closes.
        """
        return self.headers.get("connection", "").lower() == "keep-alive"

    @property
    def content_length(self) -> Optional[int]:
        """Declared Content-Length, or None when absent or unparsable."""
        value = self.headers.get("content-length")
        if value is None or not (value.isascii() and value.isdigit()):
            return None
        return int(value)

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """First value of header ``name`` (any case), or ``default``."""
        return self.headers.get(name, default)

    def query(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """
        First value of query parameter ``name``.

        Example:
            # GET /users?page=2&page=3
            request.query("page")      # "2"
            request.query("missing")   # None
        """
        return self.query_params.get(name, default)


class RequestParser:
    """
    Parses raw request bytes into Request objects.

    One parser is shared by every worker thread; it holds configuration only
    and no per-request state.
    """

    def __init__(self, max_request_size: int = 10 * 1024 * 1024):
        """
        Args:
            max_request_size: Largest request (head + body) accepted, in
                              bytes. Larger requests fail with 413.
        """
        self.max_request_size = max_request_size

    # =========================================================================
    # FRAMING BOUNDARY
    # =========================================================================

    @staticmethod
    def find_boundary(buffer: bytes) -> Optional[Tuple[int, int]]:
        """
        Locate the blank line that ends the head.

        Both "\\r\\n\\r\\n" and "\\n\\n" are accepted; whichever comes
        first wins.

        Returns:
            (head_end, body_start) offsets into ``buffer``, or None if the
            head is not complete yet.
        """
        crlf = buffer.find(b"\r\n\r\n")
        lf = buffer.find(b"\n\n")
        candidates = []
        if crlf != -1:
            candidates.append((crlf, crlf + 4))
        if lf != -1:
            candidates.append((lf, lf + 2))
        if not candidates:
            return None
        return min(candidates)

    # =========================================================================
    # HEAD
    # =========================================================================

    def parse_head(
        self,
        head: str,
        client_address: Tuple[str, int] = ("", 0),
    ) -> Request:
        """
        Parse the request line and headers.

        Args:
            head: Everything before the framing boundary, decoded.
            client_address: Peer address stored on the Request.

        Returns:
            Request with an empty body.

        Raises:
            HTTPParseError: On any malformed request line, unknown method,
                            unsupported version or missing Host header.
        """
        lines = [line.rstrip("\r") for line in head.split("\n")]

        method, url, path, query_params, major, minor = self._parse_request_line(lines[0])
        headers = self._parse_headers(lines[1:])

        if "host" not in headers:
            raise HTTPParseError(MISSING_HOST)

        return Request(
            method=method,
            url=url,
            path=path,
            http_major_version=major,
            http_minor_version=minor,
            query_params=query_params,
            headers=headers,
            client_address=client_address,
        )

    def _parse_request_line(
        self,
        line: str,
    ) -> Tuple[str, str, str, HeaderMap, int, int]:
        """
        Split "METHOD SP target SP HTTP/major.minor".

        Checks run in wire order: token count, method, protocol, version.
        """
        tokens = line.split()
        if len(tokens) < 3:
            raise HTTPParseError(INVALID_REQUEST_LINE)

        method, url, protocol = tokens[0], tokens[1], tokens[2]

        if method not in VALID_METHODS:
            raise HTTPParseError(UNKNOWN_METHOD)

        path, _, query = url.partition("?")
        query_params = self._parse_query(query)

        if not protocol.startswith("HTTP"):
            raise HTTPParseError(UNKNOWN_PROTOCOL)
        major, minor = self._parse_version(protocol)
        if major != 1:
            raise HTTPParseError(UNSUPPORTED_VERSION)

        return method, url, path, query_params, major, minor

    @staticmethod
    def _parse_version(protocol: str) -> Tuple[int, int]:
        _, slash, version = protocol.partition("/")
        if not slash:
            raise HTTPParseError(INVALID_VERSION)
        major, dot, minor = version.partition(".")
        if not dot:
            raise HTTPParseError(INVALID_VERSION)
        try:
            return int(major), int(minor)
        except ValueError:
            raise HTTPParseError(INVALID_VERSION) from None

    @staticmethod
    def _parse_query(query: str) -> HeaderMap:
        """
        Parse "a=1&b=2&a=3" into a HeaderMap.

        Pairs that are not exactly ``key=value`` with both sides non-empty
        are skipped. Values are not percent-decoded.
        """
        params = HeaderMap()
        if not query:
            return params
        for pair in query.split("&"):
            parts = [p.strip() for p in pair.split("=")]
            if len(parts) == 2 and parts[0] and parts[1]:
                params.add(parts[0], parts[1])
        return params

    @staticmethod
    def _parse_headers(lines: List[str]) -> HeaderMap:
        """
        Parse "Name: v1, v2" lines.

        Every comma-separated value is appended to the header's value list,
        so "Accept: a, b" and two "Accept:" lines end up the same.
        Lines without a colon are skipped.
        """
        headers = HeaderMap()
        for line in lines:
            name, colon, value = line.partition(":")
            name = name.strip()
            if not colon or not name:
                continue
            headers.extend(name, (v.strip() for v in value.split(",")))
        return headers

    # =========================================================================
    # BODY
    # =========================================================================

    def body_length(self, request: Request, buffered: int) -> int:
        """
        Decide how many body bytes belong to ``request``.

        Args:
            request: Request returned by parse_head().
            buffered: Body bytes already read past the boundary.

        Returns:
            Number of body bytes that frame this request. May be larger
            than ``buffered``, in which case the caller reads more.

        Raises:
            HTTPParseError: Chunked/unknown transfer encodings, malformed
                            Content-Length (400), oversized bodies (413).
        """
        encodings = [v.lower() for v in request.headers.get_all("transfer-encoding")]
        if encodings:
            if "chunked" in encodings:
                raise HTTPParseError(CHUNKED_NOT_SUPPORTED)
            raise HTTPParseError(UNSUPPORTED_TRANSFER_ENCODING)

        lengths = request.headers.get_all("content-length")
        if lengths:
            # Repeated identical values are harmless; differing ones are
            # a classic smuggling vector.
            if len(set(lengths)) != 1:
                raise HTTPParseError(INVALID_CONTENT_LENGTH)
            value = lengths[0]
            if not (value.isascii() and value.isdigit()):
                raise HTTPParseError(INVALID_CONTENT_LENGTH)
            length = int(value)
            if length > self.max_request_size:
                raise HTTPParseError(f"Request too large: {length} bytes", status_code=413)
            return length

        if request.headers.get_all("connection") and not request.keep_alive:
            return buffered

        return 0

    @staticmethod
    def with_body(request: Request, body: bytes) -> Request:
        """Return a copy of ``request`` carrying ``body``."""
        return dataclasses.replace(
            request,
            body=body.decode("utf-8", errors="replace"),
            raw_body=body,
        )

    # =========================================================================
    # ONE-SHOT
    # =========================================================================

    def parse(
        self,
        data: bytes,
        client_address: Tuple[str, int] = ("", 0),
    ) -> Request:
        """
        Parse a request that is already entirely in memory.

        Bytes past the framed body are ignored.

        Raises:
            HTTPParseError: If the request is malformed, incomplete or too
                            large.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(f"Request too large: {len(data)} bytes", status_code=413)

        boundary = self.find_boundary(data)
        if boundary is None:
            raise HTTPParseError("Incomplete request: no header terminator")
        head_end, body_start = boundary

        head = data[:head_end].decode("utf-8", errors="replace")
        request = self.parse_head(head, client_address)

        available = data[body_start:]
        length = self.body_length(request, len(available))
        if len(available) < length:
            raise HTTPParseError(
                f"Incomplete body: expected {length} bytes, got {len(available)}"
            )
        return self.with_body(request, available[:length])


def parse_request(
    data: bytes,
    client_address: Tuple[str, int] = ("", 0),
    max_size: int = 10 * 1024 * 1024,
) -> Request:
    """Parse ``data`` with a throwaway RequestParser."""
    return RequestParser(max_request_size=max_size).parse(data, client_address)
