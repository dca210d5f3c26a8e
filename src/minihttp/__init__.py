"""
=============================================================================
MINIHTTP - A Minimal HTTP/1.1 Server Core
=============================================================================

Raw sockets in, raw sockets out, and in between:

    1. FRAMING     Buffer bytes until a complete request (head + body) is in
    2. PARSING     Request line, query string, headers, body length
    3. ROUTING     Exact path → handler
    4. RESPONDING  Status line, headers, Content-Length, body
    5. KEEP-ALIVE  Loop on the same socket when the client asks for it

=============================================================================
QUICK START
=============================================================================

    from minihttp import App, Response

    app = App()

    @app.route("/")
    def index(request):
        return Response(200, body="hello, world")

    app.run("127.0.0.1:8080")

    $ curl -i http://127.0.0.1:8080/
    HTTP/1.1 200 OK
    Connection: keep-alive
    Content-Length: 12

    hello, world

=============================================================================
PACKAGE LAYOUT
=============================================================================

    minihttp/
    ├── __init__.py        This file, public API
    ├── __main__.py        python -m minihttp
    ├── config.py          ServerConfig, parse_address
    ├── server.py          HTTPServer / App, per-connection loop
    ├── access_log.py      Structured access log entries
    ├── core/
    │   ├── socket_server.py   Listening socket, accept loop
    │   ├── connection.py      Buffered reads, framing state machine
    │   └── thread_pool.py     Bounded worker threads
    └── http/
        ├── headers.py         HeaderMap
        ├── status_codes.py    HTTPStatus, validate_status
        ├── request.py         Request, RequestParser
        ├── response.py        Response, serializer
        └── router.py          Router

=============================================================================
"""

__version__ = "0.1.0"

from .config import ServerConfig, parse_address
from .server import App, HTTPServer, create_app
from .http import (
    HeaderMap,
    HTTPParseError,
    HTTPStatus,
    InvalidStatusCode,
    Request,
    RequestParser,
    Response,
    Router,
    parse_request,
)

__all__ = [
    "__version__",
    "ServerConfig",
    "parse_address",
    "App",
    "HTTPServer",
    "create_app",
    "HeaderMap",
    "HTTPParseError",
    "HTTPStatus",
    "InvalidStatusCode",
    "Request",
    "RequestParser",
    "Response",
    "Router",
    "parse_request",
]
