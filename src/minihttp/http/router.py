"""
=============================================================================
EXACT-MATCH ROUTER
=============================================================================

Maps a request path to the handler registered for exactly that string.

    router.register("/", index)
    router.register("/users", list_users)

    "/"          → index
    "/users"     → list_users
    "/users/"    → 404   (no prefix matching, no trailing-slash folding)
    "/users/42"  → 404   (no patterns)

=============================================================================
LIFECYCLE
=============================================================================

    ┌────────────────┐   freeze()   ┌────────────────────────────────────┐
    │  BUILDING      │ ───────────► │  FROZEN                            │
    │  register()    │              │  lookup()/dispatch() from any      │
    │  route()       │              │  worker thread, no locking needed  │
    └────────────────┘              │  register() → RuntimeError         │
                                    └────────────────────────────────────┘

The server freezes the router right before it starts accepting, so the
table every worker reads is a read-only snapshot.

=============================================================================
HANDLER SIGNATURES
=============================================================================

    def handler(request) -> Response
        Builds and returns its own Response.

    def handler(request, response) -> Optional[Response]
        Receives a fresh Response(200) to fill in. If it returns a
        Response, that one is used; otherwise the one passed in is.

=============================================================================
"""

import inspect
import logging
from types import MappingProxyType
from typing import Callable, Dict, List, Mapping, Optional, Union

from .request import Request
from .response import Response, not_found


logger = logging.getLogger(__name__)

Handler = Union[
    Callable[[Request], Response],
    Callable[[Request, Response], Optional[Response]],
]


def _wants_response(handler: Handler) -> bool:
    """True if ``handler`` takes (request, response) rather than (request)."""
    try:
        params = inspect.signature(handler).parameters.values()
    except (TypeError, ValueError):
        return False
    positional = [
        p for p in params
        if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD)
    ]
    if any(p.kind == p.VAR_POSITIONAL for p in params):
        return True
    return len(positional) >= 2


class Router:
    """
    Path → handler table.

    Example:
        router = Router()

        @router.route("/")
        def index(request, response):
            response.set_body("hello, world")

        router.freeze()
        response = router.dispatch(request)
    """

    def __init__(self):
        self._handlers: Dict[str, Handler] = {}
        self._wants_response: Dict[str, bool] = {}
        self._frozen: Optional[Mapping[str, Handler]] = None

    @property
    def frozen(self) -> bool:
        return self._frozen is not None

    def register(self, path: str, handler: Handler) -> "Router":
        """
        Register ``handler`` for exactly ``path``.

        Registering a path twice replaces the earlier handler.

        Returns:
            Self for method chaining

        Raises:
            RuntimeError: If the router has been frozen.
        """
        if self.frozen:
            raise RuntimeError(f"Cannot register {path!r}: router is frozen")
        if path in self._handlers:
            logger.debug(f"Replacing handler for {path}")
        self._handlers[path] = handler
        self._wants_response[path] = _wants_response(handler)
        return self

    def route(self, path: str) -> Callable[[Handler], Handler]:
        """Decorator form of register()."""
        def decorator(handler: Handler) -> Handler:
            self.register(path, handler)
            return handler
        return decorator

    def freeze(self) -> Mapping[str, Handler]:
        """Stop accepting registrations and return the read-only table."""
        if self._frozen is None:
            self._frozen = MappingProxyType(dict(self._handlers))
        return self._frozen

    @property
    def paths(self) -> List[str]:
        return list(self._handlers)

    def lookup(self, path: str) -> Optional[Handler]:
        table = self._frozen if self._frozen is not None else self._handlers
        return table.get(path)

    def dispatch(self, request: Request) -> Response:
        """
        Run the handler registered for ``request.path``.

        Returns:
            The handler's Response, or the fixed 404 when nothing matches.

        Raises:
            Whatever the handler raises (InvalidStatusCode included).
            TypeError: If a one-argument handler returns a non-Response.
        """
        handler = self.lookup(request.path)
        if handler is None:
            return not_found()

        if self._wants_response[request.path]:
            response = Response()
            result = handler(request, response)
            return result if isinstance(result, Response) else response

        result = handler(request)
        if not isinstance(result, Response):
            raise TypeError(
                f"Handler for {request.path} returned {type(result).__name__}, expected Response"
            )
        return result

    def __len__(self) -> int:
        return len(self._handlers)

    def __contains__(self, path: object) -> bool:
        return path in self._handlers
