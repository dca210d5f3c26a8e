"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

Socket-free building blocks of the server:

    headers.py       HeaderMap: ordered, case-insensitive, multi-valued
    status_codes.py  HTTPStatus registry and status validation
    request.py       Request + RequestParser (bytes → Request)
    response.py      Response + serializer (Response → bytes)
    router.py        Router: exact path → handler

Everything here can be unit-tested with plain bytes, no network needed.

=============================================================================
"""

from .headers import HeaderMap
from .status_codes import HTTPStatus, InvalidStatusCode, reason_phrase, validate_status
from .request import HTTPParseError, Request, RequestParser, VALID_METHODS, parse_request
from .response import (
    Response,
    bad_request,
    internal_error,
    not_found,
    request_timeout,
    service_unavailable,
    text_response,
)
from .router import Handler, Router

__all__ = [
    "HeaderMap",
    "HTTPStatus",
    "InvalidStatusCode",
    "reason_phrase",
    "validate_status",
    "HTTPParseError",
    "Request",
    "RequestParser",
    "VALID_METHODS",
    "parse_request",
    "Response",
    "bad_request",
    "internal_error",
    "not_found",
    "request_timeout",
    "service_unavailable",
    "text_response",
    "Handler",
    "Router",
]
