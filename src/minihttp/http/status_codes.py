"""
=============================================================================
HTTP STATUS CODES (RFC 7231)
=============================================================================

Status code registry plus the validation used when a handler builds a
response from a bare integer.

=============================================================================
VALID VS REGISTERED
=============================================================================

The status line only requires a 3-digit code:

    HTTP/1.1 200 OK
             ─── ──
              │   └── Reason phrase (informational, may be empty)
              └────── Status code (100-999)

So there are two different questions:

    validate_status(299)   → 299          valid, just not registered
    reason_phrase(299)     → ""           no phrase known for it
    validate_status(1000)  → InvalidStatusCode

Registered codes are listed in HTTPStatus below; their reason phrase is
derived from the member name (NOT_FOUND → "Not Found") except for the few
whose official spelling differs.

=============================================================================
"""

from enum import IntEnum


class InvalidStatusCode(ValueError):
    """Raised when a numeric status code is outside 100..999."""

    def __init__(self, code: object):
        super().__init__(f"Invalid status code: {code!r}")
        self.code = code


class HTTPStatus(IntEnum):
    """
    Registered HTTP status codes.

    IntEnum, so members compare equal to plain integers:

        >>> HTTPStatus.OK == 200
        True
        >>> HTTPStatus.NOT_FOUND.phrase
        'Not Found'
    """

    # 1xx Informational
    CONTINUE = 100
    SWITCHING_PROTOCOLS = 101
    PROCESSING = 102
    EARLY_HINTS = 103

    # 2xx Success
    OK = 200
    CREATED = 201
    ACCEPTED = 202
    NON_AUTHORITATIVE_INFORMATION = 203
    NO_CONTENT = 204
    RESET_CONTENT = 205
    PARTIAL_CONTENT = 206
    MULTI_STATUS = 207
    ALREADY_REPORTED = 208
    IM_USED = 226

    # 3xx Redirection
    MULTIPLE_CHOICES = 300
    MOVED_PERMANENTLY = 301
    FOUND = 302
    SEE_OTHER = 303
    NOT_MODIFIED = 304
    USE_PROXY = 305
    TEMPORARY_REDIRECT = 307
    PERMANENT_REDIRECT = 308

    # 4xx Client errors
    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    PAYMENT_REQUIRED = 402
    FORBIDDEN = 403
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    NOT_ACCEPTABLE = 406
    PROXY_AUTHENTICATION_REQUIRED = 407
    REQUEST_TIMEOUT = 408
    CONFLICT = 409
    GONE = 410
    LENGTH_REQUIRED = 411
    PRECONDITION_FAILED = 412
    PAYLOAD_TOO_LARGE = 413
    URI_TOO_LONG = 414
    UNSUPPORTED_MEDIA_TYPE = 415
    RANGE_NOT_SATISFIABLE = 416
    EXPECTATION_FAILED = 417
    IM_A_TEAPOT = 418
    MISDIRECTED_REQUEST = 421
    UNPROCESSABLE_ENTITY = 422
    LOCKED = 423
    FAILED_DEPENDENCY = 424
    TOO_EARLY = 425
    UPGRADE_REQUIRED = 426
    PRECONDITION_REQUIRED = 428
    TOO_MANY_REQUESTS = 429
    REQUEST_HEADER_FIELDS_TOO_LARGE = 431
    UNAVAILABLE_FOR_LEGAL_REASONS = 451

    # 5xx Server errors
    INTERNAL_SERVER_ERROR = 500
    NOT_IMPLEMENTED = 501
    BAD_GATEWAY = 502
    SERVICE_UNAVAILABLE = 503
    GATEWAY_TIMEOUT = 504
    HTTP_VERSION_NOT_SUPPORTED = 505
    VARIANT_ALSO_NEGOTIATES = 506
    INSUFFICIENT_STORAGE = 507
    LOOP_DETECTED = 508
    NOT_EXTENDED = 510
    NETWORK_AUTHENTICATION_REQUIRED = 511

    @property
    def phrase(self) -> str:
        """Reason phrase used on the status line."""
        if self in _PHRASE_OVERRIDES:
            return _PHRASE_OVERRIDES[self]
        return self.name.replace("_", " ").title()

    @property
    def is_success(self) -> bool:
        return 200 <= self < 300

    @property
    def is_error(self) -> bool:
        """True for 4xx and 5xx codes."""
        return self >= 400


# Phrases that don't follow the NAME → "Title Case" rule
_PHRASE_OVERRIDES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.NON_AUTHORITATIVE_INFORMATION: "Non-Authoritative Information",
    HTTPStatus.MULTI_STATUS: "Multi-Status",
    HTTPStatus.IM_USED: "IM Used",
    HTTPStatus.URI_TOO_LONG: "URI Too Long",
    HTTPStatus.IM_A_TEAPOT: "I'm a teapot",
    HTTPStatus.HTTP_VERSION_NOT_SUPPORTED: "HTTP Version Not Supported",
}

_REGISTERED = {status.value: status for status in HTTPStatus}


def validate_status(code: int) -> int:
    """
    Check that ``code`` can appear on a status line.

    Args:
        code: Numeric status code (an HTTPStatus member works too)

    Returns:
        The code as a plain int (registered codes come back as HTTPStatus)

    Raises:
        InvalidStatusCode: If ``code`` is not an integer in 100..999.
    """
    # bool is an int subclass; True is not a status code
    if isinstance(code, bool) or not isinstance(code, int):
        raise InvalidStatusCode(code)
    if not 100 <= code <= 999:
        raise InvalidStatusCode(code)
    return _REGISTERED.get(int(code), int(code))


def reason_phrase(code: int) -> str:
    """Reason phrase for ``code``, or an empty string if unregistered."""
    status = _REGISTERED.get(int(code))
    return status.phrase if status is not None else ""
