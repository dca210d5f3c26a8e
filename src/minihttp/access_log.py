"""
=============================================================================
ACCESS LOG
=============================================================================

One structured entry per answered request, written to the
"minihttp.access" logger so it can be routed separately from the
server's own diagnostics:

    logging.getLogger("minihttp.access").addHandler(file_handler)

Two renderings:

    text   127.0.0.1 - - [19/Oct/2026:10:00:00 +0000] "GET /?a=1 HTTP/1.1" 200 12 0.41ms
    json   {"connection_id": "1f3a9c2e", "method": "GET", "url": "/?a=1", ...}

=============================================================================
"""

import json
import logging
import time
from dataclasses import asdict, dataclass


logger = logging.getLogger("minihttp.access")


@dataclass
class RequestLog:
    """Structured log entry for one request/response exchange."""

    connection_id: str
    client_ip: str
    method: str
    url: str
    version: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        entry = asdict(self)
        entry["duration_ms"] = round(self.duration_ms, 2)
        return entry

    def to_text(self) -> str:
        """Apache-style line, readable by the usual log tools."""
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {self.url} {self.version}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


def log_request(entry: RequestLog, log_format: str = "text") -> None:
    """Emit ``entry`` at INFO in the configured format."""
    if not logger.isEnabledFor(logging.INFO):
        return
    if log_format == "json":
        logger.info(json.dumps(entry.to_dict()))
    else:
        logger.info(entry.to_text())


def timestamp() -> str:
    """Current local time in common log format."""
    return time.strftime("%d/%b/%Y:%H:%M:%S %z")
