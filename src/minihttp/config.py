"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Everything the server can be tuned with, in one dataclass.

The only thing the process boundary really needs is a bind address
("host:port"); the rest has defaults sized for a small service:

    ┌─────────────────────┬──────────────┬────────────────────────────────┐
    │  Setting            │  Default     │  Bounds                        │
    ├─────────────────────┼──────────────┼────────────────────────────────┤
    │  buffer_size        │  1 KB        │  bytes per recv()              │
    │  timeout            │  30 s        │  wait for the first request    │
    │  keep_alive_timeout │  5 s         │  idle time between requests    │
    │  max_request_size   │  10 MB       │  head + body per request       │
    │  min/max_workers    │  4 / 16      │  concurrent connections        │
    │  queue_size         │  100         │  accepted, waiting for worker  │
    └─────────────────────┴──────────────┴────────────────────────────────┘

Validation is fail-fast: HTTPServer calls validate() in its constructor,
so a bad value stops the process before the socket is even bound.

=============================================================================
"""

from dataclasses import dataclass
from typing import Optional, Tuple


def parse_address(address: str) -> Tuple[str, int]:
    """
    Split "host:port" into its parts.

    The last colon separates the port, so "[::1]:8080" and "::1:8080" both
    work for IPv6 literals.

    Raises:
        ValueError: If there is no port or it is not a number.
    """
    host, sep, port = address.rpartition(":")
    if not sep or not port.isdigit():
        raise ValueError(f"Invalid address {address!r}, expected host:port")
    host = host.strip("[]") or "0.0.0.0"
    return host, int(port)


@dataclass
class ServerConfig:
    """Configuration for HTTPServer."""

    # Network
    host: str = "127.0.0.1"
    port: int = 8080
    backlog: int = 128
    buffer_size: int = 1024
    timeout: Optional[float] = 30.0

    # HTTP
    keep_alive_timeout: float = 5.0
    max_request_size: int = 10 * 1024 * 1024

    # Threading
    min_workers: int = 4
    max_workers: int = 16
    queue_size: int = 100

    # Logging
    log_level: str = "INFO"
    log_format: str = "text"
    access_log: bool = True

    @classmethod
    def from_address(cls, address: str, **overrides) -> "ServerConfig":
        """
        Build a config bound to ``address``.

        Example:
            ServerConfig.from_address("0.0.0.0:3000", max_workers=32)
        """
        host, port = parse_address(address)
        return cls(host=host, port=port, **overrides)

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"

    def validate(self) -> None:
        """
        Check every value, raising ValueError on the first bad one.

        Port 0 is allowed: the OS picks a free port (handy in tests).
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.buffer_size < 1:
            raise ValueError("buffer_size must be >= 1")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.keep_alive_timeout <= 0:
            raise ValueError("keep_alive_timeout must be > 0")

        if self.max_request_size < self.buffer_size:
            raise ValueError("max_request_size must be >= buffer_size")

        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")

        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")

        if self.queue_size < 1:
            raise ValueError("queue_size must be >= 1")

        if self.log_format not in ("text", "json"):
            raise ValueError(f"log_format must be 'text' or 'json', got {self.log_format!r}")
