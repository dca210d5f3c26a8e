"""
=============================================================================
COMMAND-LINE ENTRY POINT
=============================================================================

    python -m minihttp                       # 127.0.0.1:8080
    python -m minihttp 0.0.0.0:3000          # any interface, port 3000
    python -m minihttp --workers 8 --log-level DEBUG

Serves one example route, "/", answering "hello, world".

=============================================================================
"""

import argparse
import sys
from typing import List, Optional

from . import __version__
from .config import ServerConfig, parse_address
from .http import Request, Response
from .server import HTTPServer


def hello(request: Request, response: Response) -> Response:
    response.set_status(200)
    response.set_body("hello, world")
    return response


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="minihttp",
        description="Minimal HTTP/1.1 server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m minihttp                        # Run on 127.0.0.1:8080
  python -m minihttp 0.0.0.0:3000           # Listen on all interfaces
  python -m minihttp --workers 8            # 8-16 worker threads
        """,
    )

    parser.add_argument(
        "address",
        nargs="?",
        default="127.0.0.1:8080",
        help="host:port to bind (default: 127.0.0.1:8080)",
    )

    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=4,
        help="Minimum worker threads (default: 4, max will be 2x this)",
    )

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level (default: INFO)",
    )

    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        default="text",
        help="Access log format (default: text)",
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"minihttp {__version__}",
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        host, port = parse_address(args.address)
        config = ServerConfig(
            host=host,
            port=port,
            min_workers=args.workers,
            max_workers=args.workers * 2,
            log_level=args.log_level,
            log_format=args.log_format,
        )
        server = HTTPServer(config)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    server.register("/", hello)

    try:
        server.run()
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
