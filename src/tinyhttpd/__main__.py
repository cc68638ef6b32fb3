"""
=============================================================================
HTTP SERVER CLI ENTRY POINT
=============================================================================

    # Run with defaults (0.0.0.0:4221, one worker per CPU)
    python -m tinyhttpd

    # Serve /files from a directory
    python -m tinyhttpd --directory /tmp/data

    # Local development
    python -m tinyhttpd --host 127.0.0.1 --port 8080 --log-level DEBUG

Settings not given on the command line come from the environment
(HTTP_PORT, HTTP_STORAGE_DIR, ...; see config.py), then from the
ServerConfig defaults.

=============================================================================
"""

import argparse
import sys
from typing import List, Optional

from . import __version__
from .config import ServerConfig, LOG_LEVELS
from .http.access_log import LOG_FORMATS
from .server import HTTPServer


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tinyhttpd",
        description="Minimal concurrent HTTP/1.1 server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m tinyhttpd                         # Run with defaults
  python -m tinyhttpd --directory /tmp/data   # Files storage root
  python -m tinyhttpd --port 8080 -w 4        # Custom port, 4 workers
        """
    )

    # Every default is None so unset flags fall through to the environment

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=None,
        help="Host to bind to (default: 0.0.0.0)"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=None,
        help="Port to listen on (default: 4221)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # SERVER ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--directory", "-d",
        default=None,
        help="Storage directory for /files (default: /tmp/data/codecrafters.io/http-server-tester/)"
    )

    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=None,
        help="Maximum concurrent connections (default: number of CPUs)"
    )

    parser.add_argument(
        "--gzip",
        action="store_true",
        default=None,
        help="Really compress /echo bodies sent with Content-Encoding: gzip"
    )

    parser.add_argument(
        "--preserve-line-endings",
        action="store_true",
        default=None,
        help="Serve stored files byte for byte instead of joining their lines"
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        type=str.upper,
        choices=LOG_LEVELS,
        default=None,
        help="Logging level (default: INFO)"
    )

    parser.add_argument(
        "--log-format",
        choices=LOG_FORMATS,
        default=None,
        help="Access log format (default: text)"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    return parser


def config_from_args(args: argparse.Namespace) -> ServerConfig:
    """
    Layer parsed CLI arguments over ServerConfig.from_env().

    Raises:
        ValueError: An environment variable holds an invalid number.
    """
    config = ServerConfig.from_env()

    overrides = {
        "host": args.host,
        "port": args.port,
        "storage_dir": args.directory,
        "max_workers": args.workers,
        "compress_echo": args.gzip,
        "preserve_line_endings": args.preserve_line_endings,
        "log_level": args.log_level,
        "log_format": args.log_format,
    }
    for name, value in overrides.items():
        if value is not None:
            setattr(config, name, value)

    return config


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = config_from_args(args)
        server = HTTPServer(config)
    except ValueError as e:
        parser.error(str(e))  # Exits with status 2

    try:
        server.run()
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
