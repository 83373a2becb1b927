"""
=============================================================================
FLUXDB CLI ENTRY POINT
=============================================================================

    # Run with defaults (0.0.0.0:6379, RESP)
    python -m fluxdb

    # Custom address
    python -m fluxdb --bind 127.0.0.1 --port 7000

    # Legacy newline-delimited protocol (telnet/nc friendly)
    python -m fluxdb --protocol inline

    # Structured command log
    python -m fluxdb --log-format json --log-level DEBUG

=============================================================================
CONFIGURATION PRIORITY
=============================================================================

    command-line flag  >  FLUXDB_* environment variable  >  default

Flags default to None so that an omitted flag falls through to the
environment instead of overwriting it with argparse's default.

=============================================================================
"""

import argparse
import logging
import sys

from . import __version__
from .config import LOG_FORMATS, LOG_LEVELS, ServerConfig
from .middleware import CommandLoggingMiddleware
from .protocol import CODECS
from .server import FluxServer


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fluxdb",
        description="Threaded in-memory key-value server speaking RESP",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m fluxdb                          # Run with defaults
  python -m fluxdb --port 7000              # Custom port
  python -m fluxdb --bind 127.0.0.1         # Local connections only
  python -m fluxdb --protocol inline        # Newline-delimited protocol
        """,
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--bind", "-b",
        default=None,
        help="Address to bind to (default: 0.0.0.0, env: FLUXDB_BIND)",
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=None,
        help="Port to listen on (default: 6379, env: FLUXDB_PORT)",
    )

    parser.add_argument(
        "--protocol",
        choices=sorted(CODECS),
        default=None,
        help="Wire protocol (default: resp, env: FLUXDB_PROTOCOL)",
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        choices=list(LOG_LEVELS),
        type=str.upper,
        default=None,
        help="Logging level (default: INFO, env: FLUXDB_LOG_LEVEL)",
    )

    parser.add_argument(
        "--log-format",
        choices=list(LOG_FORMATS),
        default=None,
        help="Command log format (default: text, env: FLUXDB_LOG_FORMAT)",
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"FluxDB {__version__}",
    )

    return parser


def build_config(args: argparse.Namespace) -> ServerConfig:
    """Environment-based config with command-line overrides applied."""
    config = ServerConfig.from_env()

    if args.bind is not None:
        config.host = args.bind
    if args.port is not None:
        config.port = args.port
    if args.protocol is not None:
        config.protocol = args.protocol
    if args.log_level is not None:
        config.log_level = args.log_level
    if args.log_format is not None:
        config.log_format = args.log_format

    return config


def main(argv=None):
    args = build_parser().parse_args(argv)

    try:
        config = build_config(args)
        server = FluxServer(config)
    except ValueError as e:
        print(f"Error: invalid configuration: {e}", file=sys.stderr)
        sys.exit(1)

    server.use(CommandLoggingMiddleware(
        log_format=config.log_format,
        log_level=logging.DEBUG,
        slowlog_threshold_ms=config.slowlog_threshold_ms,
    ))

    try:
        server.run()
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
