"""
Entry point for the synse-client CLI.

Usage:
    synse-client status                  Check that the server is reachable
    synse-client scan --tags type:led    List devices
    synse-client read --ns default       Read from devices
    synse-client stream --seconds 10     Stream readings (WebSocket only)
    synse-client build-info              Show client build details

Exit Codes:
    0 - Success
    1 - Configuration error (invalid options, unsupported operation)
    2 - Connection error (cannot reach Synse Server, timeout, bad response)
    3 - Server error (Synse Server returned an error payload)
"""

from __future__ import annotations

import argparse
import json
import os
import sys
import threading
from typing import TYPE_CHECKING, Any, List, Optional

if TYPE_CHECKING:
    from synse_client.api import SynseClient

from synse_client import __version__

# Exit codes
EXIT_SUCCESS = 0
EXIT_CONFIG_ERROR = 1
EXIT_CONNECTION_ERROR = 2
EXIT_SERVER_ERROR = 3


def _tag_list(value: str) -> List[str]:
    return [part for part in value.split(",") if part]


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser."""
    parser = argparse.ArgumentParser(
        prog="synse-client",
        description="Query Synse Server over HTTP or WebSocket",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Exit Codes:
  0   Success
  1   Configuration error
  2   Connection error (cannot reach server, timeout, bad response)
  3   Server error (error payload from Synse Server)

Environment Variables:
  SYNSE_CONFIG_PATH        Path to YAML configuration file
  SYNSE_ADDRESS            Synse Server address (host:port)
  SYNSE_TIMEOUT            Per-request timeout in seconds
  SYNSE_RETRY__COUNT       Retries on connection errors and timeouts
  SYNSE_TLS__ENABLED       Use https/wss
  SYNSE_LOG_LEVEL          Logging level: DEBUG, INFO, WARNING, ERROR
  SYNSE_LOG_FORMAT         Log format: json or text

Examples:
  SYNSE_ADDRESS=localhost:5000 synse-client status
  synse-client --address localhost:5000 --transport websocket stream --seconds 5
""",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--transport",
        choices=["http", "websocket"],
        default="http",
        help="Transport to use (default: http)",
    )
    parser.add_argument("--config", help="Path to YAML configuration file")
    parser.add_argument("--address", help="Synse Server address, overrides configuration")

    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("status", help="Check that the server is reachable")
    commands.add_parser("version", help="Show the server version")
    commands.add_parser("config", help="Show the server configuration")
    commands.add_parser("plugins", help="List registered plugins")
    commands.add_parser("transactions", help="List cached write transactions")
    commands.add_parser("build-info", help="Show client build details")

    scan = commands.add_parser("scan", help="List devices")
    scan.add_argument("--ns", default="", help="Default tag namespace")
    scan.add_argument("--tags", type=_tag_list, default=[], help="Comma-separated tags")
    scan.add_argument("--force", action="store_true", help="Force a rebuild of the device cache")

    read = commands.add_parser("read", help="Read from devices")
    read.add_argument("--ns", default="", help="Default tag namespace")
    read.add_argument("--tags", type=_tag_list, default=[], help="Comma-separated tags")

    stream = commands.add_parser("stream", help="Stream readings (WebSocket only)")
    stream.add_argument("--seconds", type=float, default=10.0, help="How long to stream")
    stream.add_argument("--ids", type=_tag_list, default=[], help="Comma-separated device ids")
    stream.add_argument("--tags", type=_tag_list, default=[], help="Comma-separated tags")

    info = commands.add_parser("info", help="Show device info")
    info.add_argument("device", help="Device id")

    return parser


def to_jsonable(value: Any) -> Any:
    """Convert records (or lists of records) to plain JSON values."""
    if isinstance(value, list):
        return [to_jsonable(item) for item in value]
    if hasattr(value, "model_dump"):
        return value.model_dump(mode="json")
    return value


def print_json(value: Any, indent: Optional[int] = 2) -> None:
    print(json.dumps(to_jsonable(value), indent=indent))


def stream_readings(client: "SynseClient", args: argparse.Namespace) -> None:
    """Print readings as JSON lines until the time runs out."""
    from synse_client.models import ReadStreamOptions

    stop = threading.Event()
    timer = threading.Timer(args.seconds, stop.set)
    timer.daemon = True

    subscription = client.read_stream(
        ReadStreamOptions(ids=args.ids, tags=args.tags),
        stop=stop,
    )
    timer.start()
    try:
        for reading in subscription:
            print_json(reading, indent=None)
    finally:
        timer.cancel()
        stop.set()


def run_command(client: "SynseClient", args: argparse.Namespace) -> None:
    """Run one command against an open client and print its result."""
    from synse_client.models import ReadOptions, ScanOptions

    if args.command == "stream":
        stream_readings(client, args)
        return

    if args.command == "scan":
        result: Any = client.scan(ScanOptions(ns=args.ns, tags=args.tags, force=args.force))
    elif args.command == "read":
        result = client.read(ReadOptions(ns=args.ns, tags=args.tags))
    elif args.command == "info":
        result = client.info(args.device)
    else:
        result = getattr(client, args.command)()

    print_json(result)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for synse-client.

    Returns:
        Exit code (0=success, 1=config error, 2=connection error, 3=server error)
    """
    args = build_parser().parse_args(argv)

    if args.command == "build-info":
        from synse_client.version import get_build_info

        print_json(get_build_info().to_dict())
        return EXIT_SUCCESS

    # Import here to keep --help and --version fast
    from synse_client.api import (
        ConfigurationError,
        ConnectionError,
        ProtocolError,
        RequestTimeoutError,
        ServerError,
        StreamOverflowError,
        UnsupportedOperationError,
        create_client,
    )
    from synse_client.config import load_options
    from synse_client.logging import configure_logging, get_logger

    if args.address:
        os.environ["SYNSE_ADDRESS"] = args.address

    try:
        options = load_options(args.config)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    configure_logging(log_format=options.log_format, log_level=options.log_level)
    log = get_logger(__name__)

    try:
        with create_client(options, args.transport) as client:
            run_command(client, args)
        return EXIT_SUCCESS
    except (ConfigurationError, UnsupportedOperationError) as e:
        log.error("command_rejected", command=args.command, error=str(e))
        print(f"\nError: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR
    except ServerError as e:
        log.error("server_error", command=args.command, http_code=e.http_code)
        print(f"\nServer error: {e}", file=sys.stderr)
        return EXIT_SERVER_ERROR
    except (ConnectionError, RequestTimeoutError, ProtocolError, StreamOverflowError) as e:
        log.error("connection_failed", command=args.command, error=str(e))
        print(f"\nConnection error: {e}", file=sys.stderr)
        return EXIT_CONNECTION_ERROR


if __name__ == "__main__":
    sys.exit(main())
