"""Gemini server serving a directory tree over TLS."""

import signal
import sys

from gemserve.bootstrap.config import build_settings, parse_cli_args
from gemserve.bootstrap.logging_setup import configure_logging
from gemserve.domain.correlation_id import get_logger
from gemserve.domain.errors import ConfigError
from gemserve.lifecycle.state import ServerLifecycle
from gemserve.transport.accept_loop import run_server

SERVER_LOGGER = get_logger("gemserve.server")


def main(argv: list[str] | None = None) -> None:
    """Start the Gemini server and spawn a thread per connection."""
    args = parse_cli_args(sys.argv[1:] if argv is None else argv)
    configure_logging(
        args.log_level, args.log_destination, use_json=args.log_format == "json"
    )

    try:
        settings = build_settings(args)
    except ConfigError as error:
        SERVER_LOGGER.critical(
            "Invalid configuration", extra={"event": "config_error", "error": str(error)}
        )
        sys.exit(1)

    lifecycle = ServerLifecycle()

    def shutdown_handler(signum: int, _frame) -> None:
        SERVER_LOGGER.info(
            "Received shutdown signal", extra={"event": "signal", "signal": signum}
        )
        lifecycle.begin_draining()

    signal.signal(signal.SIGTERM, shutdown_handler)
    signal.signal(signal.SIGINT, shutdown_handler)

    SERVER_LOGGER.info(
        "Starting Gemini server",
        extra={
            "event": "server_starting",
            "host": settings.host,
            "port": settings.port,
            "root": settings.root,
            "index_file": settings.index_file_name,
            "log_destination": args.log_destination,
            "log_level": args.log_level,
            "handshake_timeout": settings.handshake_timeout,
            "socket_timeout": settings.socket_timeout,
            "max_connections": settings.max_connections,
        },
    )
    try:
        run_server(settings, lifecycle)
    except ConfigError as error:
        SERVER_LOGGER.critical(
            "Startup failed", extra={"event": "startup_failed", "error": str(error)}
        )
        sys.exit(1)


if __name__ == "__main__":
    main()
