"""Server configuration and CLI argument parsing."""

import argparse
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from gemserve.domain.errors import ConfigError


def _env_str(name: str, default: str) -> str:
    return os.getenv(name, default)


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value is not None else default


def _env_optional(name: str) -> Optional[str]:
    value = os.getenv(name)
    return value or None


DEFAULT_HOST = _env_str("GEMSERVE_HOST", "localhost")
DEFAULT_PORT = _env_int("GEMSERVE_PORT", 1965)
DEFAULT_ROOT = _env_str("GEMSERVE_ROOT", ".")
DEFAULT_INDEX_FILE = _env_str("GEMSERVE_INDEX_FILE", "index.gmi")
DEFAULT_CERT = _env_str("GEMSERVE_CERT", "cert.pem")
DEFAULT_KEY = _env_str("GEMSERVE_KEY", "key.pem")
DEFAULT_HANDSHAKE_TIMEOUT = _env_int("GEMSERVE_HANDSHAKE_TIMEOUT", 10)
DEFAULT_SOCKET_TIMEOUT = _env_int("GEMSERVE_SOCKET_TIMEOUT", 30)
DEFAULT_MAX_CONNECTIONS = _env_int("GEMSERVE_MAX_CONNECTIONS", 200)
DEFAULT_MAX_CONNECTIONS_PER_IP = _env_int("GEMSERVE_MAX_CONNECTIONS_PER_IP", 20)
DEFAULT_SHUTDOWN_GRACE_SECONDS = _env_int("GEMSERVE_SHUTDOWN_GRACE_SECONDS", 10)


@dataclass(frozen=True)
class GeminiSettings:
    """Immutable configuration shared by every connection."""

    host: str
    port: int
    cert: str
    key: str
    root: str
    index_file_name: str = "index.gmi"
    handshake_timeout: float = DEFAULT_HANDSHAKE_TIMEOUT
    socket_timeout: float = DEFAULT_SOCKET_TIMEOUT
    max_connections: int = DEFAULT_MAX_CONNECTIONS
    max_connections_per_ip: int = DEFAULT_MAX_CONNECTIONS_PER_IP
    shutdown_grace_seconds: int = DEFAULT_SHUTDOWN_GRACE_SECONDS
    user: Optional[str] = None
    group: Optional[str] = None


def parse_cli_args(argv: list[str]) -> argparse.Namespace:
    """Return parsed CLI arguments for server configuration."""
    parser = argparse.ArgumentParser(description="Gemini server configuration")
    parser.add_argument("--host", default=DEFAULT_HOST)
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    parser.add_argument(
        "--root", default=DEFAULT_ROOT, help="Directory served as the capsule root"
    )
    parser.add_argument(
        "--index-file",
        default=DEFAULT_INDEX_FILE,
        help="File served for directory requests",
    )
    parser.add_argument("--cert", default=DEFAULT_CERT, help="TLS certificate chain")
    parser.add_argument("--key", default=DEFAULT_KEY, help="TLS private key")
    default_log_level = os.getenv("GEMSERVE_LOG_LEVEL", "INFO").upper()
    default_destination = os.getenv("GEMSERVE_LOG_DESTINATION", "stdout")
    default_log_format = os.getenv("GEMSERVE_LOG_FORMAT", "json").lower()
    parser.add_argument(
        "--log-level",
        default=default_log_level,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
    )
    parser.add_argument(
        "--log-destination",
        default=default_destination,
        help="stdout or a file path",
    )
    parser.add_argument(
        "--log-format",
        default=default_log_format,
        choices=["json", "text"],
        type=str.lower,
    )
    parser.add_argument(
        "--handshake-timeout",
        type=float,
        default=DEFAULT_HANDSHAKE_TIMEOUT,
        help="Seconds allowed for the TLS handshake",
    )
    parser.add_argument(
        "--socket-timeout",
        type=float,
        default=DEFAULT_SOCKET_TIMEOUT,
        help="Socket timeout in seconds for reading the request and writing the response",
    )
    parser.add_argument(
        "--max-connections",
        type=int,
        default=DEFAULT_MAX_CONNECTIONS,
        help="Maximum concurrent connections (0 for unlimited)",
    )
    parser.add_argument(
        "--max-connections-per-ip",
        type=int,
        default=DEFAULT_MAX_CONNECTIONS_PER_IP,
        help="Maximum concurrent connections per client IP (0 for unlimited)",
    )
    parser.add_argument(
        "--shutdown-grace-seconds",
        type=int,
        default=DEFAULT_SHUTDOWN_GRACE_SECONDS,
        help="Grace period in seconds for graceful shutdown",
    )
    parser.add_argument(
        "--user",
        default=_env_optional("GEMSERVE_USER"),
        help="Drop privileges to this user after binding",
    )
    parser.add_argument(
        "--group",
        default=_env_optional("GEMSERVE_GROUP"),
        help="Drop privileges to this group after binding",
    )
    return parser.parse_args(argv)


def build_settings(args: argparse.Namespace) -> GeminiSettings:
    """Validate parsed arguments and freeze them into settings."""
    root = Path(args.root)
    if not root.is_dir():
        raise ConfigError(f"root directory does not exist: {args.root}")
    for label, value in (("certificate", args.cert), ("key", args.key)):
        if not Path(value).is_file():
            raise ConfigError(f"TLS {label} file not found: {value}")
    index_file_name = args.index_file
    if not index_file_name or "/" in index_file_name or index_file_name in {".", ".."}:
        raise ConfigError(f"invalid index file name: {index_file_name!r}")
    if args.handshake_timeout <= 0 or args.socket_timeout <= 0:
        raise ConfigError("timeouts must be positive")

    return GeminiSettings(
        host=args.host,
        port=args.port,
        cert=args.cert,
        key=args.key,
        root=str(root.resolve()),
        index_file_name=index_file_name,
        handshake_timeout=args.handshake_timeout,
        socket_timeout=args.socket_timeout,
        max_connections=args.max_connections,
        max_connections_per_ip=args.max_connections_per_ip,
        shutdown_grace_seconds=args.shutdown_grace_seconds,
        user=args.user,
        group=args.group,
    )
