"""Listener creation and TLS configuration."""

import socket
import ssl
import sys

from gemserve.domain.correlation_id import get_logger

SOCKET_LOGGER = get_logger("gemserve.socket")

# Accept wakes up this often to notice shutdown requests.
ACCEPT_POLL_SECONDS = 0.5


def create_tls_context(cert: str, key: str) -> ssl.SSLContext:
    """Load the certificate chain and key; exit the process when they are unusable."""
    try:
        tls_context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
        tls_context.minimum_version = ssl.TLSVersion.TLSv1_2
        tls_context.verify_mode = ssl.CERT_NONE
        tls_context.load_cert_chain(cert, key)
    except (ssl.SSLError, OSError) as error:
        SOCKET_LOGGER.critical(
            "Failed to load TLS certificates",
            extra={"event": "tls_load_failed", "error": str(error)},
        )
        sys.exit(1)
    return tls_context


def create_listener(host: str, port: int) -> socket.socket:
    """Bind the listening socket; a bind failure exits the process."""
    try:
        if not host and socket.has_dualstack_ipv6():
            listener = socket.create_server(
                (host, port), family=socket.AF_INET6, dualstack_ipv6=True
            )
        else:
            listener = socket.create_server((host, port))
    except OSError as error:
        SOCKET_LOGGER.critical(
            "Failed to bind listener",
            extra={
                "event": "bind_failed",
                "host": host,
                "port": port,
                "error": str(error),
            },
        )
        sys.exit(1)
    listener.settimeout(ACCEPT_POLL_SECONDS)
    return listener


def wrap_client(
    tls_context: ssl.SSLContext, client_socket: socket.socket
) -> ssl.SSLSocket:
    """Wrap an accepted socket without handshaking; the worker drives the handshake."""
    return tls_context.wrap_socket(
        client_socket, server_side=True, do_handshake_on_connect=False
    )
