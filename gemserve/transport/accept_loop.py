"""Main connection acceptance loop."""

import logging
import socket
import ssl
import threading
from typing import Optional

from gemserve.bootstrap.config import GeminiSettings
from gemserve.bootstrap.privileges import drop_privileges
from gemserve.bootstrap.socket_factory import create_listener, create_tls_context
from gemserve.domain.correlation_id import get_logger
from gemserve.lifecycle import stats as outcomes
from gemserve.lifecycle.state import ServerLifecycle
from gemserve.lifecycle.stats import ConnectionStats
from gemserve.transport.connection_limiter import GLOBAL_LIMIT, ConnectionLimiter
from gemserve.transport.context import WorkerContext
from gemserve.transport.worker import handle_client

ACCEPT_LOGGER = get_logger("gemserve.transport.accept")


def _close_quietly(client_socket: socket.socket) -> None:
    try:
        client_socket.close()
    except OSError as error:
        ACCEPT_LOGGER.debug(
            "Could not close rejected socket",
            extra={"event": "close_failed", "error": str(error)},
        )


def _handle_accepted_client(
    client_socket: socket.socket,
    client_address: tuple,
    connection_limiter: ConnectionLimiter,
    handler_context: WorkerContext,
) -> Optional[threading.Thread]:
    """Admit a newly accepted socket and start its connection thread."""
    client_addr_str = f"{client_address[0]}:{client_address[1]}"
    if ACCEPT_LOGGER.logger.isEnabledFor(logging.DEBUG):
        ACCEPT_LOGGER.debug(
            "Client connection accepted",
            extra={"event": "client_accepted", "client": client_addr_str},
        )

    allowed, limit_type = connection_limiter.acquire(client_address[0])
    if not allowed:
        limit_event = (
            "connection_limit_reached"
            if limit_type == GLOBAL_LIMIT
            else "per_ip_limit_reached"
        )
        ACCEPT_LOGGER.warning(
            "Connection limit reached",
            extra={
                "event": limit_event,
                "client": client_addr_str,
                "limit_type": limit_type,
            },
        )
        handler_context.stats.record_failure(outcomes.REJECTED_AT_LIMIT)
        _close_quietly(client_socket)
        return None

    # Workers still alive after the grace period must not hold the process open.
    thread = threading.Thread(
        target=handle_client,
        args=(client_socket, client_address, handler_context),
        name=f"gemini-{client_addr_str}",
        daemon=True,
    )
    lifecycle = handler_context.lifecycle
    if lifecycle is not None:
        lifecycle.register_worker(thread, client_addr_str)
    try:
        thread.start()
    except RuntimeError as error:
        ACCEPT_LOGGER.error(
            "Could not start connection thread",
            extra={
                "event": "worker_start_failed",
                "client": client_addr_str,
                "error": str(error),
            },
        )
        if lifecycle is not None:
            lifecycle.cleanup_worker(thread)
        connection_limiter.release(client_address[0])
        handler_context.stats.record_failure(outcomes.WORKER_START_FAILED)
        _close_quietly(client_socket)
        return None
    return thread


def serve_forever(
    listener: socket.socket,
    handler_context: WorkerContext,
    connection_limiter: ConnectionLimiter,
    lifecycle: ServerLifecycle,
) -> None:
    """Accept connections until the lifecycle asks to stop."""
    while True:
        try:
            client_socket, client_address = listener.accept()
        except socket.timeout:
            if lifecycle.should_stop():
                break
            continue
        except OSError as error:
            if lifecycle.should_stop():
                break
            ACCEPT_LOGGER.error(
                "Socket accept failed",
                extra={
                    "event": "accept_error",
                    "error_type": type(error).__name__,
                    "error": str(error),
                },
            )
            continue

        if lifecycle.is_draining():
            _close_quietly(client_socket)
            continue

        _handle_accepted_client(
            client_socket, client_address, connection_limiter, handler_context
        )


def run_server(
    settings: GeminiSettings,
    lifecycle: ServerLifecycle,
    tls_context: Optional[ssl.SSLContext] = None,
) -> ConnectionStats:
    """Bind, drop privileges, and serve until shutdown; return the outcome counters."""
    if tls_context is None:
        tls_context = create_tls_context(settings.cert, settings.key)
    listener = create_listener(settings.host, settings.port)
    drop_privileges(settings.user, settings.group)

    ACCEPT_LOGGER.info(
        "Server listening for connections",
        extra={
            "event": "server_listening",
            "host": settings.host,
            "port": listener.getsockname()[1],
            "root": settings.root,
        },
    )

    connection_limiter = ConnectionLimiter(
        settings.max_connections,
        settings.max_connections_per_ip,
    )
    handler_context = WorkerContext(
        settings=settings,
        tls_context=tls_context,
        connection_limiter=connection_limiter,
        lifecycle=lifecycle,
    )

    try:
        serve_forever(listener, handler_context, connection_limiter, lifecycle)
    finally:
        listener.close()
        ACCEPT_LOGGER.info(
            "Waiting for active connections to complete",
            extra={
                "event": "shutdown_waiting",
                "grace_seconds": settings.shutdown_grace_seconds,
            },
        )
        lifecycle.wait_for_workers(settings.shutdown_grace_seconds)
        ACCEPT_LOGGER.info(
            "Server shutdown complete",
            extra={"event": "server_stopped", "outcomes": handler_context.stats.snapshot()},
        )
    return handler_context.stats
