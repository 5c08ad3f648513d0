"""Per-connection handling: handshake, one request, one response, close."""

import logging
import socket
import ssl
import threading
import time
from typing import Optional

from gemserve.bootstrap.config import GeminiSettings
from gemserve.bootstrap.socket_factory import wrap_client
from gemserve.domain.correlation_id import (
    clear_correlation_id,
    generate_correlation_id,
    get_logger,
    set_correlation_id,
)
from gemserve.domain.errors import (
    ContentIOError,
    GeminiError,
    RequestReadError,
    ResponseWriteError,
    TlsHandshakeError,
)
from gemserve.domain.gemini_types import GeminiResponse
from gemserve.domain.response_builders import failure_response, success_response
from gemserve.domain.sandbox import ensure_within_root, resolve_request_path
from gemserve.domain.status import StatusCode
from gemserve.handlers.file_handler import load_content
from gemserve.lifecycle import stats as outcomes
from gemserve.pipeline.io import receive_request, send_response
from gemserve.pipeline.validation import validate_request
from gemserve.transport.context import WorkerContext

WORKER_LOGGER = get_logger("gemserve.transport.worker")


def _client_str(client_address) -> str:
    return f"{client_address[0]}:{client_address[1]}"


def build_response(raw: bytes, settings: GeminiSettings, client: str) -> GeminiResponse:
    """Run validation, path resolution and loading for one request."""
    request = validate_request(raw)
    WORKER_LOGGER.info(
        "Request received",
        extra={"event": "request_received", "client": client, "request": request.line},
    )

    target = resolve_request_path(settings.root, request.path, settings.index_file_name)
    ensure_within_root(settings.root, target)
    if WORKER_LOGGER.logger.isEnabledFor(logging.DEBUG):
        WORKER_LOGGER.debug(
            "Resolved local path",
            extra={"event": "path_resolved", "client": client, "path": target},
        )

    loaded = load_content(target, settings.index_file_name)
    return success_response(loaded.mime, loaded.handle)


def _log_rejection(error: GeminiError, status: StatusCode, client: str) -> None:
    level = logging.WARNING
    if status is StatusCode.NOT_FOUND:
        level = logging.INFO
    elif isinstance(error, ContentIOError):
        level = logging.ERROR
    WORKER_LOGGER.log(
        level,
        "Request rejected",
        extra={
            "event": "request_rejected",
            "client": client,
            "status_code": int(status),
            "error_type": type(error).__name__,
            "error": str(error),
        },
    )


def process_connection(
    stream: socket.socket, client: str, context: WorkerContext
) -> Optional[StatusCode]:
    """Serve exactly one request on an established stream.

    Returns the status written, or None when nothing could be written.
    """
    started = time.monotonic()
    try:
        raw = receive_request(stream)
        response = build_response(raw, context.settings, client)
    except RequestReadError as error:
        WORKER_LOGGER.warning(
            "Could not read request",
            extra={"event": "request_read_failed", "client": client, "error": str(error)},
        )
        if error.status is None:
            context.stats.record_failure(outcomes.READ_FAILED)
            return None
        # Timed out; the stream is still writable.
        response = failure_response(error.status)
    except GeminiError as error:
        status = error.status or StatusCode.PERMANENT_FAILURE
        _log_rejection(error, status, client)
        response = failure_response(status)

    try:
        written = send_response(stream, response)
    except ResponseWriteError as error:
        WORKER_LOGGER.error(
            "Could not write response",
            extra={
                "event": "response_write_failed",
                "client": client,
                "status_code": int(response.status),
                "error": str(error),
            },
        )
        context.stats.record_failure(outcomes.WRITE_FAILED)
        return None
    finally:
        response.close()

    WORKER_LOGGER.info(
        "Response sent",
        extra={
            "event": "response_sent",
            "client": client,
            "status_code": int(response.status),
            "bytes_out": written,
            "duration_ms": round((time.monotonic() - started) * 1000, 3),
        },
    )
    context.stats.record_status(response.status, written)
    return response.status


def perform_handshake(stream: ssl.SSLSocket, client: str) -> None:
    """Drive the server side of the TLS handshake."""
    try:
        stream.do_handshake()
    except (ssl.SSLError, OSError) as error:
        raise TlsHandshakeError(f"could not negotiate TLS with {client}: {error}") from error


def flush_and_close(stream: socket.socket, client: str, tls_established: bool) -> None:
    """Shut the TLS session down in order, then close; failures are only logged."""
    if tls_established and isinstance(stream, ssl.SSLSocket):
        try:
            stream.unwrap()
        except (ssl.SSLError, OSError, ValueError) as error:
            WORKER_LOGGER.debug(
                "Could not shut down TLS session",
                extra={
                    "event": "tls_shutdown_failed",
                    "client": client,
                    "error_type": type(error).__name__,
                },
            )
    try:
        stream.close()
    except OSError as error:
        WORKER_LOGGER.warning(
            "Could not close connection",
            extra={"event": "close_failed", "client": client, "error": str(error)},
        )


def handle_client(
    client_socket: socket.socket,
    client_address: tuple[str, int],
    context: WorkerContext,
) -> None:
    """Own one accepted connection from handshake to close."""
    set_correlation_id(generate_correlation_id())
    current_thread = threading.current_thread()
    lifecycle = context.lifecycle
    client = _client_str(client_address)

    stream: socket.socket = client_socket
    tls_established = False

    try:
        WORKER_LOGGER.info(
            "Client connected", extra={"event": "client_connected", "client": client}
        )
        client_socket.settimeout(context.settings.handshake_timeout)
        stream = wrap_client(context.tls_context, client_socket)
        perform_handshake(stream, client)
        tls_established = True

        stream.settimeout(context.settings.socket_timeout)
        process_connection(stream, client, context)
    except TlsHandshakeError as error:
        WORKER_LOGGER.warning(
            "TLS handshake failed",
            extra={"event": "tls_handshake_failed", "client": client, "error": str(error)},
        )
        context.stats.record_failure(outcomes.HANDSHAKE_FAILED)
    except Exception as error:  # pylint: disable=broad-except
        WORKER_LOGGER.error(
            "Unexpected error in worker",
            extra={
                "event": "worker_error",
                "client": client,
                "error_type": type(error).__name__,
                "error": str(error),
            },
            exc_info=True,
        )
        context.stats.record_failure(outcomes.INTERNAL_ERROR)
    finally:
        flush_and_close(stream, client, tls_established)
        if context.connection_limiter is not None:
            context.connection_limiter.release(client_address[0])
        if lifecycle is not None:
            lifecycle.cleanup_worker(current_thread)
        WORKER_LOGGER.info(
            "Connection terminated",
            extra={"event": "connection_terminated", "client": client},
        )
        clear_correlation_id()
