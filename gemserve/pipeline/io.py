"""Gemini request intake and response output."""

import logging
import socket

from gemserve.domain.correlation_id import get_logger
from gemserve.domain.errors import RequestReadError, ResponseWriteError
from gemserve.domain.gemini_types import GeminiResponse
from gemserve.domain.status import FOOTER_BYTES, StatusCode, render_header
from gemserve.handlers.file_handler import stream_file

IO_LOGGER = get_logger("gemserve.io")

# 1024 bytes of URL plus CRLF.
MAX_REQUEST_BYTES = 1026


def receive_request(stream: socket.socket, max_bytes: int = MAX_REQUEST_BYTES) -> bytes:
    """Read the request in a single bounded read; longer requests are truncated."""
    try:
        raw = stream.recv(max_bytes)
    except (socket.timeout, TimeoutError) as exc:
        raise RequestReadError(
            "timed out waiting for request", StatusCode.BAD_REQUEST
        ) from exc
    except OSError as exc:
        raise RequestReadError(f"failed to read from socket: {exc}") from exc
    if not raw:
        raise RequestReadError("client closed the connection before sending a request")
    if IO_LOGGER.logger.isEnabledFor(logging.DEBUG):
        IO_LOGGER.debug("Request bytes received", extra={"bytes_in": len(raw)})
    return raw


def _write(stream: socket.socket, data: bytes, what: str) -> int:
    try:
        stream.sendall(data)
    except OSError as exc:
        raise ResponseWriteError(f"could not write {what} to tls socket: {exc}") from exc
    return len(data)


def send_response(stream: socket.socket, response: GeminiResponse) -> int:
    """Write header, body and footer; return the number of bytes written."""
    written = _write(stream, render_header(response.status, response.meta), "header")
    if response.body is not None:
        try:
            for chunk in stream_file(response.body):
                written += _write(stream, chunk, "body")
        except OSError as exc:
            raise ResponseWriteError(f"could not read body: {exc}") from exc
        if response.append_footer:
            written += _write(stream, FOOTER_BYTES, "footer")
    if IO_LOGGER.logger.isEnabledFor(logging.DEBUG):
        IO_LOGGER.debug(
            "Sent response",
            extra={"status_code": int(response.status), "bytes_out": written},
        )
    return written
