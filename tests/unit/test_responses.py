"""Unit tests for writing responses to the client stream."""

import io
import socket
from unittest.mock import Mock

import pytest

from gemserve.domain.errors import ResponseWriteError
from gemserve.domain.gemini_types import GeminiResponse
from gemserve.domain.response_builders import failure_response, success_response
from gemserve.domain.status import FOOTER_BYTES, GEMINI_MIME_UTF8, StatusCode
from gemserve.pipeline.io import send_response


def sent_bytes(mock_socket):
    return b"".join(call.args[0] for call in mock_socket.sendall.call_args_list)


def test_gemtext_gets_footer():
    """Gemtext bodies are followed by the footer."""
    mock_socket = Mock(spec=socket.socket)
    written = send_response(
        mock_socket, success_response(GEMINI_MIME_UTF8, io.BytesIO(b"# Hi\n"))
    )
    expected = b"20 text/gemini; charset=utf-8\r\n# Hi\n" + FOOTER_BYTES
    assert sent_bytes(mock_socket) == expected
    assert written == len(expected)


def test_other_bodies_are_sent_verbatim():
    """Non-gemtext bodies get no footer."""
    mock_socket = Mock(spec=socket.socket)
    send_response(mock_socket, success_response("image/png", io.BytesIO(b"\x89PNG")))
    assert sent_bytes(mock_socket) == b"20 image/png\r\n\x89PNG"


def test_empty_gemtext_still_gets_footer():
    """An empty gemtext file is answered with just the footer as body."""
    mock_socket = Mock(spec=socket.socket)
    send_response(mock_socket, success_response(GEMINI_MIME_UTF8, io.BytesIO(b"")))
    assert sent_bytes(mock_socket).endswith(b"\r\n" + FOOTER_BYTES)


def test_failure_is_header_only():
    """Failure responses write exactly one header line."""
    mock_socket = Mock(spec=socket.socket)
    written = send_response(mock_socket, failure_response(StatusCode.NOT_FOUND))
    assert sent_bytes(mock_socket) == b"51 NOT FOUND\r\n"
    assert written == len(b"51 NOT FOUND\r\n")


def test_write_error_is_wrapped():
    """Socket errors while writing become ResponseWriteError."""
    mock_socket = Mock(spec=socket.socket)
    mock_socket.sendall.side_effect = BrokenPipeError("gone")
    with pytest.raises(ResponseWriteError):
        send_response(mock_socket, failure_response(StatusCode.NOT_FOUND))


def test_body_read_error_is_wrapped():
    """A file that fails mid-stream aborts the response."""
    body = Mock()
    body.read.side_effect = OSError("disk error")
    with pytest.raises(ResponseWriteError):
        send_response(Mock(spec=socket.socket), GeminiResponse(StatusCode.SUCCESS, "text/plain", body))


def test_close_releases_body():
    """Closing a response closes its body stream."""
    body = io.BytesIO(b"data")
    success_response("text/plain", body).close()
    assert body.closed
