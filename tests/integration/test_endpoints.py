"""Integration tests exercising Gemini requests over real TLS connections."""

# pylint: disable=redefined-outer-name

import pytest

from gemserve.domain.status import FOOTER_BYTES
from tests.utils.gemini import gemini_request, wait_for_log_event

pytestmark = pytest.mark.integration


def fetch(server_process, request: bytes):
    return gemini_request(server_process["host"], server_process["port"], request)


def test_root_serves_index_with_footer(server_process):
    """The root URL returns the index page as gemtext plus the footer."""
    reply = fetch(server_process, b"gemini://localhost/\r\n")
    assert reply.header == b"20 text/gemini; charset=utf-8\r\n"
    expected = (server_process["root"] / "index.gmi").read_bytes() + FOOTER_BYTES
    assert reply.body == expected


def test_http_scheme_is_refused(server_process):
    """Foreign schemes get a permanent failure header and no body."""
    reply = fetch(server_process, b"http://localhost/\r\n")
    assert reply.status == 53
    assert reply.meta == "PROXY REQUEST REFUSED"
    assert reply.body == b""


def test_traversal_is_refused(server_process):
    """Dot-dot requests are refused before touching the filesystem."""
    reply = fetch(server_process, b"gemini://localhost/../../etc/passwd\r\n")
    assert reply.header == b"59 BAD REQUEST\r\n"
    assert reply.body == b""


def test_missing_file_is_not_found(server_process):
    """Absent files produce exactly the NOT FOUND header."""
    reply = fetch(server_process, b"gemini://localhost/missing.gmi\r\n")
    assert reply.header == b"51 NOT FOUND\r\n"
    assert reply.body == b""


def test_directory_serves_its_index(server_process):
    """Directory URLs are answered with the directory's index file."""
    reply = fetch(server_process, b"gemini://localhost/docs/\r\n")
    assert reply.status == 20
    expected = (server_process["root"] / "docs" / "index.gmi").read_bytes()
    assert reply.body == expected + FOOTER_BYTES


def test_binary_file_has_no_charset(server_process):
    """Binary files are sent untouched with their bare MIME type."""
    reply = fetch(server_process, b"gemini://localhost/pixel.png\r\n")
    assert reply.header == b"20 image/png\r\n"
    assert reply.body == (server_process["root"] / "pixel.png").read_bytes()


def test_text_file_has_charset(server_process):
    """Plain text files carry the UTF-8 charset and no footer."""
    reply = fetch(server_process, b"gemini://localhost/notes.txt\r\n")
    assert reply.meta == "text/plain; charset=utf-8"
    assert reply.body == b"plain notes\n"


def test_invalid_utf8_is_bad_request(server_process):
    """Undecodable requests are refused, not served the index page."""
    reply = fetch(server_process, b"gemini://localhost/\xff\xfe\r\n")
    assert reply.header == b"59 BAD REQUEST\r\n"


def test_oversized_request_is_truncated_and_answered(server_process):
    """Requests longer than the read limit still get exactly one response."""
    long_path = b"a" * 2000
    reply = fetch(server_process, b"gemini://localhost/" + long_path + b"\r\n")
    assert reply.status == 51


def test_requests_are_logged_with_correlation_ids(server_process):
    """Each connection's log records share one correlation ID."""
    fetch(server_process, b"gemini://localhost/notes.txt\r\n")
    events = wait_for_log_event(server_process["log_file"], "response_sent")
    sent = [event for event in events if event.get("event") == "response_sent"]
    correlation_id = sent[-1]["correlation_id"]
    assert correlation_id != "-"
    events = wait_for_log_event(
        server_process["log_file"], "connection_terminated", correlation_id
    )
    same_connection = {
        event.get("event")
        for event in events
        if event.get("correlation_id") == correlation_id
    }
    assert {"client_connected", "request_received", "connection_terminated"} <= same_connection
