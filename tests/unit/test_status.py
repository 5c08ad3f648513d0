"""Unit tests for status codes and header rendering."""

import pytest

from gemserve.domain.response_builders import failure_response, success_response
from gemserve.domain.status import (
    GEMINI_MIME_UTF8,
    STATUS_LABELS,
    StatusClass,
    StatusCode,
    is_gemini_mime,
    render_header,
)


def test_every_status_has_a_label():
    """Test that the label table covers every defined code."""
    assert set(STATUS_LABELS) == set(StatusCode)


@pytest.mark.parametrize(
    "status, expected",
    [
        (StatusCode.NOT_FOUND, b"51 NOT FOUND\r\n"),
        (StatusCode.BAD_REQUEST, b"59 BAD REQUEST\r\n"),
        (StatusCode.PERMANENT_FAILURE, b"50 PERMANENT FAILURE\r\n"),
        (StatusCode.PROXY_REQUEST_REFUSED, b"53 PROXY REQUEST REFUSED\r\n"),
        (StatusCode.TEMPORARY_FAILURE, b"40 TEMPORARY FAILURE\r\n"),
        (StatusCode.REDIRECT_TEMPORARY, b"30 REDIRECT - TEMPORARY\r\n"),
    ],
)
def test_failure_headers_use_fixed_labels(status, expected):
    """Test that non-success headers carry the label, whatever meta is passed."""
    assert render_header(status) == expected
    assert render_header(status, "ignored meta") == expected


def test_success_header_carries_mime():
    """Test that a success header uses the MIME type as its meta."""
    assert render_header(StatusCode.SUCCESS, "image/png") == b"20 image/png\r\n"


def test_success_header_defaults_to_gemtext():
    """Test that an empty success meta falls back to gemtext."""
    assert render_header(StatusCode.SUCCESS) == f"20 {GEMINI_MIME_UTF8}\r\n".encode()


def test_status_class_and_success_flag():
    """Test that the first digit decides the class."""
    assert StatusCode.SLOW_DOWN.status_class is StatusClass.TEMPORARY_FAILURE
    assert StatusCode.CERTIFICATE_NOT_VALID.status_class is StatusClass.CERTIFICATE
    assert StatusCode.SUCCESS.is_success
    assert not StatusCode.NOT_FOUND.is_success


@pytest.mark.parametrize(
    "mime, expected",
    [
        ("text/gemini", True),
        ("text/gemini; charset=utf-8", True),
        ("TEXT/GEMINI;lang=en", True),
        ("text/plain; charset=utf-8", False),
        ("application/octet-stream", False),
    ],
)
def test_is_gemini_mime(mime, expected):
    """Test detection of the gemtext MIME type with parameters."""
    assert is_gemini_mime(mime) is expected


def test_success_response_marks_gemtext_for_footer():
    """Test that only gemtext bodies are flagged for the footer."""
    gemtext = success_response(GEMINI_MIME_UTF8, None)
    plain = success_response("text/plain; charset=utf-8", None)
    assert gemtext.append_footer
    assert not plain.append_footer


def test_failure_response_has_no_body():
    """Test that failure responses are header only."""
    response = failure_response(StatusCode.NOT_FOUND)
    assert response.body is None
    assert response.meta == "NOT FOUND"
    assert not response.append_footer


@pytest.mark.parametrize("status", list(StatusCode))
def test_header_starts_with_two_digit_code(status):
    """Test that every rendered header leads with its code and a space."""
    header = render_header(status, "text/plain")
    assert header[:2].decode() == f"{status.value:02d}"
    assert header[2:3] == b" "
    assert header.endswith(b"\r\n")
