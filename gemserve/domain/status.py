"""Gemini status codes and response header rendering.

Every header the server writes is built from ``STATUS_LABELS``: SUCCESS
headers carry a MIME type as their meta, every other status carries the
fixed label for its code.
"""

from enum import Enum, IntEnum

GEMINI_MIME = "text/gemini"
GEMINI_MIME_UTF8 = "text/gemini; charset=utf-8"

FOOTER_BYTES = b"\n\n~~~~ served by gemserve ~~~~~~~~~\n\n"


class StatusClass(Enum):
    """The first digit of a status code."""

    INPUT = 1
    SUCCESS = 2
    REDIRECT = 3
    TEMPORARY_FAILURE = 4
    PERMANENT_FAILURE = 5
    CERTIFICATE = 6


class StatusCode(IntEnum):
    """Two-digit Gemini response status."""

    INPUT = 10
    SENSITIVE_INPUT = 11
    SUCCESS = 20
    REDIRECT_TEMPORARY = 30
    REDIRECT_PERMANENT = 31
    TEMPORARY_FAILURE = 40
    SERVER_UNAVAILABLE = 41
    CGI_ERROR = 42
    PROXY_ERROR = 43
    SLOW_DOWN = 44
    PERMANENT_FAILURE = 50
    NOT_FOUND = 51
    GONE = 52
    PROXY_REQUEST_REFUSED = 53
    BAD_REQUEST = 59
    CLIENT_CERTIFICATE_REQUIRED = 60
    CERTIFICATE_NOT_AUTHORISED = 61
    CERTIFICATE_NOT_VALID = 62
    CERTIFICATE_NOT_ACCEPTED = 63
    FUTURE_CERTIFICATE_REJECTED = 64
    EXPIRED_CERTIFICATE_REJECTED = 65

    @property
    def label(self) -> str:
        return STATUS_LABELS[self]

    @property
    def status_class(self) -> StatusClass:
        return StatusClass(self.value // 10)

    @property
    def is_success(self) -> bool:
        return self.status_class is StatusClass.SUCCESS


STATUS_LABELS: dict[StatusCode, str] = {
    StatusCode.INPUT: "INPUT",
    StatusCode.SENSITIVE_INPUT: "SENSITIVE INPUT",
    StatusCode.SUCCESS: "SUCCESS",
    StatusCode.REDIRECT_TEMPORARY: "REDIRECT - TEMPORARY",
    StatusCode.REDIRECT_PERMANENT: "REDIRECT - PERMANENT",
    StatusCode.TEMPORARY_FAILURE: "TEMPORARY FAILURE",
    StatusCode.SERVER_UNAVAILABLE: "SERVER UNAVAILABLE",
    StatusCode.CGI_ERROR: "CGI ERROR",
    StatusCode.PROXY_ERROR: "PROXY ERROR",
    StatusCode.SLOW_DOWN: "SLOW DOWN",
    StatusCode.PERMANENT_FAILURE: "PERMANENT FAILURE",
    StatusCode.NOT_FOUND: "NOT FOUND",
    StatusCode.GONE: "GONE",
    StatusCode.PROXY_REQUEST_REFUSED: "PROXY REQUEST REFUSED",
    StatusCode.BAD_REQUEST: "BAD REQUEST",
    StatusCode.CLIENT_CERTIFICATE_REQUIRED: "CLIENT CERTIFICATE REQUIRED",
    StatusCode.CERTIFICATE_NOT_AUTHORISED: "CERTIFICATE NOT AUTHORISED",
    StatusCode.CERTIFICATE_NOT_VALID: "CERTIFICATE NOT VALID",
    StatusCode.CERTIFICATE_NOT_ACCEPTED: "CERTIFICATE NOT ACCEPTED",
    StatusCode.FUTURE_CERTIFICATE_REJECTED: "FUTURE CERTIFICATE REJECTED",
    StatusCode.EXPIRED_CERTIFICATE_REJECTED: "EXPIRED CERTIFICATE REJECTED",
}


def render_header(status: StatusCode, meta: str = "") -> bytes:
    """Return the ``<code> <meta>\\r\\n`` header line for a response."""
    if status.is_success:
        text = meta or GEMINI_MIME_UTF8
    else:
        text = status.label
    return f"{status.value:02d} {text}\r\n".encode("utf-8")


def is_gemini_mime(mime: str) -> bool:
    """Return True when the MIME type's base is text/gemini."""
    base, _, _ = mime.partition(";")
    return base.strip().lower() == GEMINI_MIME
