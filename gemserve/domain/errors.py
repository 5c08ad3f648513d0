"""Error taxonomy for the server.

Per-connection errors carry the status written back to the client; the
worker catches them and never lets them reach the accept loop.
"""

from typing import Optional

from gemserve.domain.status import StatusCode


class GeminiError(Exception):
    """Base class for errors raised while serving one connection."""

    status: Optional[StatusCode] = None

    def __init__(self, message: str = "", status: Optional[StatusCode] = None):
        super().__init__(message)
        if status is not None:
            self.status = status


class ConfigError(Exception):
    """Raised at startup when the configuration cannot be used."""


class TlsHandshakeError(GeminiError):
    """The TLS session could not be negotiated."""


class RequestReadError(GeminiError):
    """Reading the request line failed; the stream is unusable."""


class RequestDecodeError(GeminiError):
    """The request bytes are not valid UTF-8."""

    status = StatusCode.BAD_REQUEST


class RequestValidationError(GeminiError):
    """The request line is malformed, uses a refused scheme, or traverses."""

    status = StatusCode.BAD_REQUEST


class ForbiddenPath(RequestValidationError):
    """The resolved target escapes the configured root."""


class ContentNotFoundError(GeminiError):
    """Nothing exists at the resolved path."""

    status = StatusCode.NOT_FOUND


class ContentIOError(GeminiError):
    """The resolved path exists but could not be read."""

    status = StatusCode.PERMANENT_FAILURE


class ResponseWriteError(GeminiError):
    """Writing the response to the client failed."""
