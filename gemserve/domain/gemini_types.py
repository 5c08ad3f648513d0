"""Shared Gemini type definitions to avoid circular imports."""

from dataclasses import dataclass
from typing import BinaryIO, Optional

from gemserve.domain.status import StatusCode


@dataclass(frozen=True)
class GeminiRequest:
    """A validated request line."""

    raw: bytes
    line: str
    scheme: str
    host: str
    path: str


@dataclass
class GeminiResponse:
    """A response to be written to a client."""

    status: StatusCode
    meta: str = ""
    body: Optional[BinaryIO] = None
    append_footer: bool = False

    def close(self) -> None:
        """Release the body stream, if any."""
        if self.body is not None:
            self.body.close()
