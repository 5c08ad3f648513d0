"""Pure Gemini response builders."""

from typing import BinaryIO

from gemserve.domain.gemini_types import GeminiResponse
from gemserve.domain.status import StatusCode, is_gemini_mime


def success_response(mime: str, body: BinaryIO) -> GeminiResponse:
    """Return a 20 response streaming ``body``; gemtext gets the footer."""
    return GeminiResponse(
        StatusCode.SUCCESS,
        meta=mime,
        body=body,
        append_footer=is_gemini_mime(mime),
    )


def failure_response(status: StatusCode) -> GeminiResponse:
    """Return a header-only response carrying the status label."""
    return GeminiResponse(status, meta=status.label)
