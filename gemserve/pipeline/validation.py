"""Request line validation."""

import urllib.parse

from gemserve.domain.errors import RequestDecodeError, RequestValidationError
from gemserve.domain.gemini_types import GeminiRequest
from gemserve.domain.status import StatusCode

GEMINI_SCHEME = "gemini"
PROXY_SCHEMES = {"http", "https", "gopher", "finger", "spartan", "titan", "ftp"}
TRAVERSAL_MARKERS = ("../", "/..")


def decode_request_line(raw: bytes) -> str:
    """Strip one trailing line terminator and decode the request as UTF-8."""
    if raw.endswith(b"\r\n"):
        raw = raw[:-2]
    elif raw.endswith(b"\n"):
        raw = raw[:-1]
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise RequestDecodeError(
            f"failed to parse request as UTF-8 string: {exc}"
        ) from exc


def contains_traversal(value: str) -> bool:
    """Return True when ``value`` holds a ``..`` path segment marker."""
    return any(marker in value for marker in TRAVERSAL_MARKERS)


def enforce_no_traversal(line: str) -> None:
    """Reject traversal attempts on the untouched request string."""
    if contains_traversal(line):
        raise RequestValidationError(f"directory traversal attempted: {line}")


def parse_request_url(line: str) -> urllib.parse.SplitResult:
    """Parse the request line as an absolute URL."""
    if not line:
        raise RequestValidationError("empty request")
    if any(char.isspace() for char in line):
        raise RequestValidationError(f"whitespace in request URL: {line!r}")
    try:
        url = urllib.parse.urlsplit(line)
        # Accessing the port validates it.
        _ = url.port
    except ValueError as exc:
        raise RequestValidationError(f"could not parse request as URL: {exc}") from exc
    if not url.scheme:
        raise RequestValidationError(f"request is not an absolute URL: {line}")
    return url


def enforce_scheme(url: urllib.parse.SplitResult) -> None:
    """Only gemini URLs are served; known foreign schemes are refused as proxying."""
    if url.scheme == GEMINI_SCHEME:
        if not url.hostname:
            raise RequestValidationError("gemini URL without a host")
        return
    if url.scheme in PROXY_SCHEMES:
        raise RequestValidationError(
            f"invalid URL scheme. refusing to proxy to: {url.scheme}",
            StatusCode.PROXY_REQUEST_REFUSED,
        )
    raise RequestValidationError(f"unsupported URL scheme: {url.scheme}")


def decode_path(url_path: str) -> str:
    """Percent-decode the URL path and re-check it for escapes."""
    try:
        path = urllib.parse.unquote(url_path, errors="strict")
    except UnicodeDecodeError as exc:
        raise RequestValidationError(f"undecodable path: {url_path}") from exc
    if "\x00" in path:
        raise RequestValidationError("NUL byte in request path")
    if contains_traversal(path) or path == "..":
        raise RequestValidationError(f"encoded directory traversal attempted: {url_path}")
    return path


def validate_request(raw: bytes) -> GeminiRequest:
    """Turn raw request bytes into a GeminiRequest or raise with a status."""
    line = decode_request_line(raw)
    enforce_no_traversal(line)
    url = parse_request_url(line)
    enforce_scheme(url)
    path = decode_path(url.path)
    return GeminiRequest(
        raw=raw,
        line=line,
        scheme=url.scheme,
        host=url.hostname or "",
        path=path,
    )
