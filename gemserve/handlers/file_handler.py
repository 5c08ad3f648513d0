"""File loading and MIME classification."""

import errno
import logging
import mimetypes
import os
import stat
from dataclasses import dataclass
from typing import BinaryIO, Iterator

from gemserve.domain.correlation_id import get_logger
from gemserve.domain.errors import ContentIOError, ContentNotFoundError
from gemserve.domain.status import GEMINI_MIME, GEMINI_MIME_UTF8, StatusCode

FILE_LOGGER = get_logger("gemserve.handlers.file")

DEFAULT_MIME = "application/octet-stream"
SNIFF_BYTES = 512
CHUNK_SIZE = 65536

TRANSIENT_ERRNOS = {
    errno.EAGAIN,
    errno.EBUSY,
    errno.EINTR,
    errno.EMFILE,
    errno.ENFILE,
    errno.ENOMEM,
    errno.ETIMEDOUT,
}

_MIME_TYPES = mimetypes.MimeTypes()
_MIME_TYPES.add_type(GEMINI_MIME, ".gmi")
_MIME_TYPES.add_type(GEMINI_MIME, ".gemini")


@dataclass
class LoadedContent:
    """An open file ready to be streamed, plus its MIME type."""

    path: str
    handle: BinaryIO
    mime: str
    size: int


def _classify_os_error(error: OSError, path: str):
    """Map a filesystem error onto the content error it surfaces as."""
    if isinstance(error, (FileNotFoundError, NotADirectoryError)):
        return ContentNotFoundError(f"{path}: {error}")
    if error.errno in TRANSIENT_ERRNOS:
        return ContentIOError(f"{path}: {error}", StatusCode.TEMPORARY_FAILURE)
    return ContentIOError(f"{path}: {error}", StatusCode.PERMANENT_FAILURE)


def _stat(path: str) -> os.stat_result:
    try:
        return os.stat(path)
    except OSError as error:
        raise _classify_os_error(error, path) from error


def sniff_mime(head: bytes) -> str:
    """Guess a MIME type from the first bytes of a file."""
    if b"\x00" in head:
        return DEFAULT_MIME
    try:
        head.decode("utf-8")
    except UnicodeDecodeError as exc:
        # Only a character cut by the sniff window itself still counts as text.
        if len(head) < SNIFF_BYTES or exc.reason != "unexpected end of data":
            return DEFAULT_MIME
    return "text/plain"


def with_text_charset(mime: str) -> str:
    """Append ``charset=utf-8`` to text types that declare no charset."""
    base, _, params = mime.partition(";")
    if not base.strip().lower().startswith("text/"):
        return mime
    if "charset=" in params.lower():
        return mime
    return f"{mime}; charset=utf-8"


def detect_mime(path: str, handle: BinaryIO) -> str:
    """Determine the MIME type for an opened file."""
    if path.endswith(".gmi"):
        return GEMINI_MIME_UTF8

    mime, encoding = _MIME_TYPES.guess_type(path, strict=False)
    if encoding is not None:
        return DEFAULT_MIME
    if mime is None:
        head = handle.read(SNIFF_BYTES)
        handle.seek(0)
        mime = sniff_mime(head)
    return with_text_charset(mime)


def load_content(path: str, index_file_name: str) -> LoadedContent:
    """Open the resolved path for streaming, substituting a directory's index once."""
    metadata = _stat(path)
    if stat.S_ISDIR(metadata.st_mode):
        path = f"{path.rstrip('/')}/{index_file_name}"
        if FILE_LOGGER.logger.isEnabledFor(logging.DEBUG):
            FILE_LOGGER.debug(
                "Directory requested, using index file",
                extra={"event": "index_substituted", "path": path},
            )
        metadata = _stat(path)
        if stat.S_ISDIR(metadata.st_mode):
            raise ContentNotFoundError(f"{path}: index is a directory")

    try:
        handle: BinaryIO = open(path, "rb")  # pylint: disable=consider-using-with
    except OSError as error:
        raise _classify_os_error(error, path) from error

    try:
        mime = detect_mime(path, handle)
    except OSError as error:
        handle.close()
        raise _classify_os_error(error, path) from error

    if FILE_LOGGER.logger.isEnabledFor(logging.DEBUG):
        FILE_LOGGER.debug(
            "File opened",
            extra={"event": "file_opened", "path": path, "mime": mime},
        )
    return LoadedContent(path, handle, mime, metadata.st_size)


def stream_file(handle: BinaryIO, chunk_size: int = CHUNK_SIZE) -> Iterator[bytes]:
    """Yield file contents in fixed-size chunks."""
    while True:
        chunk = handle.read(chunk_size)
        if not chunk:
            break
        yield chunk

