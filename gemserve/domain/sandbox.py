"""Filesystem path resolution confined to the configured root."""

import os

from gemserve.domain.errors import ForbiddenPath


def resolve_request_path(root: str, url_path: str, index_file_name: str) -> str:
    """Map a validated URL path onto the root, substituting the index file.

    Plain concatenation: no normalization happens here.
    """
    base = root.rstrip("/")
    if not url_path:
        return f"{base}/{index_file_name}"
    if url_path.endswith("/"):
        return f"{base}{url_path}{index_file_name}"
    return f"{base}{url_path}"


def ensure_within_root(root: str, target: str) -> str:
    """Return ``target`` if its canonical form lies under the canonical root."""
    if "\x00" in target:
        raise ForbiddenPath(f"NUL byte in path: {target!r}")

    canonical_root = os.path.realpath(root)
    canonical_target = os.path.realpath(target)
    if canonical_target == canonical_root:
        return target
    if os.path.commonpath([canonical_root, canonical_target]) != canonical_root:
        raise ForbiddenPath(f"path escapes root: {target}")
    return target
