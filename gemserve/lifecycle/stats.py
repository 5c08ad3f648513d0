"""Connection outcome counters.

Workers report outcomes here; nothing flows back to the accept loop.
"""

import threading
from collections import Counter

from gemserve.domain.status import StatusCode

HANDSHAKE_FAILED = "handshake_failed"
READ_FAILED = "read_failed"
WRITE_FAILED = "write_failed"
REJECTED_AT_LIMIT = "rejected_at_limit"
INTERNAL_ERROR = "internal_error"
WORKER_START_FAILED = "worker_start_failed"


class ConnectionStats:
    """Thread-safe tally of how connections ended."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._outcomes: Counter[str] = Counter()
        self._bytes_out = 0

    def record_status(self, status: StatusCode, bytes_out: int = 0) -> None:
        with self._lock:
            self._outcomes[f"{status.value:02d}"] += 1
            self._bytes_out += bytes_out

    def record_failure(self, kind: str) -> None:
        with self._lock:
            self._outcomes[kind] += 1

    def count(self, key: str | StatusCode) -> int:
        if isinstance(key, StatusCode):
            key = f"{key.value:02d}"
        with self._lock:
            return self._outcomes[key]

    def snapshot(self) -> dict[str, int]:
        """Return a copy of the counters, plus total connections and bytes."""
        with self._lock:
            data = dict(self._outcomes)
            data["total"] = sum(self._outcomes.values())
            data["bytes_out"] = self._bytes_out
        return data
