"""Draining flag and the registry of live connection threads."""

import threading
import time
from typing import Optional

from gemserve.domain.correlation_id import get_logger

LIFECYCLE_LOGGER = get_logger("gemserve.lifecycle")

# Join slice while draining, so the deadline is checked regularly.
JOIN_SLICE_SECONDS = 0.1


class ServerLifecycle:
    """Shutdown state shared by the accept loop, the workers and signal handlers."""

    def __init__(self) -> None:
        self._draining = threading.Event()
        self._lock = threading.Lock()
        self._workers: dict[threading.Thread, str] = {}

    def should_stop(self) -> bool:
        """True once the accept loop must leave."""
        return self._draining.is_set()

    def is_draining(self) -> bool:
        """True once shutdown has begun; new sockets are then refused."""
        return self._draining.is_set()

    def begin_draining(self) -> None:
        """Stop accepting; safe to call from a signal handler more than once."""
        if self._draining.is_set():
            return
        self._draining.set()
        LIFECYCLE_LOGGER.info(
            "Beginning graceful shutdown",
            extra={"event": "shutdown_started", "remaining_workers": self.active_worker_count()},
        )

    def register_worker(self, thread: threading.Thread, client: Optional[str] = None) -> None:
        with self._lock:
            self._workers[thread] = client or thread.name

    def cleanup_worker(self, thread: threading.Thread) -> None:
        with self._lock:
            self._workers.pop(thread, None)

    def has_worker(self, thread: threading.Thread) -> bool:
        with self._lock:
            return thread in self._workers

    def active_worker_count(self) -> int:
        with self._lock:
            return len(self._workers)

    def _live_workers(self) -> dict[threading.Thread, str]:
        with self._lock:
            for thread in [t for t in self._workers if not t.is_alive()]:
                del self._workers[thread]
            return dict(self._workers)

    def wait_for_workers(self, timeout: float) -> bool:
        """Join connection threads until none remain or ``timeout`` seconds pass.

        Returns True when every worker finished. Stragglers are logged with
        their client addresses and left running.
        """
        deadline = time.monotonic() + timeout
        live = self._live_workers()
        while live:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                LIFECYCLE_LOGGER.warning(
                    "Shutdown timeout exceeded",
                    extra={
                        "event": "shutdown_timeout",
                        "remaining_workers": len(live),
                        "stalled_clients": sorted(live.values()),
                    },
                )
                return False
            next(iter(live)).join(timeout=min(JOIN_SLICE_SECONDS, remaining))
            live = self._live_workers()
        return True
