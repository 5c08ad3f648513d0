"""Concurrent connection quotas."""

import threading
from typing import Optional

GLOBAL_LIMIT = "global"
PER_IP_LIMIT = "ip"


class ConnectionLimiter:
    """Bounds live connections globally and per client IP; 0 disables a bound."""

    def __init__(self, max_connections: int, max_connections_per_ip: int) -> None:
        self._max_connections = max(0, max_connections)
        self._max_connections_per_ip = max(0, max_connections_per_ip)
        self._lock = threading.Lock()
        self._active = 0
        self._per_ip: dict[str, int] = {}

    def acquire(self, client_ip: str) -> tuple[bool, Optional[str]]:
        """Claim a slot; on refusal, also return which limit was hit."""
        with self._lock:
            ip_active = self._per_ip.get(client_ip, 0)
            if self._max_connections_per_ip and ip_active >= self._max_connections_per_ip:
                return False, PER_IP_LIMIT
            if self._max_connections and self._active >= self._max_connections:
                return False, GLOBAL_LIMIT
            self._active += 1
            self._per_ip[client_ip] = ip_active + 1
            return True, None

    def release(self, client_ip: str) -> None:
        """Give back a slot claimed by ``acquire``."""
        with self._lock:
            self._active = max(0, self._active - 1)
            remaining = self._per_ip.get(client_ip, 0) - 1
            if remaining > 0:
                self._per_ip[client_ip] = remaining
            else:
                self._per_ip.pop(client_ip, None)

    @property
    def active(self) -> int:
        with self._lock:
            return self._active
