"""Context object shared across connection threads."""

import ssl
from dataclasses import dataclass, field
from typing import Optional

from gemserve.bootstrap.config import GeminiSettings
from gemserve.lifecycle.state import ServerLifecycle
from gemserve.lifecycle.stats import ConnectionStats
from gemserve.transport.connection_limiter import ConnectionLimiter


@dataclass
class WorkerContext:
    """Read-only dependencies handed to every connection thread."""

    settings: GeminiSettings
    tls_context: ssl.SSLContext
    connection_limiter: Optional[ConnectionLimiter] = None
    lifecycle: Optional[ServerLifecycle] = None
    stats: ConnectionStats = field(default_factory=ConnectionStats)
