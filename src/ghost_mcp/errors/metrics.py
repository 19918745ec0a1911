"""In-process error counters for the health endpoint."""

import threading
import time
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Dict, Optional


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class ErrorMetrics:
    """Counts errors by type, status code and endpoint."""

    def __init__(self):
        self._lock = threading.Lock()
        self._started = time.monotonic()
        self._reset_counters()

    def _reset_counters(self) -> None:
        self.total_errors = 0
        self.errors_by_type: Counter = Counter()
        self.errors_by_status_code: Counter = Counter()
        self.errors_by_endpoint: Counter = Counter()
        self.last_reset = _now_iso()

    def record_error(self, error: BaseException, endpoint: Optional[str] = None) -> None:
        """
        Record one error.

        Args:
            error: The exception that reached the boundary
            endpoint: Optional "METHOD /path" label
        """
        status_code = getattr(error, "status_code", None) or 500
        with self._lock:
            self.total_errors += 1
            self.errors_by_type[type(error).__name__] += 1
            self.errors_by_status_code[status_code] += 1
            if endpoint:
                self.errors_by_endpoint[endpoint] += 1

    def get_metrics(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "totalErrors": self.total_errors,
                "errorsByType": dict(self.errors_by_type),
                "errorsByStatusCode": dict(self.errors_by_status_code),
                "errorsByEndpoint": dict(self.errors_by_endpoint),
                "lastReset": self.last_reset,
                "uptime": time.monotonic() - self._started,
                "timestamp": _now_iso(),
            }

    def reset(self) -> None:
        with self._lock:
            self._reset_counters()


# Process wide instance fed by the HTTP exception handlers
error_metrics = ErrorMetrics()
