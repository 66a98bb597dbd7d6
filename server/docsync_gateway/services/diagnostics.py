"""Diagnostic channel for failures that must not fail the triggering operation."""

from __future__ import annotations

import logging
import threading
from collections import deque
from datetime import datetime, timezone

logger = logging.getLogger("docsync_gateway.diagnostics")


class Diagnostics:
    """Counts and remembers background failures (audit writes, poll fetches)."""

    def __init__(self, history: int = 50) -> None:
        self._lock = threading.Lock()
        self._counts: dict[str, int] = {}
        self._recent: deque[dict] = deque(maxlen=history)

    def report(self, kind: str, message: str, **context) -> None:
        """Log the failure and record it. Never raises."""
        logger.error("%s: %s %s", kind, message, context or "")
        record = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "kind": kind,
            "message": message,
            **context,
        }
        with self._lock:
            self._counts[kind] = self._counts.get(kind, 0) + 1
            self._recent.append(record)

    def count(self, kind: str) -> int:
        with self._lock:
            return self._counts.get(kind, 0)

    def summary(self) -> dict:
        with self._lock:
            return {"counts": dict(self._counts), "recent": list(self._recent)}
