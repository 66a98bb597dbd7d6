"""Append-only JSONL audit log of gateway operations.

Each entry is one line written with a single ``write`` call on a file opened
in append mode. A thread lock serializes writers inside the process and an
exclusive ``flock`` serializes writers across processes sharing ``LOG_PATH``.
"""

from __future__ import annotations

import asyncio
import fcntl
import json
import logging
import threading
from pathlib import Path

from pydantic import ValidationError

from ..errors import PersistenceFailure
from ..models.audit import AuditEntry, DateRange

logger = logging.getLogger(__name__)


class AuditLog:
    """Durable, append-only record of AuditEntries."""

    def __init__(self, filepath: Path) -> None:
        self.filepath = Path(filepath)
        self._lock = threading.Lock()

    async def append(self, entry: AuditEntry) -> None:
        """Append one entry. Raises PersistenceFailure if it cannot be written."""
        await asyncio.to_thread(self._append_sync, entry)

    def _append_sync(self, entry: AuditEntry) -> None:
        try:
            line = entry.model_dump_json() + "\n"
            logger.debug("Database action: %s", line.rstrip())
            self.filepath.parent.mkdir(parents=True, exist_ok=True)
            with self._lock, open(self.filepath, "a", encoding="utf-8") as f:
                fcntl.flock(f.fileno(), fcntl.LOCK_EX)
                try:
                    f.write(line)
                    f.flush()
                finally:
                    fcntl.flock(f.fileno(), fcntl.LOCK_UN)
        except (OSError, ValueError) as exc:
            raise PersistenceFailure(f"Cannot append to audit log {self.filepath}: {exc}") from exc

    async def query(self, collection_name: str, date_range: DateRange | None = None) -> list[AuditEntry]:
        """Entries for one collection, in append order, optionally within a date range."""
        return await asyncio.to_thread(self._query_sync, collection_name, date_range)

    def _query_sync(self, collection_name: str, date_range: DateRange | None) -> list[AuditEntry]:
        if not self.filepath.exists():
            return []

        entries: list[AuditEntry] = []
        try:
            with open(self.filepath, "r", encoding="utf-8") as f:
                for lineno, line in enumerate(f, start=1):
                    if not line.strip():
                        continue
                    try:
                        entry = AuditEntry.model_validate(json.loads(line))
                    except (json.JSONDecodeError, ValidationError):
                        # A torn tail line from a crashed writer; skip it
                        logger.warning("Skipping unreadable audit line %d in %s", lineno, self.filepath)
                        continue
                    if entry.collectionName != collection_name:
                        continue
                    if date_range is not None and not date_range.contains(entry.timestamp):
                        continue
                    entries.append(entry)
        except OSError as exc:
            raise PersistenceFailure(f"Cannot read audit log {self.filepath}: {exc}") from exc
        return entries
