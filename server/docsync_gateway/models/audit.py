"""Audit log entry models."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class AuditAction(str, Enum):
    FETCH = "fetch"
    FETCH_LOGS = "fetchLogs"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


class AuditEntry(BaseModel):
    """One immutable record of a gateway operation."""

    model_config = ConfigDict(frozen=True, use_enum_values=True)

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    collectionName: str
    action: AuditAction
    documentId: str | None = None
    details: dict[str, Any] = {}


class DateRange(BaseModel):
    """Half-open interval ``[start, end)``. Naive datetimes are treated as UTC."""

    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime

    @classmethod
    def for_day(cls, day: date) -> DateRange:
        start = datetime.combine(day, time.min)
        return cls(start=start, end=start + timedelta(days=1))

    def contains(self, moment: datetime) -> bool:
        return as_utc(self.start) <= as_utc(moment) < as_utc(self.end)


def as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)
