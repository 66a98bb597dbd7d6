"""Request and event bodies for the HTTP and WebSocket surfaces."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class FilterDataRequest(BaseModel):
    filteredData: Any = None
    selectedFields: Any = None
    nestedSelectedFields: Any = None


class DarkModeSetting(BaseModel):
    isDarkMode: bool = False


class AlertEvent(BaseModel):
    collection: str
    condition: Any = None
    message: str = ""


class TopGroup(BaseModel):
    # Mongo's $group key name, kept for frontend compatibility
    id: Any = None
    totalSales: float = 0

    def to_wire(self) -> dict:
        return {"_id": self.id, "totalSales": self.totalSales}


class DashboardMetrics(BaseModel):
    totalRecords: int
    topUsers: list[TopGroup] = []

    def to_wire(self) -> dict:
        return {
            "totalRecords": self.totalRecords,
            "topUsers": [group.to_wire() for group in self.topUsers],
        }
