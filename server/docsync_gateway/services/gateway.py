"""Collection gateway: document operations against a named collection, with auditing."""

from __future__ import annotations

import copy
import logging
from typing import Any

from ..errors import NotFound, PersistenceFailure
from ..models.api import DashboardMetrics, TopGroup
from ..models.audit import AuditAction, AuditEntry, DateRange
from .audit_log import AuditLog
from .diagnostics import Diagnostics
from .document_store import DocumentStore

logger = logging.getLogger(__name__)

# Timestamp field used by fetch_filtered, keyed by collection name
TIMESTAMP_FIELDS = {
    "purchaseorders": "PODate",
}
DEFAULT_TIMESTAMP_FIELD = "created"

# Dashboard aggregation
GROUP_FIELD = "createdBy"
SUM_FIELD = "sales"
TOP_GROUPS = 5


def timestamp_field_for(collection_name: str) -> str:
    return TIMESTAMP_FIELDS.get(collection_name, DEFAULT_TIMESTAMP_FIELD)


class CollectionGateway:
    """Mediates all document-level operations and records an AuditEntry for each.

    Audit writes are best-effort. A failed append is reported on the
    diagnostic channel and the primary result is still returned.
    """

    def __init__(self, store: DocumentStore, audit_log: AuditLog, diagnostics: Diagnostics) -> None:
        self.store = store
        self.audit_log = audit_log
        self.diagnostics = diagnostics

    async def list_collections(self) -> list[str]:
        return await self.store.list_collection_names()

    async def fetch_all(self, name: str) -> list[dict]:
        documents = await self.store.find(name)
        await self._audit(name, AuditAction.FETCH, details={"fetchedCount": len(documents)})
        return documents

    async def fetch_filtered(self, name: str, date_range: DateRange | None = None) -> list[dict]:
        query: dict = {}
        if date_range is not None:
            field = timestamp_field_for(name)
            query = {field: {"$gte": date_range.start, "$lt": date_range.end}}
        documents = await self.store.find(name, query)
        await self._audit(name, AuditAction.FETCH_LOGS, details={"fetchedLogsCount": len(documents)})
        return documents

    async def sample(self, name: str, limit: int) -> list[dict]:
        """First ``limit`` documents in store order. Not audited (used by the poller)."""
        return await self.store.find(name, limit=limit)

    async def insert(self, name: str, document: dict) -> str:
        document_id = await self.store.insert_one(name, document)
        await self._audit(name, AuditAction.INSERT, document_id, details=document)
        return document_id

    async def update(self, name: str, document_id: str, fields: dict) -> None:
        matched = await self.store.update_one(name, document_id, fields)
        if matched == 0:
            raise NotFound("Document not found.")
        await self._audit(name, AuditAction.UPDATE, document_id, details=fields)

    async def delete(self, name: str, document_id: str) -> None:
        deleted = await self.store.delete_one(name, document_id)
        if deleted == 0:
            raise NotFound("Document not found.")
        await self._audit(name, AuditAction.DELETE, document_id)

    async def top_aggregates(self, name: str) -> DashboardMetrics:
        """Top groups by summed sales. Equal sums keep the store's enumeration order."""
        groups = await self.store.group_sum(name, GROUP_FIELD, SUM_FIELD, TOP_GROUPS)
        total = await self.store.count(name)
        return DashboardMetrics(
            totalRecords=total,
            topUsers=[TopGroup(id=key, totalSales=value) for key, value in groups],
        )

    async def audit_entries(self, name: str, date_range: DateRange | None = None) -> list[AuditEntry]:
        return await self.audit_log.query(name, date_range)

    async def _audit(
        self,
        name: str,
        action: AuditAction,
        document_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        try:
            entry = AuditEntry(
                collectionName=name,
                action=action,
                documentId=document_id,
                details=copy.deepcopy(details) if details else {},
            )
            await self.audit_log.append(entry)
        except PersistenceFailure as exc:
            self.diagnostics.report(
                "audit_write_failed", str(exc), collection=name, action=action.value, documentId=document_id
            )
