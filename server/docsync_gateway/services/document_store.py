"""Document store backends: MongoDB (PyMongo async API) and an in-memory store.

Both backends hand documents back as plain dicts with ``_id`` rendered as a
string, so callers never see BSON types.
"""

from __future__ import annotations

import copy
import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Iterator, Protocol

from bson import ObjectId
from pymongo import AsyncMongoClient
from pymongo.errors import PyMongoError

from ..errors import StoreUnavailable
from ..models.audit import as_utc

logger = logging.getLogger(__name__)

DEFAULT_DATABASE = "docsync"


class DocumentStore(Protocol):
    """Operations the gateway needs from a document store."""

    async def list_collection_names(self) -> list[str]: ...

    async def find(self, name: str, query: dict | None = None, limit: int = 0) -> list[dict]: ...

    async def insert_one(self, name: str, document: dict) -> str: ...

    async def update_one(self, name: str, document_id: str, fields: dict) -> int: ...

    async def delete_one(self, name: str, document_id: str) -> int: ...

    async def count(self, name: str) -> int: ...

    async def group_sum(
        self, name: str, group_field: str, sum_field: str, limit: int
    ) -> list[tuple[Any, float]]: ...

    async def ping(self) -> bool: ...

    async def close(self) -> None: ...


def to_json_compatible(value: Any) -> Any:
    """Replace ObjectIds with their hex strings, recursively."""
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, dict):
        return {k: to_json_compatible(v) for k, v in value.items()}
    if isinstance(value, list):
        return [to_json_compatible(v) for v in value]
    return value


class MongoDocumentStore:
    """DocumentStore backed by a MongoDB database."""

    def __init__(self, uri: str, db_name: str | None = None, client: AsyncMongoClient | None = None) -> None:
        self._client = client or AsyncMongoClient(uri)
        if db_name:
            self._db = self._client[db_name]
        else:
            self._db = self._client.get_default_database(DEFAULT_DATABASE)
        self.db_name = self._db.name

    @contextmanager
    def _translate(self, operation: str, name: str = "") -> Iterator[None]:
        try:
            yield
        except PyMongoError as exc:
            logger.error("Mongo %s failed for '%s': %s", operation, name, exc)
            raise StoreUnavailable(f"{operation} failed: {exc}") from exc

    async def list_collection_names(self) -> list[str]:
        with self._translate("listCollections"):
            return await self._db.list_collection_names()

    async def find(self, name: str, query: dict | None = None, limit: int = 0) -> list[dict]:
        with self._translate("find", name):
            cursor = self._db[name].find(query or {})
            if limit:
                cursor = cursor.limit(limit)
            docs = await cursor.to_list()
        return [to_json_compatible(d) for d in docs]

    async def insert_one(self, name: str, document: dict) -> str:
        # Ids are always assigned by the store; insert_one adds _id to the dict it is given
        payload = _without_id(document)
        with self._translate("insert", name):
            result = await self._db[name].insert_one(payload)
        return str(result.inserted_id)

    async def update_one(self, name: str, document_id: str, fields: dict) -> int:
        if not ObjectId.is_valid(document_id):
            return 0
        selector = {"_id": ObjectId(document_id)}
        changes = _without_id(fields)
        with self._translate("update", name):
            if not changes:
                return await self._db[name].count_documents(selector, limit=1)
            result = await self._db[name].update_one(selector, {"$set": changes})
        return result.matched_count

    async def delete_one(self, name: str, document_id: str) -> int:
        if not ObjectId.is_valid(document_id):
            return 0
        with self._translate("delete", name):
            result = await self._db[name].delete_one({"_id": ObjectId(document_id)})
        return result.deleted_count

    async def count(self, name: str) -> int:
        with self._translate("count", name):
            return await self._db[name].count_documents({})

    async def group_sum(
        self, name: str, group_field: str, sum_field: str, limit: int
    ) -> list[tuple[Any, float]]:
        pipeline = [
            {"$group": {"_id": f"${group_field}", "total": {"$sum": {"$ifNull": [f"${sum_field}", 0]}}}},
            {"$sort": {"total": -1}},
            {"$limit": limit},
        ]
        with self._translate("aggregate", name):
            cursor = await self._db[name].aggregate(pipeline)
            rows = await cursor.to_list()
        return [(to_json_compatible(row["_id"]), row["total"]) for row in rows]

    async def ping(self) -> bool:
        try:
            await self._client.admin.command("ping")
            return True
        except PyMongoError as exc:
            logger.warning("Mongo ping failed: %s", exc)
            return False

    async def close(self) -> None:
        await self._client.close()


_RANGE_OPS = {
    "$gte": lambda a, b: a >= b,
    "$gt": lambda a, b: a > b,
    "$lte": lambda a, b: a <= b,
    "$lt": lambda a, b: a < b,
}


def _comparable(value: Any) -> Any:
    # Naive datetimes are UTC, as in the stored BSON dates
    return as_utc(value) if isinstance(value, datetime) else value


def _without_id(fields: dict) -> dict:
    return {k: v for k, v in fields.items() if k != "_id"}


def _matches(document: dict, query: dict) -> bool:
    """Subset of Mongo filter semantics: equality and range operators."""
    for field, condition in query.items():
        value = document.get(field)
        if isinstance(condition, dict) and condition and all(k in _RANGE_OPS for k in condition):
            if value is None:
                return False
            try:
                if not all(_RANGE_OPS[op](_comparable(value), _comparable(bound)) for op, bound in condition.items()):
                    return False
            except TypeError:
                return False
        elif value != condition:
            return False
    return True


class InMemoryDocumentStore:
    """DocumentStore held in process memory (``MONGO_URI=memory://``, tests).

    Collections keep insertion order, which is the natural enumeration order
    used for sampling and for tie-breaking in ``group_sum``.
    """

    def __init__(self) -> None:
        self._collections: dict[str, list[dict]] = {}

    async def list_collection_names(self) -> list[str]:
        return list(self._collections)

    async def find(self, name: str, query: dict | None = None, limit: int = 0) -> list[dict]:
        docs = [d for d in self._collections.get(name, []) if _matches(d, query or {})]
        if limit:
            docs = docs[:limit]
        return copy.deepcopy(docs)

    async def insert_one(self, name: str, document: dict) -> str:
        document_id = str(ObjectId())
        stored = copy.deepcopy(_without_id(document))
        stored["_id"] = document_id
        self._collections.setdefault(name, []).append(stored)
        return document_id

    def _find_by_id(self, name: str, document_id: str) -> dict | None:
        for doc in self._collections.get(name, []):
            if doc["_id"] == document_id:
                return doc
        return None

    async def update_one(self, name: str, document_id: str, fields: dict) -> int:
        doc = self._find_by_id(name, document_id)
        if doc is None:
            return 0
        doc.update(copy.deepcopy(_without_id(fields)))
        return 1

    async def delete_one(self, name: str, document_id: str) -> int:
        doc = self._find_by_id(name, document_id)
        if doc is None:
            return 0
        self._collections[name].remove(doc)
        return 1

    async def count(self, name: str) -> int:
        return len(self._collections.get(name, []))

    async def group_sum(
        self, name: str, group_field: str, sum_field: str, limit: int
    ) -> list[tuple[Any, float]]:
        totals: dict[Any, float] = {}
        for doc in self._collections.get(name, []):
            key = doc.get(group_field)
            value = doc.get(sum_field)
            totals[key] = totals.get(key, 0) + (value if isinstance(value, (int, float)) else 0)
        # sorted() is stable, so equal sums keep first-seen order
        ranked = sorted(totals.items(), key=lambda item: item[1], reverse=True)
        return ranked[:limit]

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        self._collections.clear()

    def drop(self, name: str) -> None:
        self._collections.pop(name, None)


def create_document_store(uri: str, db_name: str | None = None) -> DocumentStore:
    """Pick a backend from the configured URI."""
    if uri == "memory://":
        logger.info("Using in-memory document store")
        return InMemoryDocumentStore()
    store = MongoDocumentStore(uri, db_name)
    logger.info("Using MongoDB document store (database '%s')", store.db_name)
    return store


__all__ = [
    "DocumentStore",
    "InMemoryDocumentStore",
    "MongoDocumentStore",
    "create_document_store",
    "to_json_compatible",
]
