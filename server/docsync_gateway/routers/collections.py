"""Document fetch, query and CRUD endpoints."""

from __future__ import annotations

import logging
from datetime import date

from fastapi import APIRouter, Body, Depends, Query
from fastapi.responses import JSONResponse

from ..app_state import AppState
from ..deps import collection_name, get_state
from ..models.audit import DateRange
from ..services.blob_store import StoreKind

logger = logging.getLogger(__name__)

router = APIRouter(tags=["collections"])


def _day(selected_date: date | None) -> DateRange | None:
    return DateRange.for_day(selected_date) if selected_date else None


@router.get("/fetch-logs/{collectionName}")
async def fetch_logs(
    name: str = Depends(collection_name),
    selectedDate: date | None = Query(None),
    state: AppState = Depends(get_state),
) -> list[dict]:
    """Documents whose timestamp field falls on the selected day (all if no date)."""
    return await state.gateway.fetch_filtered(name, _day(selectedDate))


@router.get("/dashboard-metrics/{collectionName}")
async def dashboard_metrics(name: str = Depends(collection_name), state: AppState = Depends(get_state)) -> dict:
    """Total record count and the top five creators by summed sales."""
    metrics = await state.gateway.top_aggregates(name)
    return metrics.to_wire()


@router.get("/fetch-collection/{collectionName}")
async def fetch_collection(name: str = Depends(collection_name), state: AppState = Depends(get_state)) -> dict:
    """Fetch every document and save them as the collection's local snapshot."""
    documents = await state.gateway.fetch_all(name)
    await state.local_state.save(StoreKind.SNAPSHOT, name, documents)
    logger.info("Collection '%s' snapshot saved (%d documents)", name, len(documents))
    return {"message": f"Fetched {len(documents)} documents.", "data": documents}


@router.post("/insert-document/{collectionName}", status_code=201)
async def insert_document(
    document: dict = Body(...),
    name: str = Depends(collection_name),
    state: AppState = Depends(get_state),
) -> dict:
    document_id = await state.gateway.insert(name, document)
    return {"message": "Document inserted.", "documentId": document_id}


@router.put("/update-document/{collectionName}/{document_id}")
async def update_document(
    document_id: str,
    fields: dict = Body(...),
    name: str = Depends(collection_name),
    state: AppState = Depends(get_state),
) -> dict:
    await state.gateway.update(name, document_id, fields)
    return {"message": "Document updated successfully."}


@router.delete("/delete-document/{collectionName}/{document_id}")
async def delete_document(
    document_id: str,
    name: str = Depends(collection_name),
    state: AppState = Depends(get_state),
) -> dict:
    await state.gateway.delete(name, document_id)
    return {"message": "Document deleted successfully."}


@router.get("/audit-log/{collectionName}")
async def audit_log(
    name: str = Depends(collection_name),
    selectedDate: date | None = Query(None),
    state: AppState = Depends(get_state),
) -> JSONResponse:
    """Audit entries recorded for a collection, oldest first."""
    entries = await state.gateway.audit_entries(name, _day(selectedDate))
    return JSONResponse([entry.model_dump(mode="json") for entry in entries])
