"""Local view-state endpoints: snapshots, filter data, filter selections, dark mode."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends

from ..app_state import AppState
from ..deps import collection_name, get_state
from ..models.api import DarkModeSetting, FilterDataRequest
from ..services.blob_store import StoreKind

logger = logging.getLogger(__name__)

router = APIRouter(tags=["local-data"])


@router.get("/get-local-data/{collectionName}")
async def get_local_data(name: str = Depends(collection_name), state: AppState = Depends(get_state)) -> Any:
    """Last snapshot saved by fetch-collection."""
    return await state.local_state.load(StoreKind.SNAPSHOT, name)


@router.post("/save-filter-data/{collectionName}")
async def save_filter_data(
    body: FilterDataRequest,
    name: str = Depends(collection_name),
    state: AppState = Depends(get_state),
) -> dict:
    await state.local_state.save(StoreKind.FILTERED_DATA, name, body.model_dump())
    logger.info("Filtered data saved for collection: %s", name)
    return {"message": "Filtered data saved successfully."}


@router.post("/save-filter-selections/{collectionName}")
async def save_filter_selections(
    selections: Any = Body(...),
    name: str = Depends(collection_name),
    state: AppState = Depends(get_state),
) -> dict:
    await state.local_state.save(StoreKind.FILTER_SELECTIONS, name, selections)
    logger.info("Filter selections saved for %s", name)
    return {"message": "Filter selections saved successfully."}


@router.get("/load-filter-selections/{collectionName}")
async def load_filter_selections(name: str = Depends(collection_name), state: AppState = Depends(get_state)) -> Any:
    return await state.local_state.load(StoreKind.FILTER_SELECTIONS, name)


@router.post("/save-dark-mode")
async def save_dark_mode(body: DarkModeSetting, state: AppState = Depends(get_state)) -> dict:
    await state.local_state.save_dark_mode(body.isDarkMode)
    return {"message": "Dark mode setting saved."}


@router.get("/load-dark-mode")
async def load_dark_mode(state: AppState = Depends(get_state)) -> dict:
    """Stored setting, defaulting to light mode."""
    return {"isDarkMode": await state.local_state.load_dark_mode()}
