"""FastAPI dependencies for state and collection-name resolution."""

from __future__ import annotations

from fastapi import Path, Request

from .app_state import AppState
from .services.blob_store import validate_collection_name


async def get_state(request: Request) -> AppState:
    """Resolve the AppState attached to the running application."""
    return request.app.state.docsync


async def collection_name(
    collectionName: str = Path(..., description="Collection name"),
) -> str:
    """Validate the collection path parameter (it also names local files)."""
    return validate_collection_name(collectionName)
