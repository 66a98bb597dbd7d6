"""Operator alerts pushed to WebSocket subscribers."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from ..app_state import AppState
from ..deps import get_state
from ..models.api import AlertEvent
from ..ws.bus import ALERT

logger = logging.getLogger(__name__)

router = APIRouter(tags=["alerts"])


@router.post("/set-alert")
async def set_alert(body: AlertEvent, state: AppState = Depends(get_state)) -> dict:
    """Publish an alert once to every connected subscriber. Not persisted."""
    delivered = state.bus.publish(ALERT, body.model_dump())
    logger.info("Alert for '%s' sent to %d subscriber(s)", body.collection, delivered)
    return {"message": "Alert set successfully."}
