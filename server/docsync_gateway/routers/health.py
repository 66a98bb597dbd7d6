"""Health check endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from .. import __version__
from ..app_state import AppState
from ..deps import get_state

router = APIRouter(tags=["health"])


@router.get("/api/health")
async def health_check(state: AppState = Depends(get_state)) -> dict:
    """Check store reachability, broadcast activity and background failures."""
    store_ok = await state.store.ping()
    return {
        "status": "ok" if store_ok else "degraded",
        "version": __version__,
        "store": "connected" if store_ok else "unreachable",
        "subscribers": state.bus.subscriber_count,
        "poller": {
            "running": state.poller.running,
            "intervalSeconds": state.poller.interval,
            "cyclesCompleted": state.poller.cycles_completed,
            "fetchesSkipped": state.poller.fetches_skipped,
            "inFlight": state.poller.in_flight,
        },
        "diagnostics": state.diagnostics.summary(),
    }
