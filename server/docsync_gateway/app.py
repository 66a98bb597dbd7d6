"""FastAPI application for the DocSync Gateway."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .app_state import AppState
from .config import GatewayConfig, config
from .errors import GatewayError
from .services.document_store import DocumentStore
from .ws.bus import Subscription

logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(name)s] %(levelname)s: %(message)s")
logger = logging.getLogger(__name__)


async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail, "error": type(exc).__name__},
    )


async def _send_events(ws: WebSocket, sub: Subscription) -> None:
    while True:
        event = await sub.get()
        await ws.send_json(jsonable_encoder(event.to_message()))


def create_app(cfg: GatewayConfig | None = None, store: DocumentStore | None = None) -> FastAPI:
    """Build the application. ``store`` overrides the backend chosen from MONGO_URI."""
    cfg = cfg or config

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application startup and shutdown."""
        logger.info("DocSync Gateway starting on %s:%d", cfg.host, cfg.port)
        state = AppState(cfg, store=store)
        app.state.docsync = state
        await state.startup()

        yield

        await state.shutdown()
        logger.info("DocSync Gateway stopped")

    app = FastAPI(
        title="DocSync Gateway",
        description="JSON API over document collections with live WebSocket broadcast",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(GatewayError, gateway_error_handler)

    from .routers.alerts import router as alerts_router
    from .routers.collections import router as collections_router
    from .routers.health import router as health_router
    from .routers.local_data import router as local_data_router

    app.include_router(health_router)
    app.include_router(collections_router)
    app.include_router(local_data_router)
    app.include_router(alerts_router)

    @app.websocket("/ws")
    async def websocket_endpoint(ws: WebSocket) -> None:
        """Real-time feed: ``realTimeData`` and ``alert`` events as JSON messages."""
        state: AppState = ws.app.state.docsync
        # Registered before accept so nothing published after the handshake is missed
        sub = state.bus.subscribe()
        sender: asyncio.Task | None = None
        try:
            await ws.accept()
            sender = asyncio.create_task(_send_events(ws, sub))
            while True:
                # Clients don't send anything meaningful; reading detects disconnects
                await ws.receive_text()
        except WebSocketDisconnect:
            pass
        except Exception as exc:
            logger.warning("WebSocket subscriber %d dropped: %s", sub.id, exc)
        finally:
            state.bus.unsubscribe(sub)
            if sender is not None:
                sender.cancel()
                await asyncio.gather(sender, return_exceptions=True)

    return app


app = create_app()
