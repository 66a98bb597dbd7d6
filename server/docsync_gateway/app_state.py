"""Application state: the service instances shared by routes, the bus and the poller."""

from __future__ import annotations

import logging

from .config import GatewayConfig
from .services.audit_log import AuditLog
from .services.blob_store import LocalStateStore
from .services.diagnostics import Diagnostics
from .services.document_store import DocumentStore, create_document_store
from .services.gateway import CollectionGateway
from .ws.bus import BroadcastBus
from .ws.poller import BroadcastPoller

logger = logging.getLogger(__name__)


class AppState:
    """Holds service instances for one running gateway."""

    def __init__(self, cfg: GatewayConfig, store: DocumentStore | None = None) -> None:
        self.config = cfg
        self.store = store or create_document_store(cfg.mongo_uri, cfg.mongo_db)
        self.diagnostics = Diagnostics()
        self.audit_log = AuditLog(cfg.audit_log_file)
        self.gateway = CollectionGateway(self.store, self.audit_log, self.diagnostics)
        self.local_state = LocalStateStore(cfg.local_data_path, cfg.change_data_path, cfg.save_folder)
        self.bus = BroadcastBus(queue_size=cfg.bus_queue_size)
        self.poller = BroadcastPoller(
            self.gateway,
            self.bus,
            self.diagnostics,
            interval=cfg.poll_interval,
            sample_size=cfg.poll_sample_size,
        )

    async def startup(self) -> None:
        for directory in self.config.ensure_directories():
            logger.info("Created directory: %s", directory)
        if await self.store.ping():
            logger.info("Connected to document store")
        else:
            logger.warning("Document store not reachable at startup; requests will fail until it is")
        self.poller.start()

    async def shutdown(self) -> None:
        await self.poller.stop()
        await self.store.close()
