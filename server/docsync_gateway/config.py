"""Environment-based configuration for the DocSync Gateway."""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

DEFAULT_MONGO_URI = "mongodb://localhost:27017/docsync"
MEMORY_URI = "memory://"


class GatewayConfig:
    """Gateway configuration loaded from environment variables."""

    def __init__(self) -> None:
        self.host = os.environ.get("HOST", "0.0.0.0")
        self.port = int(os.environ.get("PORT", "3000"))

        # Document store
        self.mongo_uri = os.environ.get("MONGO_URI", DEFAULT_MONGO_URI)
        # None means the database named in the URI path, else "docsync"
        self.mongo_db: str | None = os.environ.get("MONGO_DB") or None

        # Local persistence roots
        self.local_data_path = Path(os.environ.get("LOCAL_DATA_PATH", "data/local"))
        self.change_data_path = Path(os.environ.get("CHANGE_DATA_PATH", "data/changes"))
        self.save_folder = Path(os.environ.get("SAVE_FOLDER", "data/saved"))
        self.log_path = Path(os.environ.get("LOG_PATH", "data/logs"))

        # Broadcast
        self.poll_interval = float(os.environ.get("POLL_INTERVAL_SECONDS", "30"))
        self.poll_sample_size = int(os.environ.get("POLL_SAMPLE_SIZE", "10"))
        self.bus_queue_size = int(os.environ.get("BUS_QUEUE_SIZE", "100"))

        # CORS origins (comma-separated)
        origins = os.environ.get("CORS_ORIGINS", "")
        self.cors_origins: list[str] = [o.strip() for o in origins.split(",") if o.strip()] if origins else ["*"]

    @property
    def use_memory_store(self) -> bool:
        return self.mongo_uri == MEMORY_URI

    @property
    def audit_log_file(self) -> Path:
        return self.log_path / "database-actions.log"

    @property
    def directories(self) -> list[Path]:
        return [self.local_data_path, self.change_data_path, self.save_folder, self.log_path]

    def ensure_directories(self) -> list[Path]:
        """Create any missing persistence directory. Returns the ones created."""
        created = []
        for directory in self.directories:
            if not directory.exists():
                directory.mkdir(parents=True, exist_ok=True)
                created.append(directory)
        return created


# Singleton
config = GatewayConfig()
