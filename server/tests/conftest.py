"""Shared fixtures: isolated config, in-memory document store, wired services."""

from __future__ import annotations

import os
from unittest import mock

import pytest

from docsync_gateway.config import GatewayConfig
from docsync_gateway.services.audit_log import AuditLog
from docsync_gateway.services.blob_store import LocalStateStore
from docsync_gateway.services.diagnostics import Diagnostics
from docsync_gateway.services.document_store import InMemoryDocumentStore
from docsync_gateway.services.gateway import CollectionGateway


@pytest.fixture
def gateway_config(tmp_path):
    """GatewayConfig pointing every persistence path into tmp_path."""
    env = {
        "MONGO_URI": "memory://",
        "LOCAL_DATA_PATH": str(tmp_path / "local"),
        "CHANGE_DATA_PATH": str(tmp_path / "changes"),
        "SAVE_FOLDER": str(tmp_path / "saved"),
        "LOG_PATH": str(tmp_path / "logs"),
        "POLL_INTERVAL_SECONDS": "3600",
    }
    with mock.patch.dict(os.environ, env):
        yield GatewayConfig()


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def diagnostics():
    return Diagnostics()


@pytest.fixture
def audit_log(tmp_path):
    return AuditLog(tmp_path / "logs" / "database-actions.log")


@pytest.fixture
def gateway(store, audit_log, diagnostics):
    return CollectionGateway(store, audit_log, diagnostics)


@pytest.fixture
def local_state(tmp_path):
    return LocalStateStore(tmp_path / "local", tmp_path / "changes", tmp_path / "saved")
