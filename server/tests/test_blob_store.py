"""Tests for file-backed snapshot, filter and settings stores."""

from __future__ import annotations

import asyncio
import errno
import json
import threading
from pathlib import Path
from unittest import mock

import pytest

from docsync_gateway.errors import NotFound, PersistenceFailure, ValidationFailure
from docsync_gateway.services.blob_store import BlobStore, StoreKind, validate_collection_name


class TestBlobStore:
    def test_load_before_save_is_not_found(self, tmp_path):
        store = BlobStore(tmp_path)
        with pytest.raises(NotFound):
            store.load_sync("orders")

    def test_save_then_load(self, tmp_path):
        store = BlobStore(tmp_path)
        store.save_sync("orders", {"fields": ["a"]})
        assert store.load_sync("orders") == {"fields": ["a"]}

    def test_last_write_wins(self, tmp_path):
        store = BlobStore(tmp_path)
        store.save_sync("orders", {"a": 1, "keep": True})
        store.save_sync("orders", {"b": 2})
        assert store.load_sync("orders") == {"b": 2}

    def test_names_do_not_affect_each_other(self, tmp_path):
        store = BlobStore(tmp_path)
        store.save_sync("orders", [1, 2])
        store.save_sync("customers", [3])
        store.save_sync("orders", [4])
        assert store.load_sync("customers") == [3]

    def test_no_temp_files_left_behind(self, tmp_path):
        store = BlobStore(tmp_path)
        for i in range(5):
            store.save_sync("orders", {"i": i})
        assert [p.name for p in tmp_path.iterdir()] == ["orders.json"]

    def test_datetimes_serialized_as_iso(self, tmp_path):
        from datetime import datetime

        store = BlobStore(tmp_path)
        store.save_sync("orders", [{"created": datetime(2024, 3, 1, 8, 30)}])
        assert store.load_sync("orders") == [{"created": "2024-03-01T08:30:00"}]

    def test_unserializable_blob(self, tmp_path):
        store = BlobStore(tmp_path)
        with pytest.raises(PersistenceFailure):
            store.save_sync("orders", {"bad": object()})
        assert not (tmp_path / "orders.json").exists()

    def test_corrupt_file(self, tmp_path):
        (tmp_path / "orders.json").write_text("{not json")
        with pytest.raises(PersistenceFailure):
            BlobStore(tmp_path).load_sync("orders")

    def test_unwritable_directory(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        with pytest.raises(PersistenceFailure):
            BlobStore(blocker).save_sync("orders", {})

    async def test_concurrent_saves_to_distinct_names(self, tmp_path):
        store = BlobStore(tmp_path)
        names = [f"collection{i}" for i in range(25)]
        await asyncio.gather(*(store.save(n, {"name": n, "rows": list(range(i))}) for i, n in enumerate(names)))
        for i, n in enumerate(names):
            assert await store.load(n) == {"name": n, "rows": list(range(i))}

    def test_reader_sees_whole_blobs_during_writes(self, tmp_path):
        store = BlobStore(tmp_path)
        old = {"version": "old", "rows": ["x" * 100] * 500}
        new = {"version": "new", "rows": ["y" * 100] * 500}
        store.save_sync("orders", old)

        def writer():
            for i in range(30):
                store.save_sync("orders", new if i % 2 == 0 else old)

        thread = threading.Thread(target=writer)
        thread.start()
        seen = []
        while thread.is_alive():
            seen.append(store.load_sync("orders"))
        thread.join()

        assert all(blob in (old, new) for blob in seen)


class TestCollectionNames:
    @pytest.mark.parametrize("name", ["orders", "purchaseorders", "my-data_2024", "Orders.v2"])
    def test_valid(self, name):
        assert validate_collection_name(name) == name

    @pytest.mark.parametrize("name", ["", "  ", "../etc", "a/b", "a\\b", ".hidden", "x" * 194, "\u00e9" * 150])
    def test_invalid(self, name):
        with pytest.raises(ValidationFailure):
            validate_collection_name(name)

    def test_longest_name_fits_every_file(self, local_state):
        name = "x" * 193
        assert validate_collection_name(name) == name
        for kind in StoreKind:
            local_state.store(kind).save_sync(name, {"ok": True})
            assert local_state.store(kind).load_sync(name) == {"ok": True}

    def test_limit_follows_the_store_template(self, tmp_path):
        name = "x" * 200
        store = BlobStore(tmp_path, "{name}.json")
        store.save_sync(name, [])
        with pytest.raises(ValidationFailure):
            BlobStore(tmp_path, "{name}-filter-selections.json").save_sync(name, [])

    def test_failed_temp_cleanup_still_raises_persistence_failure(self, tmp_path):
        too_long = OSError(errno.ENAMETOOLONG, "File name too long")
        with mock.patch("docsync_gateway.services.blob_store.open", create=True, side_effect=too_long), \
                mock.patch.object(Path, "unlink", side_effect=too_long):
            with pytest.raises(PersistenceFailure):
                BlobStore(tmp_path).save_sync("orders", {})


class TestLocalStateStore:
    async def test_filter_scenario(self, local_state):
        with pytest.raises(NotFound):
            await local_state.load(StoreKind.FILTER_SELECTIONS, "orders")
        await local_state.save(StoreKind.FILTER_SELECTIONS, "orders", {"fields": ["a"]})
        assert await local_state.load(StoreKind.FILTER_SELECTIONS, "orders") == {"fields": ["a"]}

    async def test_kinds_are_separate(self, local_state):
        await local_state.save(StoreKind.SNAPSHOT, "orders", [{"_id": "1"}])
        await local_state.save(StoreKind.FILTERED_DATA, "orders", {"filteredData": []})
        await local_state.save(StoreKind.FILTER_SELECTIONS, "orders", {"fields": []})

        assert await local_state.load(StoreKind.SNAPSHOT, "orders") == [{"_id": "1"}]
        assert await local_state.load(StoreKind.FILTERED_DATA, "orders") == {"filteredData": []}
        assert await local_state.load(StoreKind.FILTER_SELECTIONS, "orders") == {"fields": []}

    async def test_file_layout(self, local_state, tmp_path):
        await local_state.save(StoreKind.SNAPSHOT, "orders", [])
        await local_state.save(StoreKind.FILTERED_DATA, "orders", {})
        await local_state.save(StoreKind.FILTER_SELECTIONS, "orders", {})
        await local_state.save_dark_mode(True)

        assert (tmp_path / "local" / "orders.json").exists()
        assert (tmp_path / "changes" / "ordersFiltered.json").exists()
        assert (tmp_path / "saved" / "orders-filter-selections.json").exists()
        assert json.loads((tmp_path / "saved" / "dark-mode.json").read_text()) == {"isDarkMode": True}

    async def test_dark_mode_defaults_to_false(self, local_state):
        assert await local_state.load_dark_mode() is False
        await local_state.save_dark_mode(True)
        assert await local_state.load_dark_mode() is True
        await local_state.save_dark_mode(False)
        assert await local_state.load_dark_mode() is False
