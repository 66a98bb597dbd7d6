"""File-backed key/blob stores for snapshots, filter state and display settings.

Every record is one JSON file named after its collection. Saves write a
temporary sibling file and ``os.replace`` it over the target, so a concurrent
reader sees either the old blob or the new one, never a partial write.
"""

from __future__ import annotations

import asyncio
import contextlib
import errno
import json
import logging
import os
import uuid
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any

from ..errors import NotFound, PersistenceFailure, ValidationFailure

logger = logging.getLogger(__name__)

_FORBIDDEN_CHARS = ("/", "\\", "\0")

# Longest file name a collection maps to, and the prefix of its temp sibling
LONGEST_TEMPLATE = "{name}-filter-selections.json"
_TEMP_PREFIX = f"._{uuid.UUID(int=0)}_"
_NAME_MAX = 255


def validate_collection_name(name: str, filename_template: str = LONGEST_TEMPLATE) -> str:
    """Reject names that cannot safely become a single file name.

    The length limit is in file-system bytes and covers the template and the
    temporary file written during a save.
    """
    if not name or not name.strip():
        raise ValidationFailure("Collection name must not be empty")
    if name.startswith(".") or any(c in name for c in _FORBIDDEN_CHARS):
        raise ValidationFailure(f"Invalid collection name: {name!r}")
    filename = _TEMP_PREFIX + filename_template.format(name=name)
    if len(os.fsencode(filename)) > _NAME_MAX:
        raise ValidationFailure("Collection name is too long")
    return name


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class BlobStore:
    """One JSON blob per key inside a directory, e.g. ``{name}-filter-selections.json``."""

    def __init__(self, directory: Path, filename_template: str = "{name}.json") -> None:
        self.directory = Path(directory)
        self.filename_template = filename_template

    def path_for(self, name: str) -> Path:
        validate_collection_name(name, self.filename_template)
        return self.directory / self.filename_template.format(name=name)

    async def save(self, name: str, blob: Any) -> None:
        await asyncio.to_thread(self.save_sync, name, blob)

    async def load(self, name: str) -> Any:
        return await asyncio.to_thread(self.load_sync, name)

    def save_sync(self, name: str, blob: Any) -> None:
        """Overwrite the record for ``name`` atomically."""
        path = self.path_for(name)
        try:
            data = json.dumps(blob, indent=2, default=_json_default)
        except (TypeError, ValueError) as exc:
            raise PersistenceFailure(f"Cannot serialize blob for '{name}': {exc}") from exc

        tmp_path = path.with_name(f"._{uuid.uuid4()}_{path.name}")
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                f.write(data)
            os.replace(tmp_path, path)
        except OSError as exc:
            with contextlib.suppress(OSError):
                tmp_path.unlink(missing_ok=True)
            raise PersistenceFailure(f"Cannot write {path}: {exc}") from exc
        logger.info("Saved %s", path)

    def load_sync(self, name: str) -> Any:
        """Return the last saved blob. Raises NotFound if nothing was ever saved."""
        path = self.path_for(name)
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except OSError as exc:
            if exc.errno == errno.ENOENT:
                raise NotFound(f"No saved data for '{name}'") from exc
            raise PersistenceFailure(f"Cannot read {path}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise PersistenceFailure(f"Corrupt blob {path}: {exc}") from exc


class StoreKind(str, Enum):
    SNAPSHOT = "snapshot"
    FILTERED_DATA = "filteredData"
    FILTER_SELECTIONS = "filterSelections"
    SETTINGS = "settings"


class LocalStateStore:
    """All local view state, keyed by (kind, name).

    File layout matches the original Node server so existing data directories
    keep working.
    """

    DARK_MODE_KEY = "dark-mode"

    def __init__(
        self,
        local_data_path: Path,
        change_data_path: Path,
        save_folder: Path,
    ) -> None:
        self._stores: dict[StoreKind, BlobStore] = {
            StoreKind.SNAPSHOT: BlobStore(local_data_path, "{name}.json"),
            StoreKind.FILTERED_DATA: BlobStore(change_data_path, "{name}Filtered.json"),
            StoreKind.FILTER_SELECTIONS: BlobStore(save_folder, LONGEST_TEMPLATE),
            StoreKind.SETTINGS: BlobStore(save_folder, "{name}.json"),
        }

    def store(self, kind: StoreKind) -> BlobStore:
        return self._stores[kind]

    async def save(self, kind: StoreKind, name: str, blob: Any) -> None:
        await self._stores[kind].save(name, blob)

    async def load(self, kind: StoreKind, name: str) -> Any:
        return await self._stores[kind].load(name)

    async def load_dark_mode(self) -> bool:
        """Stored display setting; light mode (False) when never saved."""
        try:
            blob = await self.load(StoreKind.SETTINGS, self.DARK_MODE_KEY)
        except NotFound:
            return False
        return bool(blob.get("isDarkMode", False)) if isinstance(blob, dict) else False

    async def save_dark_mode(self, enabled: bool) -> None:
        await self.save(StoreKind.SETTINGS, self.DARK_MODE_KEY, {"isDarkMode": enabled})
