"""
JSON file key-value store

Keeps every key in a single JSON document on disk. Writes go to a temporary
file in the same directory, are re-read to confirm they parse, and are then
moved over the target so the document is never left half-written.

Usage:
    from rollup.storage.json_store import JSONFileStore

    store = JSONFileStore(".tmp/rollup_store.json")
    await store.set("metrics-PROJ-1", result.to_dict())
"""

import asyncio
import json
import os
import tempfile
from pathlib import Path
from typing import Any

from rollup.core import get_logger
from rollup.storage.base import StoreError

logger = get_logger(__name__)


def atomic_json_save(data: dict[str, Any], output_file: Path) -> None:
    """
    Save JSON data to file using atomic write operations.

    Args:
        data: Dictionary to save as JSON
        output_file: Target file path

    Raises:
        OSError: If the directory cannot be created or the file cannot be written
        TypeError: If data is not JSON-serializable
    """
    output_file.parent.mkdir(parents=True, exist_ok=True)

    # Temp file in the same directory so the final move is a rename
    temp_fd, temp_path = tempfile.mkstemp(suffix=".json", dir=output_file.parent, text=True)

    try:
        with os.fdopen(temp_fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

        with open(temp_path, encoding="utf-8") as f:
            json.load(f)

        os.replace(temp_path, output_file)

    except BaseException:
        if os.path.exists(temp_path):
            os.remove(temp_path)
        raise


def load_json_with_recovery(file_path: Path) -> dict[str, Any]:
    """
    Load a JSON document, recovering from corruption with an empty document.

    Args:
        file_path: Path to JSON file

    Returns:
        Loaded document, or {} when the file is missing, corrupt or not an object

    Raises:
        OSError: If the file exists but cannot be read
    """
    if not file_path.exists():
        return {}

    try:
        with open(file_path, encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.warning(f"Store file is corrupted ({e}) - starting from an empty store", extra={"path": str(file_path)})
        return {}

    if not isinstance(data, dict):
        logger.warning("Store file does not hold a JSON object - starting from an empty store", extra={"path": str(file_path)})
        return {}

    return data


class JSONFileStore:
    """
    KeyValueStore persisted to one JSON file.

    Blocking file I/O runs in a worker thread. Mutations inside one process are
    serialized with an asyncio.Lock; separate processes are not coordinated.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._write_lock = asyncio.Lock()

    async def _load(self) -> dict[str, Any]:
        try:
            return await asyncio.to_thread(load_json_with_recovery, self.path)
        except OSError as e:
            raise StoreError(f"Failed to read store {self.path}: {e}") from e

    async def _save(self, data: dict[str, Any]) -> None:
        try:
            await asyncio.to_thread(atomic_json_save, data, self.path)
        except (OSError, TypeError, ValueError) as e:
            raise StoreError(f"Failed to write store {self.path}: {e}") from e

    async def get(self, key: str) -> Any | None:
        data = await self._load()
        return data.get(key)

    async def set(self, key: str, value: Any) -> None:
        async with self._write_lock:
            data = await self._load()
            data[key] = value
            await self._save(data)

    async def delete(self, key: str) -> None:
        async with self._write_lock:
            data = await self._load()
            if key not in data:
                return
            del data[key]
            await self._save(data)

    async def snapshot(self) -> dict[str, Any]:
        """Everything currently stored"""
        return await self._load()
