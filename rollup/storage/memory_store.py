"""
In-memory key-value store for tests and one-shot runs.
"""

import copy
from typing import Any


class MemoryStore:
    """
    Dict-backed KeyValueStore.

    Values are deep-copied on the way in and out so callers never share
    mutable state with the store.

    Example:
        store = MemoryStore({"global-field-config": {"type": "childCount"}})
        await store.set("metrics-PROJ-1", {"value": 3})
    """

    def __init__(self, initial: dict[str, Any] | None = None):
        self._data: dict[str, Any] = copy.deepcopy(initial) if initial else {}

    async def get(self, key: str) -> Any | None:
        return copy.deepcopy(self._data.get(key))

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def snapshot(self) -> dict[str, Any]:
        """Copy of everything stored (for inspection in tests and the CLI)"""
        return copy.deepcopy(self._data)
