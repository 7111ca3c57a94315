"""
Storage - key-value persistence for metrics, recompute locks and field config

Usage:
    from rollup.storage import JSONFileStore, metrics_key

    store = JSONFileStore(".tmp/rollup_store.json")
    stored = await store.get(metrics_key("PROJ-1"))
"""

from .base import FIELD_CONFIG_KEY, KeyValueStore, StoreError, lock_key, metrics_key
from .json_store import JSONFileStore
from .memory_store import MemoryStore

__all__ = [
    "FIELD_CONFIG_KEY",
    "KeyValueStore",
    "StoreError",
    "JSONFileStore",
    "MemoryStore",
    "lock_key",
    "metrics_key",
]
