"""
Key-value store contract

The coordinator, service and CLI only ever talk to a KeyValueStore. Values
are JSON-compatible; there are no transactions and no compare-and-set, so the
recompute lock built on top of it is advisory.

Key layout:
    metrics-{issueKey}          -> MetricResult JSON
    recompute-lock-{issueKey}   -> {"timestamp": <epoch ms>}
    global-field-config         -> FieldConfig JSON
"""

from typing import Any, Protocol, runtime_checkable

from rollup.domain.constants import storage_layout

FIELD_CONFIG_KEY = storage_layout.FIELD_CONFIG_KEY


class StoreError(Exception):
    """Raised when the key-value store cannot be read or written"""

    pass


@runtime_checkable
class KeyValueStore(Protocol):
    """Async key-value storage"""

    async def get(self, key: str) -> Any | None:
        """Return the stored value, or None when absent"""
        ...

    async def set(self, key: str, value: Any) -> None:
        """Store a JSON-compatible value"""
        ...

    async def delete(self, key: str) -> None:
        """Remove a key; deleting an absent key is not an error"""
        ...


def metrics_key(issue_key: str) -> str:
    """Store key for an issue's computed metric"""
    return f"{storage_layout.METRICS_PREFIX}{issue_key}"


def lock_key(issue_key: str) -> str:
    """Store key for an issue's recompute lock"""
    return f"{storage_layout.LOCK_PREFIX}{issue_key}"
