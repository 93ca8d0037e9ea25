"""Persisted key-value storage abstractions."""

import json
from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol

from calorie_vision.errors import CorruptPersistedState


class StoreNamespace(StrEnum):
    """Typed partitions of the persisted store."""

    SESSION = "session"
    MEAL_HISTORY = "meal_history"
    LAST_ANALYSIS = "last_analysis"
    SETTINGS = "settings"


class KeyValueStore(Protocol):
    """Durable store of text values partitioned by namespace."""

    def get(self, namespace: StoreNamespace, key: str) -> str | None:
        """Return the stored value, if present."""

    def set(self, namespace: StoreNamespace, key: str, value: str) -> None:
        """Atomically replace the value stored under a key."""

    def delete(self, namespace: StoreNamespace, key: str) -> None:
        """Remove a key; missing keys are ignored."""


@dataclass
class InMemoryKeyValueStore(KeyValueStore):
    """Process-local store, used when no data path is configured."""

    _values: dict[tuple[str, str], str]

    def __init__(self) -> None:
        self._values = {}

    def get(self, namespace: StoreNamespace, key: str) -> str | None:
        """Return the stored value, if present."""
        return self._values.get((namespace.value, key))

    def set(self, namespace: StoreNamespace, key: str, value: str) -> None:
        """Store a value."""
        self._values[(namespace.value, key)] = value

    def delete(self, namespace: StoreNamespace, key: str) -> None:
        """Remove a value."""
        self._values.pop((namespace.value, key), None)


def read_json(store: KeyValueStore, namespace: StoreNamespace, key: str) -> object:
    """Return the decoded JSON value for a key, or None when absent."""
    raw = store.get(namespace, key)
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except ValueError as exc:
        raise CorruptPersistedState(f"{namespace.value}/{key}: {exc}") from exc


def write_json(
    store: KeyValueStore, namespace: StoreNamespace, key: str, value: object
) -> None:
    """Encode a value as JSON and store it."""
    store.set(namespace, key, json.dumps(value, ensure_ascii=False))
