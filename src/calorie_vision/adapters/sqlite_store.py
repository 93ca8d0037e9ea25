"""SQLite-backed key-value store."""

import sqlite3
from dataclasses import dataclass
from pathlib import Path

from calorie_vision.services.storage import KeyValueStore, StoreNamespace

_SCHEMA = """
CREATE TABLE IF NOT EXISTS kv_store (
    namespace TEXT NOT NULL,
    key TEXT NOT NULL,
    value TEXT NOT NULL,
    PRIMARY KEY (namespace, key)
);
"""


@dataclass
class SqliteKeyValueStore(KeyValueStore):
    """Key-value store persisted in a single SQLite file.

    Every write runs in its own transaction, so an interrupted write leaves
    the previous value in place.
    """

    connection: sqlite3.Connection

    @classmethod
    def create(cls, db_path: Path) -> "SqliteKeyValueStore":
        """Open (and initialise) the store at ``db_path``."""
        if str(db_path) != ":memory:":
            db_path.parent.mkdir(parents=True, exist_ok=True)
        connection = sqlite3.connect(str(db_path), check_same_thread=False)
        connection.execute(_SCHEMA)
        connection.commit()
        return cls(connection=connection)

    def get(self, namespace: StoreNamespace, key: str) -> str | None:
        """Return the stored value, if present."""
        row = self.connection.execute(
            "SELECT value FROM kv_store WHERE namespace = ? AND key = ?",
            (namespace.value, key),
        ).fetchone()
        if row is None:
            return None
        return row[0]

    def set(self, namespace: StoreNamespace, key: str, value: str) -> None:
        """Insert or replace a value in one transaction."""
        with self.connection:
            self.connection.execute(
                "INSERT INTO kv_store (namespace, key, value) VALUES (?, ?, ?) "
                "ON CONFLICT(namespace, key) DO UPDATE SET value = excluded.value",
                (namespace.value, key, value),
            )

    def delete(self, namespace: StoreNamespace, key: str) -> None:
        """Delete a value in one transaction."""
        with self.connection:
            self.connection.execute(
                "DELETE FROM kv_store WHERE namespace = ? AND key = ?",
                (namespace.value, key),
            )

    def close(self) -> None:
        """Close the underlying connection."""
        self.connection.close()
