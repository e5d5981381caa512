"""
Storage Backend Module

Provides the abstract persistence port used by every store, with an
in-memory implementation (testing) and a SQLite implementation
(persistence). All monetary values are stored as Decimal strings and
record ids come from per-table integer sequences.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Union
from decimal import Decimal
from datetime import datetime, timezone
import sqlite3
import json
import threading
from dataclasses import dataclass, asdict
from pathlib import Path
from contextlib import contextmanager


@dataclass
class StorageRecord:
    """Base class for all stored records"""
    id: int
    created_at: datetime
    updated_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage"""
        result = asdict(self)
        result['created_at'] = self.created_at.isoformat()
        result['updated_at'] = self.updated_at.isoformat()
        for key, value in result.items():
            if isinstance(value, Decimal):
                result[key] = str(value)
        return result


class StorageInterface(ABC):
    """Abstract interface for storage backends

    Backends serialize access through ``self._lock``. ``atomic()`` keeps
    that lock for the whole unit of work, so a read-check-write sequence
    inside it cannot interleave with another one.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._in_transaction = False

    @abstractmethod
    def save(self, table: str, record_id: Union[int, str], data: Dict[str, Any]) -> None:
        """Save a record to storage"""

    @abstractmethod
    def load(self, table: str, record_id: Union[int, str]) -> Optional[Dict[str, Any]]:
        """Load a record from storage"""

    @abstractmethod
    def load_all(self, table: str) -> List[Dict[str, Any]]:
        """Load all records from a table"""

    @abstractmethod
    def delete(self, table: str, record_id: Union[int, str]) -> bool:
        """Delete a record from storage"""

    @abstractmethod
    def exists(self, table: str, record_id: Union[int, str]) -> bool:
        """Check if a record exists"""

    @abstractmethod
    def count(self, table: str) -> int:
        """Count records in table"""

    @abstractmethod
    def clear_table(self, table: str) -> None:
        """Clear all records from a table"""

    @abstractmethod
    def next_id(self, table: str) -> int:
        """Allocate the next integer id for a table"""

    @abstractmethod
    def close(self) -> None:
        """Close storage connection"""

    def find(self, table: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Find records whose fields equal every value in filters"""
        return self.filter(
            table,
            lambda record: all(key in record and record[key] == value
                               for key, value in filters.items())
        )

    def filter(self, table: str, predicate: Callable[[Dict[str, Any]], bool]) -> List[Dict[str, Any]]:
        """Find records matching an arbitrary predicate"""
        with self._lock:
            return [record for record in self.load_all(table) if predicate(record)]

    def begin_transaction(self) -> None:
        """Start a database transaction (default no-op)"""

    def commit(self) -> None:
        """Commit current transaction (default no-op)"""

    def rollback(self) -> None:
        """Rollback current transaction (default no-op)"""

    @property
    def in_transaction(self) -> bool:
        return self._in_transaction

    @contextmanager
    def atomic(self):
        """Context manager for an atomic, serialized unit of work.

        Nested calls join the enclosing unit.
        """
        with self._lock:
            if self._in_transaction:
                yield
                return

            self.begin_transaction()
            try:
                yield
                self.commit()
            except BaseException:
                self.rollback()
                raise


class InMemoryStorage(StorageInterface):
    """In-memory storage implementation for testing"""

    def __init__(self):
        super().__init__()
        self._data: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._sequences: Dict[str, int] = {}
        self._snapshot = None

    def _ensure_table(self, table: str) -> None:
        if table not in self._data:
            self._data[table] = {}

    def save(self, table: str, record_id: Union[int, str], data: Dict[str, Any]) -> None:
        """Save a record to memory"""
        with self._lock:
            self._remember(table)
            self._ensure_table(table)
            # Deep copy to prevent external mutation
            self._data[table][str(record_id)] = json.loads(json.dumps(data, default=str))

    def load(self, table: str, record_id: Union[int, str]) -> Optional[Dict[str, Any]]:
        """Load a record from memory"""
        with self._lock:
            self._ensure_table(table)
            record = self._data[table].get(str(record_id))
            if record:
                return json.loads(json.dumps(record))
            return None

    def load_all(self, table: str) -> List[Dict[str, Any]]:
        """Load all records from a table"""
        with self._lock:
            self._ensure_table(table)
            return [json.loads(json.dumps(record)) for record in self._data[table].values()]

    def delete(self, table: str, record_id: Union[int, str]) -> bool:
        """Delete a record from memory"""
        with self._lock:
            self._remember(table)
            self._ensure_table(table)
            return self._data[table].pop(str(record_id), None) is not None

    def exists(self, table: str, record_id: Union[int, str]) -> bool:
        with self._lock:
            self._ensure_table(table)
            return str(record_id) in self._data[table]

    def count(self, table: str) -> int:
        with self._lock:
            self._ensure_table(table)
            return len(self._data[table])

    def clear_table(self, table: str) -> None:
        with self._lock:
            self._remember(table)
            self._data[table] = {}

    def next_id(self, table: str) -> int:
        with self._lock:
            value = self._sequences.get(table, 0) + 1
            self._sequences[table] = value
            return value

    def begin_transaction(self) -> None:
        """Start recording undo state; tables are snapshotted on first write"""
        with self._lock:
            if not self._in_transaction:
                self._snapshot = ({}, dict(self._sequences))
                self._in_transaction = True

    def _remember(self, table: str) -> None:
        # Records are replaced on save, never mutated, so a shallow copy is enough
        if self._in_transaction:
            tables, _ = self._snapshot
            if table not in tables:
                original = self._data.get(table)
                tables[table] = dict(original) if original is not None else None

    def commit(self) -> None:
        with self._lock:
            if self._in_transaction:
                self._snapshot = None
                self._in_transaction = False

    def rollback(self) -> None:
        """Restore the tables written since begin_transaction"""
        with self._lock:
            if self._in_transaction:
                tables, self._sequences = self._snapshot
                for table, original in tables.items():
                    if original is None:
                        self._data.pop(table, None)
                    else:
                        self._data[table] = original
                self._snapshot = None
                self._in_transaction = False

    def close(self) -> None:
        """Close storage (no-op for in-memory)"""


class SQLiteStorage(StorageInterface):
    """SQLite storage implementation for persistence"""

    def __init__(self, db_path: Union[str, Path] = ":memory:"):
        super().__init__()
        self.db_path = str(db_path)
        self._connection = sqlite3.connect(self.db_path, check_same_thread=False, isolation_level='DEFERRED')
        self._connection.row_factory = sqlite3.Row
        self._tables = set()

        # Enable WAL mode for better concurrent access
        if self.db_path != ":memory:":
            with self._lock:
                self._connection.execute("PRAGMA journal_mode = WAL")
                self._connection.execute("PRAGMA synchronous = NORMAL")
                self._connection.commit()

        with self._lock:
            self._connection.execute("""
                CREATE TABLE IF NOT EXISTS _sequences (
                    name TEXT PRIMARY KEY,
                    value INTEGER NOT NULL
                )
            """)
            self._connection.commit()

    def _autocommit(self) -> None:
        # Writes outside atomic() are committed immediately
        if not self._in_transaction:
            self._connection.commit()

    def _ensure_table(self, table: str) -> None:
        """Ensure table exists with proper schema"""
        if table in self._tables:
            return
        self._connection.execute(f"""
            CREATE TABLE IF NOT EXISTS {table} (
                id TEXT PRIMARY KEY,
                data TEXT NOT NULL,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)
        self._connection.execute(f"""
            CREATE INDEX IF NOT EXISTS idx_{table}_created_at
            ON {table}(created_at)
        """)
        self._autocommit()
        self._tables.add(table)

    def save(self, table: str, record_id: Union[int, str], data: Dict[str, Any]) -> None:
        """Save a record to SQLite"""
        with self._lock:
            self._ensure_table(table)

            now = datetime.now(timezone.utc).isoformat()
            data_json = json.dumps(data, default=str)
            record_id = str(record_id)

            self._connection.execute(f"""
                INSERT OR REPLACE INTO {table} (id, data, created_at, updated_at)
                VALUES (?, ?,
                    COALESCE((SELECT created_at FROM {table} WHERE id = ?), ?),
                    ?)
            """, (record_id, data_json, record_id, now, now))
            self._autocommit()

    def load(self, table: str, record_id: Union[int, str]) -> Optional[Dict[str, Any]]:
        """Load a record from SQLite"""
        with self._lock:
            self._ensure_table(table)
            cursor = self._connection.execute(f"""
                SELECT data FROM {table} WHERE id = ?
            """, (str(record_id),))
            row = cursor.fetchone()
            if row:
                return json.loads(row['data'])
            return None

    def load_all(self, table: str) -> List[Dict[str, Any]]:
        with self._lock:
            self._ensure_table(table)
            cursor = self._connection.execute(f"""
                SELECT data FROM {table} ORDER BY created_at
            """)
            return [json.loads(row['data']) for row in cursor.fetchall()]

    def delete(self, table: str, record_id: Union[int, str]) -> bool:
        with self._lock:
            self._ensure_table(table)
            cursor = self._connection.execute(f"""
                DELETE FROM {table} WHERE id = ?
            """, (str(record_id),))
            self._autocommit()
            return cursor.rowcount > 0

    def exists(self, table: str, record_id: Union[int, str]) -> bool:
        with self._lock:
            self._ensure_table(table)
            cursor = self._connection.execute(f"""
                SELECT 1 FROM {table} WHERE id = ? LIMIT 1
            """, (str(record_id),))
            return cursor.fetchone() is not None

    def count(self, table: str) -> int:
        with self._lock:
            self._ensure_table(table)
            cursor = self._connection.execute(f"""
                SELECT COUNT(*) as count FROM {table}
            """)
            return cursor.fetchone()['count']

    def clear_table(self, table: str) -> None:
        with self._lock:
            self._ensure_table(table)
            self._connection.execute(f"DELETE FROM {table}")
            self._autocommit()

    def next_id(self, table: str) -> int:
        with self._lock:
            self._connection.execute("""
                INSERT INTO _sequences (name, value) VALUES (?, 1)
                ON CONFLICT(name) DO UPDATE SET value = value + 1
            """, (table,))
            row = self._connection.execute(
                "SELECT value FROM _sequences WHERE name = ?", (table,)
            ).fetchone()
            self._autocommit()
            return row['value']

    def begin_transaction(self) -> None:
        """Start a write transaction.

        BEGIN IMMEDIATE takes the database write lock up front, so other
        connections to the same file cannot slip a write between our
        reads and our writes.
        """
        with self._lock:
            if not self._in_transaction:
                if self._connection.in_transaction:
                    self._connection.commit()
                self._connection.execute("BEGIN IMMEDIATE")
                self._in_transaction = True

    def commit(self) -> None:
        with self._lock:
            if self._in_transaction:
                self._connection.commit()
                self._in_transaction = False

    def rollback(self) -> None:
        with self._lock:
            if self._in_transaction:
                self._connection.rollback()
                self._in_transaction = False
                # Tables created inside the rolled back unit are gone again
                self._tables.clear()

    def close(self) -> None:
        with self._lock:
            if self._connection:
                self._connection.close()
                self._connection = None


def create_storage(backend: str = "sqlite", database_path: Union[str, Path] = ":memory:") -> StorageInterface:
    """Build a storage backend by name"""
    if backend == "memory":
        return InMemoryStorage()
    if backend == "sqlite":
        return SQLiteStorage(database_path)
    raise ValueError(f"Unknown storage backend: {backend}")
