"""
Storage Backend Module

Document-store abstraction with in-memory (testing) and SQLite (persistence)
implementations. Every record carries a version number so callers can do
optimistic compare-and-swap writes. Monetary values are stored as Decimal
strings.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Any, Tuple, Union
from decimal import Decimal
from datetime import datetime, timezone
from dataclasses import dataclass, asdict
from pathlib import Path
from contextlib import contextmanager
import copy
import json
import sqlite3
import threading


class VersionConflict(Exception):
    """A versioned write found a different version than expected"""

    def __init__(self, table: str, record_id: str, expected: int, actual: Optional[int]):
        super().__init__(
            f"{table}/{record_id}: expected version {expected}, found {actual}"
        )
        self.table = table
        self.record_id = record_id
        self.expected = expected
        self.actual = actual


@dataclass
class StorageRecord:
    """Base class for all stored records"""
    id: str
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


def _clone(data: Dict[str, Any]) -> Dict[str, Any]:
    # JSON round trip: detaches the copy and normalizes dates/Decimals to strings
    return json.loads(json.dumps(data, default=str))


def _matches(record: Dict[str, Any], filters: Dict[str, Any]) -> bool:
    for key, value in filters.items():
        if key not in record or record[key] != value:
            return False
    return True


class StorageInterface(ABC):
    """Abstract interface for storage backends"""

    @abstractmethod
    def save(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        """Save a record unconditionally (bumps its version)"""
        pass

    @abstractmethod
    def save_versioned(
        self, table: str, record_id: str, data: Dict[str, Any], expected_version: int
    ) -> int:
        """
        Compare-and-swap write.

        expected_version 0 means the record must not exist yet. Returns the
        new version; raises VersionConflict if the stored version differs.
        """
        pass

    @abstractmethod
    def load(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        """Load a record from storage"""
        pass

    @abstractmethod
    def load_versioned(self, table: str, record_id: str) -> Optional[Tuple[Dict[str, Any], int]]:
        """Load a record together with its current version"""
        pass

    @abstractmethod
    def load_all(self, table: str) -> List[Dict[str, Any]]:
        """Load all records from a table"""
        pass

    @abstractmethod
    def delete(self, table: str, record_id: str) -> bool:
        """Delete a record from storage"""
        pass

    @abstractmethod
    def exists(self, table: str, record_id: str) -> bool:
        """Check if a record exists"""
        pass

    @abstractmethod
    def find(self, table: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Find records whose top-level keys equal the filter values"""
        pass

    @abstractmethod
    def count(self, table: str) -> int:
        """Count records in table"""
        pass

    @abstractmethod
    def clear_table(self, table: str) -> None:
        """Clear all records from a table"""
        pass

    @abstractmethod
    def close(self) -> None:
        """Close storage connection"""
        pass

    def begin_transaction(self) -> None:
        """Start a transaction (default no-op)"""
        pass

    def commit(self) -> None:
        """Commit current transaction (default no-op)"""
        pass

    def rollback(self) -> None:
        """Rollback current transaction (default no-op)"""
        pass

    @contextmanager
    def atomic(self):
        """Context manager for atomic operations"""
        self.begin_transaction()
        try:
            yield
            self.commit()
        except Exception:
            self.rollback()
            raise


class InMemoryStorage(StorageInterface):
    """
    In-memory storage for tests and single-process use.

    atomic() holds the storage lock for the whole block and restores a
    snapshot on error, so a failed block leaves no partial writes.
    """

    def __init__(self):
        self._data: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._versions: Dict[str, Dict[str, int]] = {}
        self._lock = threading.RLock()
        self._snapshot = None
        self._depth = 0

    def _ensure_table(self, table: str) -> None:
        if table not in self._data:
            self._data[table] = {}
            self._versions[table] = {}

    def save(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        with self._lock:
            self._ensure_table(table)
            self._data[table][record_id] = _clone(data)
            self._versions[table][record_id] = self._versions[table].get(record_id, 0) + 1

    def save_versioned(
        self, table: str, record_id: str, data: Dict[str, Any], expected_version: int
    ) -> int:
        with self._lock:
            self._ensure_table(table)
            current = self._versions[table].get(record_id, 0)
            if current != expected_version:
                raise VersionConflict(table, record_id, expected_version, current)
            self._data[table][record_id] = _clone(data)
            self._versions[table][record_id] = current + 1
            return current + 1

    def load(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            self._ensure_table(table)
            record = self._data[table].get(record_id)
            return _clone(record) if record is not None else None

    def load_versioned(self, table: str, record_id: str) -> Optional[Tuple[Dict[str, Any], int]]:
        with self._lock:
            self._ensure_table(table)
            record = self._data[table].get(record_id)
            if record is None:
                return None
            return _clone(record), self._versions[table][record_id]

    def load_all(self, table: str) -> List[Dict[str, Any]]:
        with self._lock:
            self._ensure_table(table)
            return [_clone(record) for record in self._data[table].values()]

    def delete(self, table: str, record_id: str) -> bool:
        with self._lock:
            self._ensure_table(table)
            if record_id in self._data[table]:
                del self._data[table][record_id]
                del self._versions[table][record_id]
                return True
            return False

    def exists(self, table: str, record_id: str) -> bool:
        with self._lock:
            self._ensure_table(table)
            return record_id in self._data[table]

    def find(self, table: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        with self._lock:
            self._ensure_table(table)
            return [
                _clone(record) for record in self._data[table].values()
                if _matches(record, filters)
            ]

    def count(self, table: str) -> int:
        with self._lock:
            self._ensure_table(table)
            return len(self._data[table])

    def clear_table(self, table: str) -> None:
        with self._lock:
            self._data[table] = {}
            self._versions[table] = {}

    def close(self) -> None:
        """Close storage (no-op for in-memory)"""
        pass

    @contextmanager
    def atomic(self):
        with self._lock:
            if self._depth == 0:
                self._snapshot = (copy.deepcopy(self._data), copy.deepcopy(self._versions))
            self._depth += 1
            try:
                yield
            except Exception:
                self._depth -= 1
                if self._depth == 0:
                    self._data, self._versions = self._snapshot
                    self._snapshot = None
                raise
            else:
                self._depth -= 1
                if self._depth == 0:
                    self._snapshot = None


class SQLiteStorage(StorageInterface):
    """SQLite storage implementation for persistence"""

    def __init__(self, db_path: Union[str, Path] = ":memory:"):
        self.db_path = str(db_path)
        self._connection = sqlite3.connect(
            self.db_path, check_same_thread=False, isolation_level='DEFERRED'
        )
        self._connection.row_factory = sqlite3.Row
        self._lock = threading.RLock()
        self._in_transaction = False
        self._tables = set()

        # WAL mode for better concurrent readers
        if self.db_path != ":memory:":
            with self._lock:
                self._connection.execute("PRAGMA journal_mode = WAL")
                self._connection.execute("PRAGMA synchronous = NORMAL")
                self._connection.commit()

    def _ensure_table(self, table: str) -> None:
        """Ensure table exists with proper schema"""
        if table in self._tables:
            return
        with self._lock:
            self._connection.execute(f"""
                CREATE TABLE IF NOT EXISTS {table} (
                    id TEXT PRIMARY KEY,
                    data TEXT NOT NULL,
                    version INTEGER NOT NULL DEFAULT 1,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            self._connection.execute(f"""
                CREATE INDEX IF NOT EXISTS idx_{table}_created_at
                ON {table}(created_at)
            """)
            if not self._in_transaction:
                self._connection.commit()
            self._tables.add(table)

    def _maybe_commit(self) -> None:
        if not self._in_transaction:
            self._connection.commit()

    def save(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        with self._lock:
            self._ensure_table(table)
            now = datetime.now(timezone.utc).isoformat()
            self._connection.execute(f"""
                INSERT INTO {table} (id, data, version, created_at, updated_at)
                VALUES (?, ?, 1, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    data = excluded.data,
                    version = {table}.version + 1,
                    updated_at = excluded.updated_at
            """, (record_id, json.dumps(data, default=str), now, now))
            self._maybe_commit()

    def save_versioned(
        self, table: str, record_id: str, data: Dict[str, Any], expected_version: int
    ) -> int:
        with self._lock:
            self._ensure_table(table)
            now = datetime.now(timezone.utc).isoformat()
            data_json = json.dumps(data, default=str)

            if expected_version == 0:
                try:
                    self._connection.execute(f"""
                        INSERT INTO {table} (id, data, version, created_at, updated_at)
                        VALUES (?, ?, 1, ?, ?)
                    """, (record_id, data_json, now, now))
                except sqlite3.IntegrityError:
                    raise VersionConflict(table, record_id, 0, self._version_of(table, record_id))
                self._maybe_commit()
                return 1

            cursor = self._connection.execute(f"""
                UPDATE {table} SET data = ?, version = version + 1, updated_at = ?
                WHERE id = ? AND version = ?
            """, (data_json, now, record_id, expected_version))
            if cursor.rowcount == 0:
                raise VersionConflict(
                    table, record_id, expected_version, self._version_of(table, record_id)
                )
            self._maybe_commit()
            return expected_version + 1

    def _version_of(self, table: str, record_id: str) -> Optional[int]:
        row = self._connection.execute(
            f"SELECT version FROM {table} WHERE id = ?", (record_id,)
        ).fetchone()
        return row['version'] if row else None

    def load(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        loaded = self.load_versioned(table, record_id)
        return loaded[0] if loaded else None

    def load_versioned(self, table: str, record_id: str) -> Optional[Tuple[Dict[str, Any], int]]:
        with self._lock:
            self._ensure_table(table)
            row = self._connection.execute(f"""
                SELECT data, version FROM {table} WHERE id = ?
            """, (record_id,)).fetchone()
            if row:
                return json.loads(row['data']), row['version']
            return None

    def load_all(self, table: str) -> List[Dict[str, Any]]:
        with self._lock:
            self._ensure_table(table)
            cursor = self._connection.execute(f"""
                SELECT data FROM {table} ORDER BY created_at, rowid
            """)
            return [json.loads(row['data']) for row in cursor.fetchall()]

    def delete(self, table: str, record_id: str) -> bool:
        with self._lock:
            self._ensure_table(table)
            cursor = self._connection.execute(f"""
                DELETE FROM {table} WHERE id = ?
            """, (record_id,))
            self._maybe_commit()
            return cursor.rowcount > 0

    def exists(self, table: str, record_id: str) -> bool:
        with self._lock:
            self._ensure_table(table)
            cursor = self._connection.execute(f"""
                SELECT 1 FROM {table} WHERE id = ? LIMIT 1
            """, (record_id,))
            return cursor.fetchone() is not None

    def find(self, table: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Find records matching filters (simple JSON key matching)"""
        return [record for record in self.load_all(table) if _matches(record, filters)]

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
            self._maybe_commit()

    def begin_transaction(self) -> None:
        with self._lock:
            if not self._in_transaction:
                # isolation_level='DEFERRED' opens the transaction on first write
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
                # tables created inside the rolled back transaction are gone
                self._tables.clear()

    @contextmanager
    def atomic(self):
        # The connection is shared, so other threads must not interleave
        # statements with an open transaction
        with self._lock:
            if self._in_transaction:
                yield
                return
            self.begin_transaction()
            try:
                yield
                self.commit()
            except Exception:
                self.rollback()
                raise

    def close(self) -> None:
        with self._lock:
            if self._connection:
                self._connection.close()
                self._connection = None


def create_storage(database_url: str) -> StorageInterface:
    """
    Build a storage backend from a URL.

    memory:// gives InMemoryStorage, sqlite:///path gives SQLiteStorage
    (sqlite:///:memory: for an in-memory SQLite database).
    """
    if database_url.startswith("memory://"):
        return InMemoryStorage()
    if database_url.startswith("sqlite:///"):
        return SQLiteStorage(database_url[len("sqlite:///"):] or ":memory:")
    raise ValueError(f"Unsupported database URL: {database_url}")
