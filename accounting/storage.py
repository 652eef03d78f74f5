"""
Storage Backend Module

Provides the abstract ledger store interface and implementations for in-memory
(testing) and SQLite (persistence). Records are JSON documents keyed by id
within a table; saves are upserts.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple, Union
import json
import re
import sqlite3
import threading
from pathlib import Path
from contextlib import contextmanager


_FIELD_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _check_field(name: str) -> str:
    if not _FIELD_NAME.match(name):
        raise ValueError(f"Invalid field name: {name!r}")
    return name


def _sort_records(records: List[Dict[str, Any]], order_by: Optional[str], descending: bool) -> List[Dict[str, Any]]:
    """Order records by a document field, ties broken by record id"""
    if not order_by:
        return records
    return sorted(
        records,
        key=lambda record: (record.get(order_by), str(record.get('id', ''))),
        reverse=descending
    )


class StorageInterface(ABC):
    """Keyed JSON document store shared by accounts, transactions and audit events"""

    @abstractmethod
    def save(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        """Save (insert or replace) a record"""
        pass

    @abstractmethod
    def load(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        """Load a record by id"""
        pass

    @abstractmethod
    def load_all(self, table: str) -> List[Dict[str, Any]]:
        """Load all records from a table in insertion order"""
        pass

    @abstractmethod
    def delete(self, table: str, record_id: str) -> bool:
        """Delete a record, returning whether it existed"""
        pass

    @abstractmethod
    def exists(self, table: str, record_id: str) -> bool:
        """Check if a record exists"""
        pass

    @abstractmethod
    def find(
        self,
        table: str,
        filters: Dict[str, Any],
        order_by: Optional[str] = None,
        descending: bool = False
    ) -> List[Dict[str, Any]]:
        """
        Find records whose fields equal every filter value

        Args:
            table: Table to search
            filters: Field name to expected value
            order_by: Document field to sort by (insertion order if omitted)
            descending: Sort direction for order_by

        Returns:
            Matching records; equal sort keys are ordered by record id
        """
        pass

    @abstractmethod
    def count(self, table: str) -> int:
        """Count records in table"""
        pass

    @abstractmethod
    def clear_table(self, table: str) -> None:
        """Drop every record of a table, keeping the table"""
        pass

    @abstractmethod
    def close(self) -> None:
        """Close storage connection"""
        pass

    def begin_transaction(self) -> None:
        """Open an atomic unit of work; backends without transactions ignore it"""
        pass

    def commit(self) -> None:
        """Make the open unit of work durable"""
        pass

    def rollback(self) -> None:
        """Discard the open unit of work"""
        pass

    @contextmanager
    def atomic(self):
        """Run a block as one unit of work, rolled back if it raises"""
        self.begin_transaction()
        try:
            yield
            self.commit()
        except Exception:
            self.rollback()
            raise


class InMemoryStorage(StorageInterface):
    """Process-local store used by tests and the memory backend"""

    def __init__(self):
        self._data: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._lock = threading.RLock()
        # Prior state of every record touched in the open unit of work
        self._journal: Optional[Dict[Tuple[str, str], Optional[Dict[str, Any]]]] = None

    def _table(self, table: str) -> Dict[str, Dict[str, Any]]:
        return self._data.setdefault(table, {})

    def _remember(self, table: str, record_id: str) -> None:
        if self._journal is not None and (table, record_id) not in self._journal:
            self._journal[(table, record_id)] = self._table(table).get(record_id)

    @staticmethod
    def _copy(record: Dict[str, Any]) -> Dict[str, Any]:
        # Deep copy via JSON; callers never share state with the store
        return json.loads(json.dumps(record, default=str))

    def save(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        with self._lock:
            self._remember(table, record_id)
            self._table(table)[record_id] = self._copy(data)

    def load(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            record = self._table(table).get(record_id)
            return self._copy(record) if record is not None else None

    def load_all(self, table: str) -> List[Dict[str, Any]]:
        with self._lock:
            return [self._copy(record) for record in self._table(table).values()]

    def delete(self, table: str, record_id: str) -> bool:
        with self._lock:
            self._remember(table, record_id)
            return self._table(table).pop(record_id, None) is not None

    def exists(self, table: str, record_id: str) -> bool:
        with self._lock:
            return record_id in self._table(table)

    def find(
        self,
        table: str,
        filters: Dict[str, Any],
        order_by: Optional[str] = None,
        descending: bool = False
    ) -> List[Dict[str, Any]]:
        with self._lock:
            results = [
                self._copy(record)
                for record in self._table(table).values()
                if all(key in record and record[key] == value for key, value in filters.items())
            ]
        return _sort_records(results, order_by, descending)

    def count(self, table: str) -> int:
        with self._lock:
            return len(self._table(table))

    def clear_table(self, table: str) -> None:
        with self._lock:
            for record_id in self._table(table):
                self._remember(table, record_id)
            self._data[table] = {}

    def begin_transaction(self) -> None:
        with self._lock:
            self._journal = {}

    def commit(self) -> None:
        with self._lock:
            self._journal = None

    def rollback(self) -> None:
        with self._lock:
            journal, self._journal = self._journal, None
            for (table, record_id), previous in (journal or {}).items():
                if previous is None:
                    self._table(table).pop(record_id, None)
                else:
                    self._table(table)[record_id] = previous

    def close(self) -> None:
        """Nothing to release"""
        pass


class SQLiteStorage(StorageInterface):
    """Single-file SQLite store; each table holds (seq, id, JSON data) rows"""

    def __init__(self, db_path: Union[str, Path] = ":memory:"):
        self.db_path = str(db_path)
        self._connection = sqlite3.connect(self.db_path, check_same_thread=False, isolation_level='DEFERRED')
        self._connection.row_factory = sqlite3.Row
        self._lock = threading.RLock()
        self._in_transaction = False
        self._tables: set = set()

        # File databases run in WAL mode
        if self.db_path != ":memory:":
            with self._lock:
                self._connection.execute("PRAGMA journal_mode = WAL")
                self._connection.execute("PRAGMA synchronous = NORMAL")
                self._connection.commit()

    def _ensure_table(self, table: str) -> None:
        """Create the table on first use"""
        _check_field(table)
        if table in self._tables:
            return
        with self._lock:
            self._connection.execute(f"""
                CREATE TABLE IF NOT EXISTS {table} (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    id TEXT NOT NULL UNIQUE,
                    data TEXT NOT NULL
                )
            """)
            self._maybe_commit()
            # A rollback would undo the CREATE, so only committed tables are cached
            if not self._in_transaction:
                self._tables.add(table)

    def _maybe_commit(self) -> None:
        if not self._in_transaction:
            self._connection.commit()

    def save(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        with self._lock:
            self._ensure_table(table)
            # Upsert keeps the original seq so insertion order survives updates
            self._connection.execute(f"""
                INSERT INTO {table} (id, data) VALUES (?, ?)
                ON CONFLICT(id) DO UPDATE SET data = excluded.data
            """, (record_id, json.dumps(data, default=str)))
            self._maybe_commit()

    def load(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            self._ensure_table(table)
            row = self._connection.execute(
                f"SELECT data FROM {table} WHERE id = ?", (record_id,)
            ).fetchone()
            return json.loads(row['data']) if row else None

    def load_all(self, table: str) -> List[Dict[str, Any]]:
        with self._lock:
            self._ensure_table(table)
            cursor = self._connection.execute(f"SELECT data FROM {table} ORDER BY seq")
            return [json.loads(row['data']) for row in cursor.fetchall()]

    def delete(self, table: str, record_id: str) -> bool:
        with self._lock:
            self._ensure_table(table)
            cursor = self._connection.execute(f"DELETE FROM {table} WHERE id = ?", (record_id,))
            self._maybe_commit()
            return cursor.rowcount > 0

    def exists(self, table: str, record_id: str) -> bool:
        with self._lock:
            self._ensure_table(table)
            cursor = self._connection.execute(
                f"SELECT 1 FROM {table} WHERE id = ? LIMIT 1", (record_id,)
            )
            return cursor.fetchone() is not None

    def find(
        self,
        table: str,
        filters: Dict[str, Any],
        order_by: Optional[str] = None,
        descending: bool = False
    ) -> List[Dict[str, Any]]:
        """Find records using json_extract on the stored documents"""
        conditions = []
        params: List[Any] = []
        for key, value in filters.items():
            conditions.append("json_extract(data, ?) = ?")
            params.extend([f"$.{_check_field(key)}", value])

        sql = f"SELECT data FROM {table}"
        if conditions:
            sql += " WHERE " + " AND ".join(conditions)
        if order_by:
            direction = "DESC" if descending else "ASC"
            sql += f" ORDER BY json_extract(data, ?) {direction}, id {direction}"
            params.append(f"$.{_check_field(order_by)}")
        else:
            sql += " ORDER BY seq"

        with self._lock:
            self._ensure_table(table)
            cursor = self._connection.execute(sql, params)
            return [json.loads(row['data']) for row in cursor.fetchall()]

    def count(self, table: str) -> int:
        with self._lock:
            self._ensure_table(table)
            cursor = self._connection.execute(f"SELECT COUNT(*) AS count FROM {table}")
            return cursor.fetchone()['count']

    def clear_table(self, table: str) -> None:
        with self._lock:
            self._ensure_table(table)
            self._connection.execute(f"DELETE FROM {table}")
            self._maybe_commit()

    def begin_transaction(self) -> None:
        """Defer commits until commit() or rollback()"""
        with self._lock:
            # isolation_level='DEFERRED' opens the transaction on first write
            self._in_transaction = True

    def commit(self) -> None:
        """Commit the pending writes"""
        with self._lock:
            if self._in_transaction:
                self._connection.commit()
                self._in_transaction = False

    def rollback(self) -> None:
        """Undo the pending writes"""
        with self._lock:
            if self._in_transaction:
                self._connection.rollback()
                self._in_transaction = False

    def close(self) -> None:
        """Close SQLite connection"""
        with self._lock:
            if self._connection:
                self._connection.close()
                self._connection = None
