"""SQLite-backed local store: named collections keyed by integer id.

Used directly in local-only mode and as the offline mirror of the remote
in configured mode. Records in and out are plain dicts in wire shape.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from src.store.schema import DEFAULT_DB_PATH, _connect, columns_for, reset_database

logger = logging.getLogger(__name__)


class StoreInitError(RuntimeError):
    """The local store could not be opened or upgraded."""

    def __init__(self, db_path: Path | str, cause: BaseException):
        super().__init__(
            f"Cannot open local store at {db_path}: {cause}. "
            "Run scripts/reset_local_store.py to recreate it."
        )
        self.db_path = str(db_path)


def _encode_value(value: Any) -> Any:
    # ネスト構造は JSON テキストとして保存
    if isinstance(value, (list, dict)):
        return json.dumps(value, ensure_ascii=False)
    return value


class LocalStore:
    def __init__(self, db_path: Path | str = DEFAULT_DB_PATH):
        self.db_path = Path(db_path)
        self._opened = False

    def open(self) -> None:
        """Open the database, creating missing collections in place.

        Raises StoreInitError on failure; callers must not continue without
        a usable store.
        """
        try:
            conn = _connect(self.db_path)
            conn.close()
        except (sqlite3.Error, OSError) as e:
            logger.error("Local store init failed: %s", e)
            raise StoreInitError(self.db_path, e) from e
        self._opened = True
        logger.info("Local store ready: %s", self.db_path)

    def reset(self) -> None:
        """Destructive: drop and recreate the whole store."""
        try:
            reset_database(self.db_path)
        except (sqlite3.Error, OSError) as e:
            raise StoreInitError(self.db_path, e) from e
        self._opened = True

    def _conn(self) -> sqlite3.Connection:
        if not self._opened:
            self.open()
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Explicit transaction scope: commit on success, rollback on error, always close."""
        conn = self._conn()
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def _row_values(self, collection: str, record: dict[str, Any]) -> tuple[list[str], list[Any]]:
        cols = [c for c in columns_for(collection) if c in record]
        if "id" in cols and record["id"] is None:
            cols.remove("id")
        return cols, [_encode_value(record[c]) for c in cols]

    # ------------------------------------------------------------------
    # Reads: failures resolve to empty results
    # ------------------------------------------------------------------

    def get_all(self, collection: str) -> list[dict[str, Any]]:
        columns_for(collection)
        try:
            conn = self._conn()
            try:
                rows = conn.execute(f"SELECT * FROM {collection} ORDER BY id").fetchall()
            finally:
                conn.close()
        except (sqlite3.Error, StoreInitError) as e:
            logger.warning("Local read of %s failed: %s", collection, e)
            return []
        return [dict(r) for r in rows]

    def get_by_id(self, collection: str, record_id: int) -> dict[str, Any] | None:
        columns_for(collection)
        try:
            conn = self._conn()
            try:
                row = conn.execute(
                    f"SELECT * FROM {collection} WHERE id = ?", (record_id,)
                ).fetchone()
            finally:
                conn.close()
        except (sqlite3.Error, StoreInitError) as e:
            logger.warning("Local read of %s #%s failed: %s", collection, record_id, e)
            return None
        return dict(row) if row else None

    def max_id(self, collection: str) -> int:
        columns_for(collection)
        try:
            conn = self._conn()
            try:
                row = conn.execute(f"SELECT MAX(id) FROM {collection}").fetchone()
            finally:
                conn.close()
        except (sqlite3.Error, StoreInitError) as e:
            logger.warning("Local read of %s max id failed: %s", collection, e)
            return 0
        return int(row[0] or 0)

    # ------------------------------------------------------------------
    # Writes: failures propagate
    # ------------------------------------------------------------------

    def add(self, collection: str, record: dict[str, Any]) -> int:
        """Insert a record and return its id (auto-assigned unless supplied)."""
        cols, values = self._row_values(collection, record)
        with self._transaction() as conn:
            cur = conn.execute(
                f"INSERT INTO {collection} ({', '.join(cols)}) "
                f"VALUES ({', '.join('?' for _ in cols)})",
                values,
            )
            return cur.lastrowid  # type: ignore[return-value]

    def put(self, collection: str, record: dict[str, Any]) -> int:
        """Upsert a record by id. Returns the id."""
        if record.get("id") is None:
            return self.add(collection, record)
        cols, values = self._row_values(collection, record)
        with self._transaction() as conn:
            conn.execute(
                f"INSERT OR REPLACE INTO {collection} ({', '.join(cols)}) "
                f"VALUES ({', '.join('?' for _ in cols)})",
                values,
            )
        return int(record["id"])

    def delete(self, collection: str, record_id: int) -> int:
        columns_for(collection)
        with self._transaction() as conn:
            cur = conn.execute(f"DELETE FROM {collection} WHERE id = ?", (record_id,))
            return cur.rowcount

    def delete_where(self, collection: str, field: str, value: Any) -> int:
        """Delete every record whose field equals value. Returns the row count."""
        if field not in columns_for(collection):
            raise ValueError(f"Unknown field {field!r} for {collection}")
        with self._transaction() as conn:
            cur = conn.execute(f"DELETE FROM {collection} WHERE {field} = ?", (value,))
            return cur.rowcount

    def replace_all(self, collection: str, records: list[dict[str, Any]]) -> int:
        """Atomically clear the collection and bulk-insert records."""
        columns_for(collection)
        with self._transaction() as conn:
            conn.execute(f"DELETE FROM {collection}")
            for record in records:
                cols, values = self._row_values(collection, record)
                conn.execute(
                    f"INSERT INTO {collection} ({', '.join(cols)}) "
                    f"VALUES ({', '.join('?' for _ in cols)})",
                    values,
                )
        logger.debug("Mirrored %d records into %s", len(records), collection)
        return len(records)
