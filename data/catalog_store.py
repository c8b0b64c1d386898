"""
SQLite-backed storage for catalog entries.

Each operation borrows a connection from a bounded pool and returns it on
completion or failure. No transactions span more than one statement group and
every write touches exactly one entry.
"""

import json
import logging
import queue
import secrets
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from data.errors import ConflictFailure, TransientStoreFailure
from utils import utc_now_iso

logger = logging.getLogger(__name__)

# Columns callers may write. id and created_at are store-managed.
WRITABLE_COLUMNS = frozenset({
    "title", "description", "book_title", "chapter", "content_type",
    "external_url", "link_id", "thumbnail_url",
    "file_url", "file_name", "file_size", "duration",
    "tags", "difficulty", "subject", "grade", "uploaded_by",
    "likes", "published_at",
})
_READABLE_COLUMNS = WRITABLE_COLUMNS | {"id", "view_count", "is_active", "created_at", "updated_at"}


def _icontains(haystack, needle) -> int:
    """Case-insensitive literal substring test exposed to SQL as icontains()."""
    if haystack is None or needle is None:
        return 0
    return int(str(needle).casefold() in str(haystack).casefold())


def new_entry_id() -> str:
    return secrets.token_hex(12)


def _row_to_dict(row: sqlite3.Row) -> dict:
    d = dict(row)
    if "tags" in d:
        d["tags"] = json.loads(d["tags"] or "[]")
    if "is_active" in d:
        d["is_active"] = bool(d["is_active"])
    return d


class CatalogStore:
    """SQLite database for catalog entries with a bounded connection pool."""

    def __init__(self, db_path: str = "db/catalog.db", max_connections: int = 10,
                 timeout: float = 5.0):
        """Open the pool and create the schema."""
        db_file = Path(db_path)
        db_file.parent.mkdir(parents=True, exist_ok=True)

        self._db_file = db_file
        self._timeout = timeout
        self._max_connections = max(1, max_connections)
        self._pool: queue.Queue = queue.Queue(maxsize=self._max_connections)
        self._lock = threading.Lock()
        self._opened = 0
        self._closed = False

        conn = self._acquire()
        try:
            self._create_tables(conn)
        finally:
            self._release(conn)

    # --- Pool ---

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_file, timeout=self._timeout, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.create_function("icontains", 2, _icontains, deterministic=True)
        return conn

    def _acquire(self) -> sqlite3.Connection:
        if self._closed:
            raise TransientStoreFailure("Database connection is closed")
        try:
            return self._pool.get_nowait()
        except queue.Empty:
            pass
        with self._lock:
            if self._opened < self._max_connections:
                self._opened += 1
                try:
                    return self._connect()
                except sqlite3.Error as e:
                    self._opened -= 1
                    logger.error("Failed to open database connection: %s", e)
                    raise TransientStoreFailure() from e
        try:
            return self._pool.get(timeout=self._timeout)
        except queue.Empty:
            logger.error("Timed out after %.1fs waiting for a database connection", self._timeout)
            raise TransientStoreFailure() from None

    def _release(self, conn: sqlite3.Connection) -> None:
        if self._closed:
            conn.close()
            return
        self._pool.put_nowait(conn)

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        """Borrow a connection; map sqlite errors onto the catalog taxonomy."""
        conn = self._acquire()
        try:
            yield conn
        except sqlite3.IntegrityError as e:
            conn.rollback()
            logger.warning("Integrity error: %s", e)
            raise ConflictFailure() from e
        except sqlite3.Error as e:
            conn.rollback()
            logger.error("Database error: %s", e)
            raise TransientStoreFailure() from e
        finally:
            self._release(conn)

    def close(self) -> None:
        """Close every pooled connection. Connections still borrowed close on release."""
        self._closed = True
        while True:
            try:
                conn = self._pool.get_nowait()
            except queue.Empty:
                break
            conn.close()
        logger.info("Catalog store closed")

    # --- Schema ---

    def _create_tables(self, conn: sqlite3.Connection) -> None:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS entries (
                id TEXT PRIMARY KEY,
                title TEXT NOT NULL,
                description TEXT NOT NULL,
                book_title TEXT NOT NULL,
                chapter TEXT NOT NULL,
                content_type TEXT NOT NULL CHECK (content_type IN ('video', 'image')),
                external_url TEXT,
                link_id TEXT,
                thumbnail_url TEXT,
                file_url TEXT,
                file_name TEXT,
                file_size INTEGER,
                duration TEXT,
                tags TEXT NOT NULL DEFAULT '[]',
                difficulty TEXT NOT NULL DEFAULT 'medium',
                subject TEXT,
                grade TEXT,
                uploaded_by TEXT NOT NULL DEFAULT 'Admin',
                view_count INTEGER NOT NULL DEFAULT 0,
                likes INTEGER NOT NULL DEFAULT 0,
                is_active INTEGER NOT NULL DEFAULT 1,
                published_at TEXT NOT NULL,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)
        conn.execute("CREATE INDEX IF NOT EXISTS idx_entries_book_chapter ON entries(book_title, chapter)")
        conn.execute("CREATE INDEX IF NOT EXISTS idx_entries_type_active ON entries(content_type, is_active)")
        conn.execute("CREATE INDEX IF NOT EXISTS idx_entries_created ON entries(created_at)")
        conn.execute("CREATE INDEX IF NOT EXISTS idx_entries_subject_grade ON entries(subject, grade)")
        conn.commit()

    # --- Entry CRUD ---

    @staticmethod
    def _encode(fields: dict) -> dict:
        unknown = set(fields) - WRITABLE_COLUMNS
        if unknown:
            raise ValueError(f"Unknown entry columns: {sorted(unknown)}")
        encoded = dict(fields)
        if "tags" in encoded:
            encoded["tags"] = json.dumps(encoded["tags"] or [])
        return encoded

    def _get_unlocked(self, conn: sqlite3.Connection, entry_id: str,
                      include_inactive: bool = False) -> Optional[dict]:
        sql = "SELECT * FROM entries WHERE id = ?"
        if not include_inactive:
            sql += " AND is_active = 1"
        row = conn.execute(sql, (entry_id,)).fetchone()
        return _row_to_dict(row) if row else None

    def insert_entry(self, fields: dict) -> dict:
        """Insert a new entry and return it as stored."""
        data = self._encode(fields)
        now = utc_now_iso()
        data["id"] = new_entry_id()
        data.setdefault("published_at", now)
        data["created_at"] = now
        data["updated_at"] = now
        columns = ", ".join(data)
        placeholders = ", ".join("?" for _ in data)
        with self._connection() as conn:
            conn.execute(f"INSERT INTO entries ({columns}) VALUES ({placeholders})", list(data.values()))
            conn.commit()
            return self._get_unlocked(conn, data["id"])

    def get_entry(self, entry_id: str, include_inactive: bool = False) -> Optional[dict]:
        """Get an entry by id. Soft-deleted entries are hidden unless asked for."""
        with self._connection() as conn:
            return self._get_unlocked(conn, entry_id, include_inactive)

    def increment_views(self, entry_id: str) -> Optional[dict]:
        """Add one view to an active entry and return it with the new count.

        Plain read-modify-write: concurrent calls on the same entry can lose
        increments. Accepted, view counts are approximate.
        """
        with self._connection() as conn:
            entry = self._get_unlocked(conn, entry_id)
            if entry is None:
                return None
            entry["view_count"] = (entry["view_count"] or 0) + 1
            conn.execute("UPDATE entries SET view_count = ? WHERE id = ?",
                         (entry["view_count"], entry_id))
            conn.commit()
            return entry

    def update_entry(self, entry_id: str, fields: dict) -> Optional[dict]:
        """Apply a partial update to an active entry. Returns the updated entry or None."""
        data = self._encode(fields)
        data["updated_at"] = utc_now_iso()
        assignments = ", ".join(f"{column} = ?" for column in data)
        with self._connection() as conn:
            cursor = conn.execute(
                f"UPDATE entries SET {assignments} WHERE id = ? AND is_active = 1",
                [*data.values(), entry_id],
            )
            conn.commit()
            if cursor.rowcount == 0:
                return None
            return self._get_unlocked(conn, entry_id)

    def deactivate_entry(self, entry_id: str) -> bool:
        """Soft delete. Returns False if the entry is absent or already inactive."""
        with self._connection() as conn:
            cursor = conn.execute(
                "UPDATE entries SET is_active = 0, updated_at = ? WHERE id = ? AND is_active = 1",
                (utc_now_iso(), entry_id),
            )
            conn.commit()
            return cursor.rowcount > 0

    # --- Queries ---

    def find_entries(self, where: str, args: list, order_by: str = "created_at DESC",
                     limit: int = 10, skip: int = 0) -> list[dict]:
        """Fetch one page of entries matching a composed WHERE clause."""
        with self._connection() as conn:
            cursor = conn.execute(
                f"SELECT * FROM entries WHERE {where} ORDER BY {order_by} LIMIT ? OFFSET ?",
                [*args, limit, skip],
            )
            return [_row_to_dict(row) for row in cursor.fetchall()]

    def count_entries(self, where: str, args: list) -> int:
        with self._connection() as conn:
            return conn.execute(f"SELECT COUNT(*) FROM entries WHERE {where}", args).fetchone()[0]

    def distinct_values(self, column: str, where: str = "is_active = 1", args: Optional[list] = None) -> list:
        """Distinct non-null values of a column, sorted."""
        if column not in _READABLE_COLUMNS:
            raise ValueError(f"Unknown column: {column}")
        with self._connection() as conn:
            cursor = conn.execute(
                f"SELECT DISTINCT {column} FROM entries WHERE {where} AND {column} IS NOT NULL "
                f"ORDER BY {column}",
                args or [],
            )
            return [row[0] for row in cursor.fetchall()]

    def group_counts(self, column: str, limit: int = 10) -> list[tuple]:
        """(value, count) pairs over active entries, most frequent first."""
        if column not in _READABLE_COLUMNS:
            raise ValueError(f"Unknown column: {column}")
        with self._connection() as conn:
            cursor = conn.execute(
                f"SELECT {column}, COUNT(*) AS n FROM entries WHERE is_active = 1 "
                f"GROUP BY {column} ORDER BY n DESC, {column} ASC LIMIT ?",
                (limit,),
            )
            return [(row[0], row[1]) for row in cursor.fetchall()]

    def sum_column(self, column: str) -> int:
        """Sum of a numeric column over active entries (0 when empty)."""
        if column not in _READABLE_COLUMNS:
            raise ValueError(f"Unknown column: {column}")
        with self._connection() as conn:
            return conn.execute(
                f"SELECT COALESCE(SUM({column}), 0) FROM entries WHERE is_active = 1"
            ).fetchone()[0]
