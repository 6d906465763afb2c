import sqlite3
import threading
from pathlib import Path
from typing import List, Optional, Union

from aloe.utils.logger import get_logger

logger = get_logger("storage.sqlite")


class SQLiteAdapter:
    """
    SQLite backend for durable local key-value storage.

    Keys are strings grouped into buckets (bid secrets, cached auctions).
    Each write is its own transaction, which gives key-level atomicity.
    """

    MEMORY = ":memory:"

    def __init__(self, db_path: Union[Path, str]):
        self.db_path = db_path
        self._conn_local = threading.local()

        if db_path != self.MEMORY:
            self.db_path = Path(db_path)
            if not self.db_path.parent.exists():
                self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._init_schema()

    def _get_conn(self) -> sqlite3.Connection:
        """Get or create connection for current thread."""
        if not hasattr(self._conn_local, "conn"):
            self._conn_local.conn = sqlite3.connect(
                str(self.db_path),
                timeout=30.0,
                check_same_thread=False,
            )
            self._conn_local.conn.row_factory = sqlite3.Row
            if self.db_path != self.MEMORY:
                self._conn_local.conn.execute("PRAGMA journal_mode=WAL;")
                self._conn_local.conn.execute("PRAGMA synchronous=NORMAL;")
        return self._conn_local.conn

    def _init_schema(self):
        """Initialize database schema."""
        conn = self._get_conn()
        with conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    bucket TEXT NOT NULL DEFAULT 'default'
                )
            """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_kv_bucket ON kv_store(bucket);")

    # =========================================================================
    # Key-Value Operations
    # =========================================================================

    def put(self, key: str, value: str, bucket: str = "default"):
        """Save a key-value pair, overwriting any previous value."""
        conn = self._get_conn()
        with conn:
            conn.execute(
                "INSERT OR REPLACE INTO kv_store (key, value, bucket) VALUES (?, ?, ?)",
                (key, value, bucket),
            )

    def get(self, key: str) -> Optional[str]:
        """Get value by key."""
        conn = self._get_conn()
        cursor = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,))
        row = cursor.fetchone()
        return row["value"] if row else None

    def remove(self, key: str) -> bool:
        """Delete a key. Returns whether anything was removed."""
        conn = self._get_conn()
        with conn:
            cursor = conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
        return cursor.rowcount > 0

    def keys(self, bucket: str) -> List[str]:
        """All keys in a bucket, sorted."""
        conn = self._get_conn()
        cursor = conn.execute(
            "SELECT key FROM kv_store WHERE bucket = ? ORDER BY key ASC", (bucket,)
        )
        return [row["key"] for row in cursor]

    def clear(self, bucket: str):
        conn = self._get_conn()
        with conn:
            conn.execute("DELETE FROM kv_store WHERE bucket = ?", (bucket,))

    def close(self):
        if hasattr(self._conn_local, "conn"):
            self._conn_local.conn.close()
            del self._conn_local.conn
