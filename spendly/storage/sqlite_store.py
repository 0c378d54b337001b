# spendly/storage/sqlite_store.py
import sqlite3
from pathlib import Path

from spendly.storage.base import BaseStorage


def _init_db(conn: sqlite3.Connection) -> None:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS kv (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        )
        """
    )
    conn.commit()


class SQLiteStorage(BaseStorage):
    """Key-value pairs in a ``kv`` table of the SQLite file at ``data_path``.

    A connection is opened per call, so the writer thread and the caller's
    thread never share one.
    """

    def __init__(self, config):
        self.db_path = Path(config.get('data_path', 'spendly.db'))

    def _connect(self) -> sqlite3.Connection:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.db_path)
        _init_db(conn)
        return conn

    def get_item(self, key):
        if not self.db_path.exists():
            return None
        conn = self._connect()
        try:
            row = conn.execute(
                "SELECT value FROM kv WHERE key = ?", (key,)
            ).fetchone()
            return row[0] if row else None
        finally:
            conn.close()

    def set_item(self, key, value):
        conn = self._connect()
        try:
            conn.execute(
                """
                INSERT INTO kv (key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value
                """,
                (key, value),
            )
            conn.commit()
        finally:
            conn.close()
