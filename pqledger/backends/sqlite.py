"""SQLite backend for pqledger."""

import sqlite3
import json
from pathlib import Path
from typing import Optional, Dict, Any, Union
import logging
import threading

from .base import StorageBackend
from ..core.exceptions import SerializationError, StorageError

logger = logging.getLogger(__name__)


class SQLiteBackend(StorageBackend):
    """SQLite storage backend for pqledger.

    The chain header lives in one row of ``chain``; transactions are rows of
    ``transactions`` keyed by their position. A save rewrites both tables in
    a single SQL transaction.
    """

    def __init__(
        self,
        db_path: Union[str, Path] = "pqledger.db",
        wal_mode: bool = True,
        **kwargs
    ):
        super().__init__(**kwargs)

        self.db_path = str(db_path)
        self.wal_mode = wal_mode

        # Thread-local storage for connections
        self._local = threading.local()

        self._init_database()

    def _get_connection(self) -> sqlite3.Connection:
        """Get thread-local database connection."""
        if getattr(self._local, 'connection', None) is None:
            try:
                connection = sqlite3.connect(
                    self.db_path,
                    isolation_level=None,  # Autocommit; transactions are explicit
                    check_same_thread=False,
                )
            except sqlite3.Error as e:
                raise StorageError(f"Failed to open {self.db_path}: {e}", "connect", self.name) from e

            connection.row_factory = sqlite3.Row
            if self.wal_mode:
                connection.execute("PRAGMA journal_mode = WAL")
            connection.execute("PRAGMA synchronous = NORMAL")
            self._local.connection = connection

        return self._local.connection

    def _init_database(self):
        """Initialize database schema."""
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        conn = self._get_connection()

        conn.execute("""
            CREATE TABLE IF NOT EXISTS chain (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                created_at TEXT NOT NULL,
                format_version INTEGER NOT NULL,
                keypair TEXT NOT NULL
            )
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS transactions (
                position INTEGER PRIMARY KEY,
                id TEXT NOT NULL,
                document TEXT NOT NULL
            )
        """)
        conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_transactions_id
            ON transactions (id)
        """)

    def save(self, document: Dict[str, Any]) -> None:
        """Replace the stored chain in one SQL transaction."""
        try:
            header = (
                document["id"],
                document["name"],
                document["created_at"],
                document["format_version"],
                json.dumps(document["keypair"], sort_keys=True),
            )
            rows = [
                (position, tx["id"], json.dumps(tx, sort_keys=True))
                for position, tx in enumerate(document["transactions"])
            ]
        except (KeyError, TypeError, ValueError) as e:
            raise StorageError(f"Malformed chain document: {e}", "save", self.name) from e

        conn = self._get_connection()
        try:
            conn.execute("BEGIN IMMEDIATE")
            try:
                conn.execute("DELETE FROM transactions")
                conn.execute("DELETE FROM chain")
                conn.execute(
                    "INSERT INTO chain (id, name, created_at, format_version, keypair) "
                    "VALUES (?, ?, ?, ?, ?)",
                    header,
                )
                conn.executemany(
                    "INSERT INTO transactions (position, id, document) VALUES (?, ?, ?)",
                    rows,
                )
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")
        except sqlite3.Error as e:
            raise StorageError(f"Failed to save chain: {e}", "save", self.name) from e

        logger.debug(f"Saved {len(rows)} transactions to {self.db_path}")

    def load(self) -> Optional[Dict[str, Any]]:
        """Rebuild the chain document from the database."""
        conn = self._get_connection()
        try:
            header = conn.execute(
                "SELECT id, name, created_at, format_version, keypair FROM chain"
            ).fetchall()
            rows = conn.execute(
                "SELECT position, document FROM transactions ORDER BY position ASC"
            ).fetchall()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to load chain: {e}", "load", self.name) from e

        if not header:
            return None
        if len(header) > 1:
            raise SerializationError(
                f"Expected one chain in {self.db_path}, found {len(header)}", field="chain"
            )

        positions = [row["position"] for row in rows]
        if positions != list(range(len(rows))):
            raise SerializationError("Transaction positions are not contiguous", field="transactions")

        row = header[0]
        try:
            return {
                "id": row["id"],
                "name": row["name"],
                "created_at": row["created_at"],
                "format_version": row["format_version"],
                "keypair": json.loads(row["keypair"]),
                "transactions": [json.loads(r["document"]) for r in rows],
            }
        except json.JSONDecodeError as e:
            raise SerializationError(f"Corrupt JSON column: {e}", field="document") from e

    def exists(self) -> bool:
        conn = self._get_connection()
        try:
            return conn.execute("SELECT COUNT(*) FROM chain").fetchone()[0] > 0
        except sqlite3.Error as e:
            raise StorageError(f"Failed to query chain: {e}", "exists", self.name) from e

    def close(self) -> None:
        """Close database connection."""
        connection = getattr(self._local, 'connection', None)
        if connection is not None:
            connection.close()
            self._local.connection = None
