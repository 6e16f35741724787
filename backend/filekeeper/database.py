"""DuckDB-backed credential and file metadata store.

Holds the single embedded database connection used by the user and file
services, and owns the schema for both tables.

Database Schema:
    users table:
        - id: Sequence-generated primary key
        - first_name, last_name, phone_number
        - email: Unique login identifier
        - password: bcrypt hash, never the plaintext
        - created_at: Registration time (UTC)
    files table:
        - id: Sequence-generated primary key
        - name / extension: Original filename split at the last dot
        - mime_type, size
        - filename: Generated name of the blob in the upload directory
        - uploaded_at: Time of the last upload or replacement (UTC)

Thread Safety:
    The DuckDB connection is NOT thread-safe. Handlers are async and run
    every query on the event-loop thread, so one connection suffices.

Usage:
    db = Database.get_instance()
    rows = db.connection.execute("SELECT ...", [param]).fetchall()
"""
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import duckdb

from .config import get_config

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    """Current UTC time as a naive datetime, matching the TIMESTAMP columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


_SCHEMA = (
    "CREATE SEQUENCE IF NOT EXISTS users_seq START 1",
    """
    CREATE TABLE IF NOT EXISTS users (
        id           INTEGER DEFAULT nextval('users_seq') PRIMARY KEY,
        first_name   VARCHAR NOT NULL,
        last_name    VARCHAR NOT NULL,
        email        VARCHAR NOT NULL UNIQUE,
        phone_number VARCHAR NOT NULL,
        password     VARCHAR NOT NULL,
        created_at   TIMESTAMP NOT NULL
    )
    """,
    "CREATE SEQUENCE IF NOT EXISTS files_seq START 1",
    """
    CREATE TABLE IF NOT EXISTS files (
        id          INTEGER DEFAULT nextval('files_seq') PRIMARY KEY,
        name        VARCHAR NOT NULL,
        extension   VARCHAR NOT NULL,
        mime_type   VARCHAR NOT NULL,
        size        BIGINT NOT NULL,
        filename    VARCHAR NOT NULL,
        uploaded_at TIMESTAMP NOT NULL
    )
    """,
)


class Database:
    """Singleton owner of the DuckDB connection.

    Attributes:
        _instance: Singleton instance of the database.
        _db_path: Path to the DuckDB database file.
    """

    _instance: Optional["Database"] = None

    def __init__(self, db_path: Optional[str] = None) -> None:
        self._db_path = db_path or get_config().database.path
        self._connection: Optional[duckdb.DuckDBPyConnection] = None
        self._initialize_db()

    @classmethod
    def get_instance(cls, db_path: Optional[str] = None) -> "Database":
        """Get or create the singleton instance.

        Args:
            db_path: Optional database path (only used on first call).
        """
        if cls._instance is None:
            cls._instance = cls(db_path)
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Close the connection and clear the singleton (for testing)."""
        if cls._instance is not None:
            cls._instance.close()
            cls._instance = None

    @property
    def connection(self) -> duckdb.DuckDBPyConnection:
        """Active DuckDB connection, opened on first use."""
        if self._connection is None:
            if self._db_path != ":memory:":
                Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
            self._connection = duckdb.connect(self._db_path)
        return self._connection

    def _initialize_db(self) -> None:
        """Create sequences and tables if they don't exist (idempotent)."""
        conn = self.connection
        for statement in _SCHEMA:
            conn.execute(statement)
        logger.info("Database initialized at %s", self._db_path)

    def close(self) -> None:
        """Close the database connection."""
        if self._connection is not None:
            self._connection.close()
            self._connection = None
