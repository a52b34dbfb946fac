"""
Database connection utilities supporting both SQLite and PostgreSQL.

SQLite is the default backend (development, single host); PostgreSQL is used
when the configured URL says so. Queries are written with ``?`` placeholders
and translated for PostgreSQL here.
"""

from __future__ import annotations

import os
import sqlite3
from typing import Any, Optional
from urllib.parse import urlparse

from .config import DatabaseConfig
from .logger import get_logger

log = get_logger(__name__)

# Optional PostgreSQL support
try:
    import psycopg2
    import psycopg2.extras
    POSTGRES_AVAILABLE = True
except ImportError:
    POSTGRES_AVAILABLE = False
    log.debug("PostgreSQL support not available (psycopg2 not installed)")

DATABASE_ERRORS: tuple[type[Exception], ...]
INTEGRITY_ERRORS: tuple[type[Exception], ...]
if POSTGRES_AVAILABLE:
    DATABASE_ERRORS = (sqlite3.Error, psycopg2.Error)
    INTEGRITY_ERRORS = (sqlite3.IntegrityError, psycopg2.IntegrityError)
else:
    DATABASE_ERRORS = (sqlite3.Error,)
    INTEGRITY_ERRORS = (sqlite3.IntegrityError,)

# UPDATE ... RETURNING landed in SQLite 3.35
SQLITE_SUPPORTS_RETURNING = sqlite3.sqlite_version_info >= (3, 35, 0)


class DatabaseConnection:
    """
    Unified database connection that works with both SQLite and PostgreSQL.

    SQLite connections run in autocommit mode; explicit transactions are
    opened with :meth:`begin`. PostgreSQL connections are non-autocommit and
    every statement joins the current transaction until commit/rollback.
    """

    def __init__(self, config: DatabaseConfig):
        self.config = config
        self._sqlite_conn: Optional[sqlite3.Connection] = None
        self._pg_conn: Optional[Any] = None  # psycopg2.extensions.connection

    @property
    def is_postgres(self) -> bool:
        return self.config.is_postgres

    @property
    def is_sqlite(self) -> bool:
        return self.config.is_sqlite

    @property
    def supports_returning(self) -> bool:
        return self.is_postgres or SQLITE_SUPPORTS_RETURNING

    def connect(self) -> DatabaseConnection:
        if self.is_postgres:
            return self._connect_postgres()
        return self._connect_sqlite()

    def _connect_sqlite(self) -> DatabaseConnection:
        url_path = self.config.url.replace("sqlite:///", "")

        db_dir = os.path.dirname(os.path.abspath(url_path))
        if db_dir and not os.path.exists(db_dir):
            os.makedirs(db_dir, exist_ok=True)

        self._sqlite_conn = sqlite3.connect(
            url_path,
            timeout=self.config.query_timeout,
            isolation_level=None,
            check_same_thread=False,
        )
        self._sqlite_conn.row_factory = sqlite3.Row

        self._sqlite_conn.execute("PRAGMA journal_mode=WAL;")
        self._sqlite_conn.execute("PRAGMA synchronous=NORMAL;")
        self._sqlite_conn.execute(f"PRAGMA busy_timeout={int(self.config.query_timeout * 1000)};")

        log.debug("Connected to SQLite: %s", url_path)
        return self

    def _connect_postgres(self) -> DatabaseConnection:
        if not POSTGRES_AVAILABLE:
            raise RuntimeError(
                "PostgreSQL support not available. "
                "Install with: pip install psycopg2-binary"
            )

        parsed = urlparse(self.config.url)
        self._pg_conn = psycopg2.connect(
            self.config.url,
            connect_timeout=int(self.config.query_timeout)
        )
        self._pg_conn.set_session(autocommit=False)
        log.debug("Connected to PostgreSQL: %s:%s", parsed.hostname, parsed.port or 5432)
        return self

    def close(self) -> None:
        if self._sqlite_conn:
            self._sqlite_conn.close()
            self._sqlite_conn = None
        if self._pg_conn:
            self._pg_conn.close()
            self._pg_conn = None

    def cursor(self):
        if self.is_sqlite:
            if not self._sqlite_conn:
                raise RuntimeError("SQLite connection not established")
            return self._sqlite_conn.cursor()
        if not self._pg_conn:
            raise RuntimeError("PostgreSQL connection not established")
        return self._pg_conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor)

    def execute(self, query: str, params: Optional[tuple] = None):
        """Execute a query and return the cursor."""
        cursor = self.cursor()

        if self.is_postgres:
            query = query.replace("?", "%s")

        if params:
            cursor.execute(query, params)
        else:
            cursor.execute(query)

        return cursor

    def begin(self) -> None:
        """Open a write transaction that holds the write lock until commit/rollback."""
        if self.is_sqlite:
            self.execute("BEGIN IMMEDIATE;")
        # PostgreSQL: the session is non-autocommit, the transaction starts implicitly

    def commit(self) -> None:
        if self._sqlite_conn:
            self._sqlite_conn.commit()
        elif self._pg_conn:
            self._pg_conn.commit()

    def rollback(self) -> None:
        if self._sqlite_conn:
            self._sqlite_conn.rollback()
        elif self._pg_conn:
            self._pg_conn.rollback()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type:
            self.rollback()
        else:
            self.commit()
        return False


def get_database_connection(config: DatabaseConfig) -> DatabaseConnection:
    """Create and open a connection for ``config``."""
    return DatabaseConnection(config).connect()


def is_unique_violation(error: Exception) -> bool:
    if getattr(error, "pgcode", None) == "23505":
        return True
    return isinstance(error, sqlite3.IntegrityError) and "unique" in str(error).lower()
