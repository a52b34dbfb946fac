from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from .config import DatabaseConfig
from .db_connection import DATABASE_ERRORS, DatabaseConnection, get_database_connection
from .errors import StorageError
from .logger import get_logger
from .utils import utc_now_iso

log = get_logger(__name__)

SCHEMA_TABLES = ("items", "stats_listening", "stats_viewing", "oauth_clients", "schema_version")


def _is_missing_table_error(error: Exception) -> bool:
    message = str(error).lower()
    if "no such table" in message or "does not exist" in message:
        return True
    pgcode = getattr(error, "pgcode", None)
    return pgcode == "42P01"


def normalize_db_url(db_path: str) -> str:
    """Normalize a bare database path to a URL understood by DatabaseConnection."""
    if not db_path:
        raise ValueError("Database path/url must be provided")

    normalized = db_path.strip()

    if normalized.startswith("postgresql://") or normalized.startswith("postgres://"):
        return normalized

    if normalized.startswith("sqlite://"):
        return normalized

    return f"sqlite:///{normalized}"


def is_postgres_url(db_path: str) -> bool:
    url = normalize_db_url(db_path)
    return url.startswith("postgresql://") or url.startswith("postgres://")


def _serial_primary_key_clause(db_path: str) -> str:
    """Return dialect-appropriate auto increment primary key clause."""
    if is_postgres_url(db_path):
        return "BIGSERIAL PRIMARY KEY"
    return "INTEGER PRIMARY KEY AUTOINCREMENT"


def _id_column_type(db_path: str) -> str:
    return "BIGINT" if is_postgres_url(db_path) else "INTEGER"


def connect(db_path: str, query_timeout: float = 30.0) -> DatabaseConnection:
    url = normalize_db_url(db_path)
    config = DatabaseConfig(url=url, query_timeout=query_timeout)
    return get_database_connection(config)


def init_db(db_path: str) -> None:
    """Create every table and index used by the store, idempotently."""
    pk_clause = _serial_primary_key_clause(db_path)
    id_type = _id_column_type(db_path)
    conn = connect(db_path)
    try:
        with conn:
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS items (
                    id {pk_clause},
                    intent TEXT,
                    object TEXT NOT NULL,
                    track TEXT,
                    album TEXT,
                    artist TEXT,
                    created_at TEXT NOT NULL,
                    expires_at TEXT,
                    signature TEXT NOT NULL,
                    client_id TEXT
                );
                """
            )
            conn.execute("CREATE UNIQUE INDEX IF NOT EXISTS idx_items_intent ON items(intent);")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_items_created_at ON items(created_at);")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_items_client ON items(client_id);")

            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS stats_listening (
                    id {pk_clause},
                    item_id {id_type},
                    platform TEXT NOT NULL,
                    "index" INTEGER,
                    listened_at TEXT NOT NULL
                );
                """
            )
            conn.execute("CREATE INDEX IF NOT EXISTS idx_listening_platform ON stats_listening(platform);")

            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS stats_viewing (
                    id {pk_clause},
                    item_id {id_type} NOT NULL,
                    referer TEXT,
                    viewed_at TEXT NOT NULL
                );
                """
            )
            conn.execute("CREATE INDEX IF NOT EXISTS idx_viewing_item ON stats_viewing(item_id);")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_viewing_viewed_at ON stats_viewing(viewed_at);")

            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS oauth_clients (
                    client_id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    client_secret TEXT NOT NULL,
                    description TEXT,
                    email TEXT,
                    url TEXT,
                    created_at TEXT NOT NULL
                );
                """
            )
    finally:
        conn.close()
    log.info("Database initialized at %s", db_path)


def get_schema_version(db_path: str) -> int:
    conn = connect(db_path)
    try:
        cur = conn.execute("SELECT version FROM schema_version ORDER BY version DESC LIMIT 1;")
        row = cur.fetchone()
        if not row:
            return 0
        return int(row["version"])
    except Exception as exc:
        if _is_missing_table_error(exc):
            return 0
        raise
    finally:
        conn.close()


def set_schema_version(db_path: str, version: int) -> None:
    conn = connect(db_path)
    try:
        with conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER PRIMARY KEY,
                    applied_at TEXT
                );
                """
            )
            conn.execute(
                """
                INSERT INTO schema_version (version, applied_at)
                VALUES (?, ?)
                ON CONFLICT(version) DO UPDATE SET applied_at = excluded.applied_at;
                """,
                (version, utc_now_iso())
            )
    finally:
        conn.close()


def run_migrations(db_path: str) -> None:
    """Bring an initialized database up to the latest schema version."""
    current_version = get_schema_version(db_path)
    log.info("Current database schema version: %d", current_version)

    # Migration 1: aggregation indexes
    if current_version < 1:
        log.info("Applying migration 1: aggregation indexes")
        conn = connect(db_path)
        try:
            with conn:
                conn.execute("CREATE INDEX IF NOT EXISTS idx_items_artist_upper ON items(UPPER(artist));")
                conn.execute("CREATE INDEX IF NOT EXISTS idx_items_track ON items(track);")
            set_schema_version(db_path, 1)
            log.info("Migration 1 applied successfully")
        finally:
            conn.close()

    # Migration 2: listening lookups by item
    if current_version < 2:
        log.info("Applying migration 2: listening item index")
        conn = connect(db_path)
        try:
            with conn:
                conn.execute("CREATE INDEX IF NOT EXISTS idx_listening_item ON stats_listening(item_id);")
            set_schema_version(db_path, 2)
            log.info("Migration 2 applied successfully")
        finally:
            conn.close()


def prepare_database(db_path: str) -> int:
    """init_db + run_migrations; returns the resulting schema version."""
    init_db(db_path)
    run_migrations(db_path)
    return get_schema_version(db_path)


@contextmanager
def session(db_path: str, action: str, query_timeout: float = 30.0) -> Iterator[DatabaseConnection]:
    """Open a connection for one operation; driver errors surface as StorageError."""
    try:
        conn = connect(db_path, query_timeout)
    except DATABASE_ERRORS as exc:
        log.error("Error %s: %s", action, exc)
        raise StorageError(f"Error {action}: {exc}") from exc
    try:
        yield conn
    except DATABASE_ERRORS as exc:
        log.error("Error %s: %s", action, exc)
        raise StorageError(f"Error {action}: {exc}") from exc
    finally:
        conn.close()
