"""Check a deployed database against the schema the store expects."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List
from urllib.parse import urlsplit, urlunsplit

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.exc import SQLAlchemyError

from .db import normalize_db_url
from .logger import get_logger

log = get_logger(__name__)

EXPECTED_COLUMNS: Dict[str, List[str]] = {
    "items": [
        "id", "intent", "object", "track", "album", "artist",
        "created_at", "expires_at", "signature", "client_id",
    ],
    "stats_listening": ["id", "item_id", "platform", "index", "listened_at"],
    "stats_viewing": ["id", "item_id", "referer", "viewed_at"],
    "oauth_clients": ["client_id", "name", "client_secret", "description", "email", "url", "created_at"],
    "schema_version": ["version", "applied_at"],
}


@dataclass
class ValidationResult:
    """Structured outcome of :func:`validate_schema`."""

    database_url: str
    connected: bool = False
    tables: List[str] = field(default_factory=list)
    missing_tables: List[str] = field(default_factory=list)
    missing_columns: Dict[str, List[str]] = field(default_factory=dict)
    row_counts: Dict[str, int] = field(default_factory=dict)
    schema_version: int | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.connected and not self.missing_tables and not self.missing_columns and self.error is None


def obfuscate_password(url: str) -> str:
    parts = urlsplit(url)
    if parts.password is None:
        return url
    netloc = parts.netloc.replace(f":{parts.password}@", ":***@")
    return urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))


def to_sqlalchemy_url(db_path: str) -> str:
    url = normalize_db_url(db_path)
    if url.startswith("postgres://"):
        return "postgresql://" + url[len("postgres://"):]
    return url


def validate_schema(db_path: str) -> ValidationResult:
    """Collect schema information without emitting console output."""
    url = to_sqlalchemy_url(db_path)
    result = ValidationResult(database_url=obfuscate_password(url))
    try:
        engine = create_engine(url, echo=False, future=True)
        try:
            inspector = inspect(engine)
            result.connected = True
            result.tables = sorted(inspector.get_table_names())

            for table, expected in EXPECTED_COLUMNS.items():
                if table not in result.tables:
                    result.missing_tables.append(table)
                    continue
                present = {column["name"] for column in inspector.get_columns(table)}
                missing = [name for name in expected if name not in present]
                if missing:
                    result.missing_columns[table] = missing

            with engine.connect() as conn:
                for table in ("items", "stats_listening", "stats_viewing", "oauth_clients"):
                    if table in result.tables:
                        result.row_counts[table] = int(conn.execute(text(f"SELECT COUNT(*) FROM {table}")).scalar_one())
                if "schema_version" in result.tables:
                    result.schema_version = conn.execute(text("SELECT MAX(version) FROM schema_version")).scalar()
        finally:
            engine.dispose()
    except SQLAlchemyError as exc:
        log.error("Schema validation failed for %s: %s", result.database_url, exc)
        result.error = str(exc)

    return result
