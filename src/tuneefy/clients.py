"""API client (OAuth consumer) registry."""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from .config import Settings
from .db import session
from .db_connection import INTEGRITY_ERRORS, is_unique_violation
from .errors import DuplicateClient
from .logger import get_logger
from .utils import parse_iso, to_iso, utc_now

log = get_logger(__name__)

_CLIENT_COLUMNS = "clients.client_id, clients.name, clients.client_secret, clients.description, " \
    "clients.email, clients.url, clients.created_at"


@dataclass
class ApiClient:
    """API client data model, with usage counts when listed."""

    client_id: str
    name: str
    client_secret: str
    description: Optional[str]
    email: Optional[str]
    url: Optional[str]
    created_at: datetime
    items: int = 0
    intents: int = 0


def generate_credentials(length: int = 24) -> tuple[str, str]:
    """Generate a random (client_id, client_secret) pair."""
    return secrets.token_urlsafe(length // 2), secrets.token_urlsafe(length)


def _row_to_client(row: Any) -> ApiClient:
    keys = row.keys()
    return ApiClient(
        client_id=row["client_id"],
        name=row["name"],
        client_secret=row["client_secret"],
        description=row["description"],
        email=row["email"],
        url=row["url"],
        created_at=parse_iso(row["created_at"]),
        items=int(row["items"]) if "items" in keys else 0,
        intents=int(row["intents"]) if "intents" in keys else 0,
    )


class ClientRegistry:
    def __init__(self, db_path: str, query_timeout: float = 30.0):
        self.db_path = db_path
        self.query_timeout = query_timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> ClientRegistry:
        return cls(settings.app.database_path, query_timeout=settings.app.query_timeout)

    def list_clients(self) -> list[ApiClient]:
        """All clients with the number of items and pending intents each created."""
        with session(self.db_path, "getting api clients", self.query_timeout) as conn:
            cur = conn.execute(
                f"""
                SELECT {_CLIENT_COLUMNS},
                       COUNT(items.id) AS items, COUNT(items.intent) AS intents
                FROM oauth_clients clients
                LEFT JOIN items ON items.client_id = clients.client_id
                GROUP BY {_CLIENT_COLUMNS}
                ORDER BY clients.created_at ASC, clients.client_id ASC
                """
            )
            rows = cur.fetchall()
        return [_row_to_client(row) for row in rows]

    def get_client(self, client_id: str) -> Optional[ApiClient]:
        with session(self.db_path, f"getting api client {client_id}", self.query_timeout) as conn:
            cur = conn.execute(
                f"SELECT {_CLIENT_COLUMNS} FROM oauth_clients clients WHERE clients.client_id = ?",
                (client_id,),
            )
            row = cur.fetchone()
        return _row_to_client(row) if row else None

    def add_client(
        self,
        name: str,
        client_id: str,
        client_secret: str,
        description: Optional[str] = None,
        email: Optional[str] = None,
        url: Optional[str] = None,
    ) -> ApiClient:
        """
        Register a new API client.

        Raises:
            DuplicateClient: If ``client_id`` is already registered
        """
        created_at = utc_now()
        with session(self.db_path, "adding api client", self.query_timeout) as conn:
            try:
                with conn:
                    conn.execute(
                        """
                        INSERT INTO oauth_clients (
                            name, client_id, client_secret, description, email, url, created_at
                        ) VALUES (?, ?, ?, ?, ?, ?, ?)
                        """,
                        (name, client_id, client_secret, description, email, url, to_iso(created_at)),
                    )
            except INTEGRITY_ERRORS as e:
                if not is_unique_violation(e):
                    raise
                log.info("Refused duplicate api client %s", client_id)
                raise DuplicateClient(f"An api client with id {client_id!r} already exists") from e

        log.info("Added api client %s (%s)", client_id, name)
        return ApiClient(
            client_id=client_id,
            name=name,
            client_secret=client_secret,
            description=description,
            email=email,
            url=url,
            created_at=created_at,
        )
