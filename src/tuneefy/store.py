"""Signed item records: intents and their promotion to permanent items.

Every row in ``items`` carries an HMAC of its serialized entity. A row is
provisional while ``intent`` and ``expires_at`` are set and permanent once
both are cleared; promotion clears them in a single statement.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Iterable, Optional, Type

from . import codec, signer
from .config import Settings
from .db import session
from .db_connection import DatabaseConnection
from .entities import MusicalEntity, PlatformResult, denormalize
from .errors import DecodeError, IntegrityError, InvalidEntity, InvalidSignature, NoOrExpiredIntent, NotFound
from .logger import get_logger, security_extra
from .utils import to_iso, utc_now, utc_now_iso

log = get_logger(__name__)


@dataclass
class ItemsSummary:
    total: int
    tracks: int
    intents: int


def seal(entity: MusicalEntity, secret: str | bytes) -> tuple[str, str]:
    """Serialized entity and its signature, ready for the ``object``/``signature`` columns."""
    data = codec.encode(entity)
    return data.decode("utf-8"), signer.sign(data, secret)


def unseal(
    row: Any,
    secret: str | bytes,
    allowed_variants: Iterable[Type[Any]] = codec.ALL_VARIANTS,
    tamper_error: type[IntegrityError] = IntegrityError,
) -> MusicalEntity:
    """Verify a row's signature, then decode its object. Unverified bytes are never decoded."""
    item_id = row["id"]
    stored = row["object"]
    data = bytes(stored) if isinstance(stored, (bytes, bytearray, memoryview)) else str(stored).encode("utf-8")

    if not signer.verify(data, row["signature"], secret):
        log.warning(
            "Data for item %s has been tampered with, the signature is not valid",
            item_id,
            extra=security_extra("signature_mismatch", item_id=item_id),
        )
        raise tamper_error(f"Data for id {item_id} has been tampered with, the signature is not valid")

    try:
        return codec.decode(data, allowed_variants)
    except DecodeError as e:
        log.warning(
            "Stored object for item %s is not decodable: %s",
            item_id,
            e,
            extra=security_extra("undecodable_payload", item_id=item_id),
        )
        raise


class RecordStore:
    """Create, promote and fetch signed items on one database."""

    def __init__(
        self,
        db_path: str,
        secret: str | bytes | None,
        intent_lifetime: int = 3600,
        query_timeout: float = 30.0,
    ):
        if not secret:
            raise ValueError("An intents secret is required to sign items")
        if intent_lifetime <= 0:
            raise ValueError("intent_lifetime must be a positive number of seconds")
        self.db_path = db_path
        self.secret = secret
        self.intent_lifetime = intent_lifetime
        self.query_timeout = query_timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> RecordStore:
        app = settings.app
        return cls(
            app.database_path,
            app.intents.secret,
            intent_lifetime=app.intents.lifetime,
            query_timeout=app.query_timeout,
        )

    def get_item_by_id(self, item_id: int) -> MusicalEntity:
        """Entity of a permanent item. Provisional rows are invisible here."""
        with session(self.db_path, f"getting item {item_id}", self.query_timeout) as conn:
            cur = conn.execute(
                """
                SELECT id, object, signature FROM items
                WHERE id = ? AND expires_at IS NULL AND intent IS NULL
                """,
                (item_id,),
            )
            row = cur.fetchone()

        if row is None:
            log.debug("No item with the requested id: %s", item_id)
            raise NotFound(f"No item with the requested id: {item_id}")

        return unseal(row, self.secret)

    def create_intent(
        self,
        entity: Optional[MusicalEntity],
        intent: str,
        client_id: Optional[str] = None,
    ) -> datetime:
        """Persist ``entity`` as a provisional item; returns its expiry (UTC)."""
        if entity is None:
            raise InvalidEntity("Error adding intent: no musical entity to persist")
        if not intent:
            raise ValueError("An intent token is required")

        obj, signature = seal(entity, self.secret)
        columns = denormalize(entity)
        now = utc_now()
        expires = now + timedelta(seconds=self.intent_lifetime)

        with session(self.db_path, f"adding intent {intent}", self.query_timeout) as conn:
            with conn:
                conn.execute(
                    """
                    INSERT INTO items (
                        intent, object, track, album, artist, created_at, expires_at, signature, client_id
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        intent,
                        obj,
                        columns["track"],
                        columns["album"],
                        columns["artist"],
                        to_iso(now),
                        to_iso(expires),
                        signature,
                        client_id,
                    ),
                )

        log.debug("Stored %s intent %s (expires %s)", entity.type, intent, to_iso(expires))
        return expires

    def create_intent_for_result(self, result: PlatformResult, client_id: Optional[str] = None) -> datetime:
        if result.musical_entity is None:
            raise InvalidEntity("Error adding intent: this result does not have a musical entity bound to it")
        return self.create_intent(result.musical_entity, result.intent, client_id)

    def promote_intent(self, intent: str) -> tuple[str, int]:
        """
        Make the item behind ``intent`` permanent.

        The row is claimed, verified and decoded inside one transaction; a
        tampered or undecodable row is rolled back and stays provisional.

        Returns:
            ``(entity_type, item_id)``

        Raises:
            NoOrExpiredIntent: unknown, already promoted or expired token
            InvalidSignature: stored signature does not verify
            DecodeError: stored object is not an allowed entity
        """
        now_iso = utc_now_iso()
        with session(self.db_path, f"making intent {intent} permanent", self.query_timeout) as conn:
            conn.begin()
            try:
                row = self._claim_intent(conn, intent, now_iso)
                if row is None:
                    raise NoOrExpiredIntent(f"No or expired intent: {intent}")
                entity = unseal(row, self.secret, tamper_error=InvalidSignature)
            except NoOrExpiredIntent:
                conn.rollback()
                log.debug("No or expired intent: %s", intent)
                raise
            except Exception:
                conn.rollback()
                raise
            conn.commit()

        item_id = int(row["id"])
        log.info("Intent %s promoted to permanent %s %d", intent, entity.type, item_id)
        return entity.type, item_id

    @staticmethod
    def _claim_intent(conn: DatabaseConnection, intent: str, now_iso: str) -> Any:
        if conn.supports_returning:
            cur = conn.execute(
                """
                UPDATE items SET expires_at = NULL, intent = NULL
                WHERE intent = ? AND expires_at > ?
                RETURNING id, object, signature
                """,
                (intent, now_iso),
            )
            rows = cur.fetchall()
        else:
            # Old SQLite: begin() already holds the write lock, so select + update cannot interleave
            cur = conn.execute(
                "SELECT id, object, signature FROM items WHERE intent = ? AND expires_at > ?",
                (intent, now_iso),
            )
            rows = cur.fetchall()
            if rows:
                conn.execute(
                    "UPDATE items SET expires_at = NULL, intent = NULL WHERE id = ?",
                    (rows[0]["id"],),
                )
        return rows[0] if rows else None

    def items_summary(self) -> ItemsSummary:
        with session(self.db_path, "getting items stats", self.query_timeout) as conn:
            cur = conn.execute(
                """
                SELECT COUNT(id) AS total, COUNT(track) AS tracks, COUNT(intent) AS intents
                FROM items
                """
            )
            row = cur.fetchone()
        return ItemsSummary(total=int(row["total"]), tracks=int(row["tracks"]), intents=int(row["intents"]))
