"""Listening/viewing event log and its read-side aggregations.

Events are append-only. Each read is an independent point-in-time query;
nothing here promises consistency across two reads.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Optional

from .codec import ALL_VARIANTS
from .config import Settings
from .db import session
from .entities import Album, MusicalEntity, Track
from .logger import get_logger
from .store import unseal
from .utils import utc_iso_ago, utc_now_iso

log = get_logger(__name__)

VIEW_KINDS = ("track", "album", "artist")


@dataclass
class ViewCount:
    """One bucket of ``most_viewed``. ``id`` is None for artist buckets."""

    id: Optional[int]
    track: Optional[str]
    album: Optional[str]
    artist: Optional[str]
    count: int


@dataclass
class SharedItem:
    id: int
    entity: MusicalEntity
    count: Optional[int] = None


class StatsAggregator:
    def __init__(
        self,
        db_path: str,
        secret: str | bytes | None,
        stats_limit: int = 10,
        query_timeout: float = 30.0,
    ):
        if not secret:
            raise ValueError("An intents secret is required to read signed items")
        self.db_path = db_path
        self.secret = secret
        self.stats_limit = stats_limit
        self.query_timeout = query_timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> StatsAggregator:
        app = settings.app
        return cls(
            app.database_path,
            app.intents.secret,
            stats_limit=app.website.stats_limit,
            query_timeout=app.query_timeout,
        )

    # -- writes ---------------------------------------------------------------

    def record_listening(self, item_id: Optional[int], platform: str, index: Optional[int] = None) -> None:
        """Append a listen. ``item_id=None`` records an anonymous (direct) listen."""
        with session(self.db_path, "adding listening stat", self.query_timeout) as conn:
            with conn:
                conn.execute(
                    'INSERT INTO stats_listening (item_id, platform, "index", listened_at) VALUES (?, ?, ?, ?)',
                    (item_id, platform, index, utc_now_iso()),
                )

    def record_viewing(self, item_id: int, referer: Optional[str] = None) -> None:
        with session(self.db_path, "adding viewing stat", self.query_timeout) as conn:
            with conn:
                conn.execute(
                    "INSERT INTO stats_viewing (item_id, referer, viewed_at) VALUES (?, ?, ?)",
                    (item_id, referer, utc_now_iso()),
                )

    # -- reads ----------------------------------------------------------------

    def platform_shares(self) -> dict[str, int]:
        """Listen counts per platform, largest first."""
        with session(self.db_path, "getting platform share stats", self.query_timeout) as conn:
            cur = conn.execute(
                """
                SELECT platform, COUNT(id) AS count FROM stats_listening
                GROUP BY platform
                ORDER BY count DESC, platform ASC
                """
            )
            rows = cur.fetchall()
        return {row["platform"]: int(row["count"]) for row in rows}

    def most_viewed(self, kind: str, limit: Optional[int] = None) -> list[ViewCount]:
        """
        Most viewed tracks, albums or artists.

        Artists are bucketed case-insensitively (``UPPER(artist)``); the
        reported spelling is the lexicographically smallest one in the bucket.
        """
        if kind not in VIEW_KINDS:
            raise ValueError(f"Unknown view kind {kind!r}, expected one of {', '.join(VIEW_KINDS)}")
        limit = int(limit if limit is not None else self.stats_limit)

        if kind == "artist":
            sql = """
                SELECT NULL AS id, NULL AS track, NULL AS album, MIN(items.artist) AS artist,
                       COUNT(stats_viewing.item_id) AS count
                FROM stats_viewing
                JOIN items ON items.id = stats_viewing.item_id
                GROUP BY UPPER(items.artist)
                ORDER BY count DESC, artist ASC
                LIMIT ?
            """
        else:
            flavour = "items.track IS NOT NULL" if kind == "track" else "items.track IS NULL"
            sql = f"""
                SELECT items.id, items.track, items.album, items.artist,
                       COUNT(stats_viewing.item_id) AS count
                FROM stats_viewing
                JOIN items ON items.id = stats_viewing.item_id
                WHERE {flavour}
                GROUP BY items.id, items.track, items.album, items.artist
                ORDER BY count DESC, items.id ASC
                LIMIT ?
            """

        with session(self.db_path, "getting most viewed items", self.query_timeout) as conn:
            rows = conn.execute(sql, (limit,)).fetchall()

        return [
            ViewCount(
                id=int(row["id"]) if row["id"] is not None else None,
                track=row["track"],
                album=row["album"],
                artist=row["artist"],
                count=int(row["count"]),
            )
            for row in rows
        ]

    def most_viewed_this_week(self) -> Optional[SharedItem]:
        """The single most viewed item over the trailing seven days, if any."""
        with session(self.db_path, "getting most viewed item", self.query_timeout) as conn:
            cur = conn.execute(
                """
                SELECT items.id, items.object, items.signature, COUNT(stats_viewing.item_id) AS count
                FROM stats_viewing
                JOIN items ON items.id = stats_viewing.item_id
                WHERE stats_viewing.viewed_at > ?
                GROUP BY items.id, items.object, items.signature
                ORDER BY count DESC, items.id ASC
                LIMIT 1
                """,
                (utc_iso_ago(timedelta(weeks=1)),),
            )
            row = cur.fetchone()

        if row is None:
            return None
        return SharedItem(id=int(row["id"]), entity=unseal(row, self.secret, ALL_VARIANTS), count=int(row["count"]))

    def last_shared(self) -> dict[str, SharedItem]:
        """Most recent permanent track and album, each from its own query."""
        result: dict[str, SharedItem] = {}
        for kind, flavour, variant in (
            ("track", "track IS NOT NULL", Track),
            ("album", "track IS NULL", Album),
        ):
            row = self._last_permanent(flavour)
            if row is not None:
                result[kind] = SharedItem(id=int(row["id"]), entity=unseal(row, self.secret, (variant,)))
        return result

    def _last_permanent(self, flavour: str) -> Any:
        with session(self.db_path, "getting last shared items", self.query_timeout) as conn:
            cur = conn.execute(
                f"""
                SELECT id, object, signature FROM items
                WHERE {flavour} AND expires_at IS NULL AND intent IS NULL
                ORDER BY created_at DESC, id DESC
                LIMIT 1
                """
            )
            return cur.fetchone()
