"""Musical entities shared between platforms and the record store."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Dict, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field


def _safe(text: str) -> str:
    return " ".join(text.split())


class _EntityBase(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    title: str
    artist: str
    # Platform links and identifiers the entity was resolved from
    links: Tuple[str, ...] = ()
    # Set once a platform lookup has enriched the entity
    introspected: bool = False
    metadata: Dict[str, str] = Field(default_factory=dict)

    @property
    def safe_title(self) -> str:
        return _safe(self.title)

    def with_introspection(self, metadata: Optional[Dict[str, str]] = None):
        """Copy of this entity marked as introspected, optionally replacing its metadata."""
        update: dict = {"introspected": True}
        if metadata is not None:
            update["metadata"] = dict(metadata)
        return self.model_copy(update=update)


class Album(_EntityBase):
    type: Literal["album"] = "album"
    picture: Optional[str] = None


class Track(_EntityBase):
    type: Literal["track"] = "track"
    album: Optional[Album] = None


MusicalEntity = Union[Track, Album]


def denormalize(entity: MusicalEntity) -> dict[str, Optional[str]]:
    """Searchable ``track``/``album``/``artist`` columns for an entity."""
    if isinstance(entity, Track):
        return {
            "track": entity.safe_title,
            "album": entity.album.safe_title if entity.album else None,
            "artist": entity.artist,
        }
    return {"track": None, "album": entity.safe_title, "artist": entity.artist}


def new_intent_token() -> str:
    return uuid.uuid4().hex


@dataclass
class PlatformResult:
    """A resolved lookup handed over by a platform integration."""

    platform: str
    musical_entity: Optional[MusicalEntity] = None
    intent: str = field(default_factory=new_intent_token)
