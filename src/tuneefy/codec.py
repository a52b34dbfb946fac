"""Serialization of musical entities to and from stored blobs.

Payloads are JSON objects tagged with a ``type`` discriminant. Decoding only
ever resolves that discriminant against the closed ``VARIANTS`` registry,
narrowed further by the caller's ``allowed_variants``; anything else is a
``DecodeError`` and no model is constructed.
"""

from __future__ import annotations

import json
from typing import Any, Iterable, Type

from pydantic import ValidationError

from .entities import Album, MusicalEntity, Track
from .errors import DecodeError

VARIANTS: dict[str, Type[Any]] = {
    "track": Track,
    "album": Album,
}

ALL_VARIANTS = (Track, Album)


def encode(entity: MusicalEntity) -> bytes:
    """Deterministic byte form of an entity (sorted keys, compact separators)."""
    if type(entity) not in ALL_VARIANTS:
        raise TypeError(f"Cannot encode {type(entity).__name__}: not a musical entity")
    payload = entity.model_dump(mode="json")
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def decode(data: bytes | str, allowed_variants: Iterable[Type[Any]] = ALL_VARIANTS) -> MusicalEntity:
    allowed = {cls.model_fields["type"].default: cls for cls in allowed_variants if cls in ALL_VARIANTS}

    try:
        text = data.decode("utf-8") if isinstance(data, (bytes, bytearray)) else data
        payload = json.loads(text)
    except (UnicodeDecodeError, json.JSONDecodeError, TypeError) as e:
        raise DecodeError(f"Stored object is not decodable: {e}") from e

    if not isinstance(payload, dict):
        raise DecodeError(f"Stored object is a {type(payload).__name__}, expected a tagged object")

    tag = payload.get("type")
    if not isinstance(tag, str) or tag not in VARIANTS:
        raise DecodeError(f"Unknown entity type {tag!r}")
    if tag not in allowed:
        raise DecodeError(f"Entity type {tag!r} is not allowed here")

    try:
        return allowed[tag].model_validate(payload)
    except ValidationError as e:
        raise DecodeError(f"Stored {tag} is malformed: {e.error_count()} validation error(s)") from e
