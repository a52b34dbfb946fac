from __future__ import annotations

import hashlib
import hmac
from typing import Any


def _key(secret: str | bytes) -> bytes:
    if isinstance(secret, str):
        return secret.encode("utf-8")
    return bytes(secret)


def sign(data: bytes, secret: str | bytes) -> str:
    """HMAC-SHA256 of ``data`` keyed by ``secret``, as lowercase hex."""
    return hmac.new(_key(secret), data, hashlib.sha256).hexdigest()


def verify(data: bytes, tag: Any, secret: str | bytes) -> bool:
    """Constant-time check of ``tag`` against ``data``. Malformed tags never verify."""
    if isinstance(tag, str):
        try:
            tag = tag.encode("ascii")
        except UnicodeEncodeError:
            return False
    if not isinstance(tag, (bytes, bytearray)):
        return False
    expected = sign(data, secret).encode("ascii")
    return hmac.compare_digest(expected, bytes(tag))
