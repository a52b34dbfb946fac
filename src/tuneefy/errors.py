"""Error taxonomy for the record store, stats and client registry.

Tamper (``IntegrityError`` and its ``InvalidSignature`` subclass) and
``DecodeError`` are security-relevant; ``NotFound`` and ``NoOrExpiredIntent``
are routine. Callers may present them alike to end users but must keep them
apart in logs.
"""

from __future__ import annotations


class TuneefyError(Exception):
    """Base class for every error raised by this package."""


class NotFound(TuneefyError):
    """No permanent item matches the requested id."""


class NoOrExpiredIntent(TuneefyError):
    """The intent token matches no provisional row (never existed, promoted, or expired)."""


class IntegrityError(TuneefyError):
    """A stored signature does not verify: the row was tampered with."""


class InvalidSignature(IntegrityError):
    """Tampering detected while promoting an intent."""


class DecodeError(TuneefyError):
    """A payload does not decode to one of the allowed entity variants."""


class InvalidEntity(TuneefyError):
    """The caller supplied no entity to persist."""


class DuplicateClient(TuneefyError):
    """An API client with this identifier already exists."""


class StorageError(TuneefyError):
    """The database rejected or failed a statement."""
