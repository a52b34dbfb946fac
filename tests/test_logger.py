from __future__ import annotations

import json
import logging

import pytest

from tuneefy.db import connect
from tuneefy.errors import InvalidSignature
from tuneefy.logger import JSONFormatter, security_extra
from tuneefy.store import RecordStore


def test_json_formatter_includes_extra_fields():
    record = logging.LogRecord("tuneefy.store", logging.WARNING, __file__, 1, "tampered %s", (7,), None)
    for key, value in security_extra("signature_mismatch", item_id=7).items():
        setattr(record, key, value)

    payload = json.loads(JSONFormatter().format(record))
    assert payload["level"] == "WARNING"
    assert payload["message"] == "tampered 7"
    assert payload["security"] is True
    assert payload["event"] == "signature_mismatch"
    assert payload["item_id"] == 7
    assert payload["timestamp"].endswith("Z")


def test_tampering_is_logged_as_security_event(store: RecordStore, initialized_db, track, caplog):
    store.create_intent(track, "tok-log")
    conn = connect(initialized_db)
    try:
        with conn:
            conn.execute("UPDATE items SET signature = 'bad' WHERE intent = 'tok-log'")
    finally:
        conn.close()

    with caplog.at_level(logging.WARNING, logger="tuneefy.store"):
        with pytest.raises(InvalidSignature):
            store.promote_intent("tok-log")

    records = [r for r in caplog.records if getattr(r, "extra_fields", {}).get("security")]
    assert len(records) == 1
    assert records[0].extra_fields["event"] == "signature_mismatch"
