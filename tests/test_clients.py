from __future__ import annotations

import pytest

from tuneefy.clients import ClientRegistry, generate_credentials
from tuneefy.errors import DuplicateClient
from tuneefy.store import RecordStore


def test_add_and_get_client(registry: ClientRegistry):
    added = registry.add_client(
        "Radio Player",
        "radio",
        "s3cret",
        description="Plays things",
        email="dev@radio.example",
        url="https://radio.example",
    )
    assert added.created_at.tzinfo is not None

    fetched = registry.get_client("radio")
    assert fetched is not None
    assert fetched.name == "Radio Player"
    assert fetched.client_secret == "s3cret"
    assert fetched.email == "dev@radio.example"
    assert fetched.created_at == added.created_at


def test_get_unknown_client(registry: ClientRegistry):
    assert registry.get_client("nobody") is None


def test_duplicate_client_id_is_refused(registry: ClientRegistry):
    registry.add_client("First", "same-id", "one")
    with pytest.raises(DuplicateClient):
        registry.add_client("Second", "same-id", "two")

    clients = registry.list_clients()
    assert [c.name for c in clients] == ["First"]


def test_list_clients_with_usage(registry: ClientRegistry, store: RecordStore, track, album):
    assert registry.list_clients() == []

    registry.add_client("Busy", "busy", "x")
    registry.add_client("Idle", "idle", "y")

    store.create_intent(track, "tok-1", client_id="busy")
    store.create_intent(album, "tok-2", client_id="busy")
    store.create_intent(track, "tok-3", client_id="busy")
    store.promote_intent("tok-1")

    by_id = {c.client_id: c for c in registry.list_clients()}
    assert (by_id["busy"].items, by_id["busy"].intents) == (3, 2)
    assert (by_id["idle"].items, by_id["idle"].intents) == (0, 0)


def test_generate_credentials():
    first = generate_credentials()
    second = generate_credentials()
    assert first != second
    client_id, client_secret = first
    assert client_id and client_secret
    assert len(client_secret) > len(client_id)
