import json
from hashlib import sha256

import pytest
from pynostr.event import Event

from conftest import make_wire_event
from constants import TEXT_NOTE_KIND
from events import (
    EventEnvelope,
    build_envelope,
    event_from_wire,
    event_to_wire,
    sign_envelope,
)


def test_event_id_is_hash_of_canonical_serialization():
    pubkey = "ab" * 32
    serialized = '[0,"' + pubkey + '",1700000000,1,[["t","news"]],"hello"]'
    expected = sha256(serialized.encode("utf-8")).hexdigest()
    event = Event(content="hello", pubkey=pubkey, created_at=1700000000, kind=1, tags=[["t", "news"]])
    assert event.id == expected


def test_build_envelope_defaults(monkeypatch):
    monkeypatch.setattr("events.time.time", lambda: 1700000123.9)
    envelope = build_envelope("digest")
    assert envelope.kind == TEXT_NOTE_KIND
    assert envelope.created_at == 1700000123
    assert envelope.tags == []
    assert envelope.content == "digest"


def test_signing_is_deterministic_in_id(private_key):
    envelope = EventEnvelope(content="Digest text", created_at=1700000000)
    first = sign_envelope(envelope, private_key)
    second = sign_envelope(envelope, private_key)
    unsigned = Event(
        content="Digest text",
        pubkey=private_key.public_key.hex(),
        created_at=1700000000,
        kind=TEXT_NOTE_KIND,
        tags=[],
    )

    assert first.id == second.id
    assert first.id == unsigned.id
    assert first.pubkey == private_key.public_key.hex()
    assert len(first.sig) == 128


def test_signature_verifies(private_key):
    event = sign_envelope(EventEnvelope(content="Digest text", created_at=1700000000), private_key)
    assert event.verify()


def test_sign_rejects_empty_content(private_key):
    with pytest.raises(ValueError):
        sign_envelope(EventEnvelope(content="", created_at=1700000000), private_key)


def test_wire_round_trip_preserves_fields():
    payload = make_wire_event("hello relay")
    event = event_from_wire(json.loads(json.dumps(payload)))

    assert event.content == "hello relay"
    assert event.kind == 1
    assert event_to_wire(event) == payload


def test_event_from_wire_rejects_missing_fields():
    payload = make_wire_event("x")
    del payload["sig"]
    with pytest.raises(ValueError, match="sig"):
        event_from_wire(payload)


def test_event_from_wire_rejects_non_string_content():
    payload = make_wire_event("x")
    payload["content"] = 42
    with pytest.raises(ValueError):
        event_from_wire(payload)
