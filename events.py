#!/usr/bin/env python3
"""Protocol event helpers.

Incoming events are decoded into `pynostr.event.Event` objects; outgoing
events start life as an `EventEnvelope` (no id, no signature) and become a
signed `Event` through `sign_envelope`.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pynostr.event import Event
from pynostr.key import PrivateKey

from constants import TEXT_NOTE_KIND

REQUIRED_EVENT_FIELDS = ("id", "pubkey", "created_at", "kind", "tags", "content", "sig")


def event_from_wire(payload: Dict[str, Any]) -> Event:
    """Build an Event from a relay-delivered JSON object.

    Raises ValueError when a required field is missing or has the wrong type.
    """
    if not isinstance(payload, dict):
        raise ValueError("Event payload must be a JSON object")
    missing = [name for name in REQUIRED_EVENT_FIELDS if name not in payload]
    if missing:
        raise ValueError(f"Event payload missing fields: {', '.join(missing)}")
    if not isinstance(payload["content"], str):
        raise ValueError("Event content must be a string")
    try:
        created_at = int(payload["created_at"])
        kind = int(payload["kind"])
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid numeric field in event: {e}") from e
    return Event(
        content=payload["content"],
        pubkey=payload["pubkey"],
        created_at=created_at,
        kind=kind,
        tags=list(payload["tags"] or []),
        id=payload["id"],
        sig=payload["sig"],
    )


def event_to_wire(event: Event) -> Dict[str, Any]:
    return {
        'id': event.id,
        'pubkey': event.pubkey,
        'created_at': event.created_at,
        'kind': event.kind,
        'tags': event.tags,
        'content': event.content,
        'sig': event.sig,
    }


@dataclass(frozen=True)
class EventEnvelope:
    """Unsigned outgoing event: the visible fields only."""

    content: str
    created_at: int
    kind: int = TEXT_NOTE_KIND
    tags: List[List[str]] = field(default_factory=list)


def build_envelope(content: str, now: Optional[int] = None) -> EventEnvelope:
    """Create a short-text-note envelope stamped with the current wall-clock time."""
    created_at = int(time.time()) if now is None else int(now)
    return EventEnvelope(content=content, created_at=created_at)


def sign_envelope(envelope: EventEnvelope, private_key: PrivateKey) -> Event:
    """Sign an envelope with the given key, returning a complete Event."""
    if not envelope.content:
        raise ValueError("Refusing to sign an event with empty content")
    event = Event(
        content=envelope.content,
        pubkey=private_key.public_key.hex(),
        created_at=envelope.created_at,
        kind=envelope.kind,
        tags=[list(tag) for tag in envelope.tags],
    )
    event.sign(private_key.hex())
    return event
