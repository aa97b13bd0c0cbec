import asyncio
import json
from collections import deque
from typing import Any, Dict, List, Optional

import pytest
from pynostr.key import PrivateKey

from errors import RelayConnectionError
from events import EventEnvelope, event_to_wire, sign_envelope

TEST_SECRET_HEX = "11" * 32


class FakeTransport:
    """In-memory relay: answers REQ with stored events + EOSE and EVENT with OK."""

    def __init__(
        self,
        stored_events: Optional[List[Dict[str, Any]]] = None,
        send_eose: bool = True,
        accept: bool = True,
        ok_message: str = "",
        send_ok: bool = True,
        fail_connect: bool = False,
        preamble: Optional[List[str]] = None,
    ) -> None:
        self.stored_events = stored_events or []
        self.send_eose = send_eose
        self.accept = accept
        self.ok_message = ok_message
        self.send_ok = send_ok
        self.fail_connect = fail_connect
        self.preamble = preamble or []
        self.connected_urls: List[str] = []
        self.sent: List[List[Any]] = []
        self.close_calls = 0
        self._frames: deque = deque()
        self._open = False

    @property
    def closed(self) -> bool:
        return not self._open

    async def connect(self, url: str) -> None:
        if self.fail_connect:
            raise RelayConnectionError(f"Failed to connect to relay {url}: refused")
        self.connected_urls.append(url)
        self._open = True

    async def send(self, message: str) -> None:
        if not self._open:
            raise RelayConnectionError("not connected")
        frame = json.loads(message)
        self.sent.append(frame)
        if frame[0] == "REQ":
            sub_id = frame[1]
            self._frames.extend(self.preamble)
            for payload in self.stored_events:
                self._frames.append(json.dumps(["EVENT", sub_id, payload]))
            if self.send_eose:
                self._frames.append(json.dumps(["EOSE", sub_id]))
        elif frame[0] == "EVENT" and self.send_ok:
            self._frames.append(json.dumps(["OK", frame[1]["id"], self.accept, self.ok_message]))

    def push(self, frame: Any) -> None:
        self._frames.append(frame if isinstance(frame, str) else json.dumps(frame))

    async def receive(self) -> str:
        while not self._frames:
            # Nothing scripted: behave like a silent relay
            await asyncio.sleep(0.01)
        return self._frames.popleft()

    async def close(self) -> None:
        self.close_calls += 1
        self._open = False

    def sent_of_type(self, msg_type: str) -> List[List[Any]]:
        return [frame for frame in self.sent if frame[0] == msg_type]


class ScriptedCompletion:
    """Fake inference call returning canned responses in order (last one repeats)."""

    def __init__(self, *responses: str) -> None:
        self.responses = list(responses)
        self.prompts: List[str] = []

    async def __call__(self, prompt: str) -> str:
        self.prompts.append(prompt)
        index = min(len(self.prompts), len(self.responses)) - 1
        return self.responses[index]


def make_wire_event(content: str, created_at: int = 1_700_000_000, secret_hex: str = "22" * 32) -> Dict[str, Any]:
    key = PrivateKey(bytes.fromhex(secret_hex))
    event = sign_envelope(EventEnvelope(content=content, created_at=created_at), key)
    return event_to_wire(event)


@pytest.fixture
def private_key() -> PrivateKey:
    return PrivateKey(bytes.fromhex(TEST_SECRET_HEX))


@pytest.fixture
def base_env() -> Dict[str, str]:
    return {
        "MISTRAL_API_KEY": "test-api-key",
        "APP_SECRET": TEST_SECRET_HEX,
    }
