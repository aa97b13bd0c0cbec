#!/usr/bin/env python3
import asyncio
import json
import logging
import uuid
from typing import Any, Callable, List, Optional

from pynostr.event import Event
from pynostr.filters import FiltersList

from constants import LOGGER_NAME
from errors import PublishError, RelayConnectionError
from events import event_from_wire, event_to_wire
from transport import RelayTransport

logger = logging.getLogger(LOGGER_NAME)


class RelayClient:
    """One session against one relay endpoint.

    The transport is injected; RelayClient only speaks the NIP-01 framing
    (REQ / EVENT / EOSE / OK / NOTICE / CLOSED / CLOSE) on top of it.
    """

    def __init__(self, url: str, transport: RelayTransport) -> None:
        self.url = url
        self._transport = transport
        self._connected = False
        self._subscriptions: List[str] = []

    @property
    def connected(self) -> bool:
        return self._connected

    async def __aenter__(self) -> "RelayClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def connect(self) -> None:
        try:
            await self._transport.connect(self.url)
        except RelayConnectionError:
            raise
        except (OSError, asyncio.TimeoutError) as e:
            raise RelayConnectionError(f"Failed to connect to relay {self.url}: {e}") from e
        self._connected = True
        logger.info(f"Connected to relay {self.url}")

    async def _send(self, frame: List[Any]) -> None:
        if not self._connected:
            raise RelayConnectionError(f"Relay {self.url} is not connected")
        await self._transport.send(json.dumps(frame, ensure_ascii=False))

    async def _receive(self) -> Optional[List[Any]]:
        """Return the next relay frame, or None for frames that cannot be parsed."""
        raw = await self._transport.receive()
        try:
            frame = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"Ignoring non-JSON frame from {self.url}: {raw[:200]}")
            return None
        if not isinstance(frame, list) or not frame or not isinstance(frame[0], str):
            logger.warning(f"Ignoring malformed frame from {self.url}: {raw[:200]}")
            return None
        return frame

    async def subscribe(
        self,
        filters: FiltersList,
        on_event: Callable[[Event], None],
        on_exhausted: Callable[[], None],
        timeout: Optional[float] = None,
    ) -> str:
        """Open one subscription and deliver stored events until EOSE.

        on_event is called once per matching event in relay delivery order;
        on_exhausted is called exactly once when the relay sends EOSE, after
        which this coroutine returns the subscription id. The subscription
        stays open on the relay until close().

        With a timeout, a relay that never sends EOSE raises
        RelayConnectionError instead of blocking forever.
        """
        subscription_id = uuid.uuid1().hex
        await self._send(["REQ", subscription_id, *filters.to_json_array()])
        self._subscriptions.append(subscription_id)
        logger.info(f"Subscribed {subscription_id} on {self.url} with filters {filters.to_json_array()}")

        async def _pump() -> None:
            while True:
                frame = await self._receive()
                if frame is None:
                    continue
                msg_type = frame[0]
                if msg_type == "NOTICE":
                    logger.warning(f"Relay notice from {self.url}: {frame[1] if len(frame) > 1 else ''}")
                    continue
                if len(frame) < 2 or frame[1] != subscription_id:
                    continue
                if msg_type == "EVENT":
                    if len(frame) < 3:
                        logger.warning(f"Ignoring EVENT frame without payload from {self.url}")
                        continue
                    try:
                        event = event_from_wire(frame[2])
                    except ValueError as e:
                        logger.warning(f"Skipping malformed event from {self.url}: {e}")
                        continue
                    on_event(event)
                elif msg_type == "EOSE":
                    on_exhausted()
                    return
                elif msg_type == "CLOSED":
                    self._subscriptions.remove(subscription_id)
                    reason = frame[2] if len(frame) > 2 else ""
                    raise RelayConnectionError(
                        f"Relay {self.url} closed subscription {subscription_id}: {reason}"
                    )

        if timeout is None:
            await _pump()
        else:
            try:
                await asyncio.wait_for(_pump(), timeout=timeout)
            except asyncio.TimeoutError as e:
                raise RelayConnectionError(
                    f"Relay {self.url} did not signal end of stored events within {timeout}s"
                ) from e
        return subscription_id

    async def publish(self, event: Event, timeout: Optional[float] = None) -> None:
        """Send a signed event and wait for the relay's OK frame.

        Raises PublishError when the relay rejects the event or does not
        acknowledge it within the timeout.
        """
        await self._send(["EVENT", event_to_wire(event)])
        logger.info(f"Published event {event.id} to {self.url}, awaiting OK")

        async def _await_ok() -> None:
            while True:
                frame = await self._receive()
                if frame is None:
                    continue
                msg_type = frame[0]
                if msg_type == "NOTICE":
                    logger.warning(f"Relay notice from {self.url}: {frame[1] if len(frame) > 1 else ''}")
                    continue
                if msg_type != "OK" or len(frame) < 3 or frame[1] != event.id:
                    continue
                accepted = frame[2] is True
                message = frame[3] if len(frame) > 3 else ""
                if not accepted:
                    raise PublishError(f"Relay {self.url} rejected event {event.id}: {message}")
                logger.info(f"Relay {self.url} accepted event {event.id}")
                return

        try:
            if timeout is None:
                await _await_ok()
            else:
                await asyncio.wait_for(_await_ok(), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise PublishError(f"Relay {self.url} did not acknowledge event {event.id} within {timeout}s") from e
        except RelayConnectionError as e:
            raise PublishError(f"Lost connection to {self.url} while publishing {event.id}: {e}") from e

    async def close(self) -> None:
        """Release the session. Safe to call repeatedly or before connect()."""
        if not self._connected:
            return
        self._connected = False
        subscriptions, self._subscriptions = self._subscriptions, []
        try:
            if not self._transport.closed:
                for subscription_id in subscriptions:
                    await self._transport.send(json.dumps(["CLOSE", subscription_id]))
        except RelayConnectionError as e:
            logger.warning(f"Could not close subscriptions on {self.url}: {e}")
        finally:
            await self._transport.close()
            logger.info(f"Closed relay connection {self.url}")
