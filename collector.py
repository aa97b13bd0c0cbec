#!/usr/bin/env python3
import logging
import time
from typing import List, Optional, Tuple

from pynostr.event import Event
from pynostr.filters import Filters, FiltersList

from constants import LOGGER_NAME, TEXT_NOTE_KIND
from relay_client import RelayClient

logger = logging.getLogger(LOGGER_NAME)


def build_time_filter(lookback_seconds: int, now: Optional[int] = None) -> FiltersList:
    """Return the subscription filter for text notes newer than the lookback window."""
    current = int(time.time()) if now is None else int(now)
    return FiltersList([Filters(since=current - lookback_seconds, kinds=[TEXT_NOTE_KIND])])


async def collect_events(
    client: RelayClient,
    lookback_seconds: int,
    subscription_timeout: Optional[float] = None,
    now: Optional[int] = None,
) -> Tuple[Event, ...]:
    """Connect, subscribe until end-of-stored-events, close, and return the events.

    Events keep relay delivery order. An empty result is a normal outcome.
    """
    filters = build_time_filter(lookback_seconds, now)
    events: List[Event] = []

    async with client:
        await client.subscribe(
            filters,
            on_event=events.append,
            on_exhausted=lambda: logger.info(f"End of stored events on {client.url}"),
            timeout=subscription_timeout,
        )

    logger.info(f"Collected {len(events)} events from {client.url}")
    return tuple(events)
