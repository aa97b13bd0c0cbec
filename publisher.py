#!/usr/bin/env python3
import logging
import sys
from typing import Optional, TextIO

from pynostr.event import Event
from pynostr.key import PrivateKey

from constants import LOGGER_NAME
from events import build_envelope, sign_envelope
from relay_client import RelayClient

logger = logging.getLogger(LOGGER_NAME)


async def publish_digest(
    digest: str,
    private_key: PrivateKey,
    client: RelayClient,
    dry_run: bool = False,
    publish_timeout: Optional[float] = None,
    now: Optional[int] = None,
    out: Optional[TextIO] = None,
) -> Event:
    """Sign the digest as a text note and publish it to the write relay.

    In dry-run mode the content is printed instead and the relay is never
    contacted. The write session is closed whether or not publish succeeds.
    """
    envelope = build_envelope(digest, now=now)
    event = sign_envelope(envelope, private_key)
    logger.info(f"Signed event {event.id} (created_at={event.created_at}, pubkey={event.pubkey})")

    if dry_run:
        print(event.content, file=out or sys.stdout)
        logger.info("Dry run: skipped publishing")
        return event

    async with client:
        await client.publish(event, timeout=publish_timeout)
    return event
