#!/usr/bin/env python3
import logging
from typing import Callable, Optional

from pynostr.event import Event

from chat_utils import ChatCompletionClient
from collector import collect_events
from config import DigestConfig
from constants import LOGGER_NAME
from publisher import publish_digest
from relay_client import RelayClient
from summarizer import CompletionFunc, Summarizer
from transport import RelayTransport, WebSocketTransport

logger = logging.getLogger(LOGGER_NAME)

TransportFactory = Callable[[], RelayTransport]


async def run_digest(
    config: DigestConfig,
    transport_factory: TransportFactory = WebSocketTransport,
    complete: Optional[CompletionFunc] = None,
) -> Event:
    """Run one Fetching -> Summarizing -> Publishing pass and return the signed event.

    Each stage finishes before the next starts. Read and write relays each
    get their own transport from transport_factory. When complete is not
    given, a ChatCompletionClient is built from the config and closed at the
    end of the run.
    """
    read_client = RelayClient(config.read_relay_url, transport_factory())
    write_client = RelayClient(config.write_relay_url, transport_factory())
    hours = config.lookback_seconds // 3600

    logger.info(f"Fetching text notes from {config.read_relay_url} (last {hours} hours)")
    events = await collect_events(
        read_client,
        config.lookback_seconds,
        subscription_timeout=config.subscription_timeout,
    )

    logger.info(f"Summarizing {len(events)} events from the last {hours} hours ({config.prompt_mode} mode)")
    chat_client: Optional[ChatCompletionClient] = None
    if complete is None:
        chat_client = ChatCompletionClient(
            api_key_value=config.api_key,
            api_base_url=config.api_base_url,
            model=config.api_model,
            max_tokens=config.max_tokens,
        )
        complete = chat_client
    summarizer = Summarizer(
        complete,
        prompt_mode=config.prompt_mode,
        max_retries=config.max_retries,
        skip_extraction=config.dry_run,
    )
    try:
        digest = await summarizer.summarize(event.content for event in events)
    finally:
        if chat_client is not None:
            await chat_client.close()

    logger.info(f"Publishing digest to {config.write_relay_url} (dry_run={config.dry_run})")
    event = await publish_digest(
        digest,
        config.private_key,
        write_client,
        dry_run=config.dry_run,
        publish_timeout=config.publish_timeout,
    )

    logger.info("Done!")
    return event
