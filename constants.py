#!/usr/bin/env python3
"""Protocol and deployment defaults for the relay digest bot."""

TEXT_NOTE_KIND = 1

READ_RELAY_URL = "wss://news.utxo.one"
WRITE_RELAY_URL = "wss://nos.lol"

# Lookback windows in seconds, per prompt mode
STRICT_LOOKBACK_SECONDS = 24 * 60 * 60
DIRECT_LOOKBACK_SECONDS = 6 * 60 * 60

DEFAULT_API_BASE_URL = "https://api.mistral.ai"
DEFAULT_API_MODEL = "mistral-tiny"
DEFAULT_MAX_TOKENS = 2000

DEFAULT_MAX_RETRIES = 5
DEFAULT_PUBLISH_TIMEOUT = 10

LOGGER_NAME = "nostr-digest"
DEFAULT_LOG_DIR = "./logs"
