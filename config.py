#!/usr/bin/env python3
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from pynostr.key import PrivateKey

from constants import (
    DEFAULT_API_BASE_URL,
    DEFAULT_API_MODEL,
    DEFAULT_MAX_RETRIES,
    DEFAULT_MAX_TOKENS,
    DEFAULT_PUBLISH_TIMEOUT,
    DIRECT_LOOKBACK_SECONDS,
    READ_RELAY_URL,
    STRICT_LOOKBACK_SECONDS,
    WRITE_RELAY_URL,
)
from errors import ConfigError

STRICT_MODE = "strict"
DIRECT_MODE = "direct"
PROMPT_MODES = (STRICT_MODE, DIRECT_MODE)

_TRUTHY = ("1", "true", "yes", "on")

SECP256K1_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141


@dataclass(frozen=True)
class DigestConfig:
    """Everything one run needs; built once by load_config()."""

    api_key: str
    private_key: PrivateKey
    prompt_mode: str = STRICT_MODE
    lookback_seconds: int = STRICT_LOOKBACK_SECONDS
    # None means retry forever
    max_retries: Optional[int] = DEFAULT_MAX_RETRIES
    dry_run: bool = False
    read_relay_url: str = READ_RELAY_URL
    write_relay_url: str = WRITE_RELAY_URL
    api_base_url: str = DEFAULT_API_BASE_URL
    api_model: str = DEFAULT_API_MODEL
    max_tokens: int = DEFAULT_MAX_TOKENS
    subscription_timeout: Optional[float] = None
    publish_timeout: float = DEFAULT_PUBLISH_TIMEOUT

    @property
    def strict(self) -> bool:
        return self.prompt_mode == STRICT_MODE


def decode_secret(secret_hex: Optional[str]) -> PrivateKey:
    """Decode a hex signing secret into a pynostr PrivateKey.

    Raises ConfigError when the secret is absent, not hexadecimal, not 32
    bytes long, or outside the secp256k1 key range.
    """
    if not secret_hex or not secret_hex.strip():
        raise ConfigError("APP_SECRET environment variable not set")
    try:
        raw = bytes.fromhex(secret_hex.strip())
    except ValueError as e:
        raise ConfigError(f"Invalid APP_SECRET format: {e}") from e
    if len(raw) != 32:
        raise ConfigError(f"APP_SECRET must be 32 bytes (64 hex characters), got {len(raw)} bytes")
    if not 0 < int.from_bytes(raw, "big") < SECP256K1_ORDER:
        raise ConfigError("APP_SECRET is outside the secp256k1 key range")
    try:
        return PrivateKey(raw)
    except (ValueError, TypeError) as e:
        raise ConfigError(f"Invalid APP_SECRET key: {e}") from e


def parse_flag(value: Optional[str]) -> bool:
    return bool(value) and value.strip().lower() in _TRUTHY


def _parse_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from e


def _parse_seconds(env: Mapping[str, str], name: str, default: Optional[float]) -> Optional[float]:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be a number of seconds, got {raw!r}") from e
    if value <= 0:
        raise ConfigError(f"{name} must be positive, got {raw!r}")
    return value


def load_config(env: Optional[Mapping[str, str]] = None) -> DigestConfig:
    """Build a DigestConfig from environment variables.

    Every value is validated here so that a bad configuration fails before
    any relay or inference connection is attempted.
    """
    env = os.environ if env is None else env

    api_key = (env.get("MISTRAL_API_KEY") or "").strip()
    if not api_key:
        raise ConfigError("MISTRAL_API_KEY environment variable not set")

    private_key = decode_secret(env.get("APP_SECRET"))

    prompt_mode = (env.get("DIGEST_MODE") or STRICT_MODE).strip().lower()
    if prompt_mode not in PROMPT_MODES:
        raise ConfigError(f"DIGEST_MODE must be one of {', '.join(PROMPT_MODES)}, got {prompt_mode!r}")

    default_lookback = STRICT_LOOKBACK_SECONDS if prompt_mode == STRICT_MODE else DIRECT_LOOKBACK_SECONDS
    lookback_hours = _parse_int(env, "LOOKBACK_HOURS", default_lookback // 3600)
    if lookback_hours <= 0:
        raise ConfigError(f"LOOKBACK_HOURS must be positive, got {lookback_hours}")

    max_retries: Optional[int] = _parse_int(env, "MAX_RETRIES", DEFAULT_MAX_RETRIES)
    if max_retries is not None and max_retries < 0:
        max_retries = None

    max_tokens = _parse_int(env, "LLM_MAX_TOKENS", DEFAULT_MAX_TOKENS)
    if max_tokens <= 0:
        raise ConfigError(f"LLM_MAX_TOKENS must be positive, got {max_tokens}")

    return DigestConfig(
        api_key=api_key,
        private_key=private_key,
        prompt_mode=prompt_mode,
        lookback_seconds=lookback_hours * 3600,
        max_retries=max_retries,
        dry_run=parse_flag(env.get("DRY_RUN")),
        read_relay_url=env.get("READ_RELAY_URL") or READ_RELAY_URL,
        write_relay_url=env.get("WRITE_RELAY_URL") or WRITE_RELAY_URL,
        api_base_url=env.get("LLM_API_BASE_URL") or DEFAULT_API_BASE_URL,
        api_model=env.get("LLM_MODEL") or DEFAULT_API_MODEL,
        max_tokens=max_tokens,
        subscription_timeout=_parse_seconds(env, "SUBSCRIPTION_TIMEOUT", None),
        publish_timeout=_parse_seconds(env, "PUBLISH_TIMEOUT", float(DEFAULT_PUBLISH_TIMEOUT)),
    )
