#!/usr/bin/env python3
"""Failure taxonomy for a digest run.

Only MalformedOutputError is recovered locally (by the summarizer's retry
loop); everything else propagates to the entry point and ends the run.
"""


class DigestError(Exception):
    """Base class for every failure raised by the pipeline."""


class ConfigError(DigestError):
    """Missing or malformed configuration (API key, signing secret, options)."""


class RelayConnectionError(DigestError, ConnectionError):
    """Relay unreachable, handshake failure, or the session dropped mid-run."""


class InferenceError(DigestError):
    """The text-generation call failed (auth, quota, network, bad body)."""


class MalformedOutputError(DigestError):
    """Model output did not satisfy the extraction contract."""


class ExtractionFailed(DigestError):
    """Retry budget spent without obtaining a well-formed digest."""

    def __init__(self, attempts: int) -> None:
        super().__init__(f"No well-formed digest after {attempts} attempt(s)")
        self.attempts = attempts


class PublishError(DigestError):
    """The write relay rejected the event or never acknowledged it."""
