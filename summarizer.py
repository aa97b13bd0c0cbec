#!/usr/bin/env python3
import logging
import re
from typing import Awaitable, Callable, Iterable, Optional

from config import STRICT_MODE
from constants import DEFAULT_MAX_RETRIES, LOGGER_NAME
from errors import ExtractionFailed, MalformedOutputError
from prompts import fill_template, template_for

logger = logging.getLogger(LOGGER_NAME)

CORPUS_SEPARATOR = "\n\n"

# Greedy: runs to the last closing tag
OUTPUT_PATTERN = re.compile(r"output>([\s\S]*)</output")

CompletionFunc = Callable[[str], Awaitable[str]]


def build_corpus(contents: Iterable[str]) -> str:
    """Join post contents with one blank line between them, keeping order."""
    return CORPUS_SEPARATOR.join(contents)


def extract_output(raw: str) -> str:
    """Return the text between `output>` and `</output`.

    Raises MalformedOutputError when the markers are missing.
    """
    match = OUTPUT_PATTERN.search(raw or "")
    if match is None:
        raise MalformedOutputError("Model output has no <output> section")
    return match.group(1)


class Summarizer:
    """Turn a corpus of post contents into a publishable digest.

    In strict mode the digest is extracted from the <output> section and the
    same prompt is re-issued whenever extraction fails, up to max_retries
    extra attempts (None retries forever). Direct mode uses the response as
    is. Empty output counts as malformed in both modes.
    """

    def __init__(
        self,
        complete: CompletionFunc,
        prompt_mode: str = STRICT_MODE,
        max_retries: Optional[int] = DEFAULT_MAX_RETRIES,
        skip_extraction: bool = False,
    ) -> None:
        self._complete = complete
        self.prompt_mode = prompt_mode
        self.max_retries = max_retries
        self.skip_extraction = skip_extraction
        self.attempts = 0

    def digest_from(self, raw: str) -> str:
        if self.prompt_mode == STRICT_MODE and not self.skip_extraction:
            digest = extract_output(raw).strip()
        else:
            digest = (raw or "").strip()
        if not digest:
            raise MalformedOutputError("Model output is empty")
        return digest

    async def summarize(self, contents: Iterable[str]) -> str:
        corpus = build_corpus(contents)
        prompt = fill_template(template_for(self.prompt_mode), corpus)
        self.attempts = 0

        while True:
            self.attempts += 1
            raw = await self._complete(prompt)
            try:
                digest = self.digest_from(raw)
            except MalformedOutputError as e:
                retries_used = self.attempts - 1
                if self.max_retries is not None and retries_used >= self.max_retries:
                    logger.error(f"Giving up after {self.attempts} attempt(s): {e}")
                    raise ExtractionFailed(self.attempts) from e
                logger.warning(f"Attempt {self.attempts} produced malformed output ({e}); retrying")
                continue
            logger.info(f"Digest ready after {self.attempts} attempt(s) ({len(digest)} chars)")
            return digest
