#!/usr/bin/env python3
"""Publish a daily digest of relay text notes as a new Nostr note.

Run with no arguments; configuration comes from the environment (and a
`.env` file if present). See config.load_config for the recognised options.
"""
import asyncio
import logging
import os
import sys
from datetime import datetime

from dotenv import load_dotenv

from config import load_config
from constants import DEFAULT_LOG_DIR, LOGGER_NAME
from errors import DigestError
from runner import run_digest

logger = logging.getLogger(LOGGER_NAME)


def setup_logging(logs_dir: str) -> logging.Logger:
    """Log to logs/YYYY-MM-DD.log and the console."""
    logger.setLevel(logging.INFO)
    logger.propagate = False

    if not logger.handlers:
        os.makedirs(logs_dir, exist_ok=True)
        today_str = datetime.now().strftime("%Y-%m-%d")
        log_file_path = os.path.join(logs_dir, f"{today_str}.log")

        formatter = logging.Formatter(
            fmt="%(asctime)s %(levelname)s [%(name)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        file_handler = logging.FileHandler(log_file_path)
        file_handler.setLevel(logging.INFO)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.INFO)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)
    return logger


async def _main() -> int:
    config = load_config()
    await run_digest(config)
    return 0


def main() -> int:
    load_dotenv()
    setup_logging(os.environ.get("LOG_DIR") or DEFAULT_LOG_DIR)
    try:
        return asyncio.run(_main())
    except DigestError as e:
        logger.error(f"Digest run failed: {type(e).__name__}: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
