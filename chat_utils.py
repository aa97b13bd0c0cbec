#!/usr/bin/env python3
import json
import logging
from typing import Any, Dict, List, Optional

import aiohttp

from constants import DEFAULT_API_BASE_URL, DEFAULT_API_MODEL, DEFAULT_MAX_TOKENS, LOGGER_NAME
from errors import InferenceError

logger = logging.getLogger(LOGGER_NAME)


def build_messages(prompt: str) -> List[Dict[str, str]]:
    return [
        {"role": "user", "content": prompt}
    ]


def extract_completion_text(response: Dict[str, Any]) -> str:
    """Return choices[0].message.content, or "" when the model produced nothing."""
    if not isinstance(response, dict):
        return ""
    choices = response.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return ""
    message = choices[0].get("message")
    if not isinstance(message, dict):
        return ""
    content = message.get("content")
    return content if isinstance(content, str) else ""


async def post_chat_completion(
    session: aiohttp.ClientSession,
    api_base_url: str,
    api_key_value: Optional[str],
    payload: Dict[str, Any],
) -> Dict[str, Any]:
    if not api_base_url:
        raise InferenceError("OpenAI-compatible API base URL is not set.")
    url = api_base_url.rstrip("/") + "/v1/chat/completions"
    headers = {
        "Content-Type": "application/json",
        **({"Authorization": f"Bearer {api_key_value}"} if api_key_value else {}),
    }
    try:
        async with session.post(url, json=payload, headers=headers) as resp:
            body = await resp.text()
            if resp.status >= 400:
                raise InferenceError(f"HTTP {resp.status} error from API: {resp.reason}. Body: {body[:500]}")
            if not body.strip():
                raise InferenceError("Empty response from API")
            try:
                return json.loads(body)
            except json.JSONDecodeError as e:
                raise InferenceError(f"Invalid JSON response from API: {e}. Response body: {body[:500]}") from e
    except aiohttp.ClientError as e:
        raise InferenceError(f"Network error connecting to API: {e}") from e


class ChatCompletionClient:
    """Single-prompt text generation against an OpenAI-compatible endpoint.

    Instances are callables: `await client(prompt)` returns the raw completion
    text. The aiohttp session is opened lazily and released by close().
    """

    def __init__(
        self,
        api_key_value: str,
        api_base_url: str = DEFAULT_API_BASE_URL,
        model: str = DEFAULT_API_MODEL,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self.api_key_value = api_key_value
        self.api_base_url = api_base_url
        self.model = model
        self.max_tokens = max_tokens
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "ChatCompletionClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def __call__(self, prompt: str) -> str:
        if self._session is None:
            self._session = aiohttp.ClientSession()
        payload: Dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": build_messages(prompt),
        }
        logger.info(f"Requesting completion from {self.model} (prompt_len={len(prompt)})")
        resp = await post_chat_completion(self._session, self.api_base_url, self.api_key_value, payload)
        return extract_completion_text(resp)

    async def close(self) -> None:
        if self._owns_session and self._session is not None:
            session, self._session = self._session, None
            await session.close()
