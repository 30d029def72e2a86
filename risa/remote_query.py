"""
Remote Query Module

Responsibility: Prompt → one remote generateContent request → speakable text.
Nothing more.

Does NOT:
- Retry on failure (single request)
- Raise to the caller (every failure becomes the fixed apology)
- Stream output (single response only)

Blocking. Callers must run it off any input or callback-delivery path.
"""

import logging
import re
import time
from typing import Optional

import requests

from risa.policy import (
    BRIEF_QUERY_PREFIX,
    REMOTE_FALLBACK_RESPONSE,
    REMOTE_TIMEOUT_SECONDS,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_MODEL = "gemini-1.5-flash-latest"

_EMPHASIS = re.compile(r"[*_`]+")
_WHITESPACE = re.compile(r"\s+")


def build_request_body(prompt: str) -> dict:
    return {"contents": [{"parts": [{"text": prompt}]}]}


def extract_answer(payload: dict) -> str:
    """Read candidates[0].content.parts[0].text; raises on any missing piece."""
    return payload["candidates"][0]["content"]["parts"][0]["text"]


def sanitize_response(text: str) -> str:
    """Strip emphasis markers, collapse newlines and whitespace runs, trim."""
    text = _EMPHASIS.sub("", text)
    text = _WHITESPACE.sub(" ", text)
    return text.strip()


class RemoteQueryAdapter:
    """Generative-language backend client with a fixed fallback answer."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        model: str = DEFAULT_MODEL,
        timeout_seconds: float = REMOTE_TIMEOUT_SECONDS,
        api_key: str = "",
    ):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout_seconds = timeout_seconds
        self._api_key = api_key or ""

    @classmethod
    def from_config(cls, config, api_key: str = "") -> "RemoteQueryAdapter":
        return cls(
            base_url=config.get("remote.base_url", DEFAULT_BASE_URL),
            model=config.get("remote.model", DEFAULT_MODEL),
            timeout_seconds=float(config.get("remote.timeout_seconds", REMOTE_TIMEOUT_SECONDS)),
            api_key=api_key,
        )

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    @property
    def has_api_key(self) -> bool:
        return bool(self._api_key)

    def set_api_key(self, api_key: Optional[str]) -> None:
        self._api_key = api_key or ""

    def query(self, prompt: str, brief: bool = False) -> str:
        if brief:
            prompt = BRIEF_QUERY_PREFIX + prompt

        if not self._api_key:
            logger.warning("[query] No API key configured; returning fallback")
            return REMOTE_FALLBACK_RESPONSE

        start = time.monotonic()
        try:
            logger.debug(f"[query] POST {self.endpoint} prompt={prompt!r}")
            response = requests.post(
                self.endpoint,
                params={"key": self._api_key},
                json=build_request_body(prompt),
                headers={"Content-Type": "application/json; charset=UTF-8"},
                timeout=self.timeout_seconds,
            )
            response.raise_for_status()
            answer = sanitize_response(extract_answer(response.json()))
        except requests.exceptions.RequestException as e:
            logger.error(f"[query] Request to {self.model} failed: {e}")
            return REMOTE_FALLBACK_RESPONSE
        except (ValueError, KeyError, IndexError, TypeError) as e:
            logger.error(f"[query] Unreadable response from {self.model}: {e!r}")
            return REMOTE_FALLBACK_RESPONSE

        elapsed_ms = (time.monotonic() - start) * 1000
        if not answer:
            logger.error("[query] Empty answer after sanitizing; returning fallback")
            return REMOTE_FALLBACK_RESPONSE
        logger.info(f"[query] Answer in {elapsed_ms:.0f}ms ({len(answer)} chars)")
        return answer
