"""
Chat completions client for question generation and answer evaluation.

Talks to an OpenAI-compatible endpoint. Timeouts, transport errors and 5xx
responses are retried with exponential backoff; 4xx responses fail at once.
Every failure surfaces as ExternalServiceError so callers can fall back.
"""

from __future__ import annotations

import json
import re
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import httpx
from loguru import logger

from quizcycle.core.exceptions import ExternalServiceError

_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


@dataclass
class ChatMessage:
    """One message in a chat completion request."""

    role: str
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


def extract_json(text: str) -> dict[str, Any]:
    """
    Parse a JSON object out of a model reply.

    Models often wrap JSON in Markdown code fences; those are stripped first.

    Raises:
        ExternalServiceError: If the reply is not a JSON object
    """
    cleaned = _CODE_FENCE.sub("", text.strip()).strip()
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise ExternalServiceError(f"Malformed JSON in model reply: {e}") from e
    if not isinstance(data, dict):
        raise ExternalServiceError("Model reply is not a JSON object")
    return data


class LLMClient:
    """Synchronous HTTP client for chat completions."""

    def __init__(
        self,
        api_url: str,
        api_key: str = "",
        model: str = "gpt-4o-mini",
        temperature: float = 0.7,
        max_tokens: int = 1000,
        timeout: float = 30.0,
        retry_attempts: int = 2,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize the client.

        Args:
            api_url: Chat completions endpoint
            api_key: Bearer token (omitted from headers when empty)
            model: Model name sent with each request
            timeout: Request timeout in seconds
            retry_attempts: Retries after the first failed attempt
            sleep: Backoff sleep function, injectable for tests
        """
        self.api_url = api_url
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.retry_attempts = retry_attempts
        self._sleep = sleep
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        self.client = httpx.Client(timeout=httpx.Timeout(timeout), headers=headers)

    @classmethod
    def from_settings(cls, settings) -> LLMClient:
        config = settings.get_llm_config()
        return cls(
            api_url=config["api_url"],
            api_key=config["api_key"],
            model=config["model"],
            temperature=config["temperature"],
            max_tokens=config["max_tokens"],
            timeout=config["timeout"],
            retry_attempts=config["retry_attempts"],
        )

    def close(self) -> None:
        """Close the HTTP client."""
        self.client.close()

    def complete(self, messages: list[ChatMessage], temperature: float | None = None) -> str:
        """
        Send a chat completion request and return the reply text.

        Raises:
            ExternalServiceError: On non-retryable status, exhausted retries
                or an unexpected response shape
        """
        payload = {
            "model": self.model,
            "messages": [m.to_dict() for m in messages],
            "temperature": self.temperature if temperature is None else temperature,
            "max_tokens": self.max_tokens,
        }
        attempts = self.retry_attempts + 1
        last_error: Exception | None = None

        for attempt in range(attempts):
            try:
                response = self.client.post(self.api_url, json=payload)
                response.raise_for_status()
                try:
                    data = response.json()
                except ValueError as e:
                    # Gateway pages and truncated bodies
                    logger.error(f"LLM reply body is not JSON: {e}")
                    raise ExternalServiceError(f"LLM reply body is not JSON: {e}") from e
                return self._reply_text(data)

            except httpx.TimeoutException as e:
                last_error = e
                logger.warning(f"LLM timeout on attempt {attempt + 1}/{attempts}")

            except httpx.HTTPStatusError as e:
                last_error = e
                if e.response.status_code < 500:
                    # Don't retry on 4xx client errors
                    logger.error(f"LLM client error: {e.response.status_code}")
                    raise ExternalServiceError(
                        f"LLM request rejected with status {e.response.status_code}"
                    ) from e
                logger.warning(
                    f"LLM server error {e.response.status_code} on attempt {attempt + 1}/{attempts}"
                )

            except httpx.RequestError as e:
                last_error = e
                logger.warning(f"LLM request error on attempt {attempt + 1}/{attempts}: {e}")

            if attempt < attempts - 1:
                wait_time = 2**attempt  # Exponential backoff: 1s, 2s, 4s
                logger.debug(f"Retrying LLM call in {wait_time}s...")
                self._sleep(wait_time)

        logger.error(f"LLM call failed after {attempts} attempts: {last_error}")
        raise ExternalServiceError(f"LLM call failed after {attempts} attempts: {last_error}")

    def complete_json(self, messages: list[ChatMessage], temperature: float | None = None) -> dict[str, Any]:
        """Send a request and parse the reply as a JSON object."""
        return extract_json(self.complete(messages, temperature=temperature))

    @staticmethod
    def _reply_text(data: Any) -> str:
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise ExternalServiceError(f"Unexpected LLM response shape: {e}") from e
        if not isinstance(content, str) or not content.strip():
            raise ExternalServiceError("Empty LLM reply")
        return content
