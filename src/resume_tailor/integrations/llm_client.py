"""Async client for an OpenAI-compatible chat completions endpoint.

Uses httpx.AsyncClient to send one system + one user message to
``/chat/completions`` and returns the first choice's text.
"""

from __future__ import annotations

from typing import Protocol

import httpx

from resume_tailor.config import settings


# ---------------------------------------------------------------------------
# Custom exceptions
# ---------------------------------------------------------------------------

class LLMError(Exception):
    """Base class for language-model transport failures."""


class LLMTimeoutError(LLMError):
    """Raised when a completion exceeds its time budget."""


class LLMConnectionError(LLMError):
    """Raised when the model endpoint is unreachable or rejects the call."""


class LLMMalformedResponseError(LLMError):
    """Raised when the response body has no usable completion text."""


class CompletionClient(Protocol):
    async def complete(
        self, system_prompt: str, user_prompt: str, max_tokens: int,
    ) -> str: ...


# ---------------------------------------------------------------------------
# ChatCompletionsClient
# ---------------------------------------------------------------------------

class ChatCompletionsClient:
    """Async client for the ``/chat/completions`` endpoint."""

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
    ):
        self.base_url = (base_url or settings.LLM_BASE_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.LLM_API_KEY
        self.model = model or settings.LLM_MODEL
        self.timeout = timeout or settings.LLM_TIMEOUT_SECONDS

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int,
    ) -> str:
        """Return the completion text for one system/user exchange.

        Raises:
            LLMTimeoutError: on request timeout.
            LLMConnectionError: on connection or transport failure, or an
                error status.
            LLMMalformedResponseError: on an unparseable response.
        """
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "max_tokens": max_tokens,
        }
        headers = {}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
            ) as client:
                response = await client.post(
                    "/chat/completions", json=payload, headers=headers,
                )
                response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise LLMTimeoutError(
                f"Completion request timed out after {self.timeout}s"
            ) from exc
        except httpx.ConnectError as exc:
            raise LLMConnectionError(
                f"Cannot connect to model endpoint at {self.base_url}"
            ) from exc
        except httpx.HTTPStatusError as exc:
            raise LLMConnectionError(
                f"Model endpoint returned {exc.response.status_code}"
            ) from exc
        except httpx.TransportError as exc:
            raise LLMConnectionError(
                f"Transport failure talking to {self.base_url}: {type(exc).__name__}"
            ) from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise LLMMalformedResponseError("Response body is not JSON") from exc
        return self._parse_response(data)

    @staticmethod
    def _parse_response(data: dict) -> str:
        """Pull ``choices[0].message.content`` out of the response body."""
        if not isinstance(data, dict):
            raise LLMMalformedResponseError("Response body is not an object")
        choices = data.get("choices")
        if not isinstance(choices, list) or not choices:
            raise LLMMalformedResponseError("Response has no choices")

        message = choices[0].get("message") if isinstance(choices[0], dict) else None
        if not isinstance(message, dict):
            raise LLMMalformedResponseError(
                "First choice missing 'message' or it is not a dict"
            )

        content = message.get("content")
        if content is None:
            return ""
        if not isinstance(content, str):
            raise LLMMalformedResponseError("'content' is not a string")
        return content
