"""Anthropic backend for Claude models."""

import os
from typing import Any

from .base import LLMBackend, TokenCallback, require_api_key


def split_system(messages: list[dict[str, str]]) -> tuple[str | None, list[dict[str, str]]]:
    """Separate system messages, which the Messages API takes as a parameter.

    Multiple system messages are joined. If the remaining conversation does
    not start with a user turn, a placeholder user turn is prepended.
    """
    system_parts = [m["content"] for m in messages if m["role"] == "system"]
    chat = [{"role": m["role"], "content": m["content"]} for m in messages if m["role"] != "system"]
    if chat and chat[0]["role"] != "user":
        chat.insert(0, {"role": "user", "content": "Please assist me."})
    return ("\n\n".join(system_parts) or None), chat


class AnthropicBackend(LLMBackend):
    """Anthropic Messages API backend.

    Requires ANTHROPIC_API_KEY environment variable or an explicit key.
    See: https://docs.anthropic.com/en/api/getting-started
    """

    supports_streaming = True

    def __init__(
        self,
        model: str = "claude-sonnet-4-20250514",
        api_key: str | None = None,
        timeout: int = 120,
        max_tokens: int = 8192,
        **kwargs: Any,
    ) -> None:
        try:
            import anthropic  # noqa: F401
        except ImportError:
            raise ImportError("Anthropic package not installed. Run: pip install anthropic")

        self.model = model
        self.timeout = timeout
        self.default_max_tokens = max_tokens
        self.initialize(api_key or os.environ.get("ANTHROPIC_API_KEY"))

    def initialize(self, api_key: str | None) -> None:
        """(Re)create the client for ``api_key``.

        Raises:
            InvalidCredentialError: If the key is empty or malformed.
        """
        from anthropic import Anthropic

        self._api_key = require_api_key(api_key, "Anthropic", "ANTHROPIC_API_KEY")
        self._client = Anthropic(api_key=self._api_key, timeout=self.timeout)

    def _request(
        self,
        messages: list[dict[str, str]],
        model: str | None,
        temperature: float,
        max_tokens: int | None,
        kwargs: dict[str, Any],
    ) -> dict[str, Any]:
        system, chat = split_system(messages)
        request: dict[str, Any] = {
            "model": model or self.model,
            "messages": chat,
            "max_tokens": max_tokens or self.default_max_tokens,
            "temperature": temperature,
        }
        if system:
            request["system"] = system
        request.update({k: kwargs[k] for k in ("top_p", "top_k", "stop_sequences") if k in kwargs})
        return request

    def chat(
        self,
        messages: list[dict[str, str]],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs: Any,
    ) -> str:
        from anthropic import APIConnectionError, APIError, APITimeoutError

        request = self._request(messages, model, temperature, max_tokens, kwargs)
        try:
            response = self._client.messages.create(**request)
        except APITimeoutError as e:
            raise TimeoutError(f"Anthropic request timed out: {e}") from e
        except APIConnectionError as e:
            raise ConnectionError(f"Failed to connect to Anthropic API: {e}") from e
        except APIError as e:
            raise RuntimeError(f"Anthropic API error: {e}") from e

        text = [block.text for block in response.content or [] if hasattr(block, "text")]
        if not text:
            raise RuntimeError("Anthropic returned no text content")
        return "\n".join(text)

    def stream_chat(
        self,
        messages: list[dict[str, str]],
        on_token: TokenCallback,
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs: Any,
    ) -> str:
        from anthropic import APIConnectionError, APIError, APITimeoutError

        request = self._request(messages, model, temperature, max_tokens, kwargs)
        chunks: list[str] = []
        try:
            with self._client.messages.stream(**request) as stream:
                for token in stream.text_stream:
                    chunks.append(token)
                    on_token(token)
        except APITimeoutError as e:
            raise TimeoutError(f"Anthropic request timed out: {e}") from e
        except APIConnectionError as e:
            raise ConnectionError(f"Failed to connect to Anthropic API: {e}") from e
        except APIError as e:
            raise RuntimeError(f"Anthropic API error: {e}") from e
        return "".join(chunks)

    def list_models(self) -> list[str]:
        # No catalogue endpoint is used; these are the supported defaults
        return [
            "claude-sonnet-4-20250514",
            "claude-3-5-haiku-20241022",
        ]

    def __repr__(self) -> str:
        return f"AnthropicBackend(model={self.model!r})"
