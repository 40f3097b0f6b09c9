"""OpenAI backend (also used for OpenAI-compatible local servers)."""

import os
from typing import Any

from .base import LLMBackend, TokenCallback, require_api_key

_PASSTHROUGH_KEYS = ("top_p", "presence_penalty", "frequency_penalty", "stop")


class OpenAIBackend(LLMBackend):
    """OpenAI chat completions backend.

    Requires OPENAI_API_KEY environment variable or an explicit key.
    See: https://platform.openai.com/docs/api-reference
    """

    supports_streaming = True

    def __init__(
        self,
        model: str = "gpt-4o-mini",
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: int = 120,
        **kwargs: Any,
    ) -> None:
        try:
            import openai  # noqa: F401
        except ImportError:
            raise ImportError("OpenAI package not installed. Run: pip install openai")

        self.model = model
        self.timeout = timeout
        self.base_url = base_url
        self.initialize(api_key or os.environ.get("OPENAI_API_KEY"))

    def initialize(self, api_key: str | None) -> None:
        """(Re)create the client for ``api_key``.

        Raises:
            InvalidCredentialError: If the key is empty or malformed.
        """
        from openai import OpenAI

        self._api_key = require_api_key(api_key, "OpenAI", "OPENAI_API_KEY")
        client_kwargs: dict[str, Any] = {"api_key": self._api_key, "timeout": self.timeout}
        if self.base_url:
            client_kwargs["base_url"] = self.base_url
        self._client = OpenAI(**client_kwargs)

    def _request(
        self,
        messages: list[dict[str, str]],
        model: str | None,
        temperature: float,
        max_tokens: int | None,
        kwargs: dict[str, Any],
    ) -> dict[str, Any]:
        request: dict[str, Any] = {
            "model": model or self.model,
            "messages": messages,
            "temperature": temperature,
        }
        if max_tokens is not None:
            request["max_tokens"] = max_tokens
        request.update({k: kwargs[k] for k in _PASSTHROUGH_KEYS if k in kwargs})
        return request

    def _create(self, request: dict[str, Any]) -> Any:
        from openai import APIConnectionError, APIError, APITimeoutError

        try:
            return self._client.chat.completions.create(**request)
        except APITimeoutError as e:
            raise TimeoutError(f"OpenAI request timed out: {e}") from e
        except APIConnectionError as e:
            raise ConnectionError(f"Failed to connect to OpenAI API: {e}") from e
        except APIError as e:
            raise RuntimeError(f"OpenAI API error: {e}") from e

    def chat(
        self,
        messages: list[dict[str, str]],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs: Any,
    ) -> str:
        response = self._create(self._request(messages, model, temperature, max_tokens, kwargs))
        if not response.choices:
            raise RuntimeError("OpenAI returned empty response")
        content = response.choices[0].message.content
        if content is None:
            raise RuntimeError("OpenAI returned null content")
        return content

    def stream_chat(
        self,
        messages: list[dict[str, str]],
        on_token: TokenCallback,
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs: Any,
    ) -> str:
        request = self._request(messages, model, temperature, max_tokens, kwargs)
        request["stream"] = True
        chunks: list[str] = []
        for chunk in self._create(request):
            if not chunk.choices:
                continue
            token = chunk.choices[0].delta.content
            if token:
                chunks.append(token)
                on_token(token)
        return "".join(chunks)

    def list_models(self) -> list[str]:
        try:
            models = self._client.models.list()
        except Exception as e:
            raise ConnectionError(f"Failed to list OpenAI models: {e}") from e
        return sorted(m.id for m in models.data if "gpt" in m.id.lower() or "o1" in m.id.lower())

    def is_available(self) -> bool:
        try:
            self._client.models.list()
            return True
        except Exception:
            return False

    def __repr__(self) -> str:
        return f"OpenAIBackend(model={self.model!r})"
