"""Ollama backend for local LLM inference."""

import json
from typing import Any

import requests

from .base import LLMBackend, TokenCallback


class OllamaBackend(LLMBackend):
    """Ollama backend for local LLM execution.

    Connects to a local Ollama server for inference.
    See: https://ollama.ai/
    """

    supports_streaming = True

    def __init__(
        self,
        model: str = "llama3.1:8b",
        base_url: str = "http://localhost:11434",
        timeout: int = 600,
        **kwargs: Any,
    ) -> None:
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _payload(
        self,
        messages: list[dict[str, str]],
        model: str | None,
        temperature: float,
        max_tokens: int | None,
        stream: bool,
        options: dict[str, Any] | None,
    ) -> dict[str, Any]:
        opts: dict[str, Any] = {"temperature": temperature}
        if max_tokens is not None:
            opts["num_predict"] = max_tokens
        opts.update(options or {})
        return {
            "model": model or self.model,
            "messages": messages,
            "stream": stream,
            "options": opts,
        }

    def _post(self, payload: dict[str, Any], stream: bool = False) -> requests.Response:
        try:
            response = requests.post(
                f"{self.base_url}/api/chat", json=payload, timeout=self.timeout, stream=stream
            )
            response.raise_for_status()
        except requests.exceptions.ConnectionError as e:
            raise ConnectionError(
                f"Failed to connect to Ollama at {self.base_url}. "
                "Is Ollama running? Try: ollama serve"
            ) from e
        except requests.exceptions.Timeout as e:
            raise TimeoutError(f"Ollama request timed out after {self.timeout}s") from e
        except requests.exceptions.HTTPError as e:
            raise RuntimeError(f"Ollama returned an error: {e}") from e
        return response

    def chat(
        self,
        messages: list[dict[str, str]],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs: Any,
    ) -> str:
        payload = self._payload(messages, model, temperature, max_tokens, False, kwargs.get("options"))
        data = self._post(payload).json()

        # {"message": {"role": "assistant", "content": "..."}}
        if "message" not in data or "content" not in data["message"]:
            raise RuntimeError(f"Unexpected Ollama response format: {data}")
        return data["message"]["content"]

    def stream_chat(
        self,
        messages: list[dict[str, str]],
        on_token: TokenCallback,
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs: Any,
    ) -> str:
        """Stream from /api/chat, which answers with one JSON object per line."""
        payload = self._payload(messages, model, temperature, max_tokens, True, kwargs.get("options"))
        chunks: list[str] = []
        with self._post(payload, stream=True) as response:
            for line in response.iter_lines():
                if not line:
                    continue
                event = json.loads(line)
                token = event.get("message", {}).get("content", "")
                if token:
                    chunks.append(token)
                    on_token(token)
                if event.get("done"):
                    break
        return "".join(chunks)

    def list_models(self) -> list[str]:
        try:
            response = requests.get(f"{self.base_url}/api/tags", timeout=10)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise ConnectionError(f"Failed to list Ollama models: {e}") from e
        return [m["name"] for m in response.json().get("models", [])]

    def is_available(self) -> bool:
        try:
            response = requests.get(f"{self.base_url}/api/tags", timeout=5)
            return response.status_code == 200
        except requests.exceptions.RequestException:
            return False

    def __repr__(self) -> str:
        return f"OllamaBackend(model={self.model!r}, base_url={self.base_url!r})"
