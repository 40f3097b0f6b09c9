"""Offline backends that need no model server.

``EchoBackend`` answers every prompt with ``"response for: <prompt>"``.
``ScriptedBackend`` returns predefined responses in sequence, or the
result of a callable, and can be told to fail.
"""

from typing import Any, Callable

from .base import LLMBackend


def _last_user_message(messages: list[dict[str, str]]) -> str:
    for message in reversed(messages):
        if message.get("role") == "user":
            return message.get("content", "")
    return ""


class EchoBackend(LLMBackend):
    """Echoes the prompt back. Useful for dry runs of a pipeline."""

    def __init__(self, prefix: str = "response for: ", **kwargs: Any) -> None:
        self.prefix = prefix
        self.prompts: list[str] = []

    def chat(
        self,
        messages: list[dict[str, str]],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs: Any,
    ) -> str:
        prompt = _last_user_message(messages)
        self.prompts.append(prompt)
        return f"{self.prefix}{prompt}"

    def __repr__(self) -> str:
        return "EchoBackend()"


class ScriptedBackend(LLMBackend):
    """Returns predefined responses for testing."""

    def __init__(
        self,
        responses: list[str | Exception] | Callable[[str], str] | None = None,
        **kwargs: Any,
    ) -> None:
        """
        Args:
            responses: Responses returned in sequence. An Exception instance
                in the list is raised instead of returned. A callable is
                called with the prompt for every request.
        """
        self._responses = responses if responses is not None else []
        self.prompts: list[str] = []

    @property
    def call_count(self) -> int:
        return len(self.prompts)

    def chat(
        self,
        messages: list[dict[str, str]],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs: Any,
    ) -> str:
        prompt = _last_user_message(messages)
        index = len(self.prompts)
        self.prompts.append(prompt)

        if callable(self._responses):
            return self._responses(prompt)
        if index >= len(self._responses):
            raise RuntimeError("ScriptedBackend exhausted responses")
        response = self._responses[index]
        if isinstance(response, Exception):
            raise response
        return response

    def reset(self) -> None:
        self.prompts.clear()
