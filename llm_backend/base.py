"""Abstract base class for LLM providers."""

from abc import ABC, abstractmethod
from typing import Any, Callable

TokenCallback = Callable[[str], None]


class InvalidCredentialError(ValueError):
    """Raised when a provider is given an empty or malformed API key."""


class LLMBackend(ABC):
    """Abstract interface for LLM providers.

    Subclasses implement ``chat``. Providers that can stream set
    ``supports_streaming`` and implement ``stream_chat``.
    """

    supports_streaming: bool = False

    @abstractmethod
    def chat(
        self,
        messages: list[dict[str, str]],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs: Any,
    ) -> str:
        """Send a chat completion request.

        Args:
            messages: List of message dicts with 'role' and 'content' keys.
                     Roles: "system", "user", "assistant"
            model: Optional model override (uses default if not specified)
            temperature: Sampling temperature (0.0-2.0)
            max_tokens: Maximum tokens in response
            **kwargs: Provider-specific parameters

        Returns:
            The assistant's response content as a string.

        Raises:
            ConnectionError: If unable to connect to the backend
            TimeoutError: If the request times out
            RuntimeError: If the backend returns an error
        """
        ...

    def stream_chat(
        self,
        messages: list[dict[str, str]],
        on_token: TokenCallback,
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs: Any,
    ) -> str:
        """Stream a chat completion, calling ``on_token`` per chunk.

        Returns:
            The full response text.
        """
        raise NotImplementedError(f"{self.__class__.__name__} does not support streaming")

    def list_models(self) -> list[str]:
        """List available models. Providers without a catalogue return []."""
        return []

    def is_available(self) -> bool:
        """Check if the backend is reachable and ready."""
        return True


def require_api_key(api_key: str | None, provider: str, env_var: str) -> str:
    """Validate an API key.

    Raises:
        InvalidCredentialError: If the key is missing, blank or contains whitespace.
    """
    if not api_key or not api_key.strip():
        raise InvalidCredentialError(
            f"{provider} API key not found. Set {env_var} environment variable "
            "or pass api_key parameter."
        )
    if any(ch.isspace() for ch in api_key.strip()):
        raise InvalidCredentialError(f"{provider} API key is malformed")
    return api_key.strip()
