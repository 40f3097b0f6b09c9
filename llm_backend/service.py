"""LLM service facade used by agents.

Agents depend only on this class. It holds the active provider, retries
single-shot calls a fixed number of times with a fixed delay, and falls
back to one-shot generation when the provider cannot stream.
"""

import logging
import time
from typing import Any, Callable

from .base import LLMBackend, TokenCallback

logger = logging.getLogger(__name__)


class ProviderNotInitializedError(RuntimeError):
    """Raised when the service is used before a provider is set."""

    def __init__(self, message: str = "LLM provider not initialized") -> None:
        super().__init__(message)


class LLMService:
    """Provider-agnostic text generation.

    Example:
        >>> service = LLMService(get_backend("ollama"))
        >>> service.generate_text("Summarize this diff")
    """

    def __init__(
        self,
        provider: LLMBackend | None = None,
        max_retries: int = 3,
        retry_delay_ms: int = 1000,
        sleep: Callable[[float], None] = time.sleep,
        system_prompt: str | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            provider: Active provider (may be set later with set_provider)
            max_retries: Attempts per generate_text call
            retry_delay_ms: Fixed delay between attempts
            sleep: Sleep function, replaceable in tests
            system_prompt: Optional system message sent with every prompt
        """
        self.provider = provider
        self.max_retries = max(1, max_retries)
        self.retry_delay_ms = retry_delay_ms
        self.system_prompt = system_prompt
        self._sleep = sleep

    def set_provider(self, provider: LLMBackend) -> None:
        self.provider = provider
        logger.info("LLM: provider set to %r", provider)

    def has_provider(self) -> bool:
        return self.provider is not None

    def _require_provider(self) -> LLMBackend:
        if self.provider is None:
            raise ProviderNotInitializedError()
        return self.provider

    def _messages(self, prompt: str) -> list[dict[str, str]]:
        messages = []
        if self.system_prompt:
            messages.append({"role": "system", "content": self.system_prompt})
        messages.append({"role": "user", "content": prompt})
        return messages

    def generate_text(self, prompt: str, **options: Any) -> str:
        """Generate a completion, retrying failed provider calls.

        Raises:
            ProviderNotInitializedError: If no provider is set.
            Exception: The last provider error once all attempts fail.
        """
        provider = self._require_provider()
        messages = self._messages(prompt)
        attempts = max(1, self.max_retries)
        attempt = 1

        while True:
            try:
                return provider.chat(messages, **options)
            except Exception as e:
                logger.warning("LLM: attempt %d/%d failed: %s", attempt, attempts, e)
                if attempt >= attempts:
                    raise
            self._sleep(self.retry_delay_ms / 1000)
            attempt += 1

    def stream_generate(self, prompt: str, on_token: TokenCallback, **options: Any) -> str:
        """Stream a completion through ``on_token``.

        Providers without streaming get one generate_text call whose whole
        result is delivered in a single callback.

        Returns:
            The full response text.
        """
        provider = self._require_provider()
        if provider.supports_streaming:
            return provider.stream_chat(self._messages(prompt), on_token, **options)

        text = self.generate_text(prompt, **options)
        on_token(text)
        return text
