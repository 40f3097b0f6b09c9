"""Tests for the LLM service facade and backend factory."""

import pytest

from llm_backend import (
    EchoBackend,
    InvalidCredentialError,
    LLMBackend,
    LLMService,
    ProviderNotInitializedError,
    ScriptedBackend,
    get_backend,
)
from llm_backend.base import require_api_key


class WordStreamBackend(LLMBackend):
    """Streams the reply one word at a time."""

    supports_streaming = True

    def __init__(self, reply: str) -> None:
        self.reply = reply

    def chat(self, messages, model=None, temperature=0.7, max_tokens=None, **kwargs):
        return self.reply

    def stream_chat(self, messages, on_token, model=None, temperature=0.7, max_tokens=None, **kwargs):
        for word in self.reply.split(" "):
            on_token(word + " ")
        return self.reply


class TestGenerateText:
    """Tests for LLMService.generate_text."""

    def test_requires_provider(self):
        """Using the service before a provider is set raises."""
        with pytest.raises(ProviderNotInitializedError):
            LLMService().generate_text("hello")

    def test_returns_provider_text(self):
        """The prompt is sent as a user message and the reply returned."""
        backend = EchoBackend()
        service = LLMService(backend)

        assert service.generate_text("hello") == "response for: hello"
        assert backend.prompts == ["hello"]

    def test_retries_then_succeeds(self):
        """Failed attempts are retried with a fixed delay."""
        sleeps: list[float] = []
        backend = ScriptedBackend([RuntimeError("a"), RuntimeError("b"), "ok"])
        service = LLMService(backend, sleep=sleeps.append)

        assert service.generate_text("x") == "ok"
        assert backend.call_count == 3
        assert sleeps == [1.0, 1.0]

    def test_raises_last_error_after_all_attempts(self):
        """Once every attempt fails the last error propagates."""
        sleeps: list[float] = []
        backend = ScriptedBackend([RuntimeError("a"), RuntimeError("b"), RuntimeError("c")])
        service = LLMService(backend, sleep=sleeps.append)

        with pytest.raises(RuntimeError, match="c"):
            service.generate_text("x")
        assert backend.call_count == 3
        assert len(sleeps) == 2

    def test_zero_retries_still_attempts_once(self):
        """A max_retries lowered to 0 makes one attempt and re-raises its error."""
        sleeps: list[float] = []
        backend = ScriptedBackend([ConnectionError("refused")])
        service = LLMService(backend, sleep=sleeps.append)
        service.max_retries = 0

        with pytest.raises(ConnectionError, match="refused"):
            service.generate_text("x")
        assert backend.call_count == 1
        assert sleeps == []

    def test_custom_retry_settings(self):
        """max_retries and retry_delay_ms are honoured."""
        sleeps: list[float] = []
        backend = ScriptedBackend([TimeoutError("slow"), "done"])
        service = LLMService(backend, max_retries=2, retry_delay_ms=250, sleep=sleeps.append)

        assert service.generate_text("x") == "done"
        assert sleeps == [0.25]

    def test_system_prompt_is_sent_first(self):
        """A configured system prompt precedes the user message."""
        seen = []

        class Capture(LLMBackend):
            def chat(self, messages, model=None, temperature=0.7, max_tokens=None, **kwargs):
                seen.extend(messages)
                return "ok"

        LLMService(Capture(), system_prompt="be brief").generate_text("hi")
        assert [m["role"] for m in seen] == ["system", "user"]

    def test_set_provider(self):
        """A provider can be attached after construction."""
        service = LLMService()
        assert not service.has_provider()

        service.set_provider(EchoBackend(prefix=""))
        assert service.has_provider()
        assert service.generate_text("abc") == "abc"


class TestStreamGenerate:
    """Tests for LLMService.stream_generate."""

    def test_requires_provider(self):
        """Streaming without a provider raises."""
        with pytest.raises(ProviderNotInitializedError):
            LLMService().stream_generate("hello", lambda token: None)

    def test_falls_back_to_single_callback(self):
        """Non-streaming providers deliver the whole text in one call."""
        tokens: list[str] = []
        text = LLMService(EchoBackend()).stream_generate("hi", tokens.append)

        assert tokens == ["response for: hi"]
        assert text == "response for: hi"

    def test_passes_through_streaming(self):
        """Streaming providers call on_token per chunk."""
        tokens: list[str] = []
        text = LLMService(WordStreamBackend("one two three")).stream_generate("x", tokens.append)

        assert tokens == ["one ", "two ", "three "]
        assert text == "one two three"


class TestBackendFactory:
    """Tests for get_backend and credential checks."""

    def test_echo_backend(self):
        """The echo backend needs no server or key."""
        assert isinstance(get_backend("echo"), EchoBackend)

    def test_unknown_backend(self):
        """Unknown backend names are rejected."""
        with pytest.raises(ValueError, match="Unknown LLM backend"):
            get_backend("carrier-pigeon")

    @pytest.mark.parametrize("key", ["", "   ", None, "sk abc"])
    def test_malformed_keys_rejected(self, key, monkeypatch):
        """Empty, blank and whitespace-containing keys are invalid."""
        monkeypatch.delenv("EXAMPLE_API_KEY", raising=False)
        with pytest.raises(InvalidCredentialError):
            require_api_key(key, "Example", "EXAMPLE_API_KEY")

    def test_invalid_credential_is_value_error(self):
        """Callers catching ValueError also catch credential errors."""
        assert issubclass(InvalidCredentialError, ValueError)
