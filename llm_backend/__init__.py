"""LLM backend abstraction layer.

Provides a unified interface for different LLM providers and the
LLMService facade agents talk to. Supports auto-detection based on
available API keys.

Priority order for "auto" mode:
1. Anthropic (if ANTHROPIC_API_KEY set)
2. OpenAI (if OPENAI_API_KEY set)
3. LM Studio (if running on localhost:1234)
4. Ollama (local fallback)
"""

import logging
import os
import socket

from .base import InvalidCredentialError, LLMBackend, TokenCallback
from .ollama_backend import OllamaBackend
from .scripted_backend import EchoBackend, ScriptedBackend
from .service import LLMService, ProviderNotInitializedError

logger = logging.getLogger(__name__)

__all__ = [
    "EchoBackend",
    "InvalidCredentialError",
    "LLMBackend",
    "LLMService",
    "OllamaBackend",
    "ProviderNotInitializedError",
    "ScriptedBackend",
    "TokenCallback",
    "detect_backend",
    "get_backend",
]

LM_STUDIO_DEFAULT_URL = "http://localhost:1234/v1"

BACKENDS = ("auto", "ollama", "openai", "anthropic", "lmstudio", "echo")


def _lmstudio_running(host: str = "localhost", port: int = 1234) -> bool:
    try:
        with socket.create_connection((host, port), timeout=1):
            return True
    except OSError:
        return False


def detect_backend() -> str:
    """Pick a backend from the environment.

    Returns:
        Backend name: "anthropic", "openai", "lmstudio", or "ollama"
    """
    if os.environ.get("ANTHROPIC_API_KEY"):
        logger.info("Auto-detected: Anthropic API key found")
        return "anthropic"

    if os.environ.get("OPENAI_API_KEY"):
        logger.info("Auto-detected: OpenAI API key found")
        return "openai"

    if _lmstudio_running():
        logger.info("Auto-detected: LM Studio running on localhost:1234")
        return "lmstudio"

    logger.info("Auto-detected: No API keys found, using Ollama (local)")
    return "ollama"


def get_backend(kind: str, **kwargs) -> LLMBackend:
    """Factory function to get an LLM backend instance.

    Args:
        kind: One of BACKENDS. "auto" detects from API keys/services.
        **kwargs: Backend-specific configuration

    Returns:
        LLMBackend instance

    Raises:
        ValueError: If backend type is unknown
        ImportError: If required package not installed
        InvalidCredentialError: If an API backend has no usable key
    """
    if kind == "auto":
        kind = detect_backend()
        logger.info("Auto-selected backend: %s", kind)

    if kind == "ollama":
        return OllamaBackend(**kwargs)
    if kind == "openai":
        from .openai_backend import OpenAIBackend

        return OpenAIBackend(**kwargs)
    if kind == "anthropic":
        from .anthropic_backend import AnthropicBackend

        return AnthropicBackend(**kwargs)
    if kind == "lmstudio":
        # OpenAI-compatible server that ignores the API key
        from .openai_backend import OpenAIBackend

        kwargs.setdefault("base_url", LM_STUDIO_DEFAULT_URL)
        kwargs.setdefault("api_key", "lm-studio")
        kwargs.setdefault("model", "local-model")
        return OpenAIBackend(**kwargs)
    if kind == "echo":
        return EchoBackend(**kwargs)

    raise ValueError(f"Unknown LLM backend: {kind}. Available: {', '.join(BACKENDS)}")
