"""Configuration management for Verno.

Loads configuration from:
1. config.toml (defaults)
2. Environment variables (overrides)
"""

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from dotenv import load_dotenv

# Load .env file if present
load_dotenv()


@dataclass
class LLMConfig:
    """LLM backend configuration."""

    backend: str = "auto"  # "auto", "ollama", "openai", "anthropic", "lmstudio", "echo"
    model: str = ""  # Empty = the backend's default model
    base_url: str = ""  # Empty = the backend's default endpoint
    timeout: int = 600
    max_retries: int = 3
    retry_delay_ms: int = 1000

    def backend_kwargs(self) -> dict[str, Any]:
        """Constructor arguments for ``get_backend``, skipping unset values."""
        kwargs: dict[str, Any] = {"timeout": self.timeout}
        if self.model:
            kwargs["model"] = self.model
        if self.base_url:
            kwargs["base_url"] = self.base_url
        return kwargs


@dataclass
class PipelineConfig:
    """Pipeline execution configuration."""

    app_dir: str = ".verno"
    log_level: str = "INFO"
    default_stages: list[str] = field(
        default_factory=lambda: [
            "analyst",
            "architect",
            "uxdesigner",
            "developer",
            "pm",
            "qa",
            "techwriter",
            "quickflowdev",
        ]
    )
    clear_state_on_complete: bool = False  # Delete plan state once nothing is pending
    review_retry: bool = True  # Re-run the developer once when review finds skeleton code
    debug_dump: bool = True  # Write raw stage outputs to <app_dir>llm/


@dataclass
class AgentsConfig:
    """Agent prompt budget configuration."""

    max_context_chars: int = 8000  # Previous-output characters fed into a prompt
    scan_max_files: int = 15  # Existing files shown to the developer in edit mode
    scan_max_file_chars: int = 3000
    workspace_checks: bool = True  # Run compile/test commands during code review


@dataclass
class Config:
    """Main configuration container."""

    llm: LLMConfig = field(default_factory=LLMConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    agents: AgentsConfig = field(default_factory=AgentsConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Config":
        """Create Config from dictionary."""
        llm_data = data.get("llm", {})
        pipeline_data = data.get("pipeline", {})
        agents_data = data.get("agents", {})

        return cls(
            llm=LLMConfig(**llm_data),
            pipeline=PipelineConfig(**pipeline_data),
            agents=AgentsConfig(**agents_data),
        )


def find_config_file(start: Path | None = None) -> Path | None:
    """Find config.toml in the start directory or its parents.

    Args:
        start: Directory to search from (default: current directory)

    Returns:
        Path to config.toml or None if not found.
    """
    current = start or Path.cwd()

    for directory in [current, *current.parents]:
        config_path = directory / "config.toml"
        if config_path.exists():
            return config_path

    return None


def load_config(config_path: Path | str | None = None) -> Config:
    """Load configuration from file and environment.

    Args:
        config_path: Optional explicit path to config.toml

    Returns:
        Config object with merged settings.
    """
    # Start with defaults
    config_data: dict[str, Any] = {}

    # Load from file if available
    if config_path is None:
        config_path = find_config_file()

    if config_path is not None:
        path = Path(config_path)
        if path.exists():
            with open(path, "rb") as f:
                config_data = tomllib.load(f)

    # Apply environment variable overrides
    env_overrides = {
        "llm": {
            "backend": os.getenv("LLM_BACKEND"),
            "model": os.getenv("LLM_MODEL"),
            "base_url": os.getenv("OLLAMA_BASE_URL"),
            "timeout": _int_or_none(os.getenv("LLM_TIMEOUT")),
            "max_retries": _int_or_none(os.getenv("LLM_MAX_RETRIES")),
            "retry_delay_ms": _int_or_none(os.getenv("LLM_RETRY_DELAY_MS")),
        },
        "pipeline": {
            "app_dir": os.getenv("VERNO_APP_DIR"),
            "log_level": os.getenv("LOG_LEVEL"),
        },
    }

    # Merge env overrides (only non-None values)
    for section, values in env_overrides.items():
        if section not in config_data:
            config_data[section] = {}
        for key, value in values.items():
            if value is not None:
                config_data[section][key] = value

    return Config.from_dict(config_data)


def _int_or_none(value: str | None) -> int | None:
    """Convert string to int, or return None."""
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


# Global config instance (lazy loaded)
_config: Config | None = None


def get_config() -> Config:
    """Get the global configuration instance.

    Returns:
        Config object (loaded once, cached).
    """
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config() -> Config:
    """Force reload of configuration.

    Returns:
        Fresh Config object.
    """
    global _config
    _config = load_config()
    return _config
