"""Verno: multi-agent plan/code pipeline."""

__version__ = "0.1.0"
