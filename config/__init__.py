"""Configuration package."""

from config.settings import settings, Settings, LLMProvider

__all__ = ["settings", "Settings", "LLMProvider"]
