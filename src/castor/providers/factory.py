"""Provider selection."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from castor.providers.anthropic import ClaudeProvider
from castor.providers.gemini import GeminiProvider
from castor.providers.ollama import OllamaProvider
from castor.providers.openai import OpenAIProvider

if TYPE_CHECKING:
    from collections.abc import Callable

    from castor.config import ConfigSource
    from castor.providers.base import Provider

logger = logging.getLogger(__name__)

DEFAULT_PROVIDER = "gemini"

_PROVIDERS: dict[str, Callable[[ConfigSource], Provider]] = {
    "gemini": GeminiProvider,
    "openai": OpenAIProvider,
    "claude": ClaudeProvider,
    "ollama": OllamaProvider,
}


def resolve_provider_name(config: ConfigSource) -> str:
    """Return the configured provider, or the default when unset or unknown."""
    value = (config.get_provider() or "").strip().lower()
    if value in _PROVIDERS:
        return value
    if value:
        logger.debug("Unknown provider %r; using %s", value, DEFAULT_PROVIDER)
    return DEFAULT_PROVIDER


def select_provider(config: ConfigSource) -> Provider:
    """Build the provider named by *config*.

    Call once per configuration change and reuse the result; the provider
    keeps its resolved settings and client for its lifetime.
    """
    name = resolve_provider_name(config)
    logger.debug("Selected provider %s", name)
    return _PROVIDERS[name](config)
