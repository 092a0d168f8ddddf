"""Pytest configuration and fixtures.

Provides environment isolation, logging configuration and small builders for
provider settings. Fixtures marked autouse apply to every test.
"""

from __future__ import annotations

from contextlib import suppress
import logging
import os
from typing import TYPE_CHECKING

import pytest

from castor.config import ProviderSettings

if TYPE_CHECKING:
    from collections.abc import Callable

# Environment prefixes read by ProviderSettings.from_env() and the SDKs.
_PROVIDER_ENV_PREFIXES = ("GEMINI_", "OPENAI_", "ANTHROPIC_", "CLAUDE_", "OLLAMA_")

# =============================================================================
# Environment Isolation (Autouse)
# =============================================================================


@pytest.fixture(autouse=True)
def block_dotenv(request, monkeypatch):
    """Prevent python-dotenv from loading project .env files during tests.

    Opt-out: @pytest.mark.allow_dotenv
    """
    if request.node.get_closest_marker("allow_dotenv"):
        return
    with suppress(Exception):
        monkeypatch.setattr(
            "castor.config.load_dotenv", lambda *_args, **_kwargs: False
        )


@pytest.fixture(autouse=True)
def isolate_provider_env(request, monkeypatch):
    """Ensure a clean provider environment for each test.

    Opt-out: @pytest.mark.allow_env_pollution
    """
    if request.node.get_closest_marker("allow_env_pollution"):
        return
    for key in list(os.environ.keys()):
        if key.startswith(_PROVIDER_ENV_PREFIXES):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.delenv("CASTOR_PROVIDER", raising=False)


# =============================================================================
# Logging
# =============================================================================


@pytest.fixture(scope="session", autouse=True)
def quiet_noisy_libraries():
    """Suppress noisy third-party loggers."""
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


# =============================================================================
# Settings Builders
# =============================================================================


@pytest.fixture
def settings_for() -> Callable[..., ProviderSettings]:
    """Return a builder: ``settings_for("ollama", model="llama3")``."""

    def _build(provider: str | None, **values: str) -> ProviderSettings:
        providers = {provider: values} if provider and values else {}
        return ProviderSettings.from_mapping(
            {"provider": provider, "providers": providers}
        )

    return _build
