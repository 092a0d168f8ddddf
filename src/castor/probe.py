"""Connectivity probe for candidate provider settings.

Used before persisting edited credentials or endpoints: a minimal call is made
against the backend and raced against a fixed timeout. The outcome is only
ever success or failure with a human-readable message; callers must not infer
a failure kind from anything but the text.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import logging
from typing import TYPE_CHECKING

import httpx

from castor.config import ProviderSettings
from castor.errors import _walk_exception_chain
from castor.providers.anthropic import ClaudeProvider
from castor.providers.ollama import OllamaProvider
from castor.providers.openai import OpenAIProvider

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Mapping

logger = logging.getLogger(__name__)

PROBE_TIMEOUT_S = 5.0

_REFUSED_MARKERS = ("connection refused", "actively refused", "errno 111")


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of a connectivity probe."""

    ok: bool
    message: str | None = None

    @classmethod
    def success(cls) -> ProbeResult:
        return cls(ok=True)

    @classmethod
    def failure(cls, message: str) -> ProbeResult:
        return cls(ok=False, message=message)


def _is_connection_refused(exc: BaseException) -> bool:
    for e in _walk_exception_chain(exc):
        if isinstance(e, ConnectionRefusedError):
            return True
        if isinstance(e, httpx.ConnectError):
            text = str(e).lower()
            if any(marker in text for marker in _REFUSED_MARKERS):
                return True
    return False


async def _check_openai(settings: ProviderSettings) -> None:
    provider = OpenAIProvider(settings)
    try:
        await provider.list_models()
    finally:
        await provider.aclose()


async def _check_claude(settings: ProviderSettings) -> None:
    provider = ClaudeProvider(settings)
    try:
        await provider.ping()
    finally:
        await provider.aclose()


async def _check_ollama(settings: ProviderSettings) -> None:
    provider = OllamaProvider(settings)
    try:
        await provider.list_models()
    except Exception as e:
        if _is_connection_refused(e):
            raise ConnectionRefusedError(
                f"Could not connect to Ollama at {provider.base_url}. "
                "Is the Ollama service running?"
            ) from e
        raise
    finally:
        await provider.aclose()


_CHECKS: dict[str, Callable[[ProviderSettings], Awaitable[None]]] = {
    "openai": _check_openai,
    "claude": _check_claude,
    "ollama": _check_ollama,
}


async def probe(
    provider: str,
    values: Mapping[str, str],
    *,
    timeout: float = PROBE_TIMEOUT_S,
) -> ProbeResult:
    """Check that *provider* is reachable and accepts *values*.

    Gemini and unknown providers are assumed reachable and are not called.
    Each probe builds its own throwaway provider, so a call abandoned on
    timeout cannot affect any other provider instance.
    """
    name = provider.strip().lower()
    check = _CHECKS.get(name)
    if check is None:
        logger.debug("probe %s: no connectivity check, assuming reachable", name)
        return ProbeResult.success()

    try:
        settings = ProviderSettings().with_provider(name, values)
        await asyncio.wait_for(check(settings), timeout=timeout)
    except asyncio.TimeoutError:
        message = f"Connection timed out after {timeout:g} seconds"
        logger.debug("probe %s: %s", name, message)
        return ProbeResult.failure(message)
    except asyncio.CancelledError:
        raise
    except Exception as e:
        message = str(e) or type(e).__name__
        logger.debug("probe %s failed: %s", name, message)
        return ProbeResult.failure(message)

    logger.debug("probe %s: ok", name)
    return ProbeResult.success()
