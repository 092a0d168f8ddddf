"""Shared provider-side error helpers.

Providers map SDK exceptions into BackendError so callers see one error type
for transport, authentication and quota failures.
"""

from __future__ import annotations

import asyncio

from castor.errors import BackendError, CastorError, _walk_exception_chain

# Setting that holds each provider's credential, for auth hints.
_API_KEY_SETTINGS = {
    "gemini": "GEMINI_API_KEY",
    "openai": "OPENAI_API_KEY",
    "claude": "ANTHROPIC_API_KEY",
}


def extract_status_code(exc: BaseException) -> int | None:
    """Walk the exception chain to find an HTTP status code."""
    for e in _walk_exception_chain(exc):
        for attr in ("status_code", "status", "code"):
            value = getattr(e, attr, None)
            if isinstance(value, int) and 100 <= value <= 599:
                return value
        response = getattr(e, "response", None)
        value = getattr(response, "status_code", None)
        if isinstance(value, int) and 100 <= value <= 599:
            return value
    return None


def _auth_hint(
    provider: str, status_code: int | None, cause_message: str
) -> str | None:
    """Generate a hint for auth errors where naming the credential is useful."""
    cause_lower = cause_message.lower()
    if status_code in {401, 403} or (
        status_code == 400 and ("api key" in cause_lower or "api_key" in cause_lower)
    ):
        setting = _API_KEY_SETTINGS.get(provider, "API key")
        return f"Check credentials/permissions (try setting {setting} or api_key)."
    return None


def wrap_provider_error(
    exc: BaseException,
    *,
    provider: str,
    phase: str,
    hint: str | None = None,
) -> CastorError:
    """Map provider SDK exceptions into BackendError, keeping the SDK message."""
    if isinstance(exc, asyncio.CancelledError):
        raise exc

    # Already one of ours: fill in missing context only.
    if isinstance(exc, BackendError):
        if exc.provider is None:
            exc.provider = provider
        if exc.phase is None:
            exc.phase = phase
        if hint is not None and exc.hint is None:
            exc.hint = hint
        return exc
    if isinstance(exc, CastorError):
        return exc

    status_code = extract_status_code(exc)
    cause = str(exc)
    derived_hint = (
        hint if hint is not None else _auth_hint(provider, status_code, cause)
    )

    return BackendError(
        cause or f"{provider} {phase} failed",
        hint=derived_hint,
        status_code=status_code,
        provider=provider,
        phase=phase,
    )
