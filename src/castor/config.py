"""Provider configuration accessor.

Castor reads provider settings; it never persists them. Anything exposing
``get_provider()`` and ``get_provider_config()`` can drive provider selection,
and :class:`ProviderSettings` is the stock implementation backed by a stored
settings payload or the environment.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from castor.errors import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Mapping

# Environment variables read by ProviderSettings.from_env(), per provider.
_ENV_VARS: dict[str, dict[str, str]] = {
    "gemini": {"api_key": "GEMINI_API_KEY", "model": "GEMINI_MODEL"},
    "openai": {
        "api_key": "OPENAI_API_KEY",
        "base_url": "OPENAI_BASE_URL",
        "model": "OPENAI_MODEL",
    },
    "claude": {"api_key": "ANTHROPIC_API_KEY", "model": "CLAUDE_MODEL"},
    "ollama": {"base_url": "OLLAMA_HOST", "model": "OLLAMA_MODEL"},
}
_PROVIDER_ENV_VAR = "CASTOR_PROVIDER"


@runtime_checkable
class ConfigSource(Protocol):
    """Read-only view of provider settings."""

    def get_provider(self) -> str | None:
        """Return the active provider name, if one is set."""
        ...

    def get_provider_config(self, name: str) -> Mapping[str, str] | None:
        """Return the key/value settings for *name*, if any."""
        ...


class ProviderSettings(BaseModel):
    """Validated provider settings.

    Example:
        settings = ProviderSettings.from_mapping(
            {"provider": "ollama", "providers": {"ollama": {"model": "llama3"}}}
        )
        provider = select_provider(settings)
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    provider: str | None = None
    providers: dict[str, dict[str, str]] = Field(default_factory=dict)

    @field_validator("provider", mode="before")
    @classmethod
    def normalize_provider(cls, v: Any) -> Any:
        """Trim and lowercase the provider name; map empty to None."""
        if isinstance(v, str):
            s = v.strip().lower()
            return s or None
        return v

    @field_validator("providers", mode="before")
    @classmethod
    def normalize_providers(cls, v: Any) -> Any:
        """Trim keys and values, dropping empty values."""
        if v is None:
            return {}
        if not isinstance(v, dict):
            return v
        normalized: dict[Any, Any] = {}
        for name, values in v.items():
            key = name.strip().lower() if isinstance(name, str) else name
            if not isinstance(values, dict):
                normalized[key] = values
                continue
            normalized[key] = {
                k.strip() if isinstance(k, str) else k: val.strip()
                if isinstance(val, str)
                else val
                for k, val in values.items()
                if not (val is None or (isinstance(val, str) and not val.strip()))
            }
        return normalized

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ProviderSettings:
        """Validate a stored settings payload."""
        try:
            return cls.model_validate(dict(data))
        except ValidationError as e:
            err = e.errors()[0]
            loc = ".".join(str(p) for p in err.get("loc", ()))
            raise ConfigurationError(
                f"Invalid provider settings at {loc or '<root>'}: {err.get('msg')}",
                hint="Expected {'provider': str, 'providers': {name: {key: str}}}.",
            ) from e

    @classmethod
    def from_env(cls) -> ProviderSettings:
        """Build settings from environment variables (and a local ``.env``)."""
        load_dotenv()
        providers: dict[str, dict[str, str]] = {}
        for name, env_keys in _ENV_VARS.items():
            values = {
                key: os.environ[env_var]
                for key, env_var in env_keys.items()
                if os.environ.get(env_var)
            }
            if values:
                providers[name] = values
        return cls.from_mapping(
            {"provider": os.environ.get(_PROVIDER_ENV_VAR), "providers": providers}
        )

    def get_provider(self) -> str | None:
        """Return the active provider name, if one is set."""
        return self.provider

    def get_provider_config(self, name: str) -> dict[str, str] | None:
        """Return a copy of the settings for *name*, if any."""
        values = self.providers.get(name)
        return dict(values) if values is not None else None

    def with_provider(
        self, name: str, values: Mapping[str, str]
    ) -> ProviderSettings:
        """Return a copy with *name* active and its values replaced."""
        providers = dict(self.providers)
        providers[name] = dict(values)
        return ProviderSettings.from_mapping({"provider": name, "providers": providers})

    def __str__(self) -> str:
        """Return a representation with API keys redacted."""
        redacted = {
            name: {
                k: "[REDACTED]" if k == "api_key" else v for k, v in values.items()
            }
            for name, values in self.providers.items()
        }
        return f"ProviderSettings(provider={self.provider!r}, providers={redacted!r})"

    __repr__ = __str__
