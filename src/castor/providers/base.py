"""Provider protocol: the contract every backend translator satisfies."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from castor.types import (
        CountTokensRequest,
        CountTokensResult,
        EmbedContentRequest,
        EmbedContentResult,
        GenerateContentRequest,
        GenerateContentResult,
    )


@dataclass(frozen=True)
class ProviderCapabilities:
    """Operations a provider supports beyond generation.

    ``approximate_token_count`` marks token counts computed client-side
    rather than reported by the backend.
    """

    count_tokens: bool
    embed: bool
    approximate_token_count: bool = False


@runtime_checkable
class Provider(Protocol):
    """Minimal provider protocol: generate, count tokens, embed."""

    name: str

    async def generate_content(
        self, request: GenerateContentRequest
    ) -> GenerateContentResult:
        """Generate a model turn for the given conversation."""
        ...

    async def count_tokens(self, request: CountTokensRequest) -> CountTokensResult:
        """Count the tokens in the given conversation."""
        ...

    async def embed_content(self, request: EmbedContentRequest) -> EmbedContentResult:
        """Embed a single turn."""
        ...

    @property
    def capabilities(self) -> ProviderCapabilities:
        """Capability flags callers can check before calling."""
        ...
