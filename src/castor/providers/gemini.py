"""Gemini (first-party) provider implementation.

The canonical vocabulary mirrors Gemini's own, so translation here is a
one-to-one rewrap into ``google.genai.types``.
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import TYPE_CHECKING, Any

from castor.errors import ConfigurationError
from castor.providers._errors import wrap_provider_error
from castor.providers._utils import provider_values
from castor.providers.base import ProviderCapabilities
from castor.types import (
    Candidate,
    Content,
    CountTokensResult,
    EmbedContentResult,
    GenerateContentResult,
    InlineDataPart,
    TextPart,
    ToolCallPart,
)

if TYPE_CHECKING:
    from castor.config import ConfigSource
    from castor.types import (
        CountTokensRequest,
        EmbedContentRequest,
        GenerateContentRequest,
        Part,
        Tool,
    )

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.5-pro"
DEFAULT_EMBEDDING_MODEL = "text-embedding-004"


def to_gemini_role(role: str) -> str:
    """Gemini contents only take ``user`` and ``model``."""
    return "model" if role == "model" else "user"


def to_gemini_content(content: Content) -> Any:
    """Rewrap a canonical turn as a ``types.Content``."""
    from google.genai import types

    parts: list[Any] = []
    for part in content.parts:
        if isinstance(part, TextPart):
            parts.append(types.Part(text=part.text))
        elif isinstance(part, InlineDataPart):
            parts.append(
                types.Part(
                    inline_data=types.Blob(mime_type=part.mime_type, data=part.data)
                )
            )
        elif isinstance(part, ToolCallPart):
            parts.append(
                types.Part(
                    function_call=types.FunctionCall(name=part.name, args=part.args)
                )
            )
    return types.Content(role=to_gemini_role(content.role), parts=parts)


def to_gemini_tools(tools: tuple[Tool, ...]) -> list[Any]:
    """Forward every tool group with all of its declarations."""
    from google.genai import types

    converted: list[Any] = []
    for tool in tools:
        if not tool.function_declarations:
            continue
        converted.append(
            types.Tool(
                function_declarations=[
                    types.FunctionDeclaration(
                        name=decl.name,
                        description=decl.description,
                        parameters=decl.parameters,
                    )
                    for decl in tool.function_declarations
                ]
            )
        )
    return converted


class GeminiProvider:
    """Google Gemini API provider."""

    name = "gemini"

    def __init__(self, config: ConfigSource) -> None:
        """Resolve credentials and models from the ``gemini`` settings.

        Without an explicit key the ``GEMINI_API_KEY`` environment variable is
        used.
        """
        values = provider_values(config, self.name)
        self.api_key = values.get("api_key") or os.environ.get("GEMINI_API_KEY")
        self.model = values.get("model") or DEFAULT_MODEL
        self.embedding_model = values.get("embedding_model") or DEFAULT_EMBEDDING_MODEL
        self._client: Any = None

    def _get_client(self) -> Any:
        """Lazy-initialize the Gemini client."""
        if self._client is None:
            try:
                from google import genai
            except ImportError as e:
                raise ConfigurationError(
                    "google-genai package not installed",
                    hint="pip install google-genai",
                ) from e
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    @property
    def capabilities(self) -> ProviderCapabilities:
        """Return supported feature flags."""
        return ProviderCapabilities(count_tokens=True, embed=True)

    async def generate_content(
        self, request: GenerateContentRequest
    ) -> GenerateContentResult:
        """Generate content from the Gemini model."""
        from google.genai import types

        config_kwargs: dict[str, Any] = {}
        gen = request.generation_config
        if gen is not None and gen.max_output_tokens is not None:
            config_kwargs["max_output_tokens"] = gen.max_output_tokens
        if gen is not None and gen.temperature is not None:
            config_kwargs["temperature"] = gen.temperature
        tools = to_gemini_tools(request.tools)
        if tools:
            config_kwargs["tools"] = tools

        model = request.model or self.model
        contents = [to_gemini_content(c) for c in request.contents]
        logger.debug(
            "gemini generate: model=%s contents=%d tools=%d",
            model,
            len(contents),
            len(tools),
        )
        try:
            client = self._get_client()
            response = await client.aio.models.generate_content(
                model=model,
                contents=contents,
                config=types.GenerateContentConfig(**config_kwargs),
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise wrap_provider_error(e, provider=self.name, phase="generate") from e
        return _parse_response(response)

    async def count_tokens(self, request: CountTokensRequest) -> CountTokensResult:
        """Count tokens with Gemini's native counter."""
        contents = [to_gemini_content(c) for c in request.contents]
        try:
            client = self._get_client()
            response = await client.aio.models.count_tokens(
                model=self.model, contents=contents
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise wrap_provider_error(
                e, provider=self.name, phase="count_tokens"
            ) from e
        return CountTokensResult(total_tokens=int(response.total_tokens or 0))

    async def embed_content(self, request: EmbedContentRequest) -> EmbedContentResult:
        """Embed a single turn with Gemini's embedding model."""
        try:
            client = self._get_client()
            response = await client.aio.models.embed_content(
                model=request.model or self.embedding_model,
                contents=[to_gemini_content(request.content)],
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise wrap_provider_error(e, provider=self.name, phase="embed") from e
        embeddings = getattr(response, "embeddings", None) or []
        values = embeddings[0].values if embeddings else None
        return EmbedContentResult(values=tuple(values or ()))

    async def aclose(self) -> None:
        """Close underlying async client resources."""
        client = self._client
        if client is None:
            return
        self._client = None
        await client.aio.aclose()


def _parse_candidate(candidate: Any) -> Candidate:
    """Translate one Gemini candidate, skipping thought parts."""
    parts: list[Part] = []
    content = getattr(candidate, "content", None)
    for part in getattr(content, "parts", None) or []:
        if getattr(part, "thought", False):
            continue
        function_call = getattr(part, "function_call", None)
        if function_call is not None:
            parts.append(
                ToolCallPart(
                    name=str(function_call.name), args=dict(function_call.args or {})
                )
            )
            continue
        text = getattr(part, "text", None)
        if isinstance(text, str):
            parts.append(TextPart(text))
    if not parts:
        parts.append(TextPart(""))

    finish_reason = getattr(candidate, "finish_reason", None)
    if finish_reason is not None:
        finish_reason = str(getattr(finish_reason, "value", finish_reason)).lower()
    return Candidate(
        content=Content(role="model", parts=tuple(parts)),
        finish_reason=finish_reason,
    )


def _parse_response(response: Any) -> GenerateContentResult:
    """Parse a Gemini response, keeping every candidate."""
    candidates = [
        _parse_candidate(c) for c in getattr(response, "candidates", None) or []
    ]
    if not candidates:
        candidates = [Candidate(content=Content(role="model", parts=(TextPart(""),)))]

    usage: dict[str, int] = {}
    um = getattr(response, "usage_metadata", None)
    if um is not None:
        # Gemini SDK attrs -> provider-agnostic keys
        usage = {
            "input_tokens": int(getattr(um, "prompt_token_count", 0) or 0),
            "output_tokens": int(getattr(um, "candidates_token_count", 0) or 0),
            "total_tokens": int(getattr(um, "total_token_count", 0) or 0),
        }
    return GenerateContentResult(candidates=tuple(candidates), usage=usage)
