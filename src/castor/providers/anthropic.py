"""Anthropic Messages API provider."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from castor.errors import (
    ConfigurationError,
    UnsupportedContentError,
    UnsupportedOperation,
)
from castor.providers._errors import wrap_provider_error
from castor.providers._utils import (
    count_inline_data,
    count_tool_calls,
    join_text,
    parse_tool_arguments,
    provider_values,
)
from castor.providers.base import ProviderCapabilities
from castor.types import TextPart, ToolCallPart, model_result

if TYPE_CHECKING:
    from castor.config import ConfigSource
    from castor.types import (
        Content,
        CountTokensRequest,
        CountTokensResult,
        EmbedContentRequest,
        EmbedContentResult,
        GenerateContentRequest,
        GenerateContentResult,
        Part,
        Tool,
    )

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-3-opus-20240229"
_ANTHROPIC_MAX_TOKENS = 4096


def to_claude_role(role: str) -> str:
    """Map a canonical role onto Anthropic's user/assistant pair."""
    return "assistant" if role == "model" else "user"


def to_claude_content(content: Content) -> str:
    """Flatten a turn to a single string.

    Raises UnsupportedContentError when the turn carries inline data.
    Tool-call parts are not sent back: a ``tool_use`` block needs an id and a
    matching ``tool_result``, and canonical turns carry neither. A turn
    holding only tool calls therefore flattens to ``""``.
    """
    if count_inline_data(content.parts):
        raise UnsupportedContentError(
            "The Claude provider does not support image input.",
            provider="claude",
            hint="Remove inline data parts or select a provider that accepts images.",
        )
    return join_text(content.parts)


def to_claude_tools(tools: tuple[Tool, ...]) -> list[dict[str, Any]]:
    """Convert every function declaration to Anthropic's tool format."""
    converted: list[dict[str, Any]] = []
    for tool in tools:
        for decl in tool.function_declarations:
            tool_def: dict[str, Any] = {
                "name": decl.name,
                "input_schema": decl.parameters or {"type": "object"},
            }
            if decl.description:
                tool_def["description"] = decl.description
            converted.append(tool_def)
    return converted


class ClaudeProvider:
    """Anthropic Messages API provider."""

    name = "claude"

    def __init__(self, config: ConfigSource) -> None:
        """Resolve credentials and model from the ``claude`` settings."""
        values = provider_values(config, self.name)
        self.api_key = values.get("api_key")
        self.base_url = values.get("base_url")
        self.model = values.get("model") or DEFAULT_MODEL
        self._client: Any = None

    def _get_client(self) -> Any:
        """Lazily initialize and return the async Anthropic client."""
        if self._client is None:
            try:
                from anthropic import AsyncAnthropic
            except ImportError as e:
                raise ConfigurationError(
                    "anthropic package not installed",
                    hint="pip install anthropic",
                ) from e
            self._client = AsyncAnthropic(api_key=self.api_key, base_url=self.base_url)
        return self._client

    @property
    def capabilities(self) -> ProviderCapabilities:
        """Return supported feature flags."""
        return ProviderCapabilities(count_tokens=False, embed=False)

    async def generate_content(
        self, request: GenerateContentRequest
    ) -> GenerateContentResult:
        """Generate a response using Anthropic's Messages API."""
        # Validate every turn before touching the client.
        messages = [
            {"role": to_claude_role(c.role), "content": to_claude_content(c)}
            for c in request.contents
        ]
        dropped = sum(count_tool_calls(c.parts) for c in request.contents)
        if dropped:
            logger.debug("claude generate: ignoring %d tool call part(s)", dropped)

        gen = request.generation_config
        create_kwargs: dict[str, Any] = {
            "model": request.model or self.model,
            "max_tokens": (
                gen.max_output_tokens
                if gen is not None and gen.max_output_tokens is not None
                else _ANTHROPIC_MAX_TOKENS
            ),
            "messages": messages,
        }
        if gen is not None and gen.temperature is not None:
            create_kwargs["temperature"] = gen.temperature
        tools = to_claude_tools(request.tools)
        if tools:
            create_kwargs["tools"] = tools

        logger.debug(
            "claude generate: model=%s messages=%d tools=%d",
            create_kwargs["model"],
            len(messages),
            len(tools),
        )
        try:
            client = self._get_client()
            response = await client.messages.create(**create_kwargs)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise wrap_provider_error(e, provider=self.name, phase="generate") from e
        return _parse_response(response)

    async def count_tokens(self, request: CountTokensRequest) -> CountTokensResult:
        """Raise because token counting is not available for Claude."""
        _ = request
        raise UnsupportedOperation(
            "Token counting is not supported for Claude models.",
            provider=self.name,
            operation="count_tokens",
        )

    async def embed_content(self, request: EmbedContentRequest) -> EmbedContentResult:
        """Raise because Anthropic has no embedding API."""
        _ = request
        raise UnsupportedOperation(
            "Embedding is not supported for Claude models.",
            provider=self.name,
            operation="embed",
        )

    async def ping(self) -> None:
        """Issue a one-token generation to confirm reachability and credentials.

        SDK errors propagate unwrapped so the probe can surface them verbatim.
        """
        client = self._get_client()
        await client.messages.create(
            model=self.model,
            max_tokens=1,
            messages=[{"role": "user", "content": "test"}],
        )

    async def aclose(self) -> None:
        """Close underlying async client resources."""
        client = self._client
        if client is None:
            return
        self._client = None
        await client.close()


def _parse_response(response: Any) -> GenerateContentResult:
    """Parse an Anthropic Message into a single model candidate."""
    text_parts: list[str] = []
    tool_parts: list[Part] = []
    for block in getattr(response, "content", None) or []:
        block_type = getattr(block, "type", None)
        if block_type == "text":
            text_parts.append(getattr(block, "text", ""))
        elif block_type == "tool_use":
            name = getattr(block, "name", "")
            tool_parts.append(
                ToolCallPart(
                    name=name,
                    args=parse_tool_arguments(name, getattr(block, "input", None)),
                )
            )

    text = "".join(text_parts)
    parts: list[Part] = []
    if text or not tool_parts:
        parts.append(TextPart(text))
    parts.extend(tool_parts)

    usage: dict[str, int] = {}
    usage_raw = getattr(response, "usage", None)
    if usage_raw is not None:
        input_tokens = int(getattr(usage_raw, "input_tokens", 0) or 0)
        output_tokens = int(getattr(usage_raw, "output_tokens", 0) or 0)
        usage = {
            "input_tokens": input_tokens,
            "output_tokens": output_tokens,
            "total_tokens": input_tokens + output_tokens,
        }

    return model_result(
        parts,
        finish_reason=_normalize_stop_reason(getattr(response, "stop_reason", None)),
        usage=usage,
    )


def _normalize_stop_reason(stop_reason: Any) -> str | None:
    """Map Anthropic stop_reason to a normalized lowercase string."""
    if stop_reason is None:
        return None
    reason = str(stop_reason).lower()

    mapping: dict[str, str] = {
        "end_turn": "stop",
        "stop_sequence": "stop",
        "max_tokens": "max_tokens",
        "tool_use": "tool_calls",
    }
    return mapping.get(reason, reason)
