"""OpenAI-compatible provider implementation."""

from __future__ import annotations

import asyncio
import base64
from functools import cache
import logging
from typing import TYPE_CHECKING, Any

from castor.errors import BackendError, ConfigurationError
from castor.providers._errors import wrap_provider_error
from castor.providers._utils import (
    count_tool_calls,
    join_text,
    parse_tool_arguments,
    provider_values,
)
from castor.providers.base import ProviderCapabilities
from castor.types import (
    CountTokensResult,
    EmbedContentResult,
    InlineDataPart,
    TextPart,
    ToolCallPart,
    model_result,
)

if TYPE_CHECKING:
    from castor.config import ConfigSource
    from castor.types import (
        CountTokensRequest,
        EmbedContentRequest,
        GenerateContentRequest,
        GenerateContentResult,
        Part,
        Tool,
    )

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-3.5-turbo"
DEFAULT_EMBEDDING_MODEL = "text-embedding-ada-002"
_TOKENIZER_ENCODING = "cl100k_base"

_ROLES = {
    "user": "user",
    "model": "assistant",
    "system": "system",
    "tool": "tool",
}


def to_openai_role(role: str) -> str:
    """Map a canonical role onto the chat completions vocabulary."""
    return _ROLES.get(role, "user")


def to_openai_content(parts: tuple[Part, ...] | list[Part]) -> list[dict[str, Any]]:
    """Convert canonical parts into ordered chat content blocks.

    Inline data becomes a base64 data URI image block. Tool-call parts are
    not sent back: chat completions needs a call id and a matching tool
    result message, and canonical turns carry neither. A turn holding only
    tool calls therefore becomes an empty block list.
    """
    blocks: list[dict[str, Any]] = []
    for part in parts:
        if isinstance(part, TextPart):
            blocks.append({"type": "text", "text": part.text})
        elif isinstance(part, InlineDataPart):
            encoded = base64.b64encode(part.data).decode("ascii")
            blocks.append(
                {
                    "type": "image_url",
                    "image_url": {"url": f"data:{part.mime_type};base64,{encoded}"},
                }
            )
    return blocks


def to_openai_tools(tools: tuple[Tool, ...]) -> list[dict[str, Any]]:
    """Build one function schema per tool group from its first declaration."""
    converted: list[dict[str, Any]] = []
    for tool in tools:
        if not tool.function_declarations:
            continue
        decl = tool.function_declarations[0]
        function: dict[str, Any] = {"name": decl.name}
        if decl.description:
            function["description"] = decl.description
        if decl.parameters is not None:
            function["parameters"] = decl.parameters
        converted.append({"type": "function", "function": function})
    return converted


@cache
def _get_encoding() -> Any:
    import tiktoken

    return tiktoken.get_encoding(_TOKENIZER_ENCODING)


class OpenAIProvider:
    """OpenAI chat completions provider; works with any compatible endpoint."""

    name = "openai"

    def __init__(self, config: ConfigSource) -> None:
        """Resolve credentials, endpoint and model from the ``openai`` settings."""
        values = provider_values(config, self.name)
        self.api_key = values.get("api_key")
        self.base_url = values.get("base_url")
        self.model = values.get("model") or DEFAULT_MODEL
        self.embedding_model = values.get("embedding_model") or DEFAULT_EMBEDDING_MODEL
        self._client: Any = None

    def _get_client(self) -> Any:
        """Lazily initialize and return the OpenAI client."""
        if self._client is None:
            try:
                from openai import AsyncOpenAI
            except ImportError as e:
                raise ConfigurationError(
                    "openai package not installed",
                    hint="pip install openai",
                ) from e
            self._client = AsyncOpenAI(api_key=self.api_key, base_url=self.base_url)
        return self._client

    @property
    def capabilities(self) -> ProviderCapabilities:
        """Return supported feature flags."""
        return ProviderCapabilities(
            count_tokens=True, embed=True, approximate_token_count=True
        )

    async def generate_content(
        self, request: GenerateContentRequest
    ) -> GenerateContentResult:
        """Generate a response using the chat completions endpoint."""
        messages = [
            {
                "role": to_openai_role(content.role),
                "content": to_openai_content(content.parts),
            }
            for content in request.contents
        ]
        dropped = sum(count_tool_calls(c.parts) for c in request.contents)
        if dropped:
            logger.debug("openai generate: ignoring %d tool call part(s)", dropped)
        create_kwargs: dict[str, Any] = {
            "model": request.model or self.model,
            "messages": messages,
        }
        tools = to_openai_tools(request.tools)
        if tools:
            create_kwargs["tools"] = tools
        gen = request.generation_config
        if gen is not None and gen.max_output_tokens is not None:
            create_kwargs["max_tokens"] = gen.max_output_tokens
        if gen is not None and gen.temperature is not None:
            create_kwargs["temperature"] = gen.temperature

        logger.debug(
            "openai generate: model=%s messages=%d tools=%d",
            create_kwargs["model"],
            len(messages),
            len(tools),
        )
        try:
            client = self._get_client()
            response = await client.chat.completions.create(**create_kwargs)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise wrap_provider_error(e, provider=self.name, phase="generate") from e
        return _parse_response(response)

    async def count_tokens(self, request: CountTokensRequest) -> CountTokensResult:
        """Approximate the token count locally with tiktoken.

        The first call may download the encoding, so loading and encoding run
        in a worker thread.
        """
        text = "".join(join_text(content.parts) for content in request.contents)
        try:
            encoding = await asyncio.to_thread(_get_encoding)
        except Exception as e:
            raise wrap_provider_error(
                e,
                provider=self.name,
                phase="count_tokens",
                hint="tiktoken could not load its encoding; check network access.",
            ) from e
        tokens = await asyncio.to_thread(encoding.encode, text)
        return CountTokensResult(total_tokens=len(tokens))

    async def embed_content(self, request: EmbedContentRequest) -> EmbedContentResult:
        """Embed the text of a single turn."""
        try:
            client = self._get_client()
            response = await client.embeddings.create(
                model=request.model or self.embedding_model,
                input=join_text(request.content.parts),
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise wrap_provider_error(e, provider=self.name, phase="embed") from e
        return EmbedContentResult(values=tuple(response.data[0].embedding))

    async def list_models(self) -> list[str]:
        """Return the model ids the endpoint advertises.

        SDK errors propagate unwrapped; the connectivity probe reports them
        verbatim.
        """
        client = self._get_client()
        page = await client.models.list()
        return [m.id for m in getattr(page, "data", [])]

    async def aclose(self) -> None:
        """Close underlying async client resources."""
        client = self._client
        if client is None:
            return
        self._client = None
        await client.close()


def _parse_response(response: Any) -> GenerateContentResult:
    """Translate a chat completion into a single model candidate."""
    choices = getattr(response, "choices", None) or []
    if not choices:
        raise BackendError(
            "openai generate returned no choices",
            hint="The response may have been content-filtered by the endpoint.",
            provider="openai",
            phase="generate",
        )
    choice = choices[0]
    message = choice.message
    text = message.content or ""

    tool_parts: list[Part] = []
    for tool_call in getattr(message, "tool_calls", None) or []:
        name = tool_call.function.name
        tool_parts.append(
            ToolCallPart(
                name=name,
                args=parse_tool_arguments(name, tool_call.function.arguments),
            )
        )

    parts: list[Part] = []
    if text or not tool_parts:
        parts.append(TextPart(text))
    parts.extend(tool_parts)

    usage: dict[str, int] = {}
    usage_raw = getattr(response, "usage", None)
    if usage_raw is not None:
        usage = {
            "input_tokens": int(getattr(usage_raw, "prompt_tokens", 0) or 0),
            "output_tokens": int(getattr(usage_raw, "completion_tokens", 0) or 0),
            "total_tokens": int(getattr(usage_raw, "total_tokens", 0) or 0),
        }

    finish_reason = getattr(choice, "finish_reason", None)
    return model_result(
        parts,
        finish_reason=finish_reason if isinstance(finish_reason, str) else None,
        usage=usage,
    )
