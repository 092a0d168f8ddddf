"""Ollama (local inference) provider over the Ollama REST API."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

import httpx

from castor.errors import UnsupportedOperation
from castor.providers._errors import wrap_provider_error
from castor.providers._utils import (
    count_inline_data,
    join_text,
    parse_tool_arguments,
    provider_values,
)
from castor.providers.base import ProviderCapabilities
from castor.types import EmbedContentResult, TextPart, ToolCallPart, model_result

if TYPE_CHECKING:
    from castor.config import ConfigSource
    from castor.types import (
        CountTokensRequest,
        CountTokensResult,
        EmbedContentRequest,
        GenerateContentRequest,
        GenerateContentResult,
        Part,
        Tool,
    )

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "llama3"
DEFAULT_BASE_URL = "http://localhost:11434"
# Local models can take a while to load on first use.
_REQUEST_TIMEOUT_S = 120.0

_ROLES = {
    "user": "user",
    "model": "assistant",
    "system": "system",
}


def to_ollama_role(role: str) -> str:
    """Map a canonical role onto Ollama's chat vocabulary."""
    return _ROLES.get(role, "user")


def to_ollama_tools(tools: tuple[Tool, ...]) -> list[dict[str, Any]]:
    """Convert every function declaration to an OpenAI-style function schema."""
    converted: list[dict[str, Any]] = []
    for tool in tools:
        for decl in tool.function_declarations:
            converted.append(
                {
                    "type": "function",
                    "function": {
                        "name": decl.name,
                        "description": decl.description,
                        "parameters": decl.parameters or {"type": "object"},
                    },
                }
            )
    return converted


class OllamaProvider:
    """Local inference through an Ollama server.

    Inline data parts are not forwarded: text parts are concatenated and
    anything else is dropped.
    """

    name = "ollama"

    def __init__(self, config: ConfigSource) -> None:
        """Resolve endpoint and model from the ``ollama`` settings."""
        values = provider_values(config, self.name)
        self.base_url = (values.get("base_url") or DEFAULT_BASE_URL).rstrip("/")
        self.model = values.get("model") or DEFAULT_MODEL
        self.embedding_model = values.get("embedding_model") or self.model
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        """Lazily create this provider's own HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url, timeout=_REQUEST_TIMEOUT_S
            )
        return self._client

    @property
    def capabilities(self) -> ProviderCapabilities:
        """Return supported feature flags."""
        return ProviderCapabilities(count_tokens=False, embed=True)

    async def _post(self, path: str, payload: dict[str, Any], *, phase: str) -> Any:
        try:
            response = await self._get_client().post(path, json=payload)
            response.raise_for_status()
            return response.json()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise wrap_provider_error(e, provider=self.name, phase=phase) from e

    async def generate_content(
        self, request: GenerateContentRequest
    ) -> GenerateContentResult:
        """Generate a response using ``/api/chat`` without streaming."""
        messages = []
        dropped = 0
        for content in request.contents:
            dropped += count_inline_data(content.parts)
            messages.append(
                {
                    "role": to_ollama_role(content.role),
                    "content": join_text(content.parts),
                }
            )
        if dropped:
            logger.debug("ollama generate: ignoring %d inline data part(s)", dropped)

        payload: dict[str, Any] = {
            "model": request.model or self.model,
            "messages": messages,
            "stream": False,
        }
        tools = to_ollama_tools(request.tools)
        if tools:
            payload["tools"] = tools
        options: dict[str, Any] = {}
        gen = request.generation_config
        if gen is not None and gen.max_output_tokens is not None:
            options["num_predict"] = gen.max_output_tokens
        if gen is not None and gen.temperature is not None:
            options["temperature"] = gen.temperature
        if options:
            payload["options"] = options

        data = await self._post("/api/chat", payload, phase="generate")
        return _parse_chat_response(data)

    async def count_tokens(self, request: CountTokensRequest) -> CountTokensResult:
        """Raise because Ollama has no token counting endpoint."""
        _ = request
        raise UnsupportedOperation(
            "Token counting is not supported for Ollama models.",
            provider=self.name,
            operation="count_tokens",
        )

    async def embed_content(self, request: EmbedContentRequest) -> EmbedContentResult:
        """Embed the text of a single turn using ``/api/embeddings``."""
        data = await self._post(
            "/api/embeddings",
            {
                "model": request.model or self.embedding_model,
                "prompt": join_text(request.content.parts),
            },
            phase="embed",
        )
        return EmbedContentResult(values=tuple(data.get("embedding") or ()))

    async def list_models(self) -> list[str]:
        """Return the names of locally available models.

        Transport errors propagate unwrapped; the connectivity probe classifies
        them.
        """
        response = await self._get_client().get("/api/tags")
        response.raise_for_status()
        return [m.get("name", "") for m in response.json().get("models", [])]

    async def aclose(self) -> None:
        """Close the HTTP client."""
        client = self._client
        if client is None:
            return
        self._client = None
        await client.aclose()


def _parse_chat_response(data: dict[str, Any]) -> GenerateContentResult:
    """Translate an ``/api/chat`` reply into a single model candidate."""
    message = data.get("message") or {}
    text = message.get("content") or ""

    tool_parts: list[Part] = []
    for tool_call in message.get("tool_calls") or []:
        function = tool_call.get("function") or {}
        name = function.get("name", "")
        tool_parts.append(
            ToolCallPart(
                name=name, args=parse_tool_arguments(name, function.get("arguments"))
            )
        )

    parts: list[Part] = []
    if text or not tool_parts:
        parts.append(TextPart(text))
    parts.extend(tool_parts)

    usage: dict[str, int] = {}
    if "prompt_eval_count" in data or "eval_count" in data:
        input_tokens = int(data.get("prompt_eval_count") or 0)
        output_tokens = int(data.get("eval_count") or 0)
        usage = {
            "input_tokens": input_tokens,
            "output_tokens": output_tokens,
            "total_tokens": input_tokens + output_tokens,
        }

    done_reason = data.get("done_reason")
    return model_result(
        parts,
        finish_reason=done_reason if isinstance(done_reason, str) else None,
        usage=usage,
    )
