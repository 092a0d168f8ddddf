"""Shared utilities for provider implementations."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from castor.errors import MalformedToolCallError
from castor.types import InlineDataPart, TextPart, ToolCallPart

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from castor.config import ConfigSource
    from castor.types import Part


def provider_values(config: ConfigSource, name: str) -> Mapping[str, str]:
    """Return *name*'s settings from *config*, or an empty mapping."""
    return config.get_provider_config(name) or {}


def join_text(parts: Iterable[Part]) -> str:
    """Concatenate the text parts, skipping every other kind."""
    return "".join(p.text for p in parts if isinstance(p, TextPart))


def count_inline_data(parts: Iterable[Part]) -> int:
    return sum(1 for p in parts if isinstance(p, InlineDataPart))


def count_tool_calls(parts: Iterable[Part]) -> int:
    return sum(1 for p in parts if isinstance(p, ToolCallPart))


def parse_tool_arguments(name: str, arguments: Any) -> dict[str, Any]:
    """Decode tool-call arguments into a dict.

    Backends return arguments either as a JSON string or as an already-decoded
    object. An empty string decodes to ``{}``. Anything that is not a JSON
    object raises MalformedToolCallError so a corrupt call is never dispatched.
    """
    if isinstance(arguments, dict):
        return arguments
    if arguments is None or (isinstance(arguments, str) and not arguments.strip()):
        return {}
    if not isinstance(arguments, str):
        raise MalformedToolCallError(
            f"Failed to parse tool arguments for tool {name}: "
            f"expected a JSON object, got {type(arguments).__name__}",
            tool_name=name,
        )
    try:
        decoded = json.loads(arguments)
    except ValueError as e:
        raise MalformedToolCallError(
            f"Failed to parse tool arguments for tool {name}: {e}",
            tool_name=name,
        ) from e
    if not isinstance(decoded, dict):
        raise MalformedToolCallError(
            f"Failed to parse tool arguments for tool {name}: "
            f"expected a JSON object, got {type(decoded).__name__}",
            tool_name=name,
        )
    return decoded
