"""Canonical request/response vocabulary shared by every provider.

These are plain value types. Only the translators in ``castor.providers``
interpret the part variants; nothing here talks to a backend.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Union

Role = Literal["user", "model", "system", "tool"]

ProviderName = Literal["gemini", "openai", "claude", "ollama"]


@dataclass(frozen=True)
class TextPart:
    """Plain text."""

    text: str


@dataclass(frozen=True)
class InlineDataPart:
    """Binary payload sent inline, e.g. an image."""

    mime_type: str
    data: bytes


@dataclass(frozen=True)
class ToolCallPart:
    """A model-requested invocation of a caller-supplied function."""

    name: str
    args: dict[str, Any] = field(default_factory=dict)


Part = Union[TextPart, InlineDataPart, ToolCallPart]


@dataclass(frozen=True)
class Content:
    """One conversation turn.

    ``role`` is usually one of :data:`Role`; translators map anything else to
    their backend's user role.
    """

    role: str
    parts: tuple[Part, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "parts", tuple(self.parts))

    @classmethod
    def from_text(cls, text: str, role: str = "user") -> Content:
        """Build a single-part text turn."""
        return cls(role=role, parts=(TextPart(text),))

    @property
    def text(self) -> str:
        """Concatenated text of all text parts."""
        return "".join(p.text for p in self.parts if isinstance(p, TextPart))


@dataclass(frozen=True)
class FunctionDeclaration:
    """A callable the model may request, with a JSON-schema parameter spec."""

    name: str
    description: str = ""
    parameters: dict[str, Any] | None = None


@dataclass(frozen=True)
class Tool:
    """A group of function declarations."""

    function_declarations: tuple[FunctionDeclaration, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "function_declarations", tuple(self.function_declarations)
        )


@dataclass(frozen=True)
class GenerationConfig:
    """Optional per-request generation parameters."""

    model: str | None = None
    max_output_tokens: int | None = None
    temperature: float | None = None


@dataclass(frozen=True)
class GenerateContentRequest:
    """A generation call: the conversation plus optional tools and parameters."""

    contents: tuple[Content, ...]
    tools: tuple[Tool, ...] = ()
    generation_config: GenerationConfig | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "contents", tuple(self.contents))
        object.__setattr__(self, "tools", tuple(self.tools))

    @property
    def model(self) -> str | None:
        """Model requested for this call, if any."""
        if self.generation_config is None:
            return None
        return self.generation_config.model


@dataclass(frozen=True)
class Candidate:
    """One candidate answer. ``content.role`` is always ``"model"``."""

    content: Content
    finish_reason: str | None = None


@dataclass(frozen=True)
class GenerateContentResult:
    """Result of a generation call."""

    candidates: tuple[Candidate, ...]
    usage: dict[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "candidates", tuple(self.candidates))

    @property
    def text(self) -> str:
        """Text of the first candidate, or ``""`` when there is none."""
        if not self.candidates:
            return ""
        return self.candidates[0].content.text

    @property
    def tool_calls(self) -> list[ToolCallPart]:
        """Tool calls requested by the first candidate."""
        if not self.candidates:
            return []
        return [
            p for p in self.candidates[0].content.parts if isinstance(p, ToolCallPart)
        ]


@dataclass(frozen=True)
class CountTokensRequest:
    contents: tuple[Content, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "contents", tuple(self.contents))


@dataclass(frozen=True)
class CountTokensResult:
    total_tokens: int


@dataclass(frozen=True)
class EmbedContentRequest:
    """Embed a single turn. ``model`` overrides the configured embedding model."""

    content: Content
    model: str | None = None


@dataclass(frozen=True)
class EmbedContentResult:
    values: tuple[float, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", tuple(self.values))


def model_result(
    parts: list[Part],
    *,
    finish_reason: str | None = None,
    usage: dict[str, int] | None = None,
) -> GenerateContentResult:
    """Wrap translated parts as a single model-role candidate."""
    return GenerateContentResult(
        candidates=(
            Candidate(
                content=Content(role="model", parts=tuple(parts)),
                finish_reason=finish_reason,
            ),
        ),
        usage=usage or {},
    )
