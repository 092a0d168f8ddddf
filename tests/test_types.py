from __future__ import annotations

from dataclasses import FrozenInstanceError

import pytest

from castor.types import (
    Candidate,
    Content,
    GenerateContentRequest,
    GenerateContentResult,
    GenerationConfig,
    InlineDataPart,
    TextPart,
    Tool,
    ToolCallPart,
    model_result,
)

pytestmark = pytest.mark.unit


def test_content_from_text_defaults_to_user_role() -> None:
    content = Content.from_text("hello")
    assert content.role == "user"
    assert content.parts == (TextPart("hello"),)


def test_content_text_skips_non_text_parts() -> None:
    content = Content(
        role="user",
        parts=[
            TextPart("a"),
            InlineDataPart("image/png", b"\x89PNG"),
            ToolCallPart("f", {"x": 1}),
            TextPart("b"),
        ],
    )
    assert content.text == "ab"


def test_sequences_are_frozen_into_tuples() -> None:
    parts = [TextPart("a")]
    content = Content(role="user", parts=parts)
    parts.append(TextPart("b"))

    assert content.parts == (TextPart("a"),)

    request = GenerateContentRequest(contents=[content], tools=[Tool()])
    assert isinstance(request.contents, tuple)
    assert isinstance(request.tools, tuple)


def test_request_is_immutable() -> None:
    request = GenerateContentRequest(contents=[Content.from_text("hi")])
    with pytest.raises(FrozenInstanceError):
        request.contents = ()  # type: ignore[misc]


def test_request_model_comes_from_generation_config() -> None:
    assert GenerateContentRequest(contents=()).model is None
    request = GenerateContentRequest(
        contents=(), generation_config=GenerationConfig(model="m")
    )
    assert request.model == "m"


def test_value_equality() -> None:
    assert Content.from_text("x") == Content(role="user", parts=(TextPart("x"),))
    assert ToolCallPart("f", {"a": 1}) == ToolCallPart("f", {"a": 1})


def test_model_result_wraps_parts_in_model_candidate() -> None:
    result = model_result([TextPart("hi"), ToolCallPart("f")], finish_reason="stop")

    assert len(result.candidates) == 1
    candidate = result.candidates[0]
    assert candidate.content.role == "model"
    assert candidate.finish_reason == "stop"
    assert result.text == "hi"
    assert result.tool_calls == [ToolCallPart("f")]
    assert result.usage == {}


def test_result_accessors_handle_no_candidates() -> None:
    result = GenerateContentResult(candidates=())
    assert result.text == ""
    assert result.tool_calls == []


def test_result_text_reads_first_candidate_only() -> None:
    result = GenerateContentResult(
        candidates=[
            Candidate(Content(role="model", parts=(TextPart("first"),))),
            Candidate(Content(role="model", parts=(TextPart("second"),))),
        ]
    )
    assert result.text == "first"
