"""Castor: one async contract for several LLM backends.

Public API:
    - select_provider(): Build the provider named by the settings
    - Provider: generate_content / count_tokens / embed_content
    - ProviderSettings: Settings accessor (stored payload or environment)
    - probe(): Time-bounded connectivity check for candidate settings
"""

from __future__ import annotations

import logging

from castor.config import ConfigSource, ProviderSettings
from castor.errors import (
    BackendError,
    CastorError,
    ConfigurationError,
    MalformedToolCallError,
    UnsupportedContentError,
    UnsupportedOperation,
)
from castor.probe import PROBE_TIMEOUT_S, ProbeResult, probe
from castor.providers import Provider, ProviderCapabilities, select_provider
from castor.types import (
    Candidate,
    Content,
    CountTokensRequest,
    CountTokensResult,
    EmbedContentRequest,
    EmbedContentResult,
    FunctionDeclaration,
    GenerateContentRequest,
    GenerateContentResult,
    GenerationConfig,
    InlineDataPart,
    TextPart,
    Tool,
    ToolCallPart,
)

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("castor-llm")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

# Library-level NullHandler: stay silent unless the consumer configures logging.
logging.getLogger("castor").addHandler(logging.NullHandler())

__all__ = [
    "PROBE_TIMEOUT_S",
    "BackendError",
    "Candidate",
    "CastorError",
    "ConfigSource",
    "ConfigurationError",
    "Content",
    "CountTokensRequest",
    "CountTokensResult",
    "EmbedContentRequest",
    "EmbedContentResult",
    "FunctionDeclaration",
    "GenerateContentRequest",
    "GenerateContentResult",
    "GenerationConfig",
    "InlineDataPart",
    "MalformedToolCallError",
    "ProbeResult",
    "Provider",
    "ProviderCapabilities",
    "ProviderSettings",
    "TextPart",
    "Tool",
    "ToolCallPart",
    "UnsupportedContentError",
    "UnsupportedOperation",
    "probe",
    "select_provider",
]
