"""Provider implementations."""

from .anthropic import ClaudeProvider
from .base import Provider, ProviderCapabilities
from .factory import resolve_provider_name, select_provider
from .gemini import GeminiProvider
from .ollama import OllamaProvider
from .openai import OpenAIProvider

__all__ = [
    "ClaudeProvider",
    "GeminiProvider",
    "OllamaProvider",
    "OpenAIProvider",
    "Provider",
    "ProviderCapabilities",
    "resolve_provider_name",
    "select_provider",
]
