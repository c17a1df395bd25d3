"""
WriteUp Backend: Provider Adapters
==================================

One adapter per AI backend, all behind the ProviderAdapter contract.

Adapter Inventory (canonical registration order):
    - OpenAIProvider:      OpenAI Chat Completions (SDK), chat-capable
    - OpenRouterProvider:  OpenRouter REST (httpx), completion only
    - AnthropicProvider:   Anthropic Messages (SDK), chat-capable
    - OllamaProvider:      local Ollama server (httpx), completion only, no key
"""

from typing import List

from writeup.services.providers.anthropic_provider import AnthropicProvider
from writeup.services.providers.base import ChatProviderAdapter, ProviderAdapter
from writeup.services.providers.ollama_provider import OllamaProvider
from writeup.services.providers.openai_provider import OpenAIProvider
from writeup.services.providers.openrouter_provider import OpenRouterProvider


def default_adapters() -> List[ProviderAdapter]:
    """Fresh adapter instances in canonical registration order."""
    return [
        OpenAIProvider(),
        OpenRouterProvider(),
        AnthropicProvider(),
        OllamaProvider(),
    ]


__all__ = [
    "AnthropicProvider",
    "ChatProviderAdapter",
    "OllamaProvider",
    "OpenAIProvider",
    "OpenRouterProvider",
    "ProviderAdapter",
    "default_adapters",
]
