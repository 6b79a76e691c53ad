"""
Provider adapters and the registry that orders them.

Each adapter wraps one upstream completion service behind the same
``complete`` / ``complete_with_vision`` contract.
"""

from product_creator.providers.base import ProviderAdapter
from product_creator.providers.claude import ClaudeAdapter
from product_creator.providers.google import GoogleAIAdapter
from product_creator.providers.openai_compatible import (
    CerebrasAdapter,
    DeepSeekAdapter,
    GroqAdapter,
    MistralAdapter,
    OpenAICompatibleAdapter,
    OpenRouterAdapter,
)
from product_creator.providers.registry import PROVIDER_SPECS, ProviderRegistry, ProviderSpec

__all__ = [
    "ProviderAdapter",
    "OpenAICompatibleAdapter",
    "GroqAdapter",
    "CerebrasAdapter",
    "MistralAdapter",
    "DeepSeekAdapter",
    "OpenRouterAdapter",
    "GoogleAIAdapter",
    "ClaudeAdapter",
    "ProviderSpec",
    "PROVIDER_SPECS",
    "ProviderRegistry",
]
