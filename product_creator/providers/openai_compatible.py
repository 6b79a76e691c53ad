"""
Adapters for providers that speak the OpenAI chat-completions dialect.

Groq, Cerebras, Mistral, DeepSeek and OpenRouter accept the same
``{model, messages, temperature, max_tokens}`` payload and answer with
``choices[0].message.content``; they differ only in endpoint, models and a
few headers or error markers.
"""

from __future__ import annotations

from typing import Any

from product_creator.models.schemas import CompletionRequest, CompletionResult, TokenUsage
from product_creator.providers.base import ProviderAdapter
from product_creator.utils.errors import QUOTA_MARKERS, RATE_LIMIT_MARKERS


class OpenAICompatibleAdapter(ProviderAdapter):
    """Text-only adapter for chat-completions endpoints."""

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.config.api_key.get_secret_value()}",
            "Content-Type": "application/json",
            **self.config.extra_headers,
        }

    def _build_messages(self, request: CompletionRequest) -> list[dict[str, Any]]:
        messages: list[dict[str, Any]] = []
        if request.system_prompt:
            messages.append({"role": "system", "content": request.system_prompt})
        messages.append({"role": "user", "content": request.prompt})
        return messages

    async def _complete(self, request: CompletionRequest) -> CompletionResult:
        model = request.model or self.config.default_model
        payload = {
            "model": model,
            "messages": self._build_messages(request),
            "temperature": request.temperature,
            "max_tokens": request.max_tokens,
        }
        data = await self._post_json(self.config.base_url, payload, headers=self._headers())
        return self._parse_response(data, model)

    def _parse_response(self, data: dict[str, Any], requested_model: str) -> CompletionResult:
        choices = data.get("choices") or []
        if not choices:
            self._require_text(None)
        choice = choices[0] or {}
        content = self._require_text((choice.get("message") or {}).get("content"))

        usage = None
        if isinstance(data.get("usage"), dict):
            raw = data["usage"]
            usage = TokenUsage(
                prompt_tokens=raw.get("prompt_tokens") or 0,
                completion_tokens=raw.get("completion_tokens") or 0,
                total_tokens=raw.get("total_tokens") or 0,
            )

        return CompletionResult(
            content=content,
            model=data.get("model") or requested_model,
            provider_id=self.provider_id,
            usage=usage,
            finish_reason=choice.get("finish_reason"),
        )


class GroqAdapter(OpenAICompatibleAdapter):
    BASE_URL = "https://api.groq.com/openai/v1/chat/completions"
    DEFAULT_MODEL = "llama-3.3-70b-versatile"
    MODELS = (
        "llama-3.1-8b-instant",
        "llama-3.3-70b-versatile",
        "meta-llama/llama-4-maverick-17b-128e-instruct",
        "meta-llama/llama-4-scout-17b-16e-instruct",
        "qwen/qwen3-32b",
        "openai/gpt-oss-120b",
        "openai/gpt-oss-20b",
        "moonshotai/kimi-k2-instruct",
    )
    RATE_LIMIT_MARKERS = RATE_LIMIT_MARKERS + ("rate_limit_exceeded",)


class CerebrasAdapter(OpenAICompatibleAdapter):
    BASE_URL = "https://api.cerebras.ai/v1/chat/completions"
    DEFAULT_MODEL = "llama-3.3-70b"
    MODELS = (
        "llama-3.3-70b",
        "llama3.1-8b",
        "qwen-3-235b-a22b-instruct-2507",
        "qwen-3-32b",
        "gpt-oss-120b",
        "zai-glm-4.6",
    )
    RATE_LIMIT_MARKERS = RATE_LIMIT_MARKERS + ("request_limit",)


class MistralAdapter(OpenAICompatibleAdapter):
    BASE_URL = "https://api.mistral.ai/v1/chat/completions"
    DEFAULT_MODEL = "mistral-small-latest"
    MODELS = (
        "mistral-small-latest",
        "mistral-medium-latest",
        "mistral-large-latest",
        "open-mistral-7b",
        "open-mixtral-8x7b",
        "open-mixtral-8x22b",
        "codestral-latest",
    )


class DeepSeekAdapter(OpenAICompatibleAdapter):
    BASE_URL = "https://api.deepseek.com/v1/chat/completions"
    DEFAULT_MODEL = "deepseek-chat"
    MODELS = ("deepseek-chat", "deepseek-coder", "deepseek-reasoner")
    QUOTA_MARKERS = QUOTA_MARKERS + ("insufficient balance",)


class OpenRouterAdapter(OpenAICompatibleAdapter):
    """OpenRouter; attribution headers travel in ``ProviderConfig.extra_headers``."""

    BASE_URL = "https://openrouter.ai/api/v1/chat/completions"
    DEFAULT_MODEL = "meta-llama/llama-3.3-70b-instruct:free"
    MODELS = (
        "meta-llama/llama-3.3-70b-instruct:free",
        "google/gemma-3-12b-it:free",
        "google/gemma-3-27b-it:free",
        "mistralai/mistral-small-3.1-24b-instruct:free",
        "deepseek/deepseek-r1-0528:free",
        "moonshotai/kimi-k2:free",
    )
    QUOTA_MARKERS = QUOTA_MARKERS + ("credits",)


__all__ = [
    "OpenAICompatibleAdapter",
    "GroqAdapter",
    "CerebrasAdapter",
    "MistralAdapter",
    "DeepSeekAdapter",
    "OpenRouterAdapter",
]
