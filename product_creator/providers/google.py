"""
Google AI Studio adapter (Gemma / Gemini via ``generateContent``).

The only HTTP adapter that reads images: inline image bytes travel as
``inlineData`` parts next to the instruction text.
"""

from __future__ import annotations

from typing import Any

from product_creator.models.schemas import (
    CompletionRequest,
    CompletionResult,
    TokenUsage,
    VisionCompletionRequest,
)
from product_creator.providers.base import ProviderAdapter
from product_creator.utils.errors import (
    RATE_LIMIT_MARKERS,
    CapabilityError,
    MalformedResponseError,
)

BLOCKED_FINISH_REASONS = {"SAFETY", "RECITATION", "BLOCKLIST", "PROHIBITED_CONTENT"}


class GoogleAIAdapter(ProviderAdapter):
    """Adapter for the generativelanguage.googleapis.com REST API."""

    BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"
    DEFAULT_MODEL = "gemma-3-27b-it"
    VISION_MODEL = "gemma-3-27b-it"
    MODELS = (
        "gemma-3-27b-it",
        "gemma-3-12b-it",
        "gemma-3-4b-it",
        "gemma-3-1b-it",
        "gemini-2.0-flash",
        "gemini-2.5-flash-lite",
    )
    VISION_CAPABLE_MODELS = (
        "gemma-3-27b-it",
        "gemma-3-12b-it",
        "gemma-3-4b-it",
        "gemini-2.0-flash",
        "gemini-2.5-flash-lite",
    )
    RATE_LIMIT_MARKERS = RATE_LIMIT_MARKERS + ("resource_exhausted",)

    async def _complete(self, request: CompletionRequest) -> CompletionResult:
        model = request.model or self.config.default_model
        parts = [{"text": self._merge_prompt(request)}]
        return await self._generate(model, parts, request)

    async def _complete_with_vision(self, request: VisionCompletionRequest) -> CompletionResult:
        model = request.model or self.config.vision_model or self.config.default_model
        if model not in self.VISION_CAPABLE_MODELS:
            raise CapabilityError(self.provider_id, f"Model {model} does not support vision")

        parts: list[dict[str, Any]] = [
            {"inlineData": {"mimeType": image.mime_type, "data": image.as_base64()}}
            for image in request.images
        ]
        parts.append({"text": self._merge_prompt(request)})
        return await self._generate(model, parts, request)

    @staticmethod
    def _merge_prompt(request: CompletionRequest) -> str:
        # Gemma models reject systemInstruction, so the system prompt is inlined
        if request.system_prompt:
            return f"{request.system_prompt}\n\n{request.prompt}"
        return request.prompt

    async def _generate(
        self,
        model: str,
        parts: list[dict[str, Any]],
        request: CompletionRequest,
    ) -> CompletionResult:
        payload = {
            "contents": [{"role": "user", "parts": parts}],
            "generationConfig": {
                "temperature": request.temperature,
                "maxOutputTokens": request.max_tokens,
            },
        }
        data = await self._post_json(
            f"{self.config.base_url.rstrip('/')}/{model}:generateContent",
            payload,
            headers={"Content-Type": "application/json"},
            params={"key": self.config.api_key.get_secret_value()},
        )
        return self._parse_response(data, model)

    def _parse_response(self, data: dict[str, Any], model: str) -> CompletionResult:
        candidates = data.get("candidates") or []
        if not candidates:
            block_reason = (data.get("promptFeedback") or {}).get("blockReason")
            if block_reason:
                raise MalformedResponseError(self.provider_id, f"Prompt blocked: {block_reason}")
            self._require_text(None)

        candidate = candidates[0] or {}
        finish_reason = candidate.get("finishReason")
        if finish_reason in BLOCKED_FINISH_REASONS:
            raise MalformedResponseError(
                self.provider_id, f"Content blocked by safety filters ({finish_reason})"
            )

        parts = (candidate.get("content") or {}).get("parts") or []
        content = self._require_text(
            "".join(part.get("text", "") for part in parts if isinstance(part, dict))
        )

        usage = None
        metadata = data.get("usageMetadata")
        if isinstance(metadata, dict):
            usage = TokenUsage(
                prompt_tokens=metadata.get("promptTokenCount") or 0,
                completion_tokens=metadata.get("candidatesTokenCount") or 0,
                total_tokens=metadata.get("totalTokenCount") or 0,
            )

        return CompletionResult(
            content=content,
            model=data.get("modelVersion") or model,
            provider_id=self.provider_id,
            usage=usage,
            finish_reason=finish_reason,
        )


__all__ = ["GoogleAIAdapter"]
