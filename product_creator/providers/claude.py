"""
Anthropic Claude adapter built on the official ``anthropic`` SDK.

Claude reads images, so it doubles as the last-resort vision provider. SDK
retries are disabled: the adapter stays single-attempt and failover decides
what happens next.
"""

from __future__ import annotations

from typing import Any, Optional

import anthropic
import httpx
from anthropic import APIConnectionError, APIStatusError, RateLimitError

from product_creator.models.schemas import (
    CompletionRequest,
    CompletionResult,
    ProviderConfig,
    TokenUsage,
    VisionCompletionRequest,
)
from product_creator.providers.base import ProviderAdapter
from product_creator.utils.errors import (
    QUOTA_MARKERS,
    ProviderTransportError,
    RateLimitedError,
    classify_http_error,
)


class ClaudeAdapter(ProviderAdapter):
    """Adapter for the Anthropic Messages API."""

    BASE_URL = "https://api.anthropic.com"
    DEFAULT_MODEL = "claude-sonnet-4-20250514"
    VISION_MODEL = "claude-sonnet-4-20250514"
    MODELS = (
        "claude-sonnet-4-20250514",
        "claude-3-5-haiku-20241022",
    )
    QUOTA_MARKERS = QUOTA_MARKERS + ("credit balance",)

    def __init__(
        self,
        config: ProviderConfig,
        client: Optional[httpx.AsyncClient] = None,
        sdk_client: Optional[anthropic.AsyncAnthropic] = None,
    ):
        super().__init__(config, client=client)
        self._sdk_client = sdk_client

    @property
    def sdk_client(self) -> anthropic.AsyncAnthropic:
        """Anthropic client, created on first use."""
        if self._sdk_client is None:
            self._sdk_client = anthropic.AsyncAnthropic(
                api_key=self.config.api_key.get_secret_value(),
                base_url=self.config.base_url,
                timeout=self.config.vision_timeout_seconds,
                max_retries=0,
            )
        return self._sdk_client

    async def aclose(self) -> None:
        if self._sdk_client is not None:
            await self._sdk_client.close()
            self._sdk_client = None
        await super().aclose()

    async def _complete(self, request: CompletionRequest) -> CompletionResult:
        model = request.model or self.config.default_model
        return await self._create(model, request, request.prompt)

    async def _complete_with_vision(self, request: VisionCompletionRequest) -> CompletionResult:
        model = request.model or self.config.vision_model or self.config.default_model
        content: list[dict[str, Any]] = [
            {
                "type": "image",
                "source": {
                    "type": "base64",
                    "media_type": image.mime_type,
                    "data": image.as_base64(),
                },
            }
            for image in request.images
        ]
        content.append({"type": "text", "text": request.prompt})
        return await self._create(model, request, content)

    async def _create(
        self,
        model: str,
        request: CompletionRequest,
        content: Any,
    ) -> CompletionResult:
        kwargs: dict[str, Any] = {
            "model": model,
            "max_tokens": request.max_tokens,
            "temperature": min(request.temperature, 1.0),
            "messages": [{"role": "user", "content": content}],
        }
        if request.system_prompt:
            kwargs["system"] = request.system_prompt

        try:
            response = await self.sdk_client.messages.create(**kwargs)
        except RateLimitError as e:
            raise RateLimitedError(self.provider_id, str(e), status_code=429) from e
        except APIStatusError as e:
            raise classify_http_error(
                self.provider_id,
                e.status_code,
                str(e),
                rate_limit_markers=self.RATE_LIMIT_MARKERS,
                quota_markers=self.QUOTA_MARKERS,
            ) from e
        except APIConnectionError as e:
            raise ProviderTransportError(self.provider_id, str(e) or "Connection error") from e
        except anthropic.APIError as e:
            raise self._wrap_unexpected(e) from e

        return self._parse_response(response, model)

    def _parse_response(self, response: Any, model: str) -> CompletionResult:
        text = "".join(
            getattr(block, "text", "")
            for block in (response.content or [])
            if getattr(block, "type", None) == "text"
        )
        content = self._require_text(text)

        usage = None
        if getattr(response, "usage", None) is not None:
            input_tokens = response.usage.input_tokens or 0
            output_tokens = response.usage.output_tokens or 0
            usage = TokenUsage(
                prompt_tokens=input_tokens,
                completion_tokens=output_tokens,
                total_tokens=input_tokens + output_tokens,
            )

        return CompletionResult(
            content=content,
            model=getattr(response, "model", None) or model,
            provider_id=self.provider_id,
            usage=usage,
            finish_reason=getattr(response, "stop_reason", None),
        )


__all__ = ["ClaudeAdapter"]
