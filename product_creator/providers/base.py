"""
Abstract provider adapter.

An adapter wraps exactly one upstream completion service. It normalizes the
request and response shapes, bounds every call with a hard timeout, and turns
every failure into a classified ProviderError. Adapters make a single attempt
per call; deciding what to do after a failure is the failover orchestrator's
job.
"""

from __future__ import annotations

import asyncio
import time
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Optional

import httpx

from product_creator.models.schemas import (
    CompletionRequest,
    CompletionResult,
    ConnectionTestResult,
    ProviderConfig,
    VisionCompletionRequest,
)
from product_creator.utils.errors import (
    QUOTA_MARKERS,
    RATE_LIMIT_MARKERS,
    CapabilityError,
    ErrorHandler,
    MalformedResponseError,
    ProviderError,
    ProviderTransportError,
    classify_http_error,
)
from product_creator.utils.logger import get_logger

logger = get_logger(__name__)

CONNECTION_TEST_PROMPT = "Say OK"


class ProviderAdapter(ABC):
    """
    Abstract base class for provider adapters.

    Subclasses implement ``_complete`` (and ``_complete_with_vision`` when
    the provider can read images); the public methods add timeouts, error
    normalization and logging.
    """

    # Lower-cased substrings that mark a rate-limit or quota failure in an
    # error body, in addition to the shared defaults.
    RATE_LIMIT_MARKERS: tuple[str, ...] = RATE_LIMIT_MARKERS
    QUOTA_MARKERS: tuple[str, ...] = QUOTA_MARKERS
    MODELS: tuple[str, ...] = ()

    def __init__(
        self,
        config: ProviderConfig,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.config = config
        self._client = client
        self._owns_client = client is None
        self._request_count = 0
        self._error_count = 0

    @property
    def provider_id(self) -> str:
        return self.config.provider_id

    @property
    def name(self) -> str:
        return self.config.display_name

    @property
    def priority(self) -> int:
        return self.config.priority

    @property
    def supports_vision(self) -> bool:
        return self.config.supports_vision

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.provider_id}, priority={self.priority})"

    # =========================================================================
    # HTTP client lifecycle
    # =========================================================================

    @property
    def client(self) -> httpx.AsyncClient:
        """HTTP client, created on first use."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(
                    connect=10.0,
                    read=self.config.vision_timeout_seconds,
                    write=30.0,
                    pool=5.0,
                ),
                limits=httpx.Limits(
                    max_keepalive_connections=5,
                    max_connections=10,
                ),
            )
            self._owns_client = True
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP client if this adapter created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self) -> "ProviderAdapter":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    # =========================================================================
    # Public contract
    # =========================================================================

    async def complete(self, request: CompletionRequest) -> CompletionResult:
        """Run one text completion, bounded by the text timeout."""
        return await self._call(
            self._complete(request),
            timeout=self.config.text_timeout_seconds,
            operation="complete",
        )

    async def complete_with_vision(self, request: VisionCompletionRequest) -> CompletionResult:
        """
        Run one completion over inline images, bounded by the vision timeout.

        Raises:
            CapabilityError: If this provider cannot read images.
        """
        if not self.supports_vision:
            raise CapabilityError(self.provider_id, f"{self.name} does not support vision")
        return await self._call(
            self._complete_with_vision(request),
            timeout=self.config.vision_timeout_seconds,
            operation="complete_with_vision",
        )

    async def test_connection(self, timeout: Optional[float] = None) -> ConnectionTestResult:
        """Send a tiny prompt and report whether the provider answered. Never raises."""
        start = time.perf_counter()
        request = CompletionRequest(prompt=CONNECTION_TEST_PROMPT, max_tokens=10, temperature=0)
        try:
            await self._call(
                self._complete(request),
                timeout=timeout or self.config.text_timeout_seconds,
                operation="test_connection",
            )
        except ProviderError as e:
            return ConnectionTestResult(provider_id=self.provider_id, ok=False, error=e.message)
        except Exception as e:
            logger.warning("Connection test crashed", provider=self.provider_id, error=str(e))
            return ConnectionTestResult(provider_id=self.provider_id, ok=False, error=str(e))
        return ConnectionTestResult(
            provider_id=self.provider_id,
            ok=True,
            latency_ms=int((time.perf_counter() - start) * 1000),
        )

    def available_models(self) -> list[str]:
        """Static list of models this provider offers."""
        return list(self.MODELS) or [self.config.default_model]

    def get_stats(self) -> dict[str, Any]:
        """Get adapter statistics."""
        return {
            "provider_id": self.provider_id,
            "priority": self.priority,
            "supports_vision": self.supports_vision,
            "request_count": self._request_count,
            "error_count": self._error_count,
        }

    # =========================================================================
    # Provider-specific hooks
    # =========================================================================

    @abstractmethod
    async def _complete(self, request: CompletionRequest) -> CompletionResult:
        """Provider-specific text completion."""
        pass

    async def _complete_with_vision(self, request: VisionCompletionRequest) -> CompletionResult:
        """Provider-specific vision completion."""
        raise CapabilityError(self.provider_id, f"{self.name} does not support vision")

    # =========================================================================
    # Shared helpers
    # =========================================================================

    async def _call(
        self,
        call: Awaitable[CompletionResult],
        timeout: float,
        operation: str,
    ) -> CompletionResult:
        """Await ``call`` under a hard timeout and normalize any failure."""
        self._request_count += 1
        start = time.perf_counter()
        try:
            result = await asyncio.wait_for(call, timeout=timeout)
        except asyncio.TimeoutError:
            self._error_count += 1
            raise ProviderTransportError(
                self.provider_id, f"Request timed out after {timeout:g}s"
            )
        except ProviderError:
            self._error_count += 1
            raise
        except (httpx.TimeoutException, httpx.TransportError) as e:
            self._error_count += 1
            raise ProviderTransportError(
                self.provider_id, f"{type(e).__name__}: {e}" if str(e) else type(e).__name__
            ) from e
        except (ValueError, KeyError, TypeError, IndexError) as e:
            self._error_count += 1
            raise MalformedResponseError(
                self.provider_id, f"Unexpected response shape: {e}"
            ) from e

        latency_ms = int((time.perf_counter() - start) * 1000)
        logger.debug(
            "Provider call succeeded",
            provider=self.provider_id,
            operation=operation,
            model=result.model,
            latency_ms=latency_ms,
        )
        return result.model_copy(update={"latency_ms": latency_ms})

    async def _post_json(
        self,
        url: str,
        payload: dict[str, Any],
        headers: Optional[dict[str, str]] = None,
        params: Optional[dict[str, str]] = None,
    ) -> dict[str, Any]:
        """
        POST ``payload`` and return the decoded JSON body.

        Raises:
            ProviderError: Classified from the status code and body for any
                non-2xx response, or MalformedResponseError for a body that
                is not a JSON object.
        """
        response = await self.client.post(url, json=payload, headers=headers, params=params)
        if not response.is_success:
            raise self._classify_response(response)
        try:
            data = response.json()
        except ValueError as e:
            raise MalformedResponseError(self.provider_id, "Response body is not JSON") from e
        if not isinstance(data, dict):
            raise MalformedResponseError(self.provider_id, "Response body is not a JSON object")
        return data

    def _classify_response(self, response: httpx.Response) -> ProviderError:
        error = classify_http_error(
            self.provider_id,
            response.status_code,
            response.text,
            rate_limit_markers=self.RATE_LIMIT_MARKERS,
            quota_markers=self.QUOTA_MARKERS,
        )
        logger.debug(
            "Provider returned error status",
            provider=self.provider_id,
            status_code=response.status_code,
            kind=error.kind.value,
        )
        return error

    def _require_text(self, content: Any) -> str:
        """Reject empty generations as malformed."""
        if not isinstance(content, str) or not content.strip():
            raise MalformedResponseError(self.provider_id, "Empty response from provider")
        return content

    def _wrap_unexpected(self, error: Exception) -> ProviderError:
        return ErrorHandler.to_provider_error(self.provider_id, error)


__all__ = ["ProviderAdapter", "CONNECTION_TEST_PROMPT"]
