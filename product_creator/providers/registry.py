"""
Provider registry.

Holds the static, priority-ordered list of provider identities and turns
each into an adapter the first time it is needed. Providers without a
credential are "not configured": they are skipped silently rather than
reported as errors.

Example:
    >>> registry = ProviderRegistry()
    >>> [a.provider_id for a in registry.available_for_capability(Capability.VISION)]
    ['google', 'anthropic']
"""

from __future__ import annotations

import asyncio
import threading
from dataclasses import dataclass
from typing import Iterable, Optional

import httpx

from product_creator.config.settings import Settings, get_settings
from product_creator.models.schemas import (
    Capability,
    ConnectionTestResult,
    ProviderConfig,
    ProviderStatusInfo,
)
from product_creator.providers.base import ProviderAdapter
from product_creator.providers.claude import ClaudeAdapter
from product_creator.providers.google import GoogleAIAdapter
from product_creator.providers.openai_compatible import (
    CerebrasAdapter,
    DeepSeekAdapter,
    GroqAdapter,
    MistralAdapter,
    OpenRouterAdapter,
)
from product_creator.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ProviderSpec:
    """Static description of one provider identity."""
    provider_id: str
    display_name: str
    adapter_cls: type[ProviderAdapter]
    credential_field: str
    priority: int
    rate_limit_rpm: int
    rate_limit_rpd: int
    supports_vision: bool = False
    text_timeout_seconds: Optional[float] = None

    @property
    def default_model(self) -> str:
        return getattr(self.adapter_cls, "DEFAULT_MODEL", "")

    @property
    def vision_model(self) -> Optional[str]:
        if not self.supports_vision:
            return None
        return getattr(self.adapter_cls, "VISION_MODEL", None) or self.default_model

    def build_config(self, settings: Settings, api_key: str) -> ProviderConfig:
        extra_headers = {}
        if self.adapter_cls is OpenRouterAdapter:
            extra_headers = {
                "HTTP-Referer": settings.openrouter_referer,
                "X-Title": settings.openrouter_app_title,
            }
        return ProviderConfig(
            provider_id=self.provider_id,
            display_name=self.display_name,
            api_key=api_key,
            base_url=self.adapter_cls.BASE_URL,
            default_model=self.default_model,
            vision_model=self.vision_model,
            rate_limit_rpm=self.rate_limit_rpm,
            rate_limit_rpd=self.rate_limit_rpd,
            priority=self.priority,
            supports_vision=self.supports_vision,
            text_timeout_seconds=self.text_timeout_seconds or settings.text_timeout_seconds,
            vision_timeout_seconds=settings.vision_timeout_seconds,
            extra_headers=extra_headers,
        )


PROVIDER_SPECS: tuple[ProviderSpec, ...] = (
    ProviderSpec("groq", "Groq", GroqAdapter, "groq_api_key",
                 priority=1, rate_limit_rpm=30, rate_limit_rpd=14400),
    ProviderSpec("cerebras", "Cerebras", CerebrasAdapter, "cerebras_api_key",
                 priority=2, rate_limit_rpm=30, rate_limit_rpd=14400),
    ProviderSpec("google", "Google AI Studio", GoogleAIAdapter, "google_ai_api_key",
                 priority=3, rate_limit_rpm=30, rate_limit_rpd=14400, supports_vision=True),
    ProviderSpec("mistral", "Mistral AI", MistralAdapter, "mistral_api_key",
                 priority=4, rate_limit_rpm=1, rate_limit_rpd=500),
    ProviderSpec("deepseek", "DeepSeek", DeepSeekAdapter, "deepseek_api_key",
                 priority=5, rate_limit_rpm=60, rate_limit_rpd=10000),
    ProviderSpec("openrouter", "OpenRouter", OpenRouterAdapter, "openrouter_api_key",
                 priority=6, rate_limit_rpm=20, rate_limit_rpd=200, text_timeout_seconds=60.0),
    ProviderSpec("anthropic", "Anthropic Claude", ClaudeAdapter, "anthropic_api_key",
                 priority=7, rate_limit_rpm=50, rate_limit_rpd=5000, supports_vision=True),
)


class ProviderRegistry:
    """
    Priority-ordered set of configured provider adapters.

    Adapters are built lazily, at most once per identity, under a lock so
    concurrent first access from several pipeline runs (or threads) cannot
    construct duplicates. After that the registry is read-only.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        specs: Iterable[ProviderSpec] = PROVIDER_SPECS,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Args:
            settings: Source of credentials and timeouts.
            specs: Provider identities to consider.
            client: Optional shared HTTP client handed to HTTP adapters.
        """
        self.settings = settings or get_settings()
        self._specs = tuple(sorted(specs, key=lambda spec: spec.priority))
        self._client = client
        self._adapters: dict[str, Optional[ProviderAdapter]] = {}
        self._injected: list[ProviderAdapter] = []
        self._lock = threading.Lock()

    @classmethod
    def from_adapters(
        cls,
        adapters: Iterable[ProviderAdapter],
        settings: Optional[Settings] = None,
    ) -> "ProviderRegistry":
        """Registry over ready-made adapters, ordered by their configured priority."""
        registry = cls(settings=settings, specs=())
        registry._injected = sorted(adapters, key=lambda adapter: adapter.priority)
        return registry

    async def __aenter__(self) -> "ProviderRegistry":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    # =========================================================================
    # Resolution
    # =========================================================================

    def _resolve(self, spec: ProviderSpec) -> Optional[ProviderAdapter]:
        """Adapter for ``spec``, or None when it has no credential. Memoized."""
        if spec.provider_id in self._adapters:
            return self._adapters[spec.provider_id]

        with self._lock:
            if spec.provider_id not in self._adapters:
                self._adapters[spec.provider_id] = self._build(spec)
            return self._adapters[spec.provider_id]

    def _build(self, spec: ProviderSpec) -> Optional[ProviderAdapter]:
        api_key = self.settings.get_api_key(spec.credential_field)
        if not api_key:
            logger.debug("Provider not configured", provider=spec.provider_id)
            return None

        adapter = spec.adapter_cls(spec.build_config(self.settings, api_key), client=self._client)
        logger.info(
            "Provider configured",
            provider=spec.provider_id,
            priority=spec.priority,
            vision=spec.supports_vision,
        )
        return adapter

    # =========================================================================
    # Queries
    # =========================================================================

    def available(self) -> list[ProviderAdapter]:
        """All configured adapters, highest priority first."""
        adapters = [adapter for adapter in map(self._resolve, self._specs) if adapter is not None]
        adapters.extend(self._injected)
        return sorted(adapters, key=lambda adapter: adapter.priority)

    def available_for_capability(self, capability: Capability | str) -> list[ProviderAdapter]:
        """Configured adapters able to serve ``capability``, highest priority first."""
        if Capability(capability) == Capability.VISION:
            return [adapter for adapter in self.available() if adapter.supports_vision]
        return self.available()

    def get(self, provider_id: str) -> Optional[ProviderAdapter]:
        """Configured adapter by id, or None."""
        for adapter in self.available():
            if adapter.provider_id == provider_id:
                return adapter
        return None

    def status(self) -> list[ProviderStatusInfo]:
        """Every known provider identity with its configuration state."""
        rows = [
            ProviderStatusInfo(
                provider_id=spec.provider_id,
                display_name=spec.display_name,
                priority=spec.priority,
                configured=self._resolve(spec) is not None,
                supports_vision=spec.supports_vision,
                default_model=spec.default_model,
                vision_model=spec.vision_model,
            )
            for spec in self._specs
        ]
        rows.extend(
            ProviderStatusInfo(
                provider_id=adapter.provider_id,
                display_name=adapter.name,
                priority=adapter.priority,
                configured=True,
                supports_vision=adapter.supports_vision,
                default_model=adapter.config.default_model,
                vision_model=adapter.config.vision_model,
            )
            for adapter in self._injected
        )
        return sorted(rows, key=lambda row: row.priority)

    def available_models(self) -> dict[str, list[str]]:
        return {adapter.provider_id: adapter.available_models() for adapter in self.available()}

    async def test_connections(self) -> dict[str, ConnectionTestResult]:
        """Probe every configured provider concurrently. Diagnostic only."""
        adapters = self.available()
        results = await asyncio.gather(*(
            adapter.test_connection(timeout=self.settings.connection_test_timeout_seconds)
            for adapter in adapters
        ))
        return {result.provider_id: result for result in results}

    async def aclose(self) -> None:
        """Close every adapter built or injected so far."""
        adapters = [adapter for adapter in self._adapters.values() if adapter is not None]
        adapters.extend(self._injected)
        for adapter in adapters:
            await adapter.aclose()


__all__ = ["ProviderSpec", "PROVIDER_SPECS", "ProviderRegistry"]
