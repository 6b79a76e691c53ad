import json
from typing import Any, Iterable, Union

import pytest
import structlog

from product_creator.config.settings import Settings, get_settings
from product_creator.models.schemas import (
    CompletionRequest,
    CompletionResult,
    ContentGeneration,
    PipelineImage,
    PipelineInput,
    ProviderConfig,
    RawProductData,
    VisionAnalysis,
    VisionCompletionRequest,
)
from product_creator.providers.base import ProviderAdapter
from product_creator.providers.registry import ProviderRegistry
from product_creator.utils.errors import MalformedResponseError

PROVIDER_ENV_VARS = (
    "GROQ_API_KEY",
    "CEREBRAS_API_KEY",
    "GOOGLE_AI_API_KEY",
    "MISTRAL_API_KEY",
    "DEEPSEEK_API_KEY",
    "OPENROUTER_API_KEY",
    "ANTHROPIC_API_KEY",
    "DEFAULT_LANGUAGE",
    "DEFAULT_CURRENCY",
    "DEFAULT_VAT_RATE",
    "DEFAULT_PRICE_GROSS",
)

# 1x1 JPEG header bytes; adapters never decode them
IMAGE_BYTES = b"\xff\xd8\xff\xe0fake-jpeg"

Scripted = Union[str, Exception]


# =============================================================================
# Fake Provider
# =============================================================================

def make_config(
    provider_id: str,
    priority: int = 1,
    supports_vision: bool = False,
    **overrides: Any,
) -> ProviderConfig:
    values = {
        "provider_id": provider_id,
        "display_name": provider_id.title(),
        "api_key": f"{provider_id}-test-key",
        "base_url": f"https://{provider_id}.example.com/v1/chat/completions",
        "default_model": f"{provider_id}-model",
        "vision_model": f"{provider_id}-vision" if supports_vision else None,
        "priority": priority,
        "supports_vision": supports_vision,
    }
    values.update(overrides)
    return ProviderConfig(**values)


class FakeAdapter(ProviderAdapter):
    """
    Adapter answering from a script.

    Each call consumes the next scripted item (a response text or an
    exception to raise); the last item repeats once the script runs out.
    """

    def __init__(
        self,
        provider_id: str = "fake",
        priority: int = 1,
        supports_vision: bool = False,
        responses: Iterable[Scripted] = ("OK",),
    ):
        super().__init__(make_config(provider_id, priority, supports_vision))
        self.script = list(responses)
        self.calls: list[CompletionRequest] = []
        self.closed = False

    async def _complete(self, request: CompletionRequest) -> CompletionResult:
        return self._answer(request)

    async def _complete_with_vision(self, request: VisionCompletionRequest) -> CompletionResult:
        return self._answer(request)

    async def aclose(self) -> None:
        self.closed = True
        await super().aclose()

    def _answer(self, request: CompletionRequest) -> CompletionResult:
        self.calls.append(request)
        if not self.script:
            raise MalformedResponseError(self.provider_id, "Script exhausted")
        item = self.script.pop(0) if len(self.script) > 1 else self.script[0]
        if isinstance(item, Exception):
            raise item
        return CompletionResult(content=item, model=f"{self.provider_id}-model", provider_id=self.provider_id)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep real provider keys and cached settings out of every test."""
    for name in PROVIDER_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def reset_structlog():
    """Undo any structlog configuration a test installed."""
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        DEFAULT_LANGUAGE="en",
        OUTPUT_DIR=str(tmp_path / "outputs"),
        IMAGE_FETCH_MAX_RETRIES=2,
    )


@pytest.fixture
def make_registry(settings):
    def factory(*adapters: ProviderAdapter) -> ProviderRegistry:
        return ProviderRegistry.from_adapters(adapters, settings=settings)
    return factory


@pytest.fixture
def vision_payload() -> dict[str, Any]:
    return {
        "productType": "Wicker privacy mat",
        "detectedBrand": "Acme",
        "detectedModel": None,
        "colors": ["natural", "beige"],
        "materials": ["wicker"],
        "style": "Rustic",
        "condition": "new",
        "features": ["UV resistant", "Easy to mount"],
        "suggestedCategories": ["Garden", "Fences"],
        "confidence": 0.9,
    }


@pytest.fixture
def vision_json(vision_payload) -> str:
    return json.dumps(vision_payload)


@pytest.fixture
def vision_analysis(vision_payload) -> VisionAnalysis:
    return VisionAnalysis.model_validate(vision_payload)


@pytest.fixture
def content_payload() -> dict[str, Any]:
    return {
        "name": "Acme Wicker Privacy Mat 1x3 m",
        "shortDescription": "A natural wicker privacy mat that shields your balcony and garden from curious eyes.",
        "longDescription": "Made from natural wicker.\n\nUV resistant and easy to mount on any fence.",
        "htmlDescription": "<p>Made from natural wicker.</p><p>UV resistant and easy to mount on any fence.</p>",
        "seoTitle": "Acme Wicker Privacy Mat 1x3 m",
        "seoDescription": "Natural wicker privacy mat for balcony and garden.",
        "keywords": ["wicker mat", "privacy screen", "balcony", "garden"],
        "attributes": {"Color": "natural", "Material": "wicker"},
        "tags": ["garden"],
        "imageAlts": ["Acme wicker mat - front", "Acme wicker mat - detail"],
    }


@pytest.fixture
def content_json(content_payload) -> str:
    return json.dumps(content_payload)


@pytest.fixture
def content_generation(content_payload) -> ContentGeneration:
    return ContentGeneration.model_validate(content_payload)


def make_images(count: int = 2) -> list[PipelineImage]:
    return [
        PipelineImage(url=f"https://cdn.example.com/mat-{index}.jpg", data=IMAGE_BYTES)
        for index in range(1, count + 1)
    ]


@pytest.fixture
def pipeline_input() -> PipelineInput:
    return PipelineInput(
        images=make_images(2),
        user_hint="wicker privacy mat 1x3 m",
        raw_data=RawProductData(ean="5901234123457", sku="MAT-13", price_gross=123.0, vat_rate=23.0),
    )
