"""
Vision stage of the Product AI Creator pipeline.

This module provides the VisionAnalyzer class which turns product photographs
into a structured ``VisionAnalysis`` record.

Features:
    - Language-specific prompts with an optional seller hint
    - Failover across every configured vision-capable provider
    - Lenient decoding: unparsable or partial model output degrades to a
      low-confidence generic analysis instead of failing the stage
    - Stage failure only when images are missing or every provider fails

Example:
    >>> analyzer = VisionAnalyzer(FailoverOrchestrator(registry))
    >>> result = await analyzer.analyze_images(pipeline_input.images, user_hint="wicker mat")
    >>> result.data.product_type
    'Wicker privacy mat'
"""

from __future__ import annotations

import time
from typing import Any, Optional

from product_creator.config.settings import Settings, get_settings
from product_creator.extractors.prompts import format_vision_prompt
from product_creator.models.schemas import (
    DEFAULT_CONFIDENCE,
    DEFAULT_PRODUCT_TYPE,
    ImagePayload,
    Language,
    PipelineImage,
    StageResult,
    StageStatus,
    VisionAnalysis,
    VisionCompletionRequest,
)
from product_creator.services.failover import FailoverOrchestrator
from product_creator.services.image_service import ImageFetcher, ImageFetchError
from product_creator.utils.errors import ProviderUnavailableError
from product_creator.utils.logger import get_logger
from product_creator.utils.parsing import lenient_decode

logger = get_logger(__name__)

NO_IMAGES_ERROR = "Vision analysis failed: at least one image is required"


def default_vision_fields(parsed: dict[str, Any]) -> dict[str, Any]:
    """Fallback values for a vision record; independent of what was parsed."""
    return {
        "product_type": DEFAULT_PRODUCT_TYPE,
        "colors": [],
        "materials": [],
        "features": [],
        "suggested_categories": [],
        "confidence": DEFAULT_CONFIDENCE,
    }


class VisionAnalyzer:
    """Runs the vision stage against vision-capable providers."""

    def __init__(
        self,
        orchestrator: FailoverOrchestrator,
        settings: Optional[Settings] = None,
        image_fetcher: Optional[ImageFetcher] = None,
    ):
        self.orchestrator = orchestrator
        self.settings = settings or get_settings()
        self.image_fetcher = image_fetcher or ImageFetcher(self.settings)

    async def analyze_images(
        self,
        images: list[PipelineImage],
        user_hint: Optional[str] = None,
        language: Optional[Language | str] = None,
        model: Optional[str] = None,
        system_prompt: Optional[str] = None,
    ) -> StageResult[VisionAnalysis]:
        """Load pipeline images, then analyze them. Load failures fail the stage."""
        start = time.perf_counter()
        if not images:
            return self._failed(NO_IMAGES_ERROR, start)

        try:
            payloads = await self.image_fetcher.load_all(images)
        except ImageFetchError as e:
            logger.warning("Image loading failed", url=e.url, reason=e.reason)
            return self._failed(f"Vision analysis failed: {e}", start)

        return await self.analyze(
            payloads,
            user_hint=user_hint,
            language=language,
            model=model,
            system_prompt=system_prompt,
        )

    async def analyze(
        self,
        images: list[ImagePayload],
        user_hint: Optional[str] = None,
        language: Optional[Language | str] = None,
        model: Optional[str] = None,
        system_prompt: Optional[str] = None,
    ) -> StageResult[VisionAnalysis]:
        """
        Describe the product shown in ``images``.

        Args:
            images: Ordered inline images, main view first
            user_hint: Optional seller note passed to the model
            language: Prompt language; defaults to ``DEFAULT_LANGUAGE``
            model: Overrides each provider's vision model
            system_prompt: Replaces the built-in system prompt

        Returns:
            A completed StageResult carrying a VisionAnalysis, or a failed one
            when there are no images or no provider could serve the request.
        """
        start = time.perf_counter()
        if not images:
            return self._failed(NO_IMAGES_ERROR, start)

        language = Language(language or self.settings.default_language)
        default_system, user_prompt = format_vision_prompt(
            language,
            user_hint=user_hint,
            image_count=len(images),
        )
        request = VisionCompletionRequest(
            prompt=user_prompt,
            system_prompt=system_prompt or default_system,
            model=model,
            images=images,
            temperature=self.settings.vision_temperature,
            max_tokens=self.settings.vision_max_tokens,
        )

        logger.info("Starting vision analysis", images=len(images), language=language.value)
        try:
            outcome = await self.orchestrator.complete_with_vision(request)
        except ProviderUnavailableError as e:
            return self._failed(f"Vision analysis failed: {e}", start)

        decoded = lenient_decode(outcome.result.content, VisionAnalysis, default_vision_fields)
        analysis = decoded.value.model_copy(update={"raw_response": outcome.result.content})

        if decoded.parse_error:
            logger.warning(
                "Vision response was not valid JSON, using defaults",
                provider=outcome.provider_id,
                error=decoded.parse_error,
            )

        duration_ms = self._elapsed_ms(start)
        logger.info(
            "Vision analysis complete",
            provider=outcome.provider_id,
            product_type=analysis.product_type,
            confidence=analysis.confidence,
            duration_ms=duration_ms,
        )
        return StageResult[VisionAnalysis](
            status=StageStatus.COMPLETED,
            data=analysis,
            duration_ms=duration_ms,
            provider_id=outcome.provider_id,
        )

    def _failed(self, message: str, start: float) -> StageResult[VisionAnalysis]:
        logger.error("Vision analysis failed", error=message)
        return StageResult[VisionAnalysis](
            status=StageStatus.FAILED,
            error=message,
            duration_ms=self._elapsed_ms(start),
        )

    @staticmethod
    def _elapsed_ms(start: float) -> int:
        return int((time.perf_counter() - start) * 1000)


__all__ = ["VisionAnalyzer", "default_vision_fields", "NO_IMAGES_ERROR"]
