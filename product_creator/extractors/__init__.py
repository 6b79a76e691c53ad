"""
Extractors module for Product AI Creator.

Stage 1 of the pipeline: turning product photographs into a structured
vision analysis.

Components:
    - VisionAnalyzer: Vision stage runner
    - Prompts: Language-specific vision prompt templates
"""

from product_creator.extractors.vision_analyzer import (
    NO_IMAGES_ERROR,
    VisionAnalyzer,
    default_vision_fields,
)

from product_creator.extractors.prompts import (
    VISION_ANALYSIS_CONFIG,
    PromptConfig,
    format_vision_prompt,
)

__all__ = [
    "VisionAnalyzer",
    "default_vision_fields",
    "NO_IMAGES_ERROR",
    "PromptConfig",
    "VISION_ANALYSIS_CONFIG",
    "format_vision_prompt",
]
