"""
Generators module for Product AI Creator.

Stage 2 of the pipeline: turning a vision analysis into marketing and SEO
content, either in the standard format or in the German/Polish marketplace
listing format.

Components:
    - ContentGenerator: Standard content stage runner
    - MarketplaceContentGenerator: Marketplace-format variant
    - Prompts: Content prompt templates
"""

from product_creator.generators.content_generator import (
    ContentGenerator,
    build_default_attributes,
    build_image_alts,
    content_defaults,
)
from product_creator.generators.marketplace_generator import (
    MarketplaceContent,
    MarketplaceContentGenerator,
)
from product_creator.generators.prompts import (
    CONTENT_GENERATION_CONFIG,
    MARKETPLACE_CONTENT_CONFIG,
    MARKETPLACE_LANGUAGES,
    format_content_prompt,
    format_marketplace_prompt,
)

__all__ = [
    "ContentGenerator",
    "MarketplaceContentGenerator",
    "MarketplaceContent",
    "build_default_attributes",
    "build_image_alts",
    "content_defaults",
    "CONTENT_GENERATION_CONFIG",
    "MARKETPLACE_CONTENT_CONFIG",
    "MARKETPLACE_LANGUAGES",
    "format_content_prompt",
    "format_marketplace_prompt",
]
