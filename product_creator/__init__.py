"""
Product AI Creator.

Turns product photographs into a validated e-commerce product record by
chaining vision analysis, content generation and schema validation over a
priority-ordered set of interchangeable LLM providers.
"""

__version__ = "1.0.0"
__author__ = "Product AI Creator Team"

# Lazy imports to avoid circular dependencies
def get_pipeline():
    """Get the ProductPipeline class (lazy import)."""
    from product_creator.pipeline.orchestrator import ProductPipeline
    return ProductPipeline

__all__ = ["get_pipeline", "__version__"]
