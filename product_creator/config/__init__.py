"""Configuration package for Product AI Creator."""

from product_creator.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
