"""
Services package for Product AI Creator.

Services:
    - FailoverOrchestrator: Priority-ordered provider failover
    - ImageFetcher: Image loading for the vision stage
    - ValidationService: Canonical product merge and validation
"""

from product_creator.services.failover import (
    FailoverOrchestrator,
    FailoverOutcome,
    FailoverRun,
    FailoverState,
    ProviderAttempt,
)
from product_creator.services.image_service import ImageFetcher, ImageFetchError
from product_creator.services.validation_service import (
    FIELD_PRECEDENCE,
    SourceRef,
    ValidationOutcome,
    ValidationService,
    resolve_field,
)

__all__ = [
    "FailoverOrchestrator",
    "FailoverOutcome",
    "FailoverRun",
    "FailoverState",
    "ProviderAttempt",
    "ImageFetcher",
    "ImageFetchError",
    "FIELD_PRECEDENCE",
    "SourceRef",
    "ValidationOutcome",
    "ValidationService",
    "resolve_field",
]
