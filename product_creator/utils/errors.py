"""
Error taxonomy and classification helpers.

Provider failures are classified into a small set of kinds that the failover
orchestrator treats uniformly ("try the next provider"). Configuration and
aggregate failures share a common base so callers can handle "no provider
could serve this" in one place while still telling the two cases apart.
"""

import asyncio
import re
from enum import Enum
from typing import Iterable, Optional

import httpx


# =============================================================================
# Error Kinds
# =============================================================================

class ErrorKind(str, Enum):
    """Classification of a single provider failure."""
    RATE_LIMITED = "rate_limited"
    QUOTA_EXCEEDED = "quota_exceeded"
    TRANSPORT = "transport"
    MALFORMED_RESPONSE = "malformed_response"
    CAPABILITY = "capability"
    CONFIGURATION = "configuration"
    UNKNOWN = "unknown"


RATE_LIMIT_MARKERS: tuple[str, ...] = (
    "rate limit",
    "rate_limit",
    "too many requests",
)

QUOTA_MARKERS: tuple[str, ...] = (
    "insufficient_quota",
    "quota",
    "billing",
)

# Status code quoted in an SDK or proxy message, not part of a longer number
_RATE_LIMIT_STATUS_PATTERN = re.compile(r"(?<!\d)429(?!\d)")


# =============================================================================
# Custom Exceptions
# =============================================================================

class AppError(Exception):
    """Base application exception."""
    pass


class ConfigurationError(AppError):
    """Raised when required configuration is missing or invalid."""
    pass


class ProviderUnavailableError(AppError):
    """No provider could serve a request for a capability."""

    def __init__(self, message: str, capability: str):
        super().__init__(message)
        self.capability = capability


class NoProviderConfiguredError(ProviderUnavailableError, ConfigurationError):
    """Raised before any network call when a capability has no configured provider."""

    def __init__(self, capability: str):
        super().__init__(
            f"No AI providers configured for {capability} requests. "
            "Set at least one provider API key.",
            capability=capability,
        )


class ProviderError(AppError):
    """A single adapter call failed."""

    kind: ErrorKind = ErrorKind.UNKNOWN

    def __init__(
        self,
        provider_id: str,
        message: str,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.provider_id = provider_id
        self.message = message
        self.status_code = status_code

    def __str__(self) -> str:
        return f"[{self.provider_id}] {self.message}"


class RateLimitedError(ProviderError):
    kind = ErrorKind.RATE_LIMITED


class QuotaExceededError(ProviderError):
    kind = ErrorKind.QUOTA_EXCEEDED


class ProviderTransportError(ProviderError):
    """Non-2xx status, connection failure or timeout."""
    kind = ErrorKind.TRANSPORT


class MalformedResponseError(ProviderError):
    """The provider answered but the body carried no usable text."""
    kind = ErrorKind.MALFORMED_RESPONSE


class CapabilityError(ProviderError):
    """The adapter (or the requested model) cannot serve this kind of request."""
    kind = ErrorKind.CAPABILITY


class AllProvidersFailedError(ProviderUnavailableError):
    """
    Every adapter for a capability was attempted and failed.

    ``attempts`` holds ``(provider_id, message)`` pairs in attempt order; the
    exception message lists them the same way.
    """

    def __init__(self, capability: str, attempts: Iterable[tuple[str, str]]):
        self.attempts = list(attempts)
        details = "; ".join(f"{provider}: {error}" for provider, error in self.attempts)
        super().__init__(
            f"All {capability} providers failed. {details}",
            capability=capability,
        )

    @property
    def provider_ids(self) -> list[str]:
        return [provider for provider, _ in self.attempts]


class ParseError(AppError):
    """Model output could not be decoded; always recovered with defaults."""
    pass


class SchemaValidationError(AppError):
    """Raised when a record doesn't match the canonical schema."""

    def __init__(self, message: str, errors: list[str]):
        super().__init__(message)
        self.errors = errors


class PipelineError(AppError):
    """Raised for invalid pipeline invocation, never for stage failures."""
    pass


# =============================================================================
# Classification
# =============================================================================

def _contains_marker(text: str, markers: Iterable[str]) -> bool:
    lowered = text.lower()
    return any(marker in lowered for marker in markers)


def classify_http_error(
    provider_id: str,
    status_code: int,
    body: str = "",
    rate_limit_markers: Iterable[str] = RATE_LIMIT_MARKERS,
    quota_markers: Iterable[str] = QUOTA_MARKERS,
) -> ProviderError:
    """
    Build the provider error matching a non-2xx response.

    Quota/billing markers (or HTTP 402) win over the rate-limit rule because
    several vendors report an exhausted balance with status 429.
    """
    snippet = body.strip()[:300]
    message = f"HTTP {status_code}: {snippet}" if snippet else f"HTTP {status_code}"

    if status_code == 402 or _contains_marker(body, quota_markers):
        return QuotaExceededError(provider_id, message, status_code)
    if status_code == 429 or _contains_marker(body, rate_limit_markers):
        return RateLimitedError(provider_id, message, status_code)
    return ProviderTransportError(provider_id, message, status_code)


class ErrorHandler:
    """Centralized error categorization."""

    @staticmethod
    def categorize_error(error: BaseException) -> ErrorKind:
        """Map any exception raised during a provider call onto an ErrorKind."""
        if isinstance(error, ProviderError):
            return error.kind
        if isinstance(error, ConfigurationError):
            return ErrorKind.CONFIGURATION
        if isinstance(error, (asyncio.TimeoutError, httpx.TimeoutException)):
            return ErrorKind.TRANSPORT
        if isinstance(error, (httpx.TransportError, ConnectionError, OSError)):
            return ErrorKind.TRANSPORT
        if isinstance(error, httpx.HTTPStatusError):
            return classify_http_error(
                "unknown", error.response.status_code, error.response.text
            ).kind
        if isinstance(error, ValueError):
            return ErrorKind.MALFORMED_RESPONSE

        err_str = str(error)
        if _contains_marker(err_str, QUOTA_MARKERS):
            return ErrorKind.QUOTA_EXCEEDED
        if _contains_marker(err_str, RATE_LIMIT_MARKERS) or _RATE_LIMIT_STATUS_PATTERN.search(err_str):
            return ErrorKind.RATE_LIMITED
        if _contains_marker(err_str, ("timeout", "timed out", "connection")):
            return ErrorKind.TRANSPORT

        return ErrorKind.UNKNOWN

    @staticmethod
    def to_provider_error(provider_id: str, error: BaseException) -> ProviderError:
        """Wrap an arbitrary exception into the matching ProviderError subclass."""
        if isinstance(error, ProviderError):
            return error

        kind = ErrorHandler.categorize_error(error)
        message = str(error) or type(error).__name__
        error_cls = {
            ErrorKind.RATE_LIMITED: RateLimitedError,
            ErrorKind.QUOTA_EXCEEDED: QuotaExceededError,
            ErrorKind.MALFORMED_RESPONSE: MalformedResponseError,
            ErrorKind.CAPABILITY: CapabilityError,
        }.get(kind, ProviderTransportError)
        return error_cls(provider_id, message)


__all__ = [
    "ErrorKind",
    "RATE_LIMIT_MARKERS",
    "QUOTA_MARKERS",
    "AppError",
    "ConfigurationError",
    "ProviderUnavailableError",
    "NoProviderConfiguredError",
    "ProviderError",
    "RateLimitedError",
    "QuotaExceededError",
    "ProviderTransportError",
    "MalformedResponseError",
    "CapabilityError",
    "AllProvidersFailedError",
    "ParseError",
    "SchemaValidationError",
    "PipelineError",
    "classify_http_error",
    "ErrorHandler",
]
