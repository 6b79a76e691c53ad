import asyncio

import httpx
import pytest

from product_creator.utils.errors import (
    AllProvidersFailedError,
    ConfigurationError,
    ErrorHandler,
    ErrorKind,
    MalformedResponseError,
    NoProviderConfiguredError,
    ProviderTransportError,
    ProviderUnavailableError,
    QuotaExceededError,
    RateLimitedError,
    classify_http_error,
)


@pytest.mark.parametrize("status_code,body,expected", [
    (429, "", RateLimitedError),
    (500, '{"error": "Rate limit reached for model"}', RateLimitedError),
    (402, "", QuotaExceededError),
    (429, '{"error": {"code": "insufficient_quota"}}', QuotaExceededError),
    (403, "Your billing account is inactive", QuotaExceededError),
    (500, "Internal Server Error", ProviderTransportError),
    (500, "Internal Server Error (request id req_84290ab)", ProviderTransportError),
    (401, "invalid api key", ProviderTransportError),
])
def test_classify_http_error(status_code, body, expected):
    error = classify_http_error("groq", status_code, body)
    assert type(error) is expected
    assert error.provider_id == "groq"
    assert error.status_code == status_code
    assert error.message.startswith(f"HTTP {status_code}")


def test_classify_http_error_custom_markers():
    error = classify_http_error(
        "deepseek", 400, "Insufficient Balance", quota_markers=("insufficient balance",)
    )
    assert isinstance(error, QuotaExceededError)


def test_provider_error_str_includes_provider():
    error = RateLimitedError("cerebras", "HTTP 429")
    assert str(error) == "[cerebras] HTTP 429"
    assert error.kind == ErrorKind.RATE_LIMITED


@pytest.mark.parametrize("error,kind", [
    (asyncio.TimeoutError(), ErrorKind.TRANSPORT),
    (httpx.ConnectError("refused"), ErrorKind.TRANSPORT),
    (ValueError("bad json"), ErrorKind.MALFORMED_RESPONSE),
    (RuntimeError("quota exhausted for today"), ErrorKind.QUOTA_EXCEEDED),
    (RuntimeError("Too Many Requests"), ErrorKind.RATE_LIMITED),
    (RuntimeError("Error code: 429"), ErrorKind.RATE_LIMITED),
    (RuntimeError("upstream failed, trace 184290"), ErrorKind.UNKNOWN),
    (RuntimeError("connection reset"), ErrorKind.TRANSPORT),
    (RuntimeError("boom"), ErrorKind.UNKNOWN),
    (ConfigurationError("missing"), ErrorKind.CONFIGURATION),
])
def test_categorize_error(error, kind):
    assert ErrorHandler.categorize_error(error) == kind


def test_to_provider_error_wraps_unknown_as_transport():
    error = ErrorHandler.to_provider_error("mistral", RuntimeError("boom"))
    assert isinstance(error, ProviderTransportError)
    assert error.message == "boom"


def test_to_provider_error_keeps_provider_errors():
    original = MalformedResponseError("google", "Empty response")
    assert ErrorHandler.to_provider_error("other", original) is original


def test_no_provider_configured_is_both_unavailable_and_configuration():
    error = NoProviderConfiguredError("vision")
    assert isinstance(error, ProviderUnavailableError)
    assert isinstance(error, ConfigurationError)
    assert error.capability == "vision"


def test_all_providers_failed_lists_attempts_in_order():
    error = AllProvidersFailedError("text", [("groq", "HTTP 429"), ("cerebras", "timed out")])
    assert isinstance(error, ProviderUnavailableError)
    assert not isinstance(error, ConfigurationError)
    assert error.provider_ids == ["groq", "cerebras"]
    assert str(error).index("groq: HTTP 429") < str(error).index("cerebras: timed out")
