import pytest
from pydantic import ValidationError

from product_creator.config.settings import Settings, get_settings


def test_defaults():
    settings = Settings(_env_file=None)
    assert settings.default_language == "pl"
    assert settings.default_currency == "PLN"
    assert settings.default_vat_rate == 23.0
    assert settings.configured_providers() == []


def test_reads_provider_keys_from_environment(monkeypatch):
    monkeypatch.setenv("GROQ_API_KEY", "gsk-test")
    monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-test")
    settings = Settings(_env_file=None)
    assert settings.get_api_key("groq_api_key") == "gsk-test"
    assert settings.configured_providers() == ["groq_api_key", "anthropic_api_key"]


def test_blank_key_is_not_configured(monkeypatch):
    monkeypatch.setenv("MISTRAL_API_KEY", "   ")
    settings = Settings(_env_file=None)
    assert settings.get_api_key("mistral_api_key") is None
    assert settings.configured_providers() == []


def test_keys_are_secret(monkeypatch):
    monkeypatch.setenv("GROQ_API_KEY", "gsk-very-secret")
    assert "gsk-very-secret" not in repr(Settings(_env_file=None))


def test_currency_is_normalized():
    assert Settings(_env_file=None, DEFAULT_CURRENCY=" eur ").default_currency == "EUR"


@pytest.mark.parametrize("currency", ["EURO", "E1R"])
def test_invalid_currency_rejected(currency):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, DEFAULT_CURRENCY=currency)


def test_invalid_language_rejected():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, DEFAULT_LANGUAGE="fr")


def test_get_settings_is_cached():
    assert get_settings() is get_settings()
