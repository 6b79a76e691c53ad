"""
Integration tests for the CLI using Click's CliRunner.
"""

import json
from unittest.mock import patch

import click
import pytest
from click.testing import CliRunner
from rich.console import Console

from conftest import FakeAdapter, IMAGE_BYTES

from product_creator.config.settings import Settings
from product_creator.main import cli, image_from_argument
from product_creator.providers.registry import ProviderRegistry

# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def wide_console():
    """Keep Rich tables from wrapping provider names."""
    with patch("product_creator.main.console", Console(width=200)):
        yield


@pytest.fixture(autouse=True)
def patched_settings(settings):
    """Globally patch get_settings for all tests."""
    with patch("product_creator.main.get_settings", return_value=settings):
        yield settings


@pytest.fixture
def image_file(tmp_path):
    path = tmp_path / "mat.jpg"
    path.write_bytes(IMAGE_BYTES)
    return path


@pytest.fixture
def use_adapters(settings, mocker):
    """Route the CLI's registry through scripted adapters."""
    def install(*adapters):
        registry = ProviderRegistry.from_adapters(adapters, settings=settings)
        mocker.patch("product_creator.main.create_registry", return_value=registry)
        return registry

    return install


# =============================================================================
# run
# =============================================================================

def test_run_saves_report(runner, use_adapters, image_file, tmp_path, vision_json, content_json):
    use_adapters(
        FakeAdapter("google", 3, supports_vision=True, responses=[vision_json]),
        FakeAdapter("groq", 1, responses=[content_json]),
    )
    report = tmp_path / "report.json"

    result = runner.invoke(cli, ["run", str(image_file), "--price", "123", "--output", str(report)])

    assert result.exit_code == 0, result.output
    assert "Report saved to" in result.output
    data = json.loads(report.read_text(encoding="utf-8"))
    assert data["status"] == "completed"
    assert data["product"]["pricing"]["gross"] == 123.0
    assert data["product"]["images"][0]["url"] == image_file.resolve().as_uri()


def test_run_markdown_report_in_output_dir(runner, use_adapters, image_file, settings, vision_json, content_json):
    use_adapters(
        FakeAdapter("google", 3, supports_vision=True, responses=[vision_json]),
        FakeAdapter("groq", 1, responses=[content_json]),
    )

    result = runner.invoke(cli, ["run", str(image_file), "--format", "markdown", "--language", "en"])

    assert result.exit_code == 0, result.output
    reports = list(settings.output_dir.glob("*.md"))
    assert len(reports) == 1
    assert reports[0].name.startswith("acme-wicker-privacy-mat-1x3-m_")


def test_run_without_vision_provider_exits_1(runner, use_adapters, image_file, tmp_path):
    use_adapters(FakeAdapter("groq", 1))

    result = runner.invoke(cli, ["run", str(image_file), "--output", str(tmp_path / "failed.json")])

    assert result.exit_code == 1
    data = json.loads((tmp_path / "failed.json").read_text(encoding="utf-8"))
    assert data["status"] == "failed"
    assert data["vision_analysis"]["status"] == "failed"


def test_run_missing_image_is_usage_error(runner, use_adapters, tmp_path):
    use_adapters(FakeAdapter("google", 3, supports_vision=True))
    result = runner.invoke(cli, ["run", str(tmp_path / "missing.jpg")])
    assert result.exit_code == 2
    assert "Image not found" in result.output


def test_run_invalid_price_exits_2(runner, use_adapters, image_file):
    use_adapters(FakeAdapter("google", 3, supports_vision=True))
    result = runner.invoke(cli, ["run", str(image_file), "--price", "-5"])
    assert result.exit_code == 2
    assert "Invalid input" in result.output


def test_run_requires_images(runner):
    result = runner.invoke(cli, ["run"])
    assert result.exit_code == 2


# =============================================================================
# providers / test-providers / validate-setup
# =============================================================================

def test_providers_lists_every_provider(runner):
    with patch("product_creator.main.get_settings", return_value=Settings(_env_file=None, GROQ_API_KEY="gsk")):
        result = runner.invoke(cli, ["providers"])

    assert result.exit_code == 0
    for provider_id in ("groq", "cerebras", "google", "mistral", "deepseek", "openrouter", "anthropic"):
        assert provider_id in result.output


def test_test_providers_without_keys_exits_1(runner):
    result = runner.invoke(cli, ["test-providers"])
    assert result.exit_code == 1
    assert "No providers configured" in result.output


def test_test_providers_reports_results(runner, use_adapters):
    use_adapters(FakeAdapter("groq", 1, responses=["OK"]))
    result = runner.invoke(cli, ["test-providers"])
    assert result.exit_code == 0
    assert "Pass" in result.output


def test_test_providers_failure_exits_1(runner, use_adapters):
    use_adapters(
        FakeAdapter("groq", 1, responses=["OK"]),
        FakeAdapter("mistral", 4, responses=[RuntimeError("401 Unauthorized")]),
    )
    result = runner.invoke(cli, ["test-providers"])
    assert result.exit_code == 1
    assert "Fail" in result.output


def test_validate_setup_without_vision_provider(runner):
    with patch("product_creator.main.get_settings", return_value=Settings(_env_file=None, GROQ_API_KEY="gsk")):
        result = runner.invoke(cli, ["validate-setup"])
    assert result.exit_code == 1
    assert "Warning" in result.output


def test_validate_setup_passes_with_vision_provider(runner):
    settings = Settings(_env_file=None, GOOGLE_AI_API_KEY="goog")
    with patch("product_creator.main.get_settings", return_value=settings):
        result = runner.invoke(cli, ["validate-setup"])
    assert result.exit_code == 0, result.output
    assert "google" in result.output


def test_validate_setup_reports_configuration_error(runner):
    with patch("product_creator.main.get_settings", side_effect=ValueError("DEFAULT_CURRENCY invalid")):
        result = runner.invoke(cli, ["validate-setup"])
    assert result.exit_code == 1
    assert "Configuration Error" in result.output


# =============================================================================
# Helpers
# =============================================================================

def test_image_argument_urls_pass_through():
    assert image_from_argument("https://cdn.example.com/a.jpg").url == "https://cdn.example.com/a.jpg"


def test_image_argument_local_path(image_file):
    image = image_from_argument(str(image_file))
    assert image.url.startswith("file://")
    assert image.filename == "mat.jpg"


def test_image_argument_missing_path(tmp_path):
    with pytest.raises(click.BadParameter):
        image_from_argument(str(tmp_path / "nope.jpg"))
