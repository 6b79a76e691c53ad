import pytest

from product_creator.utils.text import (
    calculate_gross_price,
    calculate_net_price,
    format_as_html,
    slugify,
    strip_html,
    truncate,
)


def test_truncate_short_text_unchanged():
    assert truncate("Wicker mat", 70) == "Wicker mat"


def test_truncate_adds_ellipsis():
    result = truncate("a" * 100, 70)
    assert len(result) == 70
    assert result.endswith("...")


def test_truncate_empty():
    assert truncate("", 10) == ""


@pytest.mark.parametrize("text,expected", [
    ("Acme Wicker Mat | Hochwertige Qualität", "acme-wicker-mat-hochwertige-qualitaet"),
    ("Mata wiklinowa Łódź żółta", "mata-wiklinowa-lodz-zolta"),
    ("  --Größe 1x3 m--  ", "groesse-1x3-m"),
])
def test_slugify(text, expected):
    assert slugify(text) == expected


def test_strip_html_collapses_whitespace_and_entities():
    assert strip_html("<p>Fish &amp; chips</p>\n<p>daily</p>") == "Fish & chips daily"


def test_format_as_html_wraps_paragraphs():
    assert format_as_html("First.\n\nSecond & last.") == "<p>First.</p>\n<p>Second &amp; last.</p>"


def test_format_as_html_keeps_existing_markup():
    assert format_as_html("<p>Ready</p>") == "<p>Ready</p>"


def test_net_and_gross_prices():
    assert calculate_net_price(123.0, 23.0) == pytest.approx(100.0)
    assert calculate_gross_price(100.0, 23.0) == pytest.approx(123.0)
    assert calculate_net_price(50.0, 0) == 50.0
