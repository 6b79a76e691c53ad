"""Text and pricing helpers shared by the models and stages."""

import html
import re
import unicodedata

ELLIPSIS = "..."

# Characters NFKD does not decompose into ASCII
_TRANSLITERATION = {
    "ä": "ae", "ö": "oe", "ü": "ue", "ß": "ss",
    "ł": "l", "Ł": "l",
    "æ": "ae", "ø": "o", "đ": "d",
}

_TAG_PATTERN = re.compile(r"<[^>]+>")
_WHITESPACE_PATTERN = re.compile(r"\s+")


def truncate(text: str, max_length: int) -> str:
    """Cut ``text`` to ``max_length`` characters, ending in an ellipsis when shortened."""
    if not text:
        return ""
    if len(text) <= max_length:
        return text
    if max_length <= len(ELLIPSIS):
        return text[:max_length]
    return text[: max_length - len(ELLIPSIS)].rstrip() + ELLIPSIS


def slugify(text: str) -> str:
    """
    URL-friendly slug: lowercase ASCII words joined by hyphens.

    German umlauts become two-letter digraphs (``ü`` -> ``ue``); other
    diacritics are dropped (``ż`` -> ``z``).
    """
    lowered = "".join(_TRANSLITERATION.get(ch, ch) for ch in str(text).lower())
    ascii_text = (
        unicodedata.normalize("NFKD", lowered)
        .encode("ascii", "ignore")
        .decode("ascii")
    )
    return re.sub(r"[^a-z0-9]+", "-", ascii_text).strip("-")


def strip_html(text: str) -> str:
    """Plain text with tags removed and whitespace collapsed."""
    if not text:
        return ""
    plain = html.unescape(_TAG_PATTERN.sub(" ", text))
    return _WHITESPACE_PATTERN.sub(" ", plain).strip()


def format_as_html(text: str) -> str:
    """Wrap blank-line separated paragraphs in <p> tags; HTML input is returned as is."""
    if not text:
        return ""
    if "<p>" in text or "<ul>" in text:
        return text
    paragraphs = [p.strip() for p in re.split(r"\n\s*\n+", text) if p.strip()]
    return "\n".join(f"<p>{html.escape(p, quote=False)}</p>" for p in paragraphs)


def calculate_net_price(gross: float, vat_rate: float = 23.0) -> float:
    """Net price from gross: ``gross / (1 + vat_rate / 100)``."""
    return gross / (1 + vat_rate / 100)


def calculate_gross_price(net: float, vat_rate: float = 23.0) -> float:
    """Gross price from net: ``net * (1 + vat_rate / 100)``."""
    return net * (1 + vat_rate / 100)
