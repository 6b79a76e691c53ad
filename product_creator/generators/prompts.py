"""
Content generation prompts for the Product AI Creator pipeline.

Two prompt families live here:
    1. Standard content - the full ``ContentGeneration`` record (name,
       descriptions, SEO fields, keywords, attributes, tags, alt texts)
    2. Marketplace content - the compact German/Polish marketplace listing
       format (benefit-style name, emoji bullet HTML, sectioned HTML, slug)

Both embed the vision findings, any seller-supplied raw data and the user
hint, and ask for a single raw JSON object.
"""

from typing import Optional

from product_creator.extractors.prompts import PromptConfig
from product_creator.models.schemas import Language, RawProductData, VisionAnalysis


# =============================================================================
# Prompt Configuration
# =============================================================================

CONTENT_GENERATION_CONFIG = PromptConfig(
    name="content_generation",
    description="Write marketing and SEO content from a vision analysis",
    recommended_temperature=0.7,
    recommended_max_tokens=3000,
)

MARKETPLACE_CONTENT_CONFIG = PromptConfig(
    name="marketplace_content",
    description="Write marketplace-format listing content (de/pl)",
    recommended_temperature=0.7,
    recommended_max_tokens=3000,
)

LANGUAGE_NAMES = {
    Language.PL: "Polish (Polski)",
    Language.EN: "English",
    Language.DE: "German (Deutsch)",
}

NOT_SPECIFIED = {
    Language.PL: "Nie określono",
    Language.EN: "Not specified",
    Language.DE: "Nicht angegeben",
}

UNKNOWN_BRAND = {
    Language.PL: "Nieznana",
    Language.EN: "Unknown",
    Language.DE: "Unbekannt",
}

RAW_DATA_HEADERS = {
    Language.PL: "## Dodatkowe dane",
    Language.EN: "## Additional Data",
    Language.DE: "## Zusätzliche Daten",
}

USER_HINT_HEADERS = {
    Language.PL: "## Uwaga sprzedawcy",
    Language.EN: "## User Note",
    Language.DE: "## Hinweis des Verkäufers",
}

# Seed fields worth showing to a copywriter
PROMPT_RAW_FIELDS = ("ean", "sku", "brand", "manufacturer", "price_gross", "currency", "weight")


# =============================================================================
# Standard Content
# =============================================================================

CONTENT_SYSTEM = """You are an expert e-commerce copywriter specializing in compelling product listings.

Your content should be:
- Engaging and persuasive
- SEO-optimized with natural keyword usage
- Professional yet approachable
- Focused on benefits and features
- Free of filler words and marketing cliches

You must respond with a valid JSON object (no markdown, no code blocks, just raw JSON).

Language: {language_name}. Write every text field in this language."""

CONTENT_USER = """Based on the following product analysis, create compelling product content:

## Product Analysis
- Type: {product_type}
- Brand: {brand}
- Model: {model}
- Colors: {colors}
- Materials: {materials}
- Style: {style}
- Features: {features}
- Categories: {categories}
{raw_data_section}{hint_section}
Generate the following content:

1. **Product Name**: A clear, searchable product name (max 255 chars)
2. **Short Description**: A brief summary for product listings (max 500 chars)
3. **Long Description**: A detailed description highlighting benefits and features
4. **HTML Description**: The long description formatted with HTML (use <p>, <ul>, <li>, <strong>)
5. **SEO Title**: Optimized title for search engines (max 70 chars)
6. **SEO Description**: Meta description for search results (max 160 chars)
7. **Keywords**: 5-10 relevant search keywords
8. **Attributes**: Key product attributes as key-value pairs
9. **Tags**: 5-15 tags for filtering and search
10. **Image Alt Texts**: One SEO-friendly alt text for each of the {image_count} image(s)

Respond with this exact JSON structure:
{{
  "name": "Product Name Here",
  "shortDescription": "Short description here...",
  "longDescription": "Detailed description here...",
  "htmlDescription": "<p>HTML formatted description...</p>",
  "seoTitle": "SEO Title | Brand",
  "seoDescription": "Meta description for search results...",
  "keywords": ["keyword1", "keyword2"],
  "attributes": {{"Color": "Black", "Material": "Leather"}},
  "tags": ["tag1", "tag2"],
  "imageAlts": ["Alt text for image 1"]
}}"""

CONTENT_TIPS = {
    Language.PL: (
        "\nFormat nazwy: [Marka] [Typ produktu] [Model] [Główna cecha]. "
        "Użyj polskich słów kluczowych i skup się na korzyściach dla klienta.\n"
    ),
    Language.EN: "",
    Language.DE: (
        "\nNamensformat: [Marke] [Produkttyp] [Modell] [Hauptmerkmal]. "
        "Verwende deutsche Suchbegriffe und betone den Kundennutzen.\n"
    ),
}


# =============================================================================
# Marketplace Content
# =============================================================================

MARKETPLACE_SYSTEM = {
    Language.DE: """Du bist ein erfahrener E-Commerce-Texter für Online-Marktplätze, spezialisiert auf überzeugende Produktbeschreibungen.

Dein Content muss:
- Ansprechend und überzeugend sein
- SEO-optimiert mit natürlicher Keyword-Nutzung
- Professionell aber zugänglich
- Auf Vorteile und Eigenschaften fokussiert

Du MUSST mit einem validen JSON-Objekt antworten (kein Markdown, keine Code-Blöcke, nur reines JSON).

Sprache: Deutsch""",
    Language.PL: """Jesteś ekspertem od copywritingu e-commerce dla platform marketplace, specjalizującym się w przekonujących opisach produktów.

Twoja treść musi być:
- Angażująca i przekonująca
- Zoptymalizowana pod SEO z naturalnym użyciem słów kluczowych
- Profesjonalna, ale przystępna
- Skoncentrowana na korzyściach i cechach

MUSISZ odpowiedzieć prawidłowym obiektem JSON (bez markdown, bez bloków kodu, tylko surowy JSON).

Język: Polski""",
}

MARKETPLACE_USER = {
    Language.DE: """Basierend auf der folgenden Produktanalyse, erstelle überzeugenden Content im Marktplatz-Format:

## Produktanalyse
- Typ: {product_type}
- Marke: {brand}
- Modell: {model}
- Farben: {colors}
- Materialien: {materials}
- Stil: {style}
- Eigenschaften: {features}
- Kategorien: {categories}
{raw_data_section}{hint_section}
## Erforderliches Format:

1. **Produktname** (60-120 Zeichen):
   Format: [Marke] [Produktname] [Variante/Größe] [Farbe] | [Hauptvorteil]

2. **Kurzbeschreibung** (HTML, 300-500 Zeichen):
   <p><strong>[Einleitungssatz]</strong></p>
   <p>✅ <strong>[Eigenschaft]:</strong> [Beschreibung]</p> (4 Zeilen)

3. **Langbeschreibung** (HTML, 800-1500 Zeichen):
   <h2>[Produktname]</h2>
   <p>[Einführungsabsatz]</p>
   <h3>Eigenschaften</h3><ul><li><strong>[Eigenschaft]:</strong> [Details]</li></ul>
   <h3>Technische Daten</h3><table><tr><td>Material:</td><td>[Wert]</td></tr></table>

4. **Slug**: Kleinbuchstaben, Bindestriche statt Leerzeichen, keine Umlaute (ae, oe, ue, ss)

Antworte mit dieser exakten JSON-Struktur:
{{
  "name": "Produktname hier",
  "shortDescription": "<p><strong>...</strong></p><p>✅ ...</p>",
  "longDescription": "<h2>...</h2><p>...</p><h3>...</h3>...",
  "slug": "url-freundlicher-slug"
}}""",
    Language.PL: """Na podstawie poniższej analizy produktu stwórz przekonujący content w formacie marketplace:

## Analiza produktu
- Typ: {product_type}
- Marka: {brand}
- Model: {model}
- Kolory: {colors}
- Materiały: {materials}
- Styl: {style}
- Cechy: {features}
- Kategorie: {categories}
{raw_data_section}{hint_section}
## Wymagany format:

1. **Nazwa produktu** (60-120 znaków):
   Format: [Marka] [Nazwa produktu] [Wariant/Rozmiar] [Kolor] | [Główna korzyść]

2. **Krótki opis** (HTML, 300-500 znaków):
   <p><strong>[Zdanie wprowadzające]</strong></p>
   <p>✅ <strong>[Cecha]:</strong> [Opis]</p> (4 linie)

3. **Długi opis** (HTML, 800-1500 znaków):
   <h2>[Nazwa produktu]</h2>
   <p>[Akapit wprowadzający]</p>
   <h3>Cechy produktu</h3><ul><li><strong>[Cecha]:</strong> [Szczegóły]</li></ul>
   <h3>Dane techniczne</h3><table><tr><td>Materiał:</td><td>[Wartość]</td></tr></table>

4. **Slug**: małe litery, myślniki zamiast spacji, bez polskich znaków (a zamiast ą, l zamiast ł)

Odpowiedz dokładnie tą strukturą JSON:
{{
  "name": "Nazwa produktu tutaj",
  "shortDescription": "<p><strong>...</strong></p><p>✅ ...</p>",
  "longDescription": "<h2>...</h2><p>...</p><h3>...</h3>...",
  "slug": "przyjazny-url-slug"
}}""",
}

MARKETPLACE_LANGUAGES = (Language.DE, Language.PL)


# =============================================================================
# Prompt Formatter Functions
# =============================================================================

def _raw_data_section(raw_data: Optional[RawProductData], language: Language) -> str:
    if raw_data is None:
        return ""
    values = raw_data.model_dump(include=set(PROMPT_RAW_FIELDS), exclude_none=True)
    lines = [f"- {key}: {value}" for key, value in values.items() if value != ""]
    if not lines:
        return ""
    return f"\n{RAW_DATA_HEADERS[language]}\n" + "\n".join(lines) + "\n"


def _hint_section(user_hint: Optional[str], language: Language) -> str:
    if not user_hint or not user_hint.strip():
        return ""
    return f'\n{USER_HINT_HEADERS[language]}\n"{user_hint.strip()}"\n'


def _analysis_fields(
    vision: VisionAnalysis,
    raw_data: Optional[RawProductData],
    language: Language,
) -> dict[str, str]:
    missing = NOT_SPECIFIED[language]
    brand = vision.detected_brand or (raw_data.brand if raw_data else None)
    return {
        "product_type": vision.product_type or missing,
        "brand": brand or UNKNOWN_BRAND[language],
        "model": vision.detected_model or missing,
        "colors": ", ".join(vision.colors) or missing,
        "materials": ", ".join(vision.materials) or missing,
        "style": vision.style or missing,
        "features": ", ".join(vision.features) or missing,
        "categories": " > ".join(vision.suggested_categories) or missing,
    }


def format_content_prompt(
    vision: VisionAnalysis,
    language: Language | str = Language.PL,
    user_hint: Optional[str] = None,
    raw_data: Optional[RawProductData] = None,
    image_count: int = 1,
) -> tuple[str, str]:
    """
    Format the standard content generation prompt.

    Args:
        vision: Findings from the vision stage
        language: Output language
        user_hint: Optional seller note
        raw_data: Optional seller-supplied seed data
        image_count: Number of product images needing alt texts

    Returns:
        Tuple of (system_prompt, user_prompt)
    """
    language = Language(language)
    system_prompt = CONTENT_SYSTEM.format(language_name=LANGUAGE_NAMES[language])
    user_prompt = CONTENT_USER.format(
        raw_data_section=_raw_data_section(raw_data, language),
        hint_section=_hint_section(user_hint, language) + CONTENT_TIPS[language],
        image_count=max(image_count, 1),
        **_analysis_fields(vision, raw_data, language),
    )
    return system_prompt, user_prompt


def format_marketplace_prompt(
    vision: VisionAnalysis,
    language: Language | str,
    user_hint: Optional[str] = None,
    raw_data: Optional[RawProductData] = None,
) -> tuple[str, str]:
    """
    Format the marketplace content prompt.

    Raises:
        ValueError: If ``language`` has no marketplace format.
    """
    language = Language(language)
    if language not in MARKETPLACE_LANGUAGES:
        raise ValueError(f"No marketplace format for language {language.value!r}")

    user_prompt = MARKETPLACE_USER[language].format(
        raw_data_section=_raw_data_section(raw_data, language),
        hint_section=_hint_section(user_hint, language),
        **_analysis_fields(vision, raw_data, language),
    )
    return MARKETPLACE_SYSTEM[language], user_prompt


__all__ = [
    "CONTENT_GENERATION_CONFIG",
    "MARKETPLACE_CONTENT_CONFIG",
    "CONTENT_SYSTEM",
    "MARKETPLACE_SYSTEM",
    "MARKETPLACE_LANGUAGES",
    "format_content_prompt",
    "format_marketplace_prompt",
]
