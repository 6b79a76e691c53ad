"""
Vision analysis prompts for the Product AI Creator pipeline.

Each supported language has its own system prompt and instruction template.
The templates ask for a single JSON object whose keys match
``VisionAnalysis`` (camelCase); anything the model gets wrong is repaired by
the lenient decoder downstream, so the prompts favour clarity over rigidity.
"""

from dataclasses import dataclass
from typing import Optional

from product_creator.models.schemas import Language


# =============================================================================
# Prompt Configuration
# =============================================================================

@dataclass(frozen=True)
class PromptConfig:
    """Configuration for a prompt template."""
    name: str
    description: str
    recommended_temperature: float
    recommended_max_tokens: int

    def __repr__(self) -> str:
        return f"PromptConfig({self.name}, temp={self.recommended_temperature})"


VISION_ANALYSIS_CONFIG = PromptConfig(
    name="vision_analysis",
    description="Describe a product from its photographs as structured JSON",
    recommended_temperature=0.3,
    recommended_max_tokens=4000,
)


# =============================================================================
# System Prompts
# =============================================================================

VISION_SYSTEM_EN = """You are an expert product analyst preparing e-commerce listings from product photographs.

<guidelines>
1. ACCURACY: Describe only what is visible in the images or stated by the seller. Never invent brands or model numbers.
2. SPECIFICITY: Prefer concrete product types ("Wicker privacy mat") over generic ones ("Garden item").
3. CONFIDENCE: Report how certain you are as a number between 0.0 and 1.0.
4. FORMAT: Respond with one valid JSON object. No markdown, no code blocks, no commentary.
</guidelines>"""

VISION_SYSTEM_PL = """Jesteś ekspertem od analizy produktów, przygotowującym oferty e-commerce na podstawie zdjęć produktu.

<zasady>
1. DOKŁADNOŚĆ: Opisuj tylko to, co widać na zdjęciach lub co podał sprzedawca. Nie wymyślaj marek ani modeli.
2. KONKRET: Wybieraj konkretne typy produktów ("Mata wiklinowa osłonowa") zamiast ogólnych ("Artykuł ogrodowy").
3. PEWNOŚĆ: Podaj swoją pewność jako liczbę od 0.0 do 1.0.
4. FORMAT: Odpowiedz jednym prawidłowym obiektem JSON. Bez markdown, bez bloków kodu, bez komentarzy.
</zasady>"""

VISION_SYSTEM_DE = """Du bist ein Experte für Produktanalyse und erstellst E-Commerce-Angebote anhand von Produktfotos.

<richtlinien>
1. GENAUIGKEIT: Beschreibe nur, was auf den Bildern sichtbar ist oder vom Verkäufer angegeben wurde. Erfinde keine Marken oder Modelle.
2. KONKRETHEIT: Bevorzuge konkrete Produkttypen ("Weidenmatte Sichtschutz") statt allgemeiner ("Gartenartikel").
3. SICHERHEIT: Gib deine Sicherheit als Zahl zwischen 0.0 und 1.0 an.
4. FORMAT: Antworte mit einem einzigen gültigen JSON-Objekt. Kein Markdown, keine Code-Blöcke, keine Kommentare.
</richtlinien>"""


# =============================================================================
# User Templates
# =============================================================================

VISION_OUTPUT_SCHEMA = """{{
  "productType": "string - specific product type",
  "detectedBrand": "string or null",
  "detectedModel": "string or null",
  "colors": ["array", "of", "colors"],
  "materials": ["array", "of", "materials"],
  "style": "string or null",
  "condition": "new | used | refurbished | null",
  "features": ["array", "of", "visible", "features"],
  "suggestedCategories": ["Category > Subcategory"],
  "confidence": 0.0
}}"""

VISION_USER_EN = """<task>
Analyze these {image_count} product image(s) and extract the information needed for an online store listing.
</task>

<instructions>
1. PRODUCT TYPE: What exactly is this product?
2. BRAND AND MODEL: Read any visible labels, logos or tags.
3. COLORS: List every visible color, dominant color first.
4. MATERIALS: Wood type, fabric, metal, plastic, weave type, filling.
5. STYLE: Modern, rustic, classic, minimalist, etc.
6. CONDITION: New, used or refurbished, judged from visible wear.
7. FEATURES: Construction details, quality indicators, included accessories.
8. CATEGORIES: Suggest store category paths, most specific last.
</instructions>
{hint_section}
<output_schema>
""" + VISION_OUTPUT_SCHEMA + """
</output_schema>"""

VISION_USER_PL = """<zadanie>
Przeanalizuj {image_count} zdjęć produktu i wyodrębnij informacje potrzebne do oferty w sklepie internetowym.
</zadanie>

<instrukcje>
1. TYP PRODUKTU: Czym dokładnie jest ten produkt?
2. MARKA I MODEL: Odczytaj widoczne etykiety, logo lub metki.
3. KOLORY: Wymień wszystkie widoczne kolory, dominujący jako pierwszy.
4. MATERIAŁY: Rodzaj drewna, tkanina, metal, tworzywo, splot, wypełnienie.
5. STYL: Nowoczesny, rustykalny, klasyczny, minimalistyczny itp.
6. STAN: Nowy, używany lub odnowiony, na podstawie widocznego zużycia.
7. CECHY: Szczegóły konstrukcji, oznaki jakości, dołączone akcesoria.
8. KATEGORIE: Zaproponuj ścieżki kategorii sklepu, najbardziej szczegółową na końcu.
</instrukcje>
{hint_section}
Wartość pola "condition" podaj po angielsku (new, used, refurbished).

<schemat_odpowiedzi>
""" + VISION_OUTPUT_SCHEMA + """
</schemat_odpowiedzi>"""

VISION_USER_DE = """<aufgabe>
Analysiere diese {image_count} Produktbild(er) und extrahiere die Informationen für ein Angebot im Online-Shop.
</aufgabe>

<anweisungen>
1. PRODUKTTYP: Was genau ist dieses Produkt?
2. MARKE UND MODELL: Lies sichtbare Etiketten, Logos oder Anhänger.
3. FARBEN: Nenne alle sichtbaren Farben, die dominante zuerst.
4. MATERIALIEN: Holzart, Stoff, Metall, Kunststoff, Flechtart, Füllung.
5. STIL: Modern, rustikal, klassisch, minimalistisch usw.
6. ZUSTAND: Neu, gebraucht oder generalüberholt, nach sichtbaren Gebrauchsspuren.
7. EIGENSCHAFTEN: Konstruktionsdetails, Qualitätsmerkmale, mitgeliefertes Zubehör.
8. KATEGORIEN: Schlage Shop-Kategoriepfade vor, die spezifischste zuletzt.
</anweisungen>
{hint_section}
Gib den Wert von "condition" auf Englisch an (new, used, refurbished).

<ausgabeschema>
""" + VISION_OUTPUT_SCHEMA + """
</ausgabeschema>"""

HINT_SECTIONS = {
    Language.EN: '\n<seller_hint>\n"{hint}"\nUse this hint to guide your analysis and confirm product details.\n</seller_hint>\n',
    Language.PL: '\n<wskazówka_sprzedawcy>\n"{hint}"\nWykorzystaj tę wskazówkę, aby potwierdzić szczegóły produktu.\n</wskazówka_sprzedawcy>\n',
    Language.DE: '\n<verkäuferhinweis>\n"{hint}"\nNutze diesen Hinweis, um die Produktdetails zu bestätigen.\n</verkäuferhinweis>\n',
}

VISION_PROMPTS = {
    Language.EN: (VISION_SYSTEM_EN, VISION_USER_EN),
    Language.PL: (VISION_SYSTEM_PL, VISION_USER_PL),
    Language.DE: (VISION_SYSTEM_DE, VISION_USER_DE),
}


# =============================================================================
# Prompt Formatter Functions
# =============================================================================

def format_vision_prompt(
    language: Language | str = Language.PL,
    user_hint: Optional[str] = None,
    image_count: int = 1,
) -> tuple[str, str]:
    """
    Format the vision analysis prompt.

    Args:
        language: Prompt language
        user_hint: Optional seller note about the product
        image_count: Number of attached images

    Returns:
        Tuple of (system_prompt, user_prompt)
    """
    language = Language(language)
    system_prompt, template = VISION_PROMPTS[language]

    hint_section = ""
    if user_hint and user_hint.strip():
        hint_section = HINT_SECTIONS[language].format(hint=user_hint.strip())

    user_prompt = template.format(image_count=image_count, hint_section=hint_section)
    return system_prompt, user_prompt


__all__ = [
    "PromptConfig",
    "VISION_ANALYSIS_CONFIG",
    "VISION_SYSTEM_EN",
    "VISION_SYSTEM_PL",
    "VISION_SYSTEM_DE",
    "VISION_PROMPTS",
    "format_vision_prompt",
]
