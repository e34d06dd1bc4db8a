"""
Prompt templates for product enrichment.

Templates use {{name}} placeholders filled by render(). List values are
joined with ", ".
"""

import re
from typing import Any


LANGUAGE_NAMES = {
    "bg": "Bulgarian",
    "en": "English",
    "eng": "English",
    "pl": "Polish",
    "de": "German",
    "ro": "Romanian",
    "el": "Greek",
}

# Only languages with a curated glossary get one in the prompt
TOOL_TERMINOLOGY = {
    "bg": """COMMON TOOL TERMS (do NOT confuse these):
- "Slotted screwdriver" → "Права отвертка" or "Плоска отвертка" (flat blade, NOT hexagonal)
- "Phillips screwdriver" → "Кръстата отвертка"
- "Hexagonal/Hex" → "Шестостенен"
- "Torx screwdriver" → "Torx отвертка"
- "Allen key/Hex key" → "Имбусов ключ"
- "Socket wrench" → "Тресчотка"
- "Spanner/Wrench" → "Гаечен ключ"
- "Pliers" → "Клещи"
- "Wire cutters" → "Клещи за рязане"
- "Drill" → "Бормашина"
- "Drill bit" → "Свредло"
- "Hammer" → "Чук"
- "Saw" → "Трион"
- "Measuring tape" → "Ролетка"
- "power tool" → "електроинструмент"
- Colors in parentheses: (black) → (черен), (white) → (бял), (red) → (червен)""",
}


TRANSLATE_PROMPT = """Translate this text to {{language}} using NATURAL, COMMONLY USED {{language}} terminology.

IMPORTANT RULES:
- Use terms that native speakers would actually use in everyday speech
- Avoid literal word-by-word translations
- Keep brand names, model numbers, and specifications EXACTLY as is
- Keep any HTML tags and their attributes unchanged

{{terminology}}

Text to translate:
{{text}}

Return ONLY the {{language}} translation."""


TRANSLATE_TITLE_PROMPT = """Translate this product title to {{language}} using NATURAL, COMMONLY USED {{language}} terminology.

{{brand_instruction}}

RULES:
- Keep technical specs as numbers/units (1200W, 24V, 5x150mm, etc.)
- Keep model numbers EXACTLY as is
- Return a title shoppers would actually search for

{{terminology}}

Product title:
{{title}}

Return ONLY the {{language}} title."""


CATEGORY_DESCRIPTION_PROMPT = """Generate a SHORT SEO-friendly category description for an e-commerce store.

Category path (name and parent hierarchy): {{path}}

RULES:
- Write 1-2 sentences only, max 160 characters total (suitable for meta description).
- Use the same language as the category path.
- Describe what products this category covers in a way that helps shoppers and search engines.
- No quotes, no prefix like "Description:". Output only the description text."""


META_TAGS_PROMPT = """Write SEO meta tags in {{language}} for this product.

Product name: {{product_name}}
Primary keyword: {{primary_keyword}}
Product description (English):
{{original_description}}

RULES:
- metaTitle: 50-60 characters, includes the primary keyword near the start
- metaDescription: 150-180 characters, benefit-led, ends with a soft call to action
- Write both in {{language}}

Return ONLY a JSON object:
{"metaTitle": "...", "metaDescription": "..."}"""


PRODUCT_DESCRIPTION_PROMPT = """You are an e-commerce copywriter. Rewrite this product description in {{language}}.

Product name: {{product_name}}
Primary keyword: {{primary_keyword}}
Target length: {{target_words}} words (between {{min_words}} and {{max_words}})

Original description (English, may contain HTML):
{{original_description}}

RULES:
- technicalSafeDescription: faithful translation, keep every technical fact, keep HTML structure
- seoEnhancedDescription: same facts, reorganised with <h2>/<h3>/<p>/<ul>, natural use of the keyword
- shortDescription: 1-2 sentences, plain text, max 250 characters
- Never invent specifications, certifications or accessories
- Keep brand names and model numbers exactly as is
- Escape double quotes inside values

Return ONLY a JSON object:
{"technicalSafeDescription": "...", "seoEnhancedDescription": "...", "shortDescription": "..."}"""


EXTRACT_INCLUDED_PROMPT = """Find the list of items included in the package in this product description.

Description:
{{description}}

RULES:
- Return an HTML fragment: <h3>{{heading}}</h3> followed by a <ul> with one <li> per item
- Translate the items to {{language}}
- If the description does not list included items, return exactly: null

Return ONLY the HTML fragment or null."""


EXTRACT_SPECIFICATIONS_PROMPT = """Extract the technical specifications from this product description.

Description (English):
{{description}}

RULES:
- Return an HTML <table> with one <tr><th>Name</th><td>Value</td></tr> row per specification
- Translate names and values to {{language}}, keep numbers and units as is
- If there are no specifications, return exactly: null

Return ONLY the HTML table or null."""


def language_name(code: str) -> str:
    """Human name for a language code, or the code itself."""
    return LANGUAGE_NAMES.get(code.lower(), code)


def render(template: str, **variables: Any) -> str:
    """
    Fill {{name}} placeholders.

    Unknown placeholders are left as is.
    """
    def replace(match: re.Match) -> str:
        key = match.group(1)
        if key not in variables:
            return match.group(0)
        value = variables[key]
        if isinstance(value, (list, tuple)):
            return ", ".join(str(item) for item in value)
        return "" if value is None else str(value)

    return re.sub(r'\{\{(\w+)\}\}', replace, template)
