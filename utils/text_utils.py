"""
Text utilities for handles, category paths and generated text.
"""

import re
import unicodedata
from typing import Optional


RESPONSE_PREFIXES = [
    re.compile(r'^Translation:\s*', re.IGNORECASE),
    re.compile(r'^Output:\s*', re.IGNORECASE),
    re.compile(r'^Result:\s*', re.IGNORECASE),
    re.compile(r'^Here is.*?:\s*', re.IGNORECASE),
    re.compile(r'^The translation is:\s*', re.IGNORECASE),
    re.compile(r'^Translated text:\s*', re.IGNORECASE),
    re.compile(r'^Bulgarian translation:\s*', re.IGNORECASE),
]


def sanitize_handle(value: Optional[str]) -> str:
    """
    Turn an identifier into a URL-safe catalog handle.

    - "Drill A" → "drill-a"
    - "Café_Noir" → "cafe-noir"
    - "--x--" → "x"

    Args:
        value: Raw identifier (usually the vendor product id)

    Returns:
        Lowercase handle with only word characters and single hyphens
    """
    if not value:
        return ""

    handle = str(value).lower().strip()
    handle = re.sub(r'[\s_]+', '-', handle)

    # Drop accent marks after NFD decomposition
    handle = unicodedata.normalize('NFD', handle)
    handle = ''.join(c for c in handle if unicodedata.category(c) != 'Mn')

    handle = re.sub(r'[^\w\-]', '', handle)
    handle = re.sub(r'-+', '-', handle)
    return handle.strip('-')


def collapse_whitespace(value: Optional[str]) -> str:
    """Collapse runs of whitespace to single spaces and trim."""
    if not value:
        return ""
    return re.sub(r'\s+', ' ', value).strip()


def normalize_category_path(path: Optional[str]) -> str:
    """
    Normalize a "/"-separated category path.

    Trims the path and the whitespace around each separator, so
    " Tools / Drills " and "Tools/Drills" compare equal.
    """
    if not path:
        return ""
    return re.sub(r'\s*/\s*', '/', path.strip())


def split_category_path(path: Optional[str]) -> list[str]:
    """Split a normalized path into non-empty trimmed segments."""
    return [segment.strip() for segment in normalize_category_path(path).split("/") if segment.strip()]


def clean_generated_text(text: Optional[str]) -> str:
    """
    Clean text returned by a text generation provider.

    Removes zero-width and control characters, escapes bare ampersands,
    collapses whitespace and strips chatty prefixes such as "Translation:".

    Args:
        text: Raw provider output

    Returns:
        Cleaned text (empty string for empty input)
    """
    if not text:
        return ""

    cleaned = re.sub(r'[\u200B-\u200D\uFEFF]', '', text)
    cleaned = re.sub(r'[\u2028\u2029]', '\n', cleaned)
    cleaned = re.sub(r'[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]', '', cleaned)
    cleaned = re.sub(r'&(?![#\w]+;)', '&amp;', cleaned)
    cleaned = re.sub(r'[ \t]+', ' ', cleaned)
    cleaned = re.sub(r'\n{3,}', '\n\n', cleaned)
    cleaned = cleaned.strip()

    for prefix in RESPONSE_PREFIXES:
        cleaned = prefix.sub('', cleaned)

    return cleaned.strip()


def strip_code_fences(text: Optional[str]) -> str:
    """Remove markdown code fences (```json, ```html, ```) from a response."""
    if not text:
        return ""
    cleaned = re.sub(r'```[\w]*\n?', '', text)
    return cleaned.replace('```', '').strip()


def truncate(text: Optional[str], limit: int) -> str:
    """Truncate to limit characters, ending with "..." when cut."""
    if not text:
        return ""
    if len(text) <= limit:
        return text
    return text[:limit - 3] + "..."


def parse_decimal_string(value: Optional[str]) -> Optional[float]:
    """
    Parse vendor numbers like "1 234,5", "0.75" or "1,2 kg".

    Only the leading number counts; trailing units are ignored.

    Returns:
        Float value, or None when the text does not start with a number
    """
    if value is None:
        return None
    cleaned = re.sub(r'\s', '', str(value)).replace(",", ".")
    match = re.match(r'^[-+]?\d*\.?\d+', cleaned)
    if not match:
        return None
    return float(match.group(0))
