"""
Recover structured fields from loosely formatted model output.

Local and hosted models regularly wrap JSON in code fences, append
prose after it, forget to escape quotes inside long HTML values, or get
cut off mid-string. repair_json_response() tries, in order:

    1. strip code fences
    2. slice the first {...} object (depth matched)
       - no closing brace: regex-extract fields from the truncated tail
    3. json.loads
    4. re-escape stray quotes inside string values, json.loads again
    5. regex-extract each field by its aliases
    6. plain text (>100 chars, no "{") becomes the description
"""

import json
import re
from typing import Iterable, Optional

from utils.text_utils import strip_code_fences


KEY_LOOKAHEAD = re.compile(r'^\s*:')
PLAIN_TEXT_MIN_LENGTH = 100


def find_matching_brace(text: str, start: int) -> Optional[int]:
    """
    Index of the "}" closing the "{" at start, by plain depth count.

    Returns:
        Index of the closing brace, or None when the object never closes
    """
    depth = 0
    for index in range(start, len(text)):
        char = text[index]
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index
    return None


def fix_unescaped_quotes(text: str) -> str:
    """
    Escape quotes that appear inside string values.

    A quote followed by ":" is a key boundary. Outside a string a quote
    opens a value. Inside a string a quote followed by "," or "}" closes
    it, any other quote is escaped.
    """
    fixed = []
    in_string = False
    escape_next = False

    for index, char in enumerate(text):
        if escape_next:
            fixed.append(char)
            escape_next = False
            continue

        if char == "\\":
            escape_next = True
            fixed.append(char)
            continue

        if char != '"':
            fixed.append(char)
            continue

        rest = text[index + 1:]
        if KEY_LOOKAHEAD.match(rest):
            in_string = False
            fixed.append(char)
        elif not in_string:
            in_string = True
            fixed.append(char)
        elif rest.lstrip().startswith((",", "}")):
            in_string = False
            fixed.append(char)
        else:
            fixed.append('\\"')

    return "".join(fixed)


def unescape_json_string(value: str) -> str:
    return (
        value.replace("\\n", "\n")
        .replace("\\r", "\r")
        .replace("\\t", "\t")
        .replace('\\"', '"')
        .replace("\\\\", "\\")
    )


def extract_field(
    text: str,
    key: str,
    multiline: bool = False,
    truncated: bool = False
) -> str:
    """
    Pull one string value out of JSON-ish text by key name.

    Args:
        text: Response text
        key: JSON key to look for
        multiline: Value may contain raw newlines or stray quotes (long HTML)
        truncated: Text may end inside the value

    Returns:
        Unescaped value, or "" when not found
    """
    escaped_key = re.escape(key)

    if multiline:
        terminator = r'(?:"\s*(?:,|})|\Z)' if truncated else r'"\s*(?:,|})'
        match = re.search(rf'"{escaped_key}"\s*:\s*"([\s\S]*?){terminator}', text, re.IGNORECASE)
        if match and match.group(1):
            return unescape_json_string(match.group(1))

    match = re.search(rf'"{escaped_key}"\s*:\s*"((?:[^"\\]|\\.)*)"', text, re.IGNORECASE)
    if match and match.group(1):
        return unescape_json_string(match.group(1))

    match = re.search(rf'{escaped_key}\s*[:=]\s*"((?:[^"\\]|\\.)*)"', text, re.IGNORECASE)
    if match and match.group(1):
        return unescape_json_string(match.group(1))

    return ""


def extract_fields(
    text: str,
    fields: dict[str, list[str]],
    multiline_fields: Iterable[str] = (),
    truncated: bool = False
) -> dict[str, str]:
    """Regex-extract every field, trying its aliases in order."""
    multiline_fields = set(multiline_fields)
    result = {}
    for name, aliases in fields.items():
        value = ""
        for alias in aliases:
            value = extract_field(text, alias, multiline=name in multiline_fields, truncated=truncated)
            if value:
                break
        result[name] = value
    return result


def _from_parsed(parsed: dict, fields: dict[str, list[str]]) -> dict[str, str]:
    result = {}
    for name, aliases in fields.items():
        value = ""
        for alias in aliases:
            raw = parsed.get(alias)
            if raw is not None and str(raw).strip():
                value = str(raw).strip()
                break
        result[name] = value
    return result


def _has_required(result: dict[str, str], required: Optional[Iterable[str]]) -> bool:
    keys = list(required) if required else list(result.keys())
    return any(result.get(key) for key in keys)


def repair_json_response(
    response: Optional[str],
    fields: dict[str, list[str]],
    required: Optional[Iterable[str]] = None,
    multiline_fields: Iterable[str] = (),
    plain_text_fields: Iterable[str] = ()
) -> Optional[dict[str, str]]:
    """
    Recover named fields from a model response.

    Args:
        response: Raw response text
        fields: Canonical field name -> JSON key aliases, in priority order
        required: At least one of these must be non-empty for partial
            (regex) results to count. Defaults to all fields.
        multiline_fields: Fields whose values may span lines
        plain_text_fields: Fields filled with the whole response when it
            is long plain text with no JSON object in it

    Returns:
        Canonical field -> value (missing fields are ""), or None
    """
    if not response or not response.strip():
        return None

    cleaned = strip_code_fences(response)
    required = list(required) if required else None

    start = cleaned.find("{")
    if start == -1:
        plain_text_fields = list(plain_text_fields)
        if plain_text_fields and len(cleaned) > PLAIN_TEXT_MIN_LENGTH:
            return {name: (cleaned if name in plain_text_fields else "") for name in fields}
        return None

    end = find_matching_brace(cleaned, start)
    if end is None:
        partial = extract_fields(cleaned[start:], fields, multiline_fields, truncated=True)
        return partial if _has_required(partial, required) else None

    candidate = cleaned[start:end + 1]
    for attempt in (candidate, fix_unescaped_quotes(candidate)):
        try:
            parsed = json.loads(attempt, strict=False)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            return _from_parsed(parsed, fields)

    extracted = extract_fields(cleaned, fields, multiline_fields)
    if _has_required(extracted, required):
        return extracted

    return None
