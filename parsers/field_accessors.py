"""
Tolerant accessors for feed records.

The vendor feed is not consistent about where a value lives: the same
field can be an attribute, a child element, an element with text plus
attributes, or a list of those. Each accessor here returns the value or
None, and first_of() picks the first one that resolved.
"""

from typing import Any, Iterable, Optional


LANGUAGE_ALIASES = {
    "eng": "eng",
    "en": "eng",
    "pol": "pol",
    "pl": "pol",
    "hun": "hun",
    "hu": "hun",
}

LANGUAGE_KEYS = ("@_xml:lang", "xml:lang", "@_lang", "lang")


def first_of(*candidates: Any) -> Optional[Any]:
    """Return the first candidate that is neither None nor an empty string."""
    for candidate in candidates:
        if candidate is None:
            continue
        if isinstance(candidate, str) and not candidate.strip():
            continue
        return candidate
    return None


def as_list(value: Any) -> list:
    """None -> [], list -> itself, anything else -> [value]."""
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def child(node: Any, *path: str) -> Optional[Any]:
    """Walk nested dict keys, returning None as soon as a step is missing."""
    current = node
    for key in path:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
        if current is None:
            return None
    return current


def attribute(node: Any, name: str) -> Optional[Any]:
    """
    Read a named value stored as attribute or child element.

    Checks "@_name", then "@attributes".name, then a child "name".
    """
    if not isinstance(node, dict):
        return None
    return first_of(
        node.get(f"@_{name}"),
        child(node, "@attributes", name),
        node.get(name),
    )


def extract_string_value(value: Any) -> Optional[str]:
    """
    Best-effort string from a feed value.

    Accepts a plain string, a node with "@text" or "#text", or a node
    whose "name" is a string. First non-empty wins.
    """
    if value is None:
        return None
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, dict):
        for key in ("@text", "#text", "name"):
            inner = value.get(key)
            if isinstance(inner, (str, int, float)):
                text = str(inner).strip()
                if text:
                    return text
    return None


def scalar_text(value: Any) -> Optional[str]:
    """String form of a leaf value (string, number, or node text)."""
    if isinstance(value, dict):
        return first_of(
            _stringify(value.get("#text")),
            _stringify(value.get("@text")),
        )
    return _stringify(value)


def _stringify(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text or None


def record_id(record: Any) -> Optional[str]:
    """Product id from "@_id" or "id"."""
    if not isinstance(record, dict):
        return None
    value = first_of(record.get("@_id"), record.get("id"))
    return _stringify(value)


def _reference(node: Any) -> tuple[Optional[str], Optional[str]]:
    if not isinstance(node, dict):
        return None, None

    ref_id = _stringify(first_of(
        node.get("@_id"),
        node.get("id"),
        child(node, "@attributes", "id"),
    ))

    name = _stringify(node.get("@_name"))
    if not name:
        name = extract_string_value(node.get("name"))
    if name and name.startswith("{") and name.endswith("}"):
        # Serialized object leaking into a name field
        name = None

    return ref_id, name


def category_ref(record: Any) -> tuple[Optional[str], Optional[str]]:
    """(category id, category name) for a product record."""
    return _reference(child(record, "category"))


def brand_ref(record: Any) -> tuple[Optional[str], Optional[str]]:
    """(producer id, producer name) for a product record."""
    return _reference(child(record, "producer"))


def _language_of(item: Any) -> Optional[str]:
    if not isinstance(item, dict):
        return None
    for key in LANGUAGE_KEYS:
        value = item.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _text_of(item: Any) -> Optional[str]:
    if isinstance(item, str):
        return item
    if isinstance(item, dict):
        for key in ("@text", "#text", "text"):
            value = item.get(key)
            if isinstance(value, str):
                return value
    return None


def extract_by_lang(value: Any, lang: str = "eng") -> Optional[str]:
    """
    Pick the text for a language from a multi-language field.

    Language codes are normalized ("en" and "eng" match each other).
    Falls back to the first variant when no tag matches.

    Args:
        value: Single node, string, or list of language variants
        lang: Wanted language code

    Returns:
        Text of the chosen variant, or None
    """
    items = as_list(value)
    if not items:
        return None

    wanted = LANGUAGE_ALIASES.get(lang.lower(), lang.lower())

    for item in items:
        item_lang = _language_of(item)
        if not item_lang:
            continue
        normalized = LANGUAGE_ALIASES.get(item_lang.lower(), item_lang.lower())
        if normalized == wanted or item_lang == lang:
            text = _text_of(item)
            if text:
                return text

    return _text_of(items[0])


def _priority(image: Any) -> int:
    raw = first_of(
        child(image, "@_iaiext:priority"),
        child(image, "@_priority"),
        child(image, "priority"),
    )
    try:
        return int(str(raw)) if raw is not None else 0
    except ValueError:
        return 0


def _image_group(images_node: dict) -> list:
    originals = child(images_node, "originals", "image")
    if originals is not None:
        return as_list(originals)

    for key, value in images_node.items():
        if key == "originals" or key.endswith(":originals"):
            group = child(value, "image")
            if group is not None:
                return as_list(group)

    large = child(images_node, "large", "image")
    if large is not None:
        return as_list(large)

    return []


def extract_images(images_node: Any) -> list[str]:
    """
    Ordered image URLs for a product.

    Prefers the originals group (plain or namespaced), then large.
    Images are sorted by ascending priority; unsorted ties keep feed order.
    """
    if not isinstance(images_node, dict):
        return []

    images = sorted(_image_group(images_node), key=_priority)
    urls = []
    for image in images:
        url = _stringify(first_of(
            child(image, "@_url"),
            child(image, "url"),
            child(image, "@attributes", "url"),
        ))
        if url:
            urls.append(url)
    return urls


def _parameter_name(parameter: Any) -> str:
    if not isinstance(parameter, dict):
        return ""
    raw = first_of(
        child(parameter, "@attributes", "name"),
        parameter.get("@_name"),
        extract_by_lang(parameter.get("name")) if isinstance(parameter.get("name"), (list, dict)) else parameter.get("name"),
    )
    return str(raw).lower().strip() if raw is not None else ""


def _parameter_value(value_node: Any) -> Optional[str]:
    values = as_list(value_node)
    if not values:
        return None
    node = values[0]
    if not isinstance(node, dict):
        return _stringify(node)
    return _stringify(first_of(
        node.get("@_name"),
        child(node, "@attributes", "name"),
        node.get("name") if not isinstance(node.get("name"), (dict, list)) else extract_by_lang(node.get("name")),
        node.get("#text"),
        node.get("@text"),
    ))


def extract_parameter(parameters: Iterable[Any], name: str) -> Optional[str]:
    """
    Value of the first parameter whose name matches.

    Matching is case-insensitive; a parameter matches when its name
    equals the wanted name or either contains the other.
    """
    wanted = name.lower().strip()
    for parameter in parameters or []:
        param_name = _parameter_name(parameter)
        if not param_name:
            continue
        if param_name == wanted or wanted in param_name or param_name in wanted:
            value = parameter.get("value") if isinstance(parameter, dict) else None
            return _parameter_value(value)
    return None
