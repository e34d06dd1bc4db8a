"""
XML to nested dict conversion.

Shape of the output:
    - attributes under "@_<name>"
    - element text under "#text" (or the bare string when the element
      has no attributes or children)
    - repeated child elements collapse into a list
    - namespaced names keep their document prefix ("iaiext:originals",
      "@_xml:lang")
"""

import xml.etree.ElementTree as ET
from io import BytesIO
from typing import IO, Any, Iterator, Union


XML_NAMESPACE = "http://www.w3.org/XML/1998/namespace"

Source = Union[str, IO[bytes]]


def _default_namespaces() -> dict[str, str]:
    return {XML_NAMESPACE: "xml"}


def qualified_name(tag: str, namespaces: dict[str, str]) -> str:
    """Turn "{uri}local" into "prefix:local" using the document's prefixes."""
    if not tag.startswith("{"):
        return tag
    uri, local = tag[1:].split("}", 1)
    prefix = namespaces.get(uri)
    return f"{prefix}:{local}" if prefix else local


def local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def element_to_value(element: ET.Element, namespaces: dict[str, str]) -> Any:
    """
    Convert one element (recursively) to the dict shape.

    Args:
        element: Parsed element
        namespaces: URI -> prefix map collected while parsing

    Returns:
        dict, or str for text-only elements
    """
    node: dict[str, Any] = {}

    for key, value in element.attrib.items():
        node[f"@_{qualified_name(key, namespaces)}"] = value

    for child in element:
        name = qualified_name(child.tag, namespaces)
        value = element_to_value(child, namespaces)
        if name not in node:
            node[name] = value
        elif isinstance(node[name], list):
            node[name].append(value)
        else:
            node[name] = [node[name], value]

    text = (element.text or "").strip()
    if not node:
        return text
    if text:
        node["#text"] = text
    return node


def build_tree(content: bytes) -> dict:
    """
    Parse an XML document into a nested dict keyed by the root name.

    Raises:
        ET.ParseError: If the document is not well-formed
    """
    namespaces = _default_namespaces()
    root = None

    for event, item in ET.iterparse(BytesIO(content), events=("start-ns", "start")):
        if event == "start-ns":
            prefix, uri = item
            namespaces.setdefault(uri, prefix)
        elif root is None:
            root = item

    if root is None:
        raise ET.ParseError("no element found")

    return {qualified_name(root.tag, namespaces): element_to_value(root, namespaces)}


def iter_elements(source: Source, path: tuple[str, ...]) -> Iterator[Any]:
    """
    Stream elements found at path, one converted dict at a time.

    Each matched element is detached from its parent after it is
    yielded, so memory stays bounded by one record.

    Args:
        source: File path or binary file object
        path: Local element names from the root, e.g.
            ("offer", "products", "product")

    Raises:
        ET.ParseError: If the document is not well-formed
    """
    namespaces = _default_namespaces()
    stack: list[ET.Element] = []
    target = tuple(path)

    for event, item in ET.iterparse(source, events=("start-ns", "start", "end")):
        if event == "start-ns":
            prefix, uri = item
            namespaces.setdefault(uri, prefix)
            continue

        if event == "start":
            stack.append(item)
            continue

        current = tuple(local_name(element.tag) for element in stack)
        stack.pop()
        if current == target:
            yield element_to_value(item, namespaces)
            if stack:
                stack[-1].remove(item)
