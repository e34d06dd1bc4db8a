"""
Regex extractors for vendor HTML descriptions.

Used when the text generation provider is unavailable or returns
nothing useful for the specifications table or the included items.
"""

import re
from typing import Optional


TABLE_PATTERNS = [
    re.compile(r'<div[^>]*class=["\'][^"\']*table-wrapper[^"\']*["\'][^>]*>[\s\S]*?</div>', re.IGNORECASE),
    re.compile(r'<table[^>]*>[\s\S]*?</table>', re.IGNORECASE),
]

TEXT_SPEC_PATTERN = re.compile(r'(?:^|\n)(>[^\n]+(?:\n>[^\n]+)*)', re.MULTILINE)

INCLUDED_PATTERNS = [
    re.compile(r'<h3[^>]*>.*?[Вв]ключено[^<]*</h3>[\s\S]*?(<ul[^>]*>[\s\S]*?</ul>)', re.IGNORECASE),
    re.compile(r'<h3[^>]*>Included</h3>[\s\S]*?(<ul[^>]*>[\s\S]*?</ul>)', re.IGNORECASE),
    re.compile(r"<h3[^>]*>What'?s?\s*Included</h3>[\s\S]*?(<ul[^>]*>[\s\S]*?</ul>)", re.IGNORECASE),
]

TEXT_INCLUDED_PATTERN = re.compile(
    r'(?:^|\n)([Вв]ключено:|Included:)\s*\n((?:[-•*]\s*[^\n]+\n?)+)',
    re.IGNORECASE
)

DEFAULT_INCLUDED_HEADING = "<h3>Включено</h3>"


def _table_row(label: str, value: str) -> str:
    return f"  <tr>\n    <th>{label}</th>\n    <td>{value}</td>\n  </tr>\n"


def extract_specifications_table(description: Optional[str]) -> Optional[str]:
    """
    Find the specifications table in a description.

    Tries an HTML table wrapper, then a bare <table>, then text lines
    prefixed with ">" ("Producer<TAB>xTool") which are turned into a
    two-column table.

    Args:
        description: Product description HTML

    Returns:
        Table HTML, or None when nothing table-like is present
    """
    if not description:
        return None

    for pattern in TABLE_PATTERNS:
        match = pattern.search(description)
        if match:
            return match.group(0)

    text_match = TEXT_SPEC_PATTERN.search(description)
    if not text_match:
        return None

    spec_lines = [line for line in text_match.group(1).split("\n") if line.strip().startswith(">")]
    if not spec_lines:
        return None

    table_html = "<table>\n<tbody>\n"
    for line in spec_lines:
        cleaned = re.sub(r'^>\s*', '', line).strip()
        parts = re.split(r'\t+| {2,}', cleaned)
        if len(parts) >= 2:
            table_html += _table_row(parts[0].strip(), " ".join(parts[1:]).strip())
        elif " " in cleaned:
            label, value = cleaned.split(" ", 1)
            table_html += _table_row(label.strip(), value.strip())
    table_html += "</tbody>\n</table>"
    return table_html


def extract_included_section(description: Optional[str]) -> Optional[str]:
    """
    Find the "what's included" list in a description.

    Returns:
        Heading plus <ul> HTML, or None
    """
    if not description:
        return None

    for pattern in INCLUDED_PATTERNS:
        match = pattern.search(description)
        if match:
            heading_match = (
                re.search(r'(<h3[^>]*>.*?[Вв]ключено[^<]*</h3>)', description, re.IGNORECASE)
                or re.search(r'(<h3[^>]*>.*?Included.*?</h3>)', description, re.IGNORECASE)
            )
            heading = heading_match.group(1) if heading_match else DEFAULT_INCLUDED_HEADING
            return f"{heading}\n{match.group(1)}"

    # Plain text bullet list
    text_match = TEXT_INCLUDED_PATTERN.search(description)
    if text_match:
        items = [
            re.sub(r'^[-•*]\s*', '', line).strip()
            for line in text_match.group(2).split("\n")
            if re.match(r'^[-•*]', line.strip())
        ]
        items = [item for item in items if item]
        if items:
            list_html = "<ul>\n" + "\n".join(f"  <li>{item}</li>" for item in items) + "\n</ul>"
            return f"{DEFAULT_INCLUDED_HEADING}\n{list_html}"

    lowered = description.lower()
    index = lowered.find("включено")
    if index == -1:
        index = lowered.find("included")
    if index != -1:
        ul_match = re.search(
            r'(<ul[^>]*class=["\'][^"\']*list[^"\']*["\'][^>]*>[\s\S]*?</ul>)',
            description[index:],
            re.IGNORECASE
        )
        if ul_match:
            heading_match = re.search(r'(<h3[^>]*>.*?</h3>)', description[:index + 100], re.IGNORECASE)
            heading = heading_match.group(1) if heading_match else DEFAULT_INCLUDED_HEADING
            return f"{heading}\n{ul_match.group(1)}"

    return None


def extract_table_value(description: Optional[str], label: str) -> Optional[str]:
    """
    Read a value from a <th>label</th><td>value</td> pair.

    Used to recover fields like Material from the specs table.
    """
    if not description:
        return None
    match = re.search(
        rf'<th[^>]*>\s*{re.escape(label)}\s*</th>\s*<td[^>]*>(.*?)</td>',
        description,
        re.IGNORECASE | re.DOTALL
    )
    if not match:
        return None
    value = re.sub(r'<[^>]+>', '', match.group(1)).strip()
    return value or None
