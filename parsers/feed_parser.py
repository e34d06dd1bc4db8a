"""
Vendor product feed download and parsing.

The full feed is hundreds of megabytes. fetch_and_parse() holds it in
memory for price syncs and previews; imports save it to disk once with
save_feed_to_disk() and stream it back with iter_products_from_file().
"""

import os
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Any, Iterator, Optional
import requests
import structlog

from config.settings import settings
from exceptions import (
    FetchTimeout,
    FetchFailed,
    NetworkError,
    MalformedFeed,
    UnexpectedShape,
    FeedFileMissingError,
)
from parsers.field_accessors import as_list, child
from parsers.xml_tree import build_tree, iter_elements

logger = structlog.get_logger(__name__)

ACCEPT_HEADER = "application/xml, text/xml, application/octet-stream, */*"
PRODUCT_PATH = ("offer", "products", "product")
FEED_FILE_PREFIX = "feed-import-"


def _headers() -> dict:
    return {
        "Accept": ACCEPT_HEADER,
        "User-Agent": settings.feed_user_agent,
    }


def fetch(url: str, timeout: Optional[int] = None) -> bytes:
    """
    Download a feed.

    Args:
        url: Feed URL
        timeout: Seconds before giving up (defaults to the feed timeout setting)

    Returns:
        Raw response body

    Raises:
        FetchTimeout: Download exceeded the timeout
        FetchFailed: Non-2xx status or empty body
        NetworkError: Any other transport failure
    """
    timeout = timeout or settings.feed_download_timeout_seconds
    logger.info("feed_download_started", url=url, timeout=timeout)

    try:
        response = requests.get(url, headers=_headers(), timeout=timeout, allow_redirects=True)
    except requests.exceptions.Timeout:
        logger.error("feed_download_timeout", url=url, timeout=timeout)
        raise FetchTimeout(url, timeout)
    except requests.exceptions.RequestException as e:
        logger.error("feed_download_failed", url=url, error=str(e))
        raise NetworkError(url, f"Failed to reach feed host: {e}")

    if not response.ok:
        preview = response.text[:100] if response.text else ""
        logger.error("feed_download_bad_status", url=url, status=response.status_code)
        raise FetchFailed(url, f"HTTP {response.status_code}: {preview}", status=response.status_code)

    content = response.content
    if not content or not content.strip():
        logger.error("feed_download_empty", url=url)
        raise FetchFailed(url, "empty response body", status=response.status_code)

    if not content.lstrip(b"\xef\xbb\xbf \t\r\n").startswith(b"<"):
        logger.warning("feed_not_xml_like", url=url, preview=content[:50].decode("utf-8", "replace"))

    logger.info("feed_download_complete", url=url, size_bytes=len(content))
    return content


def parse(content: bytes) -> dict:
    """
    Parse feed bytes into the nested dict document.

    Raises:
        MalformedFeed: If the XML is not well-formed
    """
    try:
        document = build_tree(content)
    except ET.ParseError as e:
        logger.error("feed_parse_failed", error=str(e))
        raise MalformedFeed(str(e))

    logger.debug("feed_parsed", root=next(iter(document), None))
    return document


def fetch_and_parse(url: str) -> dict:
    """Download and parse a feed in one call."""
    return parse(fetch(url))


def extract_products(document: dict) -> list[Any]:
    """
    Product records at offer > products > product.

    A single product is wrapped in a list.

    Raises:
        UnexpectedShape: If the path is missing
    """
    products = child(document, *PRODUCT_PATH)
    if products is None:
        logger.error("feed_unexpected_shape", keys=list(document.keys()) if isinstance(document, dict) else None)
        raise UnexpectedShape()
    return as_list(products)


# ===================
# ON-DISK FEED
# ===================

def feed_file_path(session_id: str) -> Path:
    """Where the feed for a session is stored."""
    return settings.resolved_temp_dir / f"{FEED_FILE_PREFIX}{session_id}.xml"


def save_feed_to_disk(url: str, session_id: str) -> str:
    """
    Download a feed and keep it on disk for the import.

    Returns:
        Absolute path of the saved file
    """
    content = fetch(url)
    path = feed_file_path(session_id)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)

    logger.info("feed_saved_to_disk", session_id=session_id, path=str(path), size_bytes=len(content))
    return str(path)


def iter_products_from_file(path: str) -> Iterator[Any]:
    """
    Stream product records from a saved feed.

    Yields the same dict shape as parse() + extract_products(), one
    record at a time.

    Raises:
        FeedFileMissingError: If the file is gone
        MalformedFeed: If the XML breaks part-way
    """
    if not os.path.exists(path):
        raise FeedFileMissingError(path)

    try:
        yield from iter_elements(path, PRODUCT_PATH)
    except ET.ParseError as e:
        logger.error("feed_stream_failed", path=path, error=str(e))
        raise MalformedFeed(str(e))


def cleanup_feed_file(path: Optional[str]) -> None:
    """Delete a saved feed. Failures only warn."""
    if not path:
        return
    try:
        os.remove(path)
        logger.info("feed_file_deleted", path=path)
    except FileNotFoundError:
        logger.debug("feed_file_already_gone", path=path)
    except OSError as e:
        logger.warning("feed_file_cleanup_failed", path=path, error=str(e))
