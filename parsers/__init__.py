"""
Feed parsers module.
"""

from parsers.feed_parser import (
    fetch,
    parse,
    fetch_and_parse,
    extract_products,
    save_feed_to_disk,
    iter_products_from_file,
    cleanup_feed_file,
)
from parsers.price_parser import extract_price_data

__all__ = [
    "fetch",
    "parse",
    "fetch_and_parse",
    "extract_products",
    "save_feed_to_disk",
    "iter_products_from_file",
    "cleanup_feed_file",
    "extract_price_data",
]
