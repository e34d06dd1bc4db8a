"""
Price/stock feed parser.

The light feed shares the product feed's structure but only carries
prices and stock per size.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Optional
import structlog

from models.price import PriceUpdateRecord, SizeStock
from parsers.feed_parser import extract_products
from parsers.field_accessors import as_list, child, first_of, record_id, scalar_text

logger = structlog.get_logger(__name__)


def _decimal(value: Any) -> Optional[Decimal]:
    text = scalar_text(value)
    if text is None:
        return None
    try:
        number = Decimal(text.replace(",", "."))
    except InvalidOperation:
        return None
    return number if number.is_finite() else None


def _int(value: Any, default: int = 0) -> int:
    text = scalar_text(value)
    if text is None:
        return default
    try:
        return int(Decimal(text.replace(",", ".")))
    except (InvalidOperation, ValueError, OverflowError):
        # NaN and Infinity parse as Decimal but have no int value
        return default


def _price(node: Any, kind: str) -> Optional[Any]:
    """Price attribute from a price node ("@_net" / "@_gross")."""
    return first_of(child(node, f"@_{kind}"), child(node, kind))


def _stock_quantity(size: Any) -> Any:
    return first_of(
        child(size, "stock", "@_quantity"),
        child(size, "stock", "quantity"),
        child(size, "stock", "#text"),
    )


def _barcode(size: Any) -> Optional[str]:
    return scalar_text(first_of(
        child(size, "@_iaiext:code_external"),
        child(size, "@_code_external"),
        child(size, "code_external"),
    ))


def parse_price_record(record: Any) -> Optional[PriceUpdateRecord]:
    """
    Price record for one product, or None when it has no id or no sizes.
    """
    external_id = record_id(record)
    sizes = as_list(child(record, "sizes", "size"))
    if not external_id or not sizes:
        return None

    first_size = sizes[0]
    product_price = child(record, "price")
    size_price = child(first_size, "price")

    price_net = first_of(
        _price(product_price, "net"),
        _price(size_price, "net"),
        child(size_price, "#text"),
    )
    price_gross = first_of(
        _price(product_price, "gross"),
        _price(size_price, "gross"),
    )
    srp_net = first_of(
        _price(child(record, "srp"), "net"),
        _price(child(first_size, "srp"), "net"),
    )
    srp_gross = first_of(
        _price(child(record, "srp"), "gross"),
        _price(child(first_size, "srp"), "gross"),
    )

    return PriceUpdateRecord(
        external_id=external_id,
        price_net=_decimal(price_net),
        price_gross=_decimal(price_gross),
        srp_net=_decimal(srp_net),
        srp_gross=_decimal(srp_gross),
        stock_quantity=_int(_stock_quantity(first_size)),
        sizes=[
            SizeStock(code_external=_barcode(size), stock_quantity=_int(_stock_quantity(size)))
            for size in sizes
        ],
    )


def extract_price_data(document: dict) -> dict[str, PriceUpdateRecord]:
    """
    Price records keyed by external product id.

    Raises:
        UnexpectedShape: If the product list is missing
    """
    records: dict[str, PriceUpdateRecord] = {}
    skipped = 0

    for product in extract_products(document):
        price_record = parse_price_record(product)
        if price_record is None:
            skipped += 1
            continue
        records[price_record.external_id] = price_record

    logger.info("price_data_extracted", products=len(records), skipped=skipped)
    return records
