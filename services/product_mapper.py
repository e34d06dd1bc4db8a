"""
Product mapper: feed record -> MappedProduct.

Pure and deterministic. Every catalog field comes from the first
source that resolves; the rest of the record is kept in metadata so
nothing from the feed is lost.
"""

from typing import Any, Optional
import structlog

from config.settings import settings
from exceptions import MappingError
from models.product import MappedProduct, ProductImage, ProductOption, ProductVariant
from parsers.field_accessors import (
    as_list,
    attribute,
    brand_ref,
    category_ref,
    child,
    extract_by_lang,
    extract_images,
    extract_parameter,
    first_of,
    record_id,
    scalar_text,
)
from utils.html_extract import extract_table_value
from utils.text_utils import parse_decimal_string, sanitize_handle

logger = structlog.get_logger(__name__)

UNTITLED = "Untitled Product"


def _first_parameter(parameters: list, *names: str) -> Optional[str]:
    for name in names:
        value = extract_parameter(parameters, name)
        if value:
            return value
    return None


def _size_value(size: Any, name: str) -> Optional[str]:
    return scalar_text(first_of(
        child(size, f"@_{name}"),
        child(size, "@attributes", name),
        child(size, name),
    ))


def _barcode(size: Any) -> Optional[str]:
    return first_of(
        _size_value(size, "iaiext:code_external"),
        _size_value(size, "code_external"),
    )


def _weight(first_size: Any, parameters: list) -> Optional[float]:
    weight = parse_decimal_string(_size_value(first_size, "weight"))
    if weight:
        return weight
    return parse_decimal_string(_first_parameter(parameters, "net weight", "weight", "gross weight"))


def _node_text(node: Any, name: str) -> Optional[str]:
    """Attribute or child text from a small node like <unit id=".." name=".."/>."""
    return scalar_text(attribute(node, name)) if node is not None else None


def _responsible_producer(record: Any) -> Optional[dict]:
    producer = child(record, "responsible_entity", "producer")
    if not isinstance(producer, dict):
        return None
    fields = ("code", "name", "mail", "country", "city", "zipcode", "street", "number")
    result = {"id": _node_text(producer, "id")}
    result.update({field: _node_text(producer, field) for field in fields})
    return result


def build_metadata(record: Any, external_id: str, sku: Optional[str], barcode: Optional[str], parameters: list) -> dict:
    """Everything from the record that has no catalog column."""
    category_id, category_name = category_ref(record)
    brand_id, brand_name = brand_ref(record)
    unit = child(record, "unit")
    warranty = child(record, "warranty")

    metadata = {
        "external_id": external_id,
        "currency": _node_text(record, "currency"),
        "code_on_card": _node_text(record, "code_on_card"),
        "producer_code_standard": _node_text(record, "producer_code_standard"),
        "product_type": _node_text(record, "type"),
        "vat_rate": _node_text(record, "vat"),
        "site_id": _node_text(record, "site"),
        "producer": {"id": brand_id, "name": brand_name},
        "category": {"id": category_id, "name": category_name, "original_name": category_name},
        "unit_id": _node_text(unit, "id"),
        "unit_name": _node_text(unit, "name"),
        "warranty_id": _node_text(warranty, "id"),
        "warranty_type": _node_text(warranty, "type"),
        "warranty_period": _node_text(warranty, "period"),
        "warranty_name": _node_text(warranty, "name"),
        "card_url": _node_text(child(record, "card"), "url"),
        "parameters": parameters,
        "attachments": as_list(child(record, "attachments", "file")),
        "min_quantity_retail": _node_text(child(record, "sell_by", "retail"), "quantity"),
        "min_quantity_wholesale": _node_text(child(record, "sell_by", "wholesale"), "quantity"),
        "sell_by": child(record, "sell_by"),
        "inwrapper_quantity": _node_text(child(record, "inwrapper"), "quantity"),
        "responsible_producer": _responsible_producer(record),
        "original_sku": sku,
        "original_barcode": barcode,
    }
    return {key: value for key, value in metadata.items() if value not in (None, [], {})}


def map_product(record: Any, source_language: Optional[str] = None) -> MappedProduct:
    """
    Map one feed record to a catalog product.

    Args:
        record: Product record from the feed
        source_language: Language picked from multi-language fields

    Returns:
        MappedProduct in draft status with one Default variant and option

    Raises:
        MappingError: If the record has no id
    """
    external_id = record_id(record)
    if not external_id:
        raise MappingError("Product record has no id")

    lang = source_language or settings.source_language
    names = child(record, "description", "name")
    long_descriptions = child(record, "description", "long_desc")

    title = extract_by_lang(names, lang) or UNTITLED
    description = extract_by_lang(long_descriptions, lang)

    parameters = as_list(child(record, "parameters", "parameter"))
    sizes = as_list(child(record, "sizes", "size"))
    first_size = sizes[0] if sizes else None

    sku = first_of(_size_value(first_size, "code_producer"), _size_value(first_size, "code")) if first_size else None
    barcode = _barcode(first_size) if first_size else None

    material = _first_parameter(parameters, "material") or extract_table_value(description, "Material")
    origin_country = first_of(
        _node_text(child(record, "responsible_entity", "producer"), "country"),
        _first_parameter(parameters, "country of origin", "origin country"),
    )

    product = MappedProduct(
        title=title,
        description=description,
        handle=sanitize_handle(external_id),
        external_id=external_id,
        weight=_weight(first_size, parameters),
        length=parse_decimal_string(extract_parameter(parameters, "Box length")),
        width=parse_decimal_string(extract_parameter(parameters, "Box width")),
        height=parse_decimal_string(extract_parameter(parameters, "Box height")),
        hs_code=_first_parameter(parameters, "HS Code", "HS"),
        origin_country=origin_country,
        mid_code=_first_parameter(parameters, "MID code", "MID"),
        material=material,
        images=[ProductImage(url=url) for url in extract_images(child(record, "images"))],
        options=[ProductOption()],
        variants=[ProductVariant(sku=sku, barcode=barcode)],
        metadata=build_metadata(record, external_id, sku, barcode, parameters),
    )

    logger.debug("product_mapped", external_id=external_id, handle=product.handle, images=len(product.images))
    return product
