"""
Selection filter for feed records.
"""

from typing import Any, Iterable
import structlog

from models.feed import SelectionFilters
from parsers.field_accessors import brand_ref, category_ref, record_id

logger = structlog.get_logger(__name__)


def _as_set(values) -> set[str]:
    return {str(value) for value in values or []}


def matches(record: Any, filters: SelectionFilters) -> bool:
    """
    Whether one record passes the filters.

    Explicit product ids take precedence and ignore the other filters.
    Otherwise categories and brands must both match when given.
    """
    if filters.product_ids:
        return record_id(record) in _as_set(filters.product_ids)

    if filters.categories:
        category_id, _ = category_ref(record)
        if category_id not in _as_set(filters.categories):
            return False

    if filters.brands:
        brand_id, _ = brand_ref(record)
        if brand_id not in _as_set(filters.brands):
            return False

    return True


def filter_products(records: Iterable[Any], filters: SelectionFilters) -> list[Any]:
    """Records passing the filters, in feed order."""
    selected = [record for record in records if matches(record, filters)]
    logger.info(
        "products_filtered",
        selected=len(selected),
        by_ids=bool(filters.product_ids),
        categories=len(filters.categories or []),
        brands=len(filters.brands or [])
    )
    return selected
