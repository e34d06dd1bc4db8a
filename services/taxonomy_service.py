"""
Taxonomy summarizer.

Single pass over product records producing category and brand counts
for the selection screen. Works on a list or on the streaming iterator,
so memory only grows with the number of distinct categories and brands.
"""

from typing import Any, Iterable
import structlog

from models.feed import BrandSummary, CategorySummary, TaxonomySummary
from parsers.field_accessors import brand_ref, category_ref

logger = structlog.get_logger(__name__)


class _Counter:
    """Insertion-ordered id -> (name, count) tally."""

    def __init__(self):
        self.names: dict[str, str] = {}
        self.counts: dict[str, int] = {}

    def add(self, ref_id: str, name: str) -> None:
        if ref_id not in self.names:
            self.names[ref_id] = name
            self.counts[ref_id] = 0
        self.counts[ref_id] += 1

    def ranked(self) -> list[tuple[str, str, int]]:
        # sorted() is stable, so ties keep first-seen order
        return sorted(
            ((ref_id, self.names[ref_id], self.counts[ref_id]) for ref_id in self.names),
            key=lambda item: -item[2]
        )


def summarize(records: Iterable[Any]) -> TaxonomySummary:
    """
    Count categories and brands across records.

    A category or brand is only counted when both its id and its name
    resolve. brand_to_categories links a brand to every category id its
    products sit in.

    Args:
        records: Product records (list or iterator)

    Returns:
        TaxonomySummary sorted by descending count
    """
    categories = _Counter()
    brands = _Counter()
    brand_to_categories: dict[str, set[str]] = {}
    total = 0
    dropped_categories = 0
    dropped_brands = 0

    for record in records:
        total += 1

        category_id, category_name = category_ref(record)
        brand_id, brand_name = brand_ref(record)

        if category_id and category_name:
            categories.add(category_id, category_name)
        elif category_id:
            dropped_categories += 1

        if brand_id and brand_name:
            brands.add(brand_id, brand_name)
        elif brand_id:
            dropped_brands += 1

        if category_id and brand_id:
            brand_to_categories.setdefault(brand_id, set()).add(category_id)

    if dropped_categories or dropped_brands:
        logger.warning(
            "taxonomy_refs_without_name",
            categories=dropped_categories,
            brands=dropped_brands
        )

    summary = TaxonomySummary(
        categories=[CategorySummary(id=i, name=n, count=c) for i, n, c in categories.ranked()],
        brands=[BrandSummary(id=i, name=n, count=c) for i, n, c in brands.ranked()],
        total_products=total,
        brand_to_categories={
            brand_id: sorted(category_ids)
            for brand_id, category_ids in brand_to_categories.items()
        },
    )

    logger.info(
        "taxonomy_summarized",
        total_products=total,
        categories=len(summary.categories),
        brands=len(summary.brands)
    )
    return summary
