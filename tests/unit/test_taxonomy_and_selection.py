"""
Unit tests for the taxonomy summarizer and the selection filter.

Run: pytest tests/unit/test_taxonomy_and_selection.py -v
"""

import pytest

from models.feed import SelectionFilters
from parsers.feed_parser import parse, extract_products
from services.selection_service import matches, filter_products
from services.taxonomy_service import summarize
from tests.factories import FeedProductFactory, feed_xml


def _records(*snippets: str) -> list:
    return extract_products(parse(feed_xml(list(snippets))))


@pytest.fixture
def mixed_records() -> list:
    return _records(
        FeedProductFactory.create(id="1", category_id="10", category_name="Drills", producer_id="5", producer_name="Acme"),
        FeedProductFactory.create(id="2", category_id="10", category_name="Drills", producer_id="6", producer_name="Bosco"),
        FeedProductFactory.create(id="3", category_id="20", category_name="Saws", producer_id="5", producer_name="Acme"),
        FeedProductFactory.create(id="4", category_id="20", category_name="Saws", producer_id="5", producer_name="Acme"),
        FeedProductFactory.create(id="5", category_id="20", category_name="Saws", producer_id="6", producer_name="Bosco"),
    )


# ===================
# TAXONOMY TESTS
# ===================

class TestSummarize:
    """Tests for summarize()"""

    def test_counts_sorted_by_descending_count(self, mixed_records):
        """Should count products per category and brand, most first."""
        # Act
        summary = summarize(mixed_records)

        # Assert
        assert summary.total_products == 5
        assert [(c.id, c.name, c.count) for c in summary.categories] == [("20", "Saws", 3), ("10", "Drills", 2)]
        assert [(b.id, b.name, b.count) for b in summary.brands] == [("5", "Acme", 3), ("6", "Bosco", 2)]

    def test_ties_keep_first_seen_order(self):
        """Should keep feed order for equal counts."""
        records = _records(
            FeedProductFactory.create(category_id="30", category_name="Sanders"),
            FeedProductFactory.create(category_id="10", category_name="Drills"),
        )

        summary = summarize(records)

        assert [c.id for c in summary.categories] == ["30", "10"]

    def test_brand_to_categories(self, mixed_records):
        """Should map each brand to the categories it appears in."""
        summary = summarize(mixed_records)

        assert summary.brand_to_categories == {"5": ["10", "20"], "6": ["10", "20"]}

    def test_reference_without_name_not_counted(self):
        """Should drop a category that has an id but no name."""
        records = _records(
            FeedProductFactory.create(category_id="10", category_name=None),
            FeedProductFactory.create(category_id="20", category_name="Saws"),
        )

        summary = summarize(records)

        assert [c.id for c in summary.categories] == ["20"]
        assert summary.total_products == 2

    def test_accepts_iterator(self, mixed_records):
        """Should work on a one-shot iterator."""
        summary = summarize(iter(mixed_records))

        assert summary.total_products == 5

    def test_empty(self):
        summary = summarize([])

        assert summary.total_products == 0
        assert summary.categories == []


# ===================
# SELECTION TESTS
# ===================

class TestSelectionFilter:
    """Tests for matches() and filter_products()"""

    def test_product_ids_override_other_filters(self, mixed_records):
        """Should ignore categories and brands when product ids are given."""
        filters = SelectionFilters(product_ids=["3"], categories=["10"], brands=["6"])

        selected = filter_products(mixed_records, filters)

        assert [r["@_id"] for r in selected] == ["3"]

    def test_categories_and_brands_combine_with_and(self, mixed_records):
        """Should keep records matching both category and brand."""
        filters = SelectionFilters(categories=["20"], brands=["5"])

        selected = filter_products(mixed_records, filters)

        assert [r["@_id"] for r in selected] == ["3", "4"]

    def test_categories_only(self, mixed_records):
        filters = SelectionFilters(categories=["10"])

        selected = filter_products(mixed_records, filters)

        assert [r["@_id"] for r in selected] == ["1", "2"]

    def test_empty_filters_keep_everything(self, mixed_records):
        """Should treat empty lists as no filter."""
        filters = SelectionFilters(categories=[], brands=[], product_ids=[])

        assert len(filter_products(mixed_records, filters)) == 5

    def test_ids_compared_as_strings(self):
        """Should match numeric ids given as strings."""
        record = {"@_id": 7, "category": {"@_id": 10, "@_name": "Drills"}}

        assert matches(record, SelectionFilters(product_ids=["7"]))
        assert matches(record, SelectionFilters(categories=["10"]))
        assert not matches(record, SelectionFilters(categories=["11"]))
