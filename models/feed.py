"""
Feed summary and selection schemas.

The taxonomy summary is what the operator sees before choosing what to
import; the selection filters are what they send back.
"""

from pydantic import Field
from typing import Optional

from models.base import BaseSchema


class CategorySummary(BaseSchema):
    """Category seen in the feed with its product count."""
    id: str
    name: str
    count: int = Field(default=0, ge=0)


class BrandSummary(BaseSchema):
    """Brand (producer) seen in the feed with its product count."""
    id: str
    name: str
    count: int = Field(default=0, ge=0)


class TaxonomySummary(BaseSchema):
    """
    Aggregate view of a parsed feed.

    brand_to_categories maps each brand id to the category ids it
    appears in, so a UI can narrow categories after picking a brand.
    """
    categories: list[CategorySummary] = Field(default_factory=list)
    brands: list[BrandSummary] = Field(default_factory=list)
    total_products: int = Field(default=0, ge=0)
    brand_to_categories: dict[str, list[str]] = Field(default_factory=dict)


class SelectionFilters(BaseSchema):
    """
    Operator's choice of products to import.

    product_ids wins over everything else. Otherwise categories and
    brands combine with AND. Empty lists mean no filter.
    """
    categories: Optional[list[str]] = None
    brands: Optional[list[str]] = None
    product_ids: Optional[list[str]] = None
