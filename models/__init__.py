"""
Pydantic models for validation and serialization.
"""

from models.base import BaseSchema, TimestampMixin
from models.feed import (
    CategorySummary,
    BrandSummary,
    TaxonomySummary,
    SelectionFilters,
)
from models.session import (
    SessionStatus,
    ImportSession,
    ImportConfig,
    ImportConfigCreate,
)
from models.product import (
    ProductImage,
    ProductOption,
    ProductVariant,
    MappedProduct,
)
from models.category import (
    CategoryExtension,
    CategoryExtensionCreate,
)
from models.enrichment import MetaContent, OptimizedDescription, WordTarget
from models.price import SizeStock, PriceUpdateRecord
from models.import_result import UpsertResult, ImportRunResult, PriceSyncResult

__all__ = [
    # Base
    "BaseSchema",
    "TimestampMixin",

    # Feed
    "CategorySummary",
    "BrandSummary",
    "TaxonomySummary",
    "SelectionFilters",

    # Sessions
    "SessionStatus",
    "ImportSession",
    "ImportConfig",
    "ImportConfigCreate",

    # Products
    "ProductImage",
    "ProductOption",
    "ProductVariant",
    "MappedProduct",

    # Categories
    "CategoryExtension",
    "CategoryExtensionCreate",

    # Enrichment
    "MetaContent",
    "OptimizedDescription",
    "WordTarget",

    # Prices
    "SizeStock",
    "PriceUpdateRecord",

    # Results
    "UpsertResult",
    "ImportRunResult",
    "PriceSyncResult",
]
