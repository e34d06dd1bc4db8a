"""
Business logic services.

Each service handles one stage of the import pipeline.
"""

from services.taxonomy_service import summarize
from services.selection_service import matches, filter_products
from services.product_mapper import map_product
from services.text_generation import (
    TextGenerationProvider,
    BaseTextGenerationProvider,
    get_text_provider,
)
from services.enrichment_service import EnrichmentService
from services.image_service import ImageService
from services.category_extension_service import (
    CategoryExtensionService,
    get_category_extension_service,
)
from services.category_hierarchy_service import CategoryHierarchyResolver
from services.brand_service import BrandResolver
from services.catalog_upsert_service import CatalogUpsertService, get_catalog_upsert_service
from services.price_sync_service import PriceSyncService, get_price_sync_service
from services.session_service import SessionService, get_session_service
from services.import_workflow_service import ImportWorkflowService

__all__ = [
    "summarize",
    "matches",
    "filter_products",
    "map_product",
    "TextGenerationProvider",
    "BaseTextGenerationProvider",
    "get_text_provider",
    "EnrichmentService",
    "ImageService",
    "CategoryExtensionService",
    "get_category_extension_service",
    "CategoryHierarchyResolver",
    "BrandResolver",
    "CatalogUpsertService",
    "get_catalog_upsert_service",
    "PriceSyncService",
    "get_price_sync_service",
    "SessionService",
    "get_session_service",
    "ImportWorkflowService",
]
