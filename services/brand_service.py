"""
Brand resolver.

Finds or creates the catalog brand for each producer name in a batch.
Brands are never translated. One resolver is built per import run and
caches name -> brand id on the instance.
"""

from typing import Iterable, Optional
import structlog

from exceptions import AppError, BrandCreateConflict
from integrations.catalog import CatalogService
from utils.text_utils import collapse_whitespace

logger = structlog.get_logger(__name__)


class BrandResolver:
    """
    Find-or-create for brands, cached for one import run.

    A brand that cannot be resolved is logged and skipped; the product
    is still imported without a brand link.
    """

    def __init__(self, catalog: CatalogService):
        self.catalog = catalog
        self._brands: dict[str, str] = {}
        self.created = 0

    def resolve(self, name: Optional[str]) -> Optional[str]:
        """
        Brand id for a producer name.

        Returns:
            Brand id, or None for an empty name or a failed lookup
        """
        name = collapse_whitespace(name)
        if not name:
            return None

        if name in self._brands:
            return self._brands[name]

        try:
            brand_id = self._find_or_create(name)
        except AppError as e:
            logger.warning("brand_resolve_failed", name=name, error=e.message)
            return None

        if brand_id:
            self._brands[name] = brand_id
        return brand_id

    def resolve_many(self, names: Iterable[Optional[str]]) -> dict[str, str]:
        """{name: brand_id} for the distinct names that resolved."""
        resolved = {}
        for name in dict.fromkeys(names):
            brand_id = self.resolve(name)
            if brand_id:
                resolved[name] = brand_id

        logger.debug("brands_resolved", resolved=len(resolved), cached=len(self._brands))
        return resolved

    def _find_or_create(self, name: str) -> Optional[str]:
        existing = self.catalog.find_brand(name)
        if existing:
            logger.debug("brand_found", name=name, brand_id=existing["id"])
            return existing["id"]

        try:
            brand = self.catalog.create_brand(name)
        except BrandCreateConflict:
            # Another writer created it since the lookup
            logger.warning("brand_create_conflict", name=name)
            existing = self.catalog.find_brand(name)
            return existing["id"] if existing else None

        self.created += 1
        logger.info("brand_created", name=name, brand_id=brand["id"])
        return brand["id"]
