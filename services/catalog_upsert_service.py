"""
Catalog upsert engine.

Writes a batch of mapped products to the catalog: new handles are
created in bulk, known handles are updated, and category links are
added afterwards. One product failing never stops the batch. Images are
materialized only for products about to be created, since updates leave
images alone.
"""

from typing import Optional
import structlog

from config.settings import settings
from exceptions import AppError, ProductHandleExistsError, UpsertFailed
from integrations.catalog import CatalogService, get_catalog_service
from models.import_result import UpsertResult
from models.product import MappedProduct
from services.image_service import ImageService

logger = structlog.get_logger(__name__)


class CatalogUpsertService:
    """
    Create-or-update for mapped products.

    Products are matched on handle. A create that races with another
    writer (handle already taken) is moved to the update queue and the
    rest of the batch is retried. Any other bulk failure falls back to
    one create per product. Later products repeating a handle from the
    same batch update the row the first one created.
    """

    def __init__(
        self,
        catalog: Optional[CatalogService] = None,
        image_service: Optional[ImageService] = None
    ):
        self.catalog = catalog or get_catalog_service()
        self.images = image_service

    def upsert(
        self,
        products: list[MappedProduct],
        shipping_profile_id: Optional[str] = None,
        sales_channel_id: Optional[str] = None
    ) -> UpsertResult:
        """
        Upsert a batch.

        Args:
            products: Mapped (and usually enriched) products
            shipping_profile_id: Shipping profile for every product
            sales_channel_id: Optional sales channel to publish to

        Returns:
            UpsertResult with created / updated / failed counts
        """
        result = UpsertResult()
        if not products:
            return result

        shipping_profile_id = shipping_profile_id or settings.shipping_profile_id
        sales_channel_id = sales_channel_id or settings.sales_channel_id

        to_create, to_update = self._partition(products)
        product_ids: dict[str, str] = {}

        self._create_all(to_create, to_update, shipping_profile_id, sales_channel_id, result, product_ids)
        self._update_all(to_update, shipping_profile_id, sales_channel_id, result, product_ids)
        self._link_categories(products, product_ids, result)

        result.product_ids = list(product_ids.values())

        logger.info(
            "catalog_upsert_completed",
            total=len(products),
            created=result.created,
            updated=result.updated,
            failed=result.failed
        )
        return result

    # ===================
    # PARTITION
    # ===================

    def _partition(self, products: list[MappedProduct]) -> tuple[list[MappedProduct], list[tuple[MappedProduct, dict]]]:
        to_create = []
        to_update = []

        for product in products:
            try:
                existing = self.catalog.find_by_handle(product.handle)
            except AppError as e:
                # Create is attempted anyway; a duplicate comes back as a handle conflict
                logger.warning("product_lookup_failed", handle=product.handle, error=e.message)
                existing = None

            if existing:
                to_update.append((product, existing))
            else:
                to_create.append(product)

        logger.debug("products_partitioned", to_create=len(to_create), to_update=len(to_update))
        return to_create, to_update

    # ===================
    # CREATE
    # ===================

    def _create_all(
        self,
        to_create: list[MappedProduct],
        to_update: list[tuple[MappedProduct, dict]],
        shipping_profile_id: Optional[str],
        sales_channel_id: Optional[str],
        result: UpsertResult,
        product_ids: dict[str, str]
    ) -> None:
        pending, repeats = self._split_repeats(to_create)

        if self.images:
            for product in pending:
                self.images.process(product)

        while pending:
            payloads = [self._create_payload(p, shipping_profile_id, sales_channel_id) for p in pending]
            try:
                created = self.catalog.create_products(payloads)
            except ProductHandleExistsError as e:
                remaining = self._move_conflict(e.handle, pending, to_update, result)
                if remaining is None:
                    self._create_each(pending, to_update, shipping_profile_id, sales_channel_id, result, product_ids)
                    break
                pending = remaining
                continue
            except AppError as e:
                logger.error("bulk_create_failed", count=len(pending), error=e.message)
                self._create_each(pending, to_update, shipping_profile_id, sales_channel_id, result, product_ids)
                break

            self._record_created(pending, created, result, product_ids)
            break

        for product in repeats:
            self._queue_repeat(product, to_update, product_ids, result)

    def _create_each(
        self,
        products: list[MappedProduct],
        to_update: list[tuple[MappedProduct, dict]],
        shipping_profile_id: Optional[str],
        sales_channel_id: Optional[str],
        result: UpsertResult,
        product_ids: dict[str, str]
    ) -> None:
        """Create products one at a time so a bad row only fails itself."""
        logger.info("creating_individually", count=len(products))

        for product in products:
            payload = self._create_payload(product, shipping_profile_id, sales_channel_id)
            try:
                created = self.catalog.create_products([payload])
            except ProductHandleExistsError:
                self._move_conflict(product.handle, [product], to_update, result)
                continue
            except AppError as e:
                self._fail(result, product, e.message)
                continue

            self._record_created([product], created, result, product_ids)

    def _record_created(
        self,
        products: list[MappedProduct],
        created: list[dict],
        result: UpsertResult,
        product_ids: dict[str, str]
    ) -> None:
        by_handle = {row.get("handle"): row for row in created}
        for product in products:
            row = by_handle.get(product.handle)
            if row:
                product_ids[product.handle] = row["id"]
                result.created += 1
            else:
                self._fail(result, product, "Catalog did not return the created product")

    def _move_conflict(
        self,
        handle: str,
        pending: list[MappedProduct],
        to_update: list[tuple[MappedProduct, dict]],
        result: UpsertResult
    ) -> Optional[list[MappedProduct]]:
        """
        Take the conflicting product out of the create queue.

        Returns:
            The products left to create, or None when the conflict names
            a handle that is not in the queue
        """
        conflicting = [p for p in pending if p.handle == handle]
        remaining = [p for p in pending if p.handle != handle]

        if not conflicting:
            logger.error("handle_conflict_unmatched", handle=handle)
            return None

        logger.warning("product_handle_conflict", handle=handle)

        try:
            existing = self.catalog.find_by_handle(handle)
        except AppError as e:
            existing = None
            logger.error("conflict_lookup_failed", handle=handle, error=e.message)

        for product in conflicting:
            if existing:
                to_update.append((product, existing))
            else:
                self._fail(result, product, "Handle exists but product could not be found")

        return remaining

    @staticmethod
    def _split_repeats(products: list[MappedProduct]) -> tuple[list[MappedProduct], list[MappedProduct]]:
        """First product per handle, and the later ones sharing a handle."""
        first: dict[str, MappedProduct] = {}
        repeats = []
        for product in products:
            if product.handle in first:
                repeats.append(product)
            else:
                first[product.handle] = product
        return list(first.values()), repeats

    def _queue_repeat(
        self,
        product: MappedProduct,
        to_update: list[tuple[MappedProduct, dict]],
        product_ids: dict[str, str],
        result: UpsertResult
    ) -> None:
        """Update the row an earlier product with the same handle created."""
        product_id = product_ids.get(product.handle)
        if product_id:
            logger.warning("duplicate_handle_in_batch", handle=product.handle, product_id=product_id)
            to_update.append((product, {"id": product_id, "handle": product.handle}))
            return

        try:
            existing = self.catalog.find_by_handle(product.handle)
        except AppError as e:
            existing = None
            logger.error("duplicate_handle_lookup_failed", handle=product.handle, error=e.message)

        if existing:
            to_update.append((product, existing))
        else:
            self._fail(result, product, "Another product in the batch has this handle and was not created")

    # ===================
    # UPDATE
    # ===================

    def _update_all(
        self,
        to_update: list[tuple[MappedProduct, dict]],
        shipping_profile_id: Optional[str],
        sales_channel_id: Optional[str],
        result: UpsertResult,
        product_ids: dict[str, str]
    ) -> None:
        for product, existing in to_update:
            payload = product.to_update_payload(shipping_profile_id)
            if sales_channel_id:
                payload["sales_channels"] = [{"id": sales_channel_id}]

            try:
                self.catalog.update_product(existing["id"], payload)
            except AppError as e:
                self._fail(result, product, e.message)
                continue

            product_ids[product.handle] = existing["id"]
            result.updated += 1

    # ===================
    # CATEGORIES
    # ===================

    def _link_categories(
        self,
        products: list[MappedProduct],
        product_ids: dict[str, str],
        result: UpsertResult
    ) -> None:
        for product in products:
            product_id = product_ids.get(product.handle)
            if not product_id or not product.category_ids:
                continue

            try:
                existing = self.catalog.get_product_category_ids(product_id)
                merged = list(dict.fromkeys(existing + product.category_ids))
                self.catalog.assign_categories(product_id, merged)
            except AppError as e:
                logger.warning("category_link_failed", handle=product.handle, error=e.message)
                result.errors.append(f"{product.handle}: category link failed: {e.message}")

    # ===================
    # HELPERS
    # ===================

    @staticmethod
    def _create_payload(
        product: MappedProduct,
        shipping_profile_id: Optional[str],
        sales_channel_id: Optional[str]
    ) -> dict:
        payload = product.to_create_payload(shipping_profile_id)
        if sales_channel_id:
            payload["sales_channels"] = [{"id": sales_channel_id}]
        return payload

    @staticmethod
    def _fail(result: UpsertResult, product: MappedProduct, message: str) -> None:
        error = UpsertFailed(product.handle, message)
        logger.error("product_upsert_failed", handle=product.handle, error=message)
        result.failed += 1
        result.errors.append(error.message)


# Singleton instance for convenience
_catalog_upsert_service: Optional[CatalogUpsertService] = None

def get_catalog_upsert_service() -> CatalogUpsertService:
    """Get or create CatalogUpsertService instance."""
    global _catalog_upsert_service
    if _catalog_upsert_service is None:
        _catalog_upsert_service = CatalogUpsertService()
    return _catalog_upsert_service
