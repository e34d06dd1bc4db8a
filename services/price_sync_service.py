"""
Price and stock sync.

Re-reads the light price feed and writes the customer price (and
optionally stock) onto the variants of already imported products.
Products are matched on metadata.external_id; ids the catalog does not
know are ignored.
"""

from typing import Iterable, Optional
import structlog

from config.settings import settings
from exceptions import AppError
from integrations.catalog import CatalogService, get_catalog_service
from models.import_result import PriceSyncResult
from models.price import PriceUpdateRecord
from models.session import ImportConfig
from parsers.feed_parser import fetch_and_parse
from parsers.price_parser import extract_price_data

logger = structlog.get_logger(__name__)


class PriceSyncService:
    """
    Applies price feed records to catalog variants.

    Products are looked up in batches of price_sync_batch_size; each
    product is updated on its own so one failure only counts once.
    """

    def __init__(
        self,
        catalog: Optional[CatalogService] = None,
        batch_size: Optional[int] = None,
        currency_code: Optional[str] = None
    ):
        self.catalog = catalog or get_catalog_service()
        self.batch_size = batch_size or settings.price_sync_batch_size
        self.currency_code = currency_code or settings.price_currency_code

    # ===================
    # SYNC
    # ===================

    def sync(self, url: str, update_inventory: bool = False) -> PriceSyncResult:
        """
        Sync prices (and stock) from one feed URL.

        Feed-level errors are reported as a failed result, never raised.

        Args:
            url: Price feed URL
            update_inventory: Also write stock levels

        Returns:
            PriceSyncResult
        """
        logger.info("price_sync_started", url=url, update_inventory=update_inventory)

        try:
            records = extract_price_data(fetch_and_parse(url))
        except AppError as e:
            logger.error("price_feed_failed", url=url, error=e.message)
            return PriceSyncResult(url=url, status="failed", message=e.message)

        result = PriceSyncResult(url=url, status="completed", total=len(records))
        external_ids = list(records.keys())

        for start in range(0, len(external_ids), self.batch_size):
            batch = external_ids[start:start + self.batch_size]
            self._sync_batch(batch, records, update_inventory, result)

        result.status = self._status(result)
        result.message = f"Updated {result.updated} of {result.total} products"

        logger.info(
            "price_sync_completed",
            url=url,
            status=result.status,
            total=result.total,
            updated=result.updated,
            failed=result.failed
        )
        return result

    def _sync_batch(
        self,
        external_ids: list[str],
        records: dict[str, PriceUpdateRecord],
        update_inventory: bool,
        result: PriceSyncResult
    ) -> None:
        try:
            products = self.catalog.find_by_external_ids(external_ids)
        except AppError as e:
            logger.error("price_sync_lookup_failed", count=len(external_ids), error=e.message)
            result.failed += len(external_ids)
            result.errors.append(e.message)
            return

        for product in products:
            external_id = str((product.get("metadata") or {}).get("external_id", ""))
            record = records.get(external_id)
            if record is None:
                continue

            try:
                if self._apply(product, record, update_inventory):
                    result.updated += 1
            except AppError as e:
                logger.error("price_update_failed", external_id=external_id, error=e.message)
                result.failed += 1
                result.errors.append(f"{external_id}: {e.message}")

    def _apply(self, product: dict, record: PriceUpdateRecord, update_inventory: bool) -> bool:
        """Write price (and stock) to every variant. False when nothing to write."""
        variants = self.catalog.list_variants(product["id"])
        if not variants:
            logger.debug("price_sync_no_variants", product_id=product["id"])
            return False

        price = record.customer_price
        price_metadata = record.price_metadata()
        stock_by_barcode = {
            size.code_external: size.stock_quantity
            for size in record.sizes
            if size.code_external
        }

        for variant in variants:
            if price is not None:
                self.catalog.update_variant(variant["id"], {
                    "prices": [{"amount": float(price), "currency_code": self.currency_code}]
                })

            if price_metadata:
                try:
                    self.catalog.update_variant(variant["id"], {
                        "metadata": {**(variant.get("metadata") or {}), **price_metadata}
                    })
                except AppError as e:
                    logger.warning("price_metadata_update_failed", variant_id=variant["id"], error=e.message)

            if update_inventory:
                quantity = stock_by_barcode.get(variant.get("barcode"), record.stock_quantity)
                self.catalog.set_stock_level(variant["id"], quantity)

        return True

    @staticmethod
    def _status(result: PriceSyncResult) -> str:
        if result.failed == 0:
            return "completed"
        if result.updated > 0:
            return "completed_with_errors"
        return "failed"

    # ===================
    # SCHEDULED RUNS
    # ===================

    def run_scheduled(self, configs: Iterable[ImportConfig]) -> list[PriceSyncResult]:
        """
        Sync every enabled config.

        Each URL is isolated: one failing config never stops the others.
        """
        results = []
        for config in configs:
            if not config.enabled:
                continue
            try:
                results.append(self.sync(config.price_xml_url, config.update_inventory))
            except Exception as e:
                logger.error("scheduled_price_sync_failed", config_id=config.id, url=config.price_xml_url, error=str(e))
                results.append(PriceSyncResult(url=config.price_xml_url, status="failed", message=str(e)))

        logger.info("scheduled_price_sync_finished", configs=len(results))
        return results


# Singleton instance for convenience
_price_sync_service: Optional[PriceSyncService] = None

def get_price_sync_service() -> PriceSyncService:
    """Get or create PriceSyncService instance."""
    global _price_sync_service
    if _price_sync_service is None:
        _price_sync_service = PriceSyncService()
    return _price_sync_service
