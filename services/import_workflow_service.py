"""
Import workflow.

Drives an import session through its lifecycle:

    parsing -> ready -> selecting -> importing -> completed | failed

The feed is downloaded once and kept on disk; both the summary and
the import stream records from that file, so the full product list is
never held in memory or stored on the session.
"""

from typing import Any, Optional
import structlog

from config.settings import settings
from exceptions import AppError, InvalidSessionStateError, MappingError, FeedFileMissingError
from integrations.catalog import CatalogService, get_catalog_service
from models.feed import SelectionFilters
from models.import_result import ImportRunResult
from models.product import MappedProduct
from models.session import ImportSession, SessionStatus
from parsers.feed_parser import (
    cleanup_feed_file,
    feed_file_path,
    iter_products_from_file,
    save_feed_to_disk,
)
from services.brand_service import BrandResolver
from services.catalog_upsert_service import CatalogUpsertService
from services.category_extension_service import CategoryExtensionService, get_category_extension_service
from services.category_hierarchy_service import CategoryHierarchyResolver, category_key
from services.enrichment_service import EnrichmentService
from services.image_service import ImageService
from services.product_mapper import map_product
from services.selection_service import matches
from services.session_service import SessionService, get_session_service
from services.taxonomy_service import summarize
from services.text_generation import TextGenerationProvider

logger = structlog.get_logger(__name__)

SELECTABLE_STATUSES = [SessionStatus.READY.value, SessionStatus.SELECTING.value]


class ImportWorkflowService:
    """
    Session lifecycle and the per-product import pipeline.

    Collaborators are injected so tests can swap any of them; the
    defaults are the Supabase-backed singletons.
    """

    def __init__(
        self,
        sessions: Optional[SessionService] = None,
        catalog: Optional[CatalogService] = None,
        extensions: Optional[CategoryExtensionService] = None,
        provider: Optional[TextGenerationProvider] = None,
        image_service: Optional[ImageService] = None,
        upsert_service: Optional[CatalogUpsertService] = None,
        batch_size: Optional[int] = None
    ):
        self.sessions = sessions or get_session_service()
        self.catalog = catalog or get_catalog_service()
        self.extensions = extensions or get_category_extension_service()
        self.provider = provider
        self.enrichment = EnrichmentService(provider)
        self.images = image_service or ImageService()
        self.upsert_service = upsert_service or CatalogUpsertService(self.catalog, self.images)
        self.batch_size = batch_size or settings.import_batch_size

    # ===================
    # SESSION LIFECYCLE
    # ===================

    def create_session(self, xml_url: str) -> ImportSession:
        """Start a new import for a feed URL (status 'parsing')."""
        return self.sessions.create(xml_url)

    def download_and_parse(self, session_id: str) -> ImportSession:
        """
        Download the feed to disk and store its taxonomy summary.

        Returns:
            Session in 'ready' status

        Raises:
            AppError: Feed-level errors, after marking the session failed
        """
        session = self.sessions.get(session_id)
        logger.info("feed_download_started", session_id=session_id, xml_url=session.xml_url)

        path = None
        try:
            path = save_feed_to_disk(session.xml_url, session.id)
            summary = summarize(iter_products_from_file(path))
        except AppError as e:
            logger.error("feed_parse_failed", session_id=session_id, error=e.message)
            cleanup_feed_file(path)
            self.sessions.update(session_id, status=SessionStatus.FAILED, error=e.message)
            raise

        if summary.total_products == 0:
            logger.warning("feed_has_no_products", session_id=session_id)

        return self.sessions.update(
            session_id,
            status=SessionStatus.READY,
            xml_file_path=path,
            parsed_data=summary,
            error=None
        )

    def select(self, session_id: str, filters: SelectionFilters) -> ImportSession:
        """
        Store the operator's selection.

        Raises:
            InvalidSessionStateError: Unless the session is ready or selecting
        """
        session = self.sessions.get(session_id)
        self._require_status(session, SELECTABLE_STATUSES)

        logger.info(
            "selection_saved",
            session_id=session_id,
            categories=len(filters.categories or []),
            brands=len(filters.brands or []),
            product_ids=len(filters.product_ids or [])
        )

        return self.sessions.update(
            session_id,
            status=SessionStatus.SELECTING,
            selected_categories=filters.categories or [],
            selected_brands=filters.brands or [],
            selected_product_ids=filters.product_ids or []
        )

    @staticmethod
    def _require_status(session: ImportSession, expected: list[str]) -> None:
        current = session.status.value if isinstance(session.status, SessionStatus) else str(session.status)
        if current not in expected:
            raise InvalidSessionStateError(session.id, current, expected)

    # ===================
    # IMPORT RUN
    # ===================

    def run_import(
        self,
        session_id: str,
        shipping_profile_id: Optional[str] = None,
        sales_channel_id: Optional[str] = None
    ) -> ImportRunResult:
        """
        Import the selected products of a session.

        Records are streamed from the saved feed, filtered, mapped,
        enriched and upserted in batches. Per-product errors are counted;
        feed-level errors mark the session failed and propagate. The
        feed file is deleted when the run ends.

        Returns:
            ImportRunResult

        Raises:
            InvalidSessionStateError: Unless the session is ready or selecting
            FeedFileMissingError: If the saved feed is gone
        """
        session = self.sessions.get(session_id)
        self._require_status(session, SELECTABLE_STATUSES)

        if not session.xml_file_path:
            raise FeedFileMissingError(str(feed_file_path(session_id)))

        filters = SelectionFilters(
            categories=session.selected_categories,
            brands=session.selected_brands,
            product_ids=session.selected_product_ids,
        )
        resolver = CategoryHierarchyResolver(self.catalog, self.extensions, self.provider)
        brands = BrandResolver(self.catalog)
        result = ImportRunResult(session_id=session_id, status=SessionStatus.IMPORTING.value)

        self.sessions.update(session_id, status=SessionStatus.IMPORTING, error=None)
        logger.info("import_started", session_id=session_id, batch_size=self.batch_size)

        try:
            batch: list[MappedProduct] = []
            for record in iter_products_from_file(session.xml_file_path):
                if not matches(record, filters):
                    continue

                result.total += 1
                product = self._prepare(record, result)
                if product is not None:
                    batch.append(product)

                if len(batch) >= self.batch_size:
                    self._flush(batch, resolver, brands, shipping_profile_id, sales_channel_id, result)
                    batch = []

                if result.total % settings.progress_log_every == 0:
                    logger.info(
                        "import_progress",
                        session_id=session_id,
                        processed=result.total,
                        successful=result.successful,
                        failed=result.failed
                    )

            if batch:
                self._flush(batch, resolver, brands, shipping_profile_id, sales_channel_id, result)

        except AppError as e:
            logger.error("import_aborted", session_id=session_id, error=e.message)
            result.status = SessionStatus.FAILED.value
            self.sessions.update(session_id, status=SessionStatus.FAILED, error=e.message)
            raise
        finally:
            cleanup_feed_file(session.xml_file_path)

        failed_run = result.successful == 0 and result.failed > 0
        result.status = SessionStatus.FAILED.value if failed_run else SessionStatus.COMPLETED.value

        self.sessions.update(
            session_id,
            status=result.status,
            xml_file_path=None,
            error="; ".join(result.errors[:5]) if failed_run else None
        )

        logger.info(
            "import_completed",
            session_id=session_id,
            status=result.status,
            total=result.total,
            successful=result.successful,
            failed=result.failed,
            skipped=result.skipped,
            categories_created=resolver.created,
            brands_created=brands.created
        )
        return result

    def import_url(
        self,
        xml_url: str,
        filters: SelectionFilters,
        shipping_profile_id: Optional[str] = None,
        sales_channel_id: Optional[str] = None
    ) -> ImportRunResult:
        """Create, parse, select and run in one call."""
        session = self.create_session(xml_url)
        self.download_and_parse(session.id)
        self.select(session.id, filters)
        return self.run_import(session.id, shipping_profile_id, sales_channel_id)

    # ===================
    # PIPELINE STAGES
    # ===================

    def _prepare(self, record: Any, result: ImportRunResult) -> Optional[MappedProduct]:
        """Map and enrich one record. None when it is skipped or failed."""
        try:
            product = map_product(record)
        except MappingError as e:
            logger.warning("product_mapping_skipped", error=e.message)
            result.skipped += 1
            result.errors.append(e.message)
            return None

        try:
            return self.enrichment.enrich(product, product.description)
        except AppError as e:
            logger.error("product_enrichment_failed", handle=product.handle, error=e.message)
            result.failed += 1
            result.errors.append(f"{product.handle}: {e.message}")
            return None

    def _flush(
        self,
        batch: list[MappedProduct],
        resolver: CategoryHierarchyResolver,
        brands: BrandResolver,
        shipping_profile_id: Optional[str],
        sales_channel_id: Optional[str],
        result: ImportRunResult
    ) -> None:
        self._assign_categories(batch, resolver)
        self._assign_brands(batch, brands)

        upserted = self.upsert_service.upsert(batch, shipping_profile_id, sales_channel_id)

        result.created += upserted.created
        result.updated += upserted.updated
        result.successful += upserted.created + upserted.updated
        result.failed += upserted.failed
        result.errors.extend(upserted.errors)

        logger.debug(
            "import_batch_flushed",
            session_id=result.session_id,
            size=len(batch),
            created=upserted.created,
            updated=upserted.updated,
            failed=upserted.failed
        )

    def _assign_categories(self, batch: list[MappedProduct], resolver: CategoryHierarchyResolver) -> None:
        entries = [
            (product.category_path, product.category_source_path, product.category_external_id)
            for product in batch
            if product.category_path
        ]
        if not entries:
            return

        try:
            resolved = resolver.resolve_many(entries)
        except AppError as e:
            # Products are still imported, just without a category link
            logger.error("category_resolution_failed", count=len(entries), error=e.message)
            return

        for product in batch:
            key = category_key(product.category_path, product.category_external_id)
            category_id = resolved.get(key) if key else None
            if category_id:
                product.category_ids = [category_id]

    @staticmethod
    def _assign_brands(batch: list[MappedProduct], brands: BrandResolver) -> None:
        resolved = brands.resolve_many(product.brand_name for product in batch if product.brand_name)
        for product in batch:
            product.brand_id = resolved.get(product.brand_name) if product.brand_name else None
