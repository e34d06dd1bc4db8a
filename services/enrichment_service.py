"""
Enrichment orchestrator.

Runs a mapped product through translation, SEO copy and structured
extraction. Every stage is best-effort: a provider failure leaves that
stage's field at its original value and the product keeps going.

Stages:
    1. title            translate_title (brand kept) or translate
    2. category/unit    translate the display names, keep the source names
    3. meta             generate_meta_description
    4. body             optimize_description (seo_enhanced, else technical_safe)
    5. extraction       included items and specifications table, with a
                        local regex fallback
"""

from typing import Optional
import structlog

from config.settings import settings
from exceptions import AppError
from models.enrichment import MetaContent, OptimizedDescription
from models.product import MappedProduct
from services.text_generation import META_DESCRIPTION_LIMIT, META_TITLE_LIMIT, TextGenerationProvider
from utils.html_extract import extract_included_section, extract_specifications_table

logger = structlog.get_logger(__name__)


class EnrichmentService:
    """
    Applies a text generation provider to mapped products.

    With no provider the product passes through with only the local
    extraction applied.
    """

    def __init__(
        self,
        provider: Optional[TextGenerationProvider] = None,
        target_language: Optional[str] = None
    ):
        self.provider = provider
        self.target_language = target_language or settings.target_language

    def enrich(self, product: MappedProduct, original_description: Optional[str] = None) -> MappedProduct:
        """
        Enrich one product in place.

        Args:
            product: Mapped product
            original_description: Description before any rewriting
                (defaults to product.description)

        Returns:
            The same product with translated and generated fields
        """
        original = original_description if original_description is not None else (product.description or "")

        if self.provider is None:
            self._extract(product, original)
            return product

        logger.debug("enriching_product", handle=product.handle, provider=self.provider.name)

        self._translate_title(product)
        self._translate_category(product)
        self._translate_labels(product)

        meta = self._meta(product, original)
        optimized = self._optimize(product, original)

        if optimized:
            product.description = optimized.best or product.description

        meta = meta or self._meta_fallback(product, original, optimized)
        product.metadata["seo_meta_title"] = meta.meta_title
        product.metadata["seo_meta_description"] = meta.meta_description

        self._extract(product, original)

        logger.info(
            "product_enriched",
            handle=product.handle,
            description_optimized=optimized is not None,
            has_included=bool(product.metadata.get("included_items")),
            has_specifications=bool(product.metadata.get("specifications_table"))
        )
        return product

    # ===================
    # TRANSLATION
    # ===================

    def _translate(self, text: Optional[str], stage: str, handle: str) -> Optional[str]:
        if not text:
            return text
        try:
            translated = self.provider.translate(text, self.target_language)
        except AppError as e:
            logger.warning("translation_failed", stage=stage, handle=handle, error=e.message)
            return text
        return translated or text

    def _translate_title(self, product: MappedProduct) -> None:
        brand = product.brand_name
        try:
            if brand:
                translated = self.provider.translate_title(product.title, brand, self.target_language)
            else:
                translated = self.provider.translate(product.title, self.target_language)
        except AppError as e:
            logger.warning("title_translation_failed", handle=product.handle, error=e.message)
            return

        if translated:
            product.title = translated

    def _translate_category(self, product: MappedProduct) -> None:
        source = product.category_source_path
        if not source:
            return

        category = dict(product.metadata.get("category") or {})
        category["original_name"] = source
        category["name"] = self._translate(source, "category", product.handle)
        product.metadata["category"] = category

    def _translate_labels(self, product: MappedProduct) -> None:
        for key in ("unit_name", "warranty_name"):
            value = product.metadata.get(key)
            if value:
                product.metadata[key] = self._translate(value, key, product.handle)

    # ===================
    # SEO CONTENT
    # ===================

    def _meta(self, product: MappedProduct, original: str) -> Optional[MetaContent]:
        try:
            return self.provider.generate_meta_description(product, original)
        except AppError as e:
            logger.warning("meta_generation_failed", handle=product.handle, error=e.message)
            return None

    def _optimize(self, product: MappedProduct, original: str) -> Optional[OptimizedDescription]:
        if not original:
            return None
        try:
            return self.provider.optimize_description(product, original)
        except AppError as e:
            logger.warning("description_optimization_failed", handle=product.handle, error=e.message)
            return None

    @staticmethod
    def _meta_fallback(
        product: MappedProduct,
        original: str,
        optimized: Optional[OptimizedDescription]
    ) -> MetaContent:
        if optimized and optimized.short:
            return MetaContent(
                meta_title=optimized.short[:META_TITLE_LIMIT],
                meta_description=optimized.short[:META_DESCRIPTION_LIMIT],
            )
        return MetaContent(
            meta_title=product.title[:META_TITLE_LIMIT],
            meta_description=original[:META_DESCRIPTION_LIMIT],
        )

    # ===================
    # EXTRACTION
    # ===================

    def _extract(self, product: MappedProduct, original: str) -> None:
        if not original:
            return

        included = self._provider_extraction("extract_included_items", product, original)
        specifications = self._provider_extraction("extract_technical_data", product, original)

        included = included or extract_included_section(original)
        specifications = specifications or extract_specifications_table(original)

        if included:
            product.metadata["included_items"] = included
        if specifications:
            product.metadata["specifications_table"] = specifications

    def _provider_extraction(self, method: str, product: MappedProduct, original: str) -> Optional[str]:
        if self.provider is None:
            return None
        try:
            return getattr(self.provider, method)(original)
        except AppError as e:
            logger.warning("extraction_failed", method=method, handle=product.handle, error=e.message)
            return None
