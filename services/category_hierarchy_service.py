"""
Category hierarchy resolver.

Turns a "/"-separated category path into the id of its leaf category,
creating missing levels on the way. Lookups go through the extension
rows (vendor id, vendor spelling) so that a translated display name
never causes a second sibling to be created on a later run.

One resolver is built per import run; its cache lives on the instance.
"""

from typing import Iterable, Optional
import structlog

from exceptions import AppError, CategoryCreateConflict
from integrations.catalog import CatalogService
from models.category import CategoryExtension, CategoryExtensionCreate
from services.category_extension_service import CategoryExtensionService
from services.text_generation import TextGenerationProvider
from utils.text_utils import collapse_whitespace, split_category_path

logger = structlog.get_logger(__name__)


def align_segments(display: list[str], source: list[str]) -> list[str]:
    """
    Source segments lined up with the display segments.

    A shorter source is padded with its last segment, a longer one is
    trimmed. An empty source falls back to the display segments.
    """
    if not source:
        return list(display)
    if len(source) >= len(display):
        return source[:len(display)]
    return source + [source[-1]] * (len(display) - len(source))


def category_key(path: Optional[str], external_id: Optional[str]) -> Optional[str]:
    """Key used by resolve_many(): vendor id when known, else the path."""
    if external_id:
        return str(external_id)
    segments = split_category_path(path)
    return "/".join(segments) if segments else None


class CategoryHierarchyResolver:
    """
    Resolves category paths for one import run.

    Args:
        catalog: Catalog collaborator (category lookup and creation)
        extensions: Extension row storage
        provider: Optional text provider for new category descriptions
    """

    def __init__(
        self,
        catalog: CatalogService,
        extensions: CategoryExtensionService,
        provider: Optional[TextGenerationProvider] = None
    ):
        self.catalog = catalog
        self.extensions = extensions
        self.provider = provider
        self._segments: dict[tuple[str, Optional[str]], str] = {}
        self._paths: dict[str, str] = {}
        self.created = 0

    # ===================
    # PATHS
    # ===================

    def resolve(
        self,
        path: Optional[str],
        source_path: Optional[str] = None,
        external_id: Optional[str] = None
    ) -> Optional[str]:
        """
        Id of the leaf category for a path.

        Args:
            path: Display path (possibly translated), "A/B/C"
            source_path: Path as spelled in the feed
            external_id: Vendor id of the leaf category

        Returns:
            Leaf category id, or None if a level could not be resolved
        """
        display = split_category_path(path)
        if not display:
            return None

        source = align_segments(display, split_category_path(source_path))
        display_key = "/".join(display)
        source_key = "/".join(source)

        cached = self._paths.get(display_key) or self._paths.get(source_key)
        if cached:
            return cached

        parent_id: Optional[str] = None
        for index, (name, original) in enumerate(zip(display, source)):
            is_leaf = index == len(display) - 1
            category_id = self._resolve_segment(
                name,
                original,
                parent_id,
                external_id=external_id if is_leaf else None,
                full_path="/".join(display[:index + 1]),
            )
            if category_id is None:
                logger.error("category_path_unresolved", path=display_key, failed_segment=name)
                return None
            parent_id = category_id

        self._paths[display_key] = parent_id
        self._paths[source_key] = parent_id
        return parent_id

    def resolve_many(self, entries: Iterable[tuple]) -> dict[str, str]:
        """
        Resolve the distinct category paths of a batch.

        Entries are (path, source_path, external_id) tuples. Entries with
        the same external id collapse to the one with the deepest path.

        Returns:
            {category_key: category_id} for every path that resolved
        """
        unique: dict[str, tuple] = {}
        for path, source_path, external_id in entries:
            key = category_key(path, external_id)
            if not key:
                continue
            current = unique.get(key)
            if current is None or len(split_category_path(path)) > len(split_category_path(current[0])):
                unique[key] = (path, source_path, external_id)

        resolved = {}
        for key, (path, source_path, external_id) in unique.items():
            try:
                category_id = self.resolve(path, source_path, external_id)
            except AppError as e:
                logger.error("category_path_failed", path=path, external_id=external_id, error=e.message)
                continue
            if category_id:
                resolved[key] = category_id

        logger.info("category_paths_resolved", requested=len(unique), resolved=len(resolved))
        return resolved

    # ===================
    # SEGMENTS
    # ===================

    def _resolve_segment(
        self,
        name: str,
        original: str,
        parent_id: Optional[str],
        external_id: Optional[str],
        full_path: str
    ) -> Optional[str]:
        cache_key = (name, parent_id)
        if cache_key in self._segments:
            return self._segments[cache_key]

        category_id = (
            self._by_external_id(external_id, parent_id)
            or self._by_original_name(original, parent_id, external_id)
            or self._create(name, original, parent_id, external_id, full_path)
        )

        if category_id:
            self._segments[cache_key] = category_id
        return category_id

    def _parent_of(self, category_id: str) -> tuple[bool, Optional[str]]:
        """(exists, parent id) for a catalog category."""
        category = self.catalog.get_category(category_id)
        if not category:
            return False, None
        return True, category.get("parent_category_id")

    def _by_external_id(self, external_id: Optional[str], parent_id: Optional[str]) -> Optional[str]:
        if not external_id:
            return None

        for extension in self.extensions.find_by_external_id(external_id):
            exists, actual_parent = self._parent_of(extension.category_id)
            if exists and actual_parent == parent_id:
                logger.debug("category_found_by_external_id", external_id=external_id, category_id=extension.category_id)
                return extension.category_id
        return None

    def _by_original_name(
        self,
        original: str,
        parent_id: Optional[str],
        external_id: Optional[str]
    ) -> Optional[str]:
        for extension in self.extensions.find_by_original_name(original):
            exists, actual_parent = self._parent_of(extension.category_id)
            if not exists or actual_parent != parent_id:
                continue

            if external_id:
                self._backfill(extension, external_id)

            logger.debug("category_found_by_name", original_name=original, category_id=extension.category_id)
            return extension.category_id
        return None

    def _backfill(self, extension: CategoryExtension, external_id: str) -> None:
        if extension.external_id is not None:
            if extension.external_id != str(external_id):
                logger.warning(
                    "category_external_id_mismatch",
                    category_id=extension.category_id,
                    stored=extension.external_id,
                    incoming=external_id
                )
            return
        self.extensions.set_external_id(extension, external_id)

    def _describe(self, full_path: str) -> Optional[str]:
        if self.provider is None:
            return None
        try:
            return self.provider.generate_category_description(full_path) or None
        except AppError as e:
            logger.warning("category_description_failed", path=full_path, error=e.message)
            return None

    def _create(
        self,
        name: str,
        original: str,
        parent_id: Optional[str],
        external_id: Optional[str],
        full_path: str
    ) -> Optional[str]:
        category_name = collapse_whitespace(name)
        description = self._describe(full_path)

        try:
            category = self.catalog.create_category(category_name, parent_id)
        except CategoryCreateConflict:
            return self._after_conflict(category_name, parent_id)

        category_id = category["id"]
        self.created += 1
        logger.info(
            "category_created",
            category_id=category_id,
            name=category_name,
            original_name=original,
            parent_id=parent_id
        )

        try:
            self.extensions.create(CategoryExtensionCreate(
                category_id=category_id,
                original_name=original,
                external_id=str(external_id) if external_id else None,
                description=description,
                seo_title=category_name,
                seo_meta_description=description,
            ))
        except AppError as e:
            logger.warning("category_extension_create_failed", category_id=category_id, error=e.message)

        return category_id

    def _after_conflict(self, name: str, parent_id: Optional[str]) -> Optional[str]:
        logger.warning("category_create_conflict", name=name, parent_id=parent_id)

        matches = self.catalog.list_categories(name, parent_id)
        if matches:
            return matches[0]["id"]

        logger.error("category_conflict_unresolved", name=name, parent_id=parent_id)
        return None
