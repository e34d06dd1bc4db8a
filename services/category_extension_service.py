"""
Category extension service.

Extension rows remember the vendor's name and id for every category the
importer created, which is how later runs find the same category again.
"""

import uuid
from datetime import datetime
from typing import Optional
import structlog

from config import get_supabase_client
from models.category import CategoryExtension, CategoryExtensionCreate
from exceptions import DatabaseError

logger = structlog.get_logger(__name__)


class CategoryExtensionService:
    """
    Category extension persistence.

    Table: category_extensions (1:1 with catalog categories)
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "category_extensions"

    # ===================
    # READ OPERATIONS
    # ===================

    def find_by_external_id(self, external_id: str) -> list[CategoryExtension]:
        """
        All extensions stored for a vendor category id.

        A vendor id can end up on categories under different parents
        (the vendor moved the category), so callers pick the one whose
        parent matches.

        Args:
            external_id: Vendor category id

        Returns:
            List of CategoryExtension, oldest first
        """
        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .eq("external_id", str(external_id))
                .order("created_at")
                .execute()
            )
            return [CategoryExtension(**row) for row in result.data or []]
        except Exception as e:
            logger.error("find_extension_by_external_id_failed", external_id=external_id, error=str(e))
            raise DatabaseError("select", str(e))

    def find_by_original_name(self, original_name: str) -> list[CategoryExtension]:
        """
        All extensions with this vendor spelling.

        The same name can exist under several parents, so callers
        check the linked category's parent themselves.
        """
        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .eq("original_name", original_name)
                .execute()
            )
            return [CategoryExtension(**row) for row in result.data or []]
        except Exception as e:
            logger.error("find_extension_by_name_failed", original_name=original_name, error=str(e))
            raise DatabaseError("select", str(e))

    # ===================
    # WRITE OPERATIONS
    # ===================

    def create(self, data: CategoryExtensionCreate) -> CategoryExtension:
        """
        Store a new extension row.

        Args:
            data: Extension data linked to an existing category

        Returns:
            Created CategoryExtension
        """
        logger.info(
            "creating_category_extension",
            category_id=data.category_id,
            original_name=data.original_name
        )

        try:
            now = datetime.utcnow().isoformat()
            row = {
                "id": str(uuid.uuid4()),
                **data.model_dump(),
                "created_at": now,
                "updated_at": now,
            }
            result = self.db.table(self.table).insert(row).execute()
            return CategoryExtension(**result.data[0])
        except Exception as e:
            logger.error("create_category_extension_failed", category_id=data.category_id, error=str(e))
            raise DatabaseError("insert", str(e))

    def set_external_id(self, extension: CategoryExtension, external_id: str) -> CategoryExtension:
        """
        Backfill the vendor id on an extension that has none.

        An extension that already carries an external id is returned
        unchanged; ids are never overwritten.
        """
        if extension.external_id is not None:
            return extension

        try:
            result = (
                self.db.table(self.table)
                .update({
                    "external_id": str(external_id),
                    "updated_at": datetime.utcnow().isoformat()
                })
                .eq("id", extension.id)
                .execute()
            )
        except Exception as e:
            logger.error("set_extension_external_id_failed", extension_id=extension.id, error=str(e))
            raise DatabaseError("update", str(e))

        logger.info(
            "category_external_id_backfilled",
            category_id=extension.category_id,
            external_id=external_id
        )
        if result.data:
            return CategoryExtension(**result.data[0])
        return extension.model_copy(update={"external_id": str(external_id)})


# Singleton instance for convenience
_category_extension_service: Optional[CategoryExtensionService] = None

def get_category_extension_service() -> CategoryExtensionService:
    """Get or create CategoryExtensionService instance."""
    global _category_extension_service
    if _category_extension_service is None:
        _category_extension_service = CategoryExtensionService()
    return _category_extension_service
