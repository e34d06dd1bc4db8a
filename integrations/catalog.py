"""
Catalog and blob store integrations.

The import pipeline only talks to the catalog through CatalogService
and to file storage through BlobStore. The Supabase adapters below keep
catalog rows in PostgREST tables and images in a Storage bucket.

Tables:
    products                  one row per product, metadata as jsonb
    product_variants          variants with prices (jsonb) and metadata
    product_categories        category tree (parent_category_id)
    product_brands            brands, unique on handle
    product_category_links    product <-> category
"""

import re
import uuid
from typing import Optional, Protocol
import structlog

from config import get_supabase_client, get_admin_client, settings
from exceptions import (
    BrandCreateConflict,
    CategoryCreateConflict,
    ProductHandleExistsError,
    DatabaseError,
)
from utils.text_utils import sanitize_handle

logger = structlog.get_logger(__name__)

HANDLE_IN_ERROR = re.compile(r'\(handle\)=\(([^)]+)\)')
VARIANT_FIELDS = ("title", "sku", "barcode", "manage_inventory", "options")


def is_duplicate_error(error: Exception) -> bool:
    """True when the store rejected a write because the row already exists."""
    message = str(error).lower()
    return "duplicate" in message or "already exists" in message


class CatalogService(Protocol):
    """Catalog operations used by the import pipeline."""

    def find_by_handle(self, handle: str) -> Optional[dict]: ...

    def find_by_external_ids(self, external_ids: list[str]) -> list[dict]: ...

    def create_products(self, payloads: list[dict]) -> list[dict]: ...

    def update_product(self, product_id: str, payload: dict) -> dict: ...

    def get_product_category_ids(self, product_id: str) -> list[str]: ...

    def assign_categories(self, product_id: str, category_ids: list[str]) -> None: ...

    def list_categories(self, name: str, parent_id: Optional[str]) -> list[dict]: ...

    def get_category(self, category_id: str) -> Optional[dict]: ...

    def create_category(self, name: str, parent_id: Optional[str]) -> dict: ...

    def find_brand(self, name: str) -> Optional[dict]: ...

    def create_brand(self, name: str) -> dict: ...

    def list_variants(self, product_id: str) -> list[dict]: ...

    def update_variant(self, variant_id: str, payload: dict) -> dict: ...

    def set_stock_level(self, variant_id: str, quantity: int) -> None: ...


class BlobStore(Protocol):
    """Stores binary content and returns a public URL."""

    def put(self, content: bytes, content_type: str, filename: str) -> str: ...


class SupabaseCatalogService:
    """
    CatalogService backed by Supabase tables.

    Unique constraints (products.handle, product_categories
    (parent_category_id, handle), product_brands.handle) surface as
    ProductHandleExistsError, CategoryCreateConflict and BrandCreateConflict.
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.products_table = "products"
        self.variants_table = "product_variants"
        self.categories_table = "product_categories"
        self.links_table = "product_category_links"
        self.brands_table = "product_brands"

    # ===================
    # PRODUCTS
    # ===================

    def find_by_handle(self, handle: str) -> Optional[dict]:
        try:
            result = (
                self.db.table(self.products_table)
                .select("*")
                .eq("handle", handle)
                .limit(1)
                .execute()
            )
            return result.data[0] if result.data else None
        except Exception as e:
            logger.error("find_product_by_handle_failed", handle=handle, error=str(e))
            raise DatabaseError("select", str(e))

    def find_by_external_ids(self, external_ids: list[str]) -> list[dict]:
        """Products whose metadata.external_id is one of the ids."""
        if not external_ids:
            return []
        try:
            result = (
                self.db.table(self.products_table)
                .select("*")
                .in_("metadata->>external_id", [str(i) for i in external_ids])
                .execute()
            )
            return result.data or []
        except Exception as e:
            logger.error("find_products_by_external_ids_failed", count=len(external_ids), error=str(e))
            raise DatabaseError("select", str(e))

    def create_products(self, payloads: list[dict]) -> list[dict]:
        """
        Insert products with their variants.

        When the variant insert fails the new product rows are deleted
        again, so a retry starts from a clean slate.

        Raises:
            ProductHandleExistsError: A handle is already taken (nothing inserted)
            DatabaseError: Any other failure
        """
        if not payloads:
            return []

        rows = [self._product_row(payload) for payload in payloads]
        try:
            result = self.db.table(self.products_table).insert(rows).execute()
        except Exception as e:
            if is_duplicate_error(e):
                raise ProductHandleExistsError(self._conflicting_handle(e, payloads))
            logger.error("create_products_failed", count=len(payloads), error=str(e))
            raise DatabaseError("insert", str(e))

        created = result.data or []
        by_handle = {row["handle"]: row for row in created}

        variant_rows = []
        for payload in payloads:
            product = by_handle.get(payload["handle"])
            if not product:
                continue
            variant_rows.extend(self._variant_row(product["id"], variant) for variant in payload.get("variants", []))

        if variant_rows:
            try:
                self.db.table(self.variants_table).insert(variant_rows).execute()
            except Exception as e:
                logger.error("create_variants_failed", count=len(variant_rows), error=str(e))
                self._remove_products([row["id"] for row in created])
                raise DatabaseError("insert", str(e))

        logger.info("products_created", count=len(created))
        return created

    def update_product(self, product_id: str, payload: dict) -> dict:
        """Update a product. Incoming variants beyond the stored ones are created."""
        payload = dict(payload)
        variants = payload.pop("variants", None)
        row = self._product_row(payload, include_identity=False)

        try:
            result = (
                self.db.table(self.products_table)
                .update(row)
                .eq("id", product_id)
                .execute()
            )
        except Exception as e:
            logger.error("update_product_failed", product_id=product_id, error=str(e))
            raise DatabaseError("update", str(e))

        if variants:
            existing = self.list_variants(product_id)
            for current, incoming in zip(existing, variants):
                self.update_variant(current["id"], {key: incoming.get(key) for key in VARIANT_FIELDS})
            self._insert_variants(product_id, variants[len(existing):])

        return result.data[0] if result.data else {"id": product_id, **row}

    @staticmethod
    def _variant_row(product_id: str, variant: dict) -> dict:
        return {
            "product_id": product_id,
            **{key: variant.get(key) for key in VARIANT_FIELDS},
            "prices": [],
            "metadata": {},
        }

    def _insert_variants(self, product_id: str, variants: list[dict]) -> None:
        """Create variants the product does not have yet."""
        if not variants:
            return
        try:
            self.db.table(self.variants_table).insert(
                [self._variant_row(product_id, variant) for variant in variants]
            ).execute()
        except Exception as e:
            logger.error("create_variants_failed", product_id=product_id, error=str(e))
            raise DatabaseError("insert", str(e))
        logger.info("variants_created", product_id=product_id, count=len(variants))

    def _remove_products(self, product_ids: list[str]) -> None:
        """Delete products whose variants could not be written."""
        if not product_ids:
            return
        try:
            self.db.table(self.products_table).delete().in_("id", product_ids).execute()
            logger.warning("products_rolled_back", count=len(product_ids))
        except Exception as e:
            logger.error("product_rollback_failed", product_ids=product_ids, error=str(e))

    def _product_row(self, payload: dict, include_identity: bool = True) -> dict:
        row = {key: value for key, value in payload.items() if key not in ("variants", "sales_channels")}
        sales_channels = payload.get("sales_channels")
        if sales_channels:
            row["sales_channel_id"] = sales_channels[0].get("id")
        if include_identity and "external_id" not in row:
            row["external_id"] = (payload.get("metadata") or {}).get("external_id")
        return row

    @staticmethod
    def _conflicting_handle(error: Exception, payloads: list[dict]) -> str:
        match = HANDLE_IN_ERROR.search(str(error))
        if match:
            return match.group(1)
        for payload in payloads:
            if payload.get("handle") and payload["handle"] in str(error):
                return payload["handle"]
        return payloads[0]["handle"]

    # ===================
    # CATEGORY LINKS
    # ===================

    def get_product_category_ids(self, product_id: str) -> list[str]:
        try:
            result = (
                self.db.table(self.links_table)
                .select("category_id")
                .eq("product_id", product_id)
                .execute()
            )
            return [row["category_id"] for row in result.data or []]
        except Exception as e:
            logger.error("get_product_categories_failed", product_id=product_id, error=str(e))
            raise DatabaseError("select", str(e))

    def assign_categories(self, product_id: str, category_ids: list[str]) -> None:
        """Link categories not yet linked to the product."""
        existing = set(self.get_product_category_ids(product_id))
        missing = [category_id for category_id in category_ids if category_id not in existing]
        if not missing:
            return
        try:
            self.db.table(self.links_table).insert(
                [{"product_id": product_id, "category_id": category_id} for category_id in missing]
            ).execute()
        except Exception as e:
            logger.error("assign_categories_failed", product_id=product_id, error=str(e))
            raise DatabaseError("insert", str(e))

    # ===================
    # CATEGORIES
    # ===================

    def list_categories(self, name: str, parent_id: Optional[str]) -> list[dict]:
        try:
            query = self.db.table(self.categories_table).select("*").eq("name", name)
            if parent_id is None:
                query = query.is_("parent_category_id", "null")
            else:
                query = query.eq("parent_category_id", parent_id)
            return query.execute().data or []
        except Exception as e:
            logger.error("list_categories_failed", name=name, parent_id=parent_id, error=str(e))
            raise DatabaseError("select", str(e))

    def get_category(self, category_id: str) -> Optional[dict]:
        try:
            result = (
                self.db.table(self.categories_table)
                .select("*")
                .eq("id", category_id)
                .limit(1)
                .execute()
            )
            return result.data[0] if result.data else None
        except Exception as e:
            logger.error("get_category_failed", category_id=category_id, error=str(e))
            raise DatabaseError("select", str(e))

    def create_category(self, name: str, parent_id: Optional[str]) -> dict:
        """
        Raises:
            CategoryCreateConflict: Same handle already exists under the parent
        """
        row = {
            "name": name,
            "handle": sanitize_handle(name),
            "parent_category_id": parent_id,
            "is_active": True,
        }
        try:
            result = self.db.table(self.categories_table).insert(row).execute()
        except Exception as e:
            if is_duplicate_error(e):
                raise CategoryCreateConflict(name, parent_id)
            logger.error("create_category_failed", name=name, error=str(e))
            raise DatabaseError("insert", str(e))
        return result.data[0]

    # ===================
    # BRANDS
    # ===================

    def find_brand(self, name: str) -> Optional[dict]:
        """Brand with the handle the name maps to."""
        try:
            result = (
                self.db.table(self.brands_table)
                .select("*")
                .eq("handle", sanitize_handle(name))
                .limit(1)
                .execute()
            )
            return result.data[0] if result.data else None
        except Exception as e:
            logger.error("find_brand_failed", name=name, error=str(e))
            raise DatabaseError("select", str(e))

    def create_brand(self, name: str) -> dict:
        """
        Raises:
            BrandCreateConflict: A brand with the same handle exists
        """
        row = {"name": name, "handle": sanitize_handle(name)}
        try:
            result = self.db.table(self.brands_table).insert(row).execute()
        except Exception as e:
            if is_duplicate_error(e):
                raise BrandCreateConflict(name)
            logger.error("create_brand_failed", name=name, error=str(e))
            raise DatabaseError("insert", str(e))
        return result.data[0]

    # ===================
    # VARIANTS
    # ===================

    def list_variants(self, product_id: str) -> list[dict]:
        try:
            result = (
                self.db.table(self.variants_table)
                .select("*")
                .eq("product_id", product_id)
                .execute()
            )
            return result.data or []
        except Exception as e:
            logger.error("list_variants_failed", product_id=product_id, error=str(e))
            raise DatabaseError("select", str(e))

    def update_variant(self, variant_id: str, payload: dict) -> dict:
        try:
            result = (
                self.db.table(self.variants_table)
                .update(payload)
                .eq("id", variant_id)
                .execute()
            )
            return result.data[0] if result.data else {"id": variant_id, **payload}
        except Exception as e:
            logger.error("update_variant_failed", variant_id=variant_id, error=str(e))
            raise DatabaseError("update", str(e))

    def set_stock_level(self, variant_id: str, quantity: int) -> None:
        self.update_variant(variant_id, {"inventory_quantity": quantity})


class SupabaseBlobStore:
    """BlobStore backed by a Supabase Storage bucket."""

    def __init__(self, bucket: Optional[str] = None):
        self.db = get_admin_client() or get_supabase_client()
        self.bucket = bucket or settings.storage_bucket

    def put(self, content: bytes, content_type: str, filename: str) -> str:
        """
        Upload content and return its public URL.

        Raises:
            DatabaseError: If the upload fails
        """
        unique_id = str(uuid.uuid4())[:8]
        storage_path = f"imports/{unique_id}_{filename.replace(' ', '_')}"

        try:
            self.db.storage.from_(self.bucket).upload(
                storage_path,
                content,
                file_options={"content-type": content_type}
            )
        except Exception as e:
            logger.error("blob_upload_failed", storage_path=storage_path, error=str(e))
            raise DatabaseError("upload", str(e))

        logger.debug("blob_uploaded", storage_path=storage_path, size_bytes=len(content))
        return self.db.storage.from_(self.bucket).get_public_url(storage_path)


# Singleton instance for convenience
_catalog_service: Optional[SupabaseCatalogService] = None

def get_catalog_service() -> SupabaseCatalogService:
    """Get or create the Supabase catalog adapter."""
    global _catalog_service
    if _catalog_service is None:
        _catalog_service = SupabaseCatalogService()
    return _catalog_service
