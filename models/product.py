"""
Catalog product schemas produced by the mapper.
"""

from pydantic import Field
from typing import Any, Optional

from models.base import BaseSchema


class ProductImage(BaseSchema):
    """Image reference, either vendor URL or blob store URL."""
    url: str


class ProductOption(BaseSchema):
    """Product option; imports always carry a single Default option."""
    title: str = "Default"
    values: list[str] = Field(default_factory=lambda: ["Default"])


class ProductVariant(BaseSchema):
    """Sellable variant."""
    title: str = "Default"
    sku: Optional[str] = None
    barcode: Optional[str] = None
    manage_inventory: bool = False
    options: dict[str, str] = Field(default_factory=lambda: {"Default": "Default"})


class MappedProduct(BaseSchema):
    """
    Catalog-ready product.

    category_ids is filled by the hierarchy resolver and applied after
    the product exists; it is never part of the create payload.
    brand_id is filled by the brand resolver.
    """
    title: str
    description: Optional[str] = None
    handle: str
    status: str = "draft"
    external_id: str
    weight: Optional[float] = None
    length: Optional[float] = None
    width: Optional[float] = None
    height: Optional[float] = None
    hs_code: Optional[str] = None
    origin_country: Optional[str] = None
    mid_code: Optional[str] = None
    material: Optional[str] = None
    images: list[ProductImage] = Field(default_factory=list)
    options: list[ProductOption] = Field(default_factory=lambda: [ProductOption()])
    variants: list[ProductVariant] = Field(default_factory=lambda: [ProductVariant()])
    metadata: dict[str, Any] = Field(default_factory=dict)
    category_ids: list[str] = Field(default_factory=list)
    brand_id: Optional[str] = None

    @property
    def brand_name(self) -> Optional[str]:
        producer = self.metadata.get("producer") or {}
        return producer.get("name")

    @property
    def category_path(self) -> Optional[str]:
        """Display category path (translated when enrichment ran)."""
        category = self.metadata.get("category") or {}
        return category.get("name")

    @property
    def category_source_path(self) -> Optional[str]:
        """Category path as it appeared in the feed."""
        category = self.metadata.get("category") or {}
        return category.get("original_name") or category.get("name")

    @property
    def category_external_id(self) -> Optional[str]:
        category = self.metadata.get("category") or {}
        value = category.get("id")
        return str(value) if value is not None else None

    def to_create_payload(self, shipping_profile_id: Optional[str] = None) -> dict:
        """Payload for a catalog create call."""
        payload = self.model_dump(exclude={"category_ids"}, exclude_none=True)
        if shipping_profile_id:
            payload["shipping_profile_id"] = shipping_profile_id
        return payload

    def to_update_payload(self, shipping_profile_id: Optional[str] = None) -> dict:
        """Subset of fields refreshed on an existing product."""
        payload = {
            "title": self.title,
            "description": self.description,
            "material": self.material,
            "status": self.status,
            "metadata": self.metadata,
            "variants": [variant.model_dump() for variant in self.variants],
        }
        if self.brand_id:
            payload["brand_id"] = self.brand_id
        if shipping_profile_id:
            payload["shipping_profile_id"] = shipping_profile_id
        return payload
