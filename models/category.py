"""
Category extension schemas.

An extension row sits 1:1 next to a catalog category and remembers the
vendor's spelling and id so later imports find the same category.
"""

from pydantic import Field
from typing import Optional

from models.base import BaseSchema, TimestampMixin


class CategoryExtension(BaseSchema, TimestampMixin):
    """Stored extension row."""
    id: str
    category_id: str
    original_name: str
    external_id: Optional[str] = None
    description: Optional[str] = None
    seo_title: Optional[str] = None
    seo_meta_description: Optional[str] = None


class CategoryExtensionCreate(BaseSchema):
    """New extension row, linked to a freshly created category."""
    category_id: str = Field(..., min_length=1)
    original_name: str = Field(..., min_length=1)
    external_id: Optional[str] = None
    description: Optional[str] = None
    seo_title: Optional[str] = None
    seo_meta_description: Optional[str] = None

