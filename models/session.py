"""
Import session and import config schemas.
"""

from pydantic import Field
from typing import Optional
from enum import Enum

from models.base import BaseSchema, TimestampMixin
from models.feed import TaxonomySummary


class SessionStatus(str, Enum):
    """Lifecycle of an import session."""
    PARSING = "parsing"
    READY = "ready"
    SELECTING = "selecting"
    IMPORTING = "importing"
    COMPLETED = "completed"
    FAILED = "failed"


class ImportSession(BaseSchema, TimestampMixin):
    """
    One feed import, from download to final upsert.

    The product list itself is never stored here; it is re-read from
    xml_file_path when the import runs.
    """
    id: str
    xml_url: str
    xml_file_path: Optional[str] = None
    parsed_data: Optional[TaxonomySummary] = None
    selected_categories: list[str] = Field(default_factory=list)
    selected_brands: list[str] = Field(default_factory=list)
    selected_product_ids: list[str] = Field(default_factory=list)
    status: SessionStatus = SessionStatus.PARSING
    error: Optional[str] = None


class ImportConfig(BaseSchema, TimestampMixin):
    """Scheduled price/stock sync source."""
    id: str
    price_xml_url: str
    enabled: bool = True
    update_inventory: bool = False


class ImportConfigCreate(BaseSchema):
    """Create a new price sync config."""
    price_xml_url: str = Field(..., min_length=1)
    enabled: bool = True
    update_inventory: bool = False
