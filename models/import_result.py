"""
Result schemas for import runs, upserts and price syncs.
"""

from pydantic import Field
from typing import Optional

from models.base import BaseSchema


class UpsertResult(BaseSchema):
    """Outcome of one catalog upsert batch."""
    created: int = 0
    updated: int = 0
    failed: int = 0
    errors: list[str] = Field(default_factory=list)
    product_ids: list[str] = Field(default_factory=list)


class ImportRunResult(BaseSchema):
    """Outcome of running an import session."""
    session_id: str
    status: str
    total: int = 0
    successful: int = 0
    failed: int = 0
    skipped: int = 0
    created: int = 0
    updated: int = 0
    errors: list[str] = Field(default_factory=list)


class PriceSyncResult(BaseSchema):
    """Outcome of one price/stock sync."""
    url: str
    status: str
    total: int = 0
    updated: int = 0
    failed: int = 0
    errors: list[str] = Field(default_factory=list)
    message: Optional[str] = None
