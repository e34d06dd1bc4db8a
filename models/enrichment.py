"""
Text generation result schemas.
"""

from typing import Optional

from models.base import BaseSchema


class MetaContent(BaseSchema):
    """SEO meta title (50-60 chars) and description (150-180 chars)."""
    meta_title: str
    meta_description: str


class OptimizedDescription(BaseSchema):
    """Rewritten product body in three flavours."""
    technical_safe: str
    seo_enhanced: str
    short: str

    @property
    def best(self) -> str:
        return self.seo_enhanced or self.technical_safe


class WordTarget(BaseSchema):
    """Word-count band the rewritten description should land in."""
    original: int
    target: int
    minimum: int
    maximum: int

    @classmethod
    def for_text(cls, text: Optional[str]) -> "WordTarget":
        original = len((text or "").split())
        target = max(150, original)
        return cls(
            original=original,
            target=target,
            minimum=max(150, target - 50),
            maximum=target + 50,
        )
