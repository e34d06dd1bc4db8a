"""
Text generation provider contract and shared behaviour.

Every backend (hosted Claude, local Ollama) exposes the same seven
operations. BaseTextGenerationProvider implements them on top of one
abstract _complete() call, so backends differ only in transport.

See services/enrichment_service.py for how failures degrade.
"""

import math
from abc import ABC, abstractmethod
from typing import Optional, Protocol
import structlog

from config.settings import settings
from exceptions import AppError, ProviderResponseUnparseable
from models.enrichment import MetaContent, OptimizedDescription, WordTarget
from models.product import MappedProduct
from services.prompts import (
    TRANSLATE_PROMPT,
    TRANSLATE_TITLE_PROMPT,
    CATEGORY_DESCRIPTION_PROMPT,
    META_TAGS_PROMPT,
    PRODUCT_DESCRIPTION_PROMPT,
    EXTRACT_INCLUDED_PROMPT,
    EXTRACT_SPECIFICATIONS_PROMPT,
    TOOL_TERMINOLOGY,
    language_name,
    render,
)
from utils.json_repair import repair_json_response
from utils.text_utils import clean_generated_text, strip_code_fences, truncate

logger = structlog.get_logger(__name__)


META_FIELDS = {
    "meta_title": ["metaTitle", "meta_title"],
    "meta_description": ["metaDescription", "meta_description"],
}

DESCRIPTION_FIELDS = {
    "technical_safe": ["technicalSafeDescription", "technical_safe_description"],
    "seo_enhanced": ["seoEnhancedDescription", "seo_enhanced_description", "fullDescription"],
    "short": ["shortDescription", "short_description"],
}

DESCRIPTION_MULTILINE = ("technical_safe", "seo_enhanced")

CATEGORY_DESCRIPTION_LIMIT = 160
META_TITLE_LIMIT = 60
META_DESCRIPTION_LIMIT = 180
META_INPUT_LIMIT = 500
SHORT_DESCRIPTION_LIMIT = 250
MIN_EXTRACTION_LENGTH = 10


class TextGenerationProvider(Protocol):
    """Capabilities the enrichment pipeline needs from a text model."""

    name: str

    def translate(self, text: str, target_lang: Optional[str] = None) -> str: ...

    def translate_title(self, title: str, brand: Optional[str] = None, target_lang: Optional[str] = None) -> str: ...

    def generate_meta_description(self, product: MappedProduct, original_description: Optional[str] = None) -> MetaContent: ...

    def optimize_description(self, product: MappedProduct, original_description: Optional[str] = None) -> OptimizedDescription: ...

    def extract_included_items(self, description: str) -> Optional[str]: ...

    def extract_technical_data(self, description: str) -> Optional[str]: ...

    def generate_category_description(self, category_path: str) -> str: ...


class BaseTextGenerationProvider(ABC):
    """
    Shared prompt building, response cleaning and repair.

    Subclasses implement _complete().
    """

    name = "base"

    def __init__(self, target_language: Optional[str] = None):
        self.target_language = target_language or settings.target_language

    @abstractmethod
    def _complete(self, prompt: str, max_tokens: int, long_form: bool = False) -> str:
        """
        Run one completion.

        Raises:
            ProviderCallFailed: On transport errors or timeouts
        """

    def _language(self, target_lang: Optional[str]) -> tuple[str, str]:
        code = (target_lang or self.target_language).lower()
        return language_name(code), TOOL_TERMINOLOGY.get(code, "")

    # ===================
    # TRANSLATION
    # ===================

    def translate(self, text: str, target_lang: Optional[str] = None) -> str:
        """
        Translate free text. Empty input is returned unchanged.
        """
        if not text or not text.strip():
            return text

        language, terminology = self._language(target_lang)
        prompt = render(TRANSLATE_PROMPT, language=language, terminology=terminology, text=text)
        return clean_generated_text(self._complete(prompt, max_tokens=1000))

    def translate_title(
        self,
        title: str,
        brand: Optional[str] = None,
        target_lang: Optional[str] = None
    ) -> str:
        """
        Translate a product title, keeping the brand verbatim.
        """
        if not title or not title.strip():
            return title

        language, terminology = self._language(target_lang)
        brand_instruction = (
            f'IMPORTANT: Keep the brand name "{brand}" EXACTLY as is. Do not translate it.'
            if brand else ""
        )
        prompt = render(
            TRANSLATE_TITLE_PROMPT,
            language=language,
            terminology=terminology,
            brand_instruction=brand_instruction,
            title=title,
        )
        return clean_generated_text(self._complete(prompt, max_tokens=800))

    def generate_category_description(self, category_path: str) -> str:
        """
        Short SEO description for a category path. Returns "" on failure.
        """
        if not category_path or not category_path.strip():
            return ""

        prompt = render(CATEGORY_DESCRIPTION_PROMPT, path=category_path.strip())
        try:
            cleaned = clean_generated_text(self._complete(prompt, max_tokens=300))
        except AppError as e:
            logger.warning("category_description_failed", provider=self.name, path=category_path, error=e.message)
            return ""

        return truncate(cleaned, CATEGORY_DESCRIPTION_LIMIT)

    # ===================
    # SEO CONTENT
    # ===================

    def generate_meta_description(
        self,
        product: MappedProduct,
        original_description: Optional[str] = None
    ) -> MetaContent:
        """
        Meta title and description for a product.

        A field the model leaves empty falls back to the title or the
        description prefix.

        Raises:
            ProviderResponseUnparseable: If the reply is empty or holds
                no meta fields; callers build tags from the short
                description instead
        """
        original = original_description or product.description or ""

        language, _ = self._language(None)
        prompt = render(
            META_TAGS_PROMPT,
            language=language,
            product_name=product.title,
            primary_keyword=product.title,
            original_description=original[:META_INPUT_LIMIT],
        )
        response = self._complete(prompt, max_tokens=1024)

        if not response or not response.strip():
            logger.warning("meta_response_empty", provider=self.name, handle=product.handle)
            raise ProviderResponseUnparseable(self.name, "")

        fields = repair_json_response(response, META_FIELDS)
        if not fields:
            logger.warning("meta_response_unparseable", provider=self.name, handle=product.handle)
            raise ProviderResponseUnparseable(self.name, response)

        return MetaContent(
            meta_title=clean_generated_text(fields.get("meta_title")) or product.title[:META_TITLE_LIMIT],
            meta_description=(
                clean_generated_text(fields.get("meta_description")) or original[:META_DESCRIPTION_LIMIT]
            ),
        )

    def optimize_description(
        self,
        product: MappedProduct,
        original_description: Optional[str] = None
    ) -> OptimizedDescription:
        """
        Rewrite the product body.

        Word target is max(150, original words) with a ±50 band (never
        below 150). An empty response returns the original description.

        Raises:
            ProviderCallFailed: If the call fails
            ProviderResponseUnparseable: If no description can be recovered
        """
        original = original_description or product.description or ""
        words = WordTarget.for_text(original)

        logger.debug(
            "optimizing_description",
            provider=self.name,
            handle=product.handle,
            original_words=words.original,
            target_words=words.target
        )

        language, _ = self._language(None)
        prompt = render(
            PRODUCT_DESCRIPTION_PROMPT,
            language=language,
            product_name=product.title,
            primary_keyword=product.title,
            target_words=words.target,
            min_words=words.minimum,
            max_words=words.maximum,
            original_description=original,
        )
        max_tokens = min(16000, max(8000, math.ceil(words.target * 1.3 * 2) + 5000))
        response = self._complete(prompt, max_tokens=max_tokens, long_form=True)

        if not response or not response.strip():
            logger.warning("description_response_empty", provider=self.name, handle=product.handle)
            return OptimizedDescription(
                technical_safe=original,
                seo_enhanced=original,
                short=original[:SHORT_DESCRIPTION_LIMIT],
            )

        fields = repair_json_response(
            response,
            DESCRIPTION_FIELDS,
            required=DESCRIPTION_MULTILINE,
            multiline_fields=DESCRIPTION_MULTILINE,
            plain_text_fields=DESCRIPTION_MULTILINE,
        )
        if not fields:
            raise ProviderResponseUnparseable(self.name, response)

        technical = clean_generated_text(fields["technical_safe"]) or original
        seo = clean_generated_text(fields["seo_enhanced"]) or technical
        short = clean_generated_text(fields["short"]) or original[:SHORT_DESCRIPTION_LIMIT]

        return OptimizedDescription(technical_safe=technical, seo_enhanced=seo, short=short)

    # ===================
    # EXTRACTION
    # ===================

    def _extraction(self, prompt: str, max_tokens: int) -> Optional[str]:
        cleaned = clean_generated_text(strip_code_fences(self._complete(prompt, max_tokens=max_tokens)))
        if not cleaned or cleaned.lower() == "null" or len(cleaned) < MIN_EXTRACTION_LENGTH:
            return None
        return cleaned

    def extract_included_items(self, description: str) -> Optional[str]:
        """HTML list of included items, or None when there is none."""
        if not description:
            return None
        language, _ = self._language(None)
        heading = "Включено" if self.target_language.lower() == "bg" else "Included"
        prompt = render(EXTRACT_INCLUDED_PROMPT, description=description, language=language, heading=heading)
        return self._extraction(prompt, max_tokens=2000)

    def extract_technical_data(self, description: str) -> Optional[str]:
        """HTML specifications table, or None when there is none."""
        if not description:
            return None
        language, _ = self._language(None)
        prompt = render(EXTRACT_SPECIFICATIONS_PROMPT, description=description, language=language)
        return self._extraction(prompt, max_tokens=4000)


def get_text_provider(name: Optional[str] = None) -> Optional[TextGenerationProvider]:
    """
    Build the configured text generation provider.

    Args:
        name: "claude", "ollama" or "none" (defaults to settings.ai_provider)

    Returns:
        Provider instance, or None when enrichment is disabled

    Raises:
        ProviderNotConfiguredError: If the provider lacks credentials
    """
    name = (name or settings.ai_provider).lower()

    if name == "none":
        logger.info("text_provider_disabled")
        return None

    if name == "ollama":
        from services.ollama_provider_service import OllamaProviderService
        return OllamaProviderService()

    from services.claude_provider_service import ClaudeProviderService
    return ClaudeProviderService()
