"""
Ollama text generation provider.

Local backend; long-form descriptions get a bigger context window and
a much longer timeout than the short prompts.
"""

from typing import Optional
import structlog

from config.settings import settings
from exceptions import ProviderCallFailed
from integrations import ollama
from services.text_generation import BaseTextGenerationProvider

logger = structlog.get_logger(__name__)

SHORT_CONTEXT = 8192
LONG_CONTEXT = 32768


class OllamaProviderService(BaseTextGenerationProvider):
    """Enrichment provider backed by a local Ollama model."""

    name = "ollama"

    def __init__(
        self,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        target_language: Optional[str] = None
    ):
        super().__init__(target_language)
        self.model = model or settings.ollama_model
        self.base_url = base_url or settings.ollama_base_url

    def _complete(self, prompt: str, max_tokens: int, long_form: bool = False) -> str:
        timeout = settings.ollama_seo_timeout_seconds if long_form else settings.ollama_timeout_seconds

        try:
            return ollama.generate(
                prompt,
                model=self.model,
                num_ctx=LONG_CONTEXT if long_form else SHORT_CONTEXT,
                num_predict=max_tokens,
                timeout=timeout,
                base_url=self.base_url,
            )
        except ollama.OllamaError as e:
            raise ProviderCallFailed(self.name, str(e))
