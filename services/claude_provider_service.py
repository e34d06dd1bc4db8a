"""
Claude text generation provider.

Hosted backend for translation and SEO copy via the Anthropic
Messages API.
"""

from typing import Optional
import anthropic
import structlog

from config.settings import settings
from exceptions import ProviderCallFailed, ProviderNotConfiguredError
from services.text_generation import BaseTextGenerationProvider

logger = structlog.get_logger(__name__)


class ClaudeProviderService(BaseTextGenerationProvider):
    """
    Enrichment provider backed by Claude.

    One user message per call; the system prompt pins the output format
    so responses need as little cleanup as possible.
    """

    name = "claude"

    SYSTEM_PROMPT = (
        "You are a product content specialist for an online store. "
        "Follow the output format in each request exactly. "
        "Never add explanations, greetings or markdown around the requested output."
    )

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        target_language: Optional[str] = None,
        client: Optional[anthropic.Anthropic] = None
    ):
        super().__init__(target_language)
        self.model = model or settings.anthropic_model
        self.timeout = settings.anthropic_timeout_seconds

        if client is not None:
            self.client = client
            return

        api_key = api_key or settings.anthropic_api_key
        if not api_key:
            raise ProviderNotConfiguredError("Claude", "ANTHROPIC_API_KEY")

        self.client = anthropic.Anthropic(api_key=api_key, timeout=self.timeout)

    def _complete(self, prompt: str, max_tokens: int, long_form: bool = False) -> str:
        # Long-form descriptions may use up to 4x the default budget
        limit = settings.anthropic_max_tokens * (4 if long_form else 1)
        max_tokens = min(max_tokens, limit)

        try:
            response = self.client.messages.create(
                model=self.model,
                max_tokens=max_tokens,
                system=self.SYSTEM_PROMPT,
                messages=[{
                    "role": "user",
                    "content": prompt
                }]
            )
        except anthropic.APITimeoutError as e:
            logger.error("claude_timeout", model=self.model, error=str(e))
            raise ProviderCallFailed(self.name, f"Claude request timed out after {self.timeout}s")
        except anthropic.APIError as e:
            logger.error("claude_api_error", model=self.model, error=str(e))
            raise ProviderCallFailed(self.name, f"Claude API error: {str(e)}")

        text = "".join(
            block.text for block in response.content
            if getattr(block, "type", None) == "text"
        )

        if getattr(response, "stop_reason", None) == "max_tokens":
            logger.warning("claude_response_truncated", model=self.model, max_tokens=max_tokens)

        logger.debug("claude_response_received", response_length=len(text))
        return text
