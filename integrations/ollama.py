"""
Ollama HTTP client.

Talks to a local Ollama server's /api/generate endpoint with streaming
disabled, so each call returns one complete response.
"""

from typing import Optional
import requests
import structlog

from config.settings import settings

logger = structlog.get_logger(__name__)


class OllamaError(Exception):
    """Ollama request failed."""
    pass


class OllamaTimeout(OllamaError):
    """Ollama did not answer in time."""
    pass


def generate(
    prompt: str,
    model: Optional[str] = None,
    num_ctx: int = 8192,
    num_predict: int = 2000,
    temperature: float = 0.7,
    timeout: Optional[int] = None,
    base_url: Optional[str] = None,
) -> str:
    """
    Run one completion.

    Args:
        prompt: Full prompt text
        model: Model tag (defaults to settings.ollama_model)
        num_ctx: Context window tokens
        num_predict: Max tokens to generate
        temperature: Sampling temperature
        timeout: Seconds before giving up
        base_url: Server URL (defaults to settings.ollama_base_url)

    Returns:
        Generated text ("" when the server returns no response field)

    Raises:
        OllamaTimeout: If the request timed out
        OllamaError: On HTTP or transport errors
    """
    url = f"{(base_url or settings.ollama_base_url).rstrip('/')}/api/generate"
    timeout = timeout or settings.ollama_timeout_seconds
    payload = {
        "model": model or settings.ollama_model,
        "prompt": prompt,
        "stream": False,
        "options": {
            "num_ctx": num_ctx,
            "num_predict": num_predict,
            "temperature": temperature,
        },
    }

    try:
        logger.debug("ollama_request", model=payload["model"], prompt_length=len(prompt), timeout=timeout)

        response = requests.post(url, json=payload, timeout=timeout)
        response.raise_for_status()

        result = response.json()

    except requests.exceptions.Timeout:
        logger.error("ollama_timeout", timeout=timeout)
        raise OllamaTimeout(f"Ollama did not respond within {timeout}s")
    except requests.exceptions.RequestException as e:
        logger.error("ollama_request_failed", error=str(e))
        raise OllamaError(f"Ollama request failed: {str(e)}")
    except ValueError as e:
        logger.error("ollama_invalid_json", error=str(e))
        raise OllamaError(f"Ollama returned invalid JSON: {str(e)}")

    text = result.get("response") or ""
    logger.debug("ollama_response", response_length=len(text))
    return text
