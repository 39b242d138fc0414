"""Gemini generation client wrapper with error handling."""
from typing import Optional

import httpx
import structlog

from pdfrag import config
from pdfrag.errors import ConfigurationError, GenerationServiceError

logger = structlog.get_logger()


class GeminiClient:
    """Async client for the Gemini generateContent API."""

    def __init__(
        self,
        api_key: str,
        model: str = None,
        base_url: str = None,
        timeout: float = 60.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize Gemini client.

        Args:
            api_key: Gemini API key
            model: Model to use (defaults to config.GEMINI_MODEL)
            base_url: API base URL (defaults to config.GEMINI_BASE_URL)
            timeout: Request timeout in seconds
            http_client: Optional shared client (not closed by this class)
        """
        if not api_key:
            raise ConfigurationError("GEMINI_API_KEY is not set in environment")

        self.api_key = api_key
        self.model = model or config.GEMINI_MODEL
        self.base_url = (base_url or config.GEMINI_BASE_URL).rstrip("/")
        self.timeout = timeout
        self._http_client = http_client

    @classmethod
    def from_settings(cls, settings, **kwargs) -> "GeminiClient":
        return cls(
            api_key=settings.gemini_api_key,
            model=settings.gemini_model,
            base_url=settings.gemini_base_url,
            timeout=settings.http_timeout,
            **kwargs,
        )

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    async def generate(self, prompt: str) -> str:
        """Send a single composed prompt and return the generated text.

        Args:
            prompt: Full prompt text

        Returns:
            Text of the first candidate

        Raises:
            GenerationServiceError: If the service fails or returns no text
        """
        payload = {"contents": [{"parts": [{"text": prompt}]}]}
        headers = {
            "Content-Type": "application/json",
            "x-goog-api-key": self.api_key,
        }

        logger.info("gemini_generate_request", model=self.model, prompt_length=len(prompt))

        try:
            if self._http_client is not None:
                response = await self._http_client.post(self.endpoint, json=payload, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(self.endpoint, json=payload, headers=headers)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error("gemini_http_error", status_code=e.response.status_code)
            raise GenerationServiceError(
                f"Gemini API error: {e.response.status_code} - {e.response.text[:500]}"
            ) from e
        except httpx.HTTPError as e:
            logger.error("gemini_connection_error", error=str(e), error_type=type(e).__name__)
            raise GenerationServiceError(f"Gemini API unreachable: {e}") from e
        except ValueError as e:
            raise GenerationServiceError("Gemini API returned invalid JSON") from e

        text = self._extract_text(data)
        if not text:
            logger.warning("gemini_empty_response", finish_reason=self._finish_reason(data))
            raise GenerationServiceError("Gemini returned no usable content")

        logger.info("gemini_generate_response", model=self.model, response_length=len(text))
        return text

    @staticmethod
    def _extract_text(data) -> str:
        try:
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            return ""
        return text if isinstance(text, str) else ""

    @staticmethod
    def _finish_reason(data) -> Optional[str]:
        try:
            return data["candidates"][0].get("finishReason")
        except (KeyError, IndexError, TypeError, AttributeError):
            return None
