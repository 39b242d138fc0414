"""Cohere embedding client with batching, truncation and rate-limit throttling.

Handles:
- Single query embeddings and order-preserving batch embeddings
- Per-text truncation to the service's character budget
- Sequential batches with a fixed delay between them
- Strict dimension checks on every returned vector
"""
import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, List, Optional, Sequence

import httpx
import structlog

from pdfrag import config
from pdfrag.errors import (
    ConfigurationError,
    EmbeddingDimensionError,
    EmbeddingMalformedResponseError,
    EmbeddingRateLimitedError,
    EmbeddingServiceError,
    EmbeddingUnauthorizedError,
    ValidationError,
)

logger = structlog.get_logger()

# Cohere input types: documents and queries are embedded differently
SEARCH_DOCUMENT = "search_document"
SEARCH_QUERY = "search_query"

TRUNCATION_MARKER = "..."
COHERE_VERSION = "2022-12-06"


class EmbeddingClient:
    """Async client for the Cohere embed API."""

    def __init__(
        self,
        api_key: str,
        model: str = None,
        dimension: int = None,
        batch_size: int = None,
        batch_delay: float = None,
        max_chars: int = None,
        base_url: str = None,
        timeout: float = 60.0,
        http_client: Optional[httpx.AsyncClient] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """Initialize the embedding client.

        Args:
            api_key: Cohere API key
            model: Embedding model (default from config)
            dimension: Expected vector length (default from config)
            batch_size: Texts per request in embed_batch (default from config)
            batch_delay: Seconds to wait between batches (default from config)
            max_chars: Per-text character budget before truncation
            base_url: Cohere API base URL
            timeout: Request timeout in seconds
            http_client: Optional shared client (not closed by this class)
            sleep: Awaitable used for the inter-batch delay
        """
        if not api_key:
            raise ConfigurationError("COHERE_API_KEY is not set in environment")

        self.api_key = api_key
        self.model = model or config.EMBEDDING_MODEL
        self.dimension = dimension or config.EMBEDDING_DIMENSION
        self.batch_size = batch_size or config.EMBED_BATCH_SIZE
        self.batch_delay = config.EMBED_BATCH_DELAY if batch_delay is None else batch_delay
        self.max_chars = max_chars or config.EMBED_MAX_CHARS
        self.base_url = (base_url or config.COHERE_BASE_URL).rstrip("/")
        self.timeout = timeout
        self._http_client = http_client
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings, **kwargs) -> "EmbeddingClient":
        return cls(
            api_key=settings.cohere_api_key,
            model=settings.embedding_model,
            dimension=settings.embedding_dimension,
            batch_size=settings.embed_batch_size,
            batch_delay=settings.embed_batch_delay,
            max_chars=settings.embed_max_chars,
            base_url=settings.cohere_base_url,
            timeout=settings.http_timeout,
            **kwargs,
        )

    def truncate(self, text: str) -> str:
        """Cut text to the character budget, marking the cut."""
        if len(text) > self.max_chars:
            return text[: self.max_chars] + TRUNCATION_MARKER
        return text

    async def embed(self, text: str, input_type: str = SEARCH_QUERY) -> List[float]:
        """Embed a single text.

        Args:
            text: Text to embed
            input_type: Cohere input type (query mode by default)

        Returns:
            Embedding vector of exactly ``dimension`` floats

        Raises:
            ValidationError: If text is empty
            EmbeddingServiceError: On any service failure
            EmbeddingDimensionError: If the vector length is wrong
        """
        if not text or not text.strip():
            raise ValidationError("Text cannot be empty")

        async with self._client() as client:
            vectors = await self._request(client, [self.truncate(text)], input_type)

        return vectors[0]

    async def embed_batch(
        self, texts: Sequence[str], input_type: str = SEARCH_DOCUMENT
    ) -> List[List[float]]:
        """Embed many texts, preserving order.

        Texts are sent in groups of ``batch_size``, one group at a time, with
        ``batch_delay`` seconds between groups. Any failure aborts the whole
        call; partial results are never returned.

        Args:
            texts: Texts to embed
            input_type: Cohere input type (document mode by default)

        Returns:
            One vector per input text, in input order
        """
        if not texts:
            return []

        for position, text in enumerate(texts):
            if not text or not text.strip():
                raise ValidationError("Text cannot be empty", detail=f"Empty text at position {position}")

        total_batches = (len(texts) + self.batch_size - 1) // self.batch_size
        results: List[List[float]] = []

        logger.info(
            "embedding_batches_started",
            text_count=len(texts),
            batch_size=self.batch_size,
            total_batches=total_batches,
        )

        async with self._client() as client:
            for batch_number, start in enumerate(range(0, len(texts), self.batch_size), 1):
                batch = [self.truncate(t) for t in texts[start : start + self.batch_size]]

                logger.debug(
                    "embedding_batch_started",
                    batch=batch_number,
                    total_batches=total_batches,
                    batch_size=len(batch),
                )

                try:
                    vectors = await self._request(client, batch, input_type, offset=start)
                except Exception as e:
                    logger.error(
                        "embedding_batch_failed",
                        batch=batch_number,
                        total_batches=total_batches,
                        error=str(e),
                        error_type=type(e).__name__,
                    )
                    raise

                results.extend(vectors)

                # Throttle between batches to respect rate limits
                if start + self.batch_size < len(texts):
                    logger.debug("embedding_batch_delay", seconds=self.batch_delay)
                    await self._sleep(self.batch_delay)

        logger.info("embedding_batches_completed", vectors=len(results))
        return results

    @asynccontextmanager
    async def _client(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._http_client is not None:
            yield self._http_client
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                yield client

    async def _request(
        self,
        client: httpx.AsyncClient,
        texts: List[str],
        input_type: str,
        offset: int = 0,
    ) -> List[List[float]]:
        """Send one embed request and validate the response."""
        payload = {
            "texts": texts,
            "model": self.model,
            "input_type": input_type,
            "embedding_types": ["float"],
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "Cohere-Version": COHERE_VERSION,
        }

        try:
            response = await client.post(f"{self.base_url}/embed", json=payload, headers=headers)
        except httpx.HTTPError as e:
            logger.error("cohere_connection_error", error=str(e), base_url=self.base_url)
            raise EmbeddingServiceError(f"Cohere API unreachable: {e}") from e

        self._raise_for_status(response)

        try:
            data = response.json()
        except ValueError as e:
            raise EmbeddingMalformedResponseError("Cohere API returned invalid JSON") from e

        return self._parse_vectors(data, expected=len(texts), offset=offset)

    def _raise_for_status(self, response: httpx.Response) -> None:
        if response.is_success:
            return

        status = response.status_code
        detail = f"Cohere API error: {status} {response.reason_phrase} - {response.text[:500]}"
        logger.error("cohere_http_error", status_code=status)

        if status in (401, 403):
            raise EmbeddingUnauthorizedError(detail, status=status)
        if status == 429:
            retry_after = response.headers.get("retry-after")
            try:
                seconds = float(retry_after) if retry_after else None
            except ValueError:
                seconds = None
            raise EmbeddingRateLimitedError(detail, status=status, retry_after=seconds)
        raise EmbeddingServiceError(detail, status=status)

    def _parse_vectors(self, data: Any, expected: int, offset: int) -> List[List[float]]:
        embeddings = data.get("embeddings") if isinstance(data, dict) else None
        vectors = embeddings.get("float") if isinstance(embeddings, dict) else None

        if not isinstance(vectors, list) or not vectors:
            raise EmbeddingMalformedResponseError("Invalid embedding structure from Cohere API")

        if len(vectors) != expected:
            raise EmbeddingMalformedResponseError(
                f"Cohere API returned {len(vectors)} embeddings for {expected} texts"
            )

        result = []
        for i, vector in enumerate(vectors):
            if not isinstance(vector, list) or not all(
                isinstance(v, (int, float)) and not isinstance(v, bool) for v in vector
            ):
                raise EmbeddingMalformedResponseError(
                    f"Embedding at position {offset + i} is not a list of numbers"
                )
            if len(vector) != self.dimension:
                raise EmbeddingDimensionError(self.dimension, len(vector), position=offset + i)
            result.append([float(v) for v in vector])

        return result
