"""Error taxonomy for the ingestion and question-answering pipeline.

Every error carries a machine-readable ``kind``, an HTTP ``status_code``, a
user-facing ``message`` and a ``detail`` string for operators.
"""
from typing import Any, Dict, Optional


class PdfRagError(Exception):
    """Base class for all pipeline errors."""

    kind = "internal_error"
    status_code = 500
    default_message = "An error occurred processing your request. Please try again."

    def __init__(self, detail: str = "", message: Optional[str] = None):
        self.detail = detail
        self.message = message or self.default_message
        super().__init__(detail or self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Structured error body for API responses."""
        return {"error": self.message, "kind": self.kind, "details": self.detail}


class ValidationError(PdfRagError):
    """Missing, empty or wrongly typed input; rejected before any work."""

    kind = "validation_error"
    status_code = 400
    default_message = "Invalid request"

    def __init__(self, message: str, detail: str = ""):
        super().__init__(detail or message, message=message)


class ConfigurationError(PdfRagError):
    """A required setting or credential is missing."""

    kind = "configuration_error"
    default_message = "Server is not configured correctly."


class EmbeddingDimensionError(PdfRagError):
    """An embedding vector does not have the configured dimension."""

    kind = "embedding_dimension_error"
    default_message = "Failed to generate valid embeddings. Please check your API configuration."

    def __init__(self, expected: int, actual: int, position: Optional[int] = None):
        self.expected = expected
        self.actual = actual
        self.position = position
        where = f" at position {position}" if position is not None else ""
        super().__init__(
            f"Invalid embedding dimensions{where}: expected {expected}, got {actual}"
        )


class EmbeddingServiceError(PdfRagError):
    """The embedding service failed or was unreachable."""

    kind = "embedding_service_error"
    status_code = 502
    default_message = "Failed to generate embeddings. Please check your API configuration."

    def __init__(self, detail: str = "", status: Optional[int] = None):
        self.status = status
        super().__init__(detail)


class EmbeddingUnauthorizedError(EmbeddingServiceError):
    kind = "embedding_unauthorized"
    status_code = 500
    default_message = "Invalid API key. Please check your COHERE_API_KEY in the .env file."


class EmbeddingRateLimitedError(EmbeddingServiceError):
    """Rate limit hit; callers may retry after a pause."""

    kind = "embedding_rate_limited"
    status_code = 429
    default_message = (
        "Rate limit exceeded. Please wait a few minutes before trying again "
        "or upgrade your Cohere API plan."
    )

    def __init__(
        self, detail: str = "", status: Optional[int] = 429, retry_after: Optional[float] = None
    ):
        self.retry_after = retry_after
        super().__init__(detail, status=status)


class EmbeddingMalformedResponseError(EmbeddingServiceError):
    kind = "embedding_malformed_response"
    status_code = 502
    default_message = "Failed to generate valid embeddings. Please check your API configuration."


class VectorIndexError(PdfRagError):
    """The vector store failed."""

    kind = "vector_index_error"
    status_code = 502
    default_message = "Vector index request failed."


class VectorIndexUnavailableError(VectorIndexError):
    """The store could not be reached or timed out."""

    kind = "vector_index_unavailable"
    status_code = 503
    default_message = "Vector index is unavailable. Please try again later."


class VectorIndexRequestError(VectorIndexError):
    """The store rejected the request or returned an unusable response."""

    kind = "vector_index_rejected"

    def __init__(self, detail: str = "", status: Optional[int] = None):
        self.status = status
        super().__init__(detail)


class GenerationServiceError(PdfRagError):
    """The answer generator was unreachable or returned no usable content."""

    kind = "generation_service_error"
    status_code = 502
    default_message = "I couldn't generate a response. Please try again."
