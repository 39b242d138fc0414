"""Application configuration with sensible defaults.

Values are read from the environment once at process start into a frozen
``Settings`` object that is passed explicitly to every component.
"""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

# Paths
BASE_DIR = Path(__file__).parent.parent
DATA_DIR = BASE_DIR / "data"

# Pinecone configuration
PINECONE_INDEX = "pdf-rag-index"
PINECONE_CONTROL_URL = "https://api.pinecone.io"

# Cohere configuration
COHERE_BASE_URL = "https://api.cohere.ai/v1"
EMBEDDING_MODEL = "embed-english-light-v3.0"
EMBEDDING_DIMENSION = 384
EMBED_BATCH_SIZE = 10
EMBED_BATCH_DELAY = 2.0   # seconds between batches (rate limit throttle)
EMBED_MAX_CHARS = 2000

# Gemini configuration
GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
GEMINI_MODEL = "gemini-3-flash-preview"

# RAG parameters (character-based to avoid tokenizer inconsistencies)
CHUNK_SIZE = 1000
CHUNK_OVERLAP = 200
RETRIEVAL_TOP_K = 3
MAX_CONTEXT_CHARS = 4000
MAX_QUESTION_CHARS = 2000


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    """Runtime configuration shared by all pipeline components."""

    # Vector store
    vector_backend: str = "pinecone"
    pinecone_api_key: str = ""
    pinecone_index: str = PINECONE_INDEX
    pinecone_host: Optional[str] = None
    pinecone_namespace: str = ""
    faiss_index_dir: Optional[Path] = None

    # Embeddings
    cohere_api_key: str = ""
    cohere_base_url: str = COHERE_BASE_URL
    embedding_model: str = EMBEDDING_MODEL
    embedding_dimension: int = EMBEDDING_DIMENSION
    embed_batch_size: int = EMBED_BATCH_SIZE
    embed_batch_delay: float = EMBED_BATCH_DELAY
    embed_max_chars: int = EMBED_MAX_CHARS

    # Generation
    gemini_api_key: str = ""
    gemini_base_url: str = GEMINI_BASE_URL
    gemini_model: str = GEMINI_MODEL

    # RAG parameters
    chunk_size: int = CHUNK_SIZE
    chunk_overlap: int = CHUNK_OVERLAP
    clean_before_chunking: bool = True
    retrieval_top_k: int = RETRIEVAL_TOP_K
    max_context_chars: int = MAX_CONTEXT_CHARS
    max_question_chars: int = MAX_QUESTION_CHARS

    # Misc
    http_timeout: float = 60.0
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables."""
        faiss_dir = os.getenv("FAISS_INDEX_DIR")
        return cls(
            vector_backend=os.getenv("VECTOR_BACKEND", "pinecone").lower(),
            pinecone_api_key=os.getenv("PINECONE_API_KEY", ""),
            pinecone_index=os.getenv("PINECONE_INDEX", PINECONE_INDEX),
            pinecone_host=os.getenv("PINECONE_HOST") or None,
            pinecone_namespace=os.getenv("PINECONE_NAMESPACE", ""),
            faiss_index_dir=Path(faiss_dir) if faiss_dir else DATA_DIR,
            cohere_api_key=os.getenv("COHERE_API_KEY", ""),
            cohere_base_url=os.getenv("COHERE_BASE_URL", COHERE_BASE_URL),
            embedding_model=os.getenv("EMBEDDING_MODEL", EMBEDDING_MODEL),
            embedding_dimension=int(os.getenv("EMBEDDING_DIMENSION", str(EMBEDDING_DIMENSION))),
            embed_batch_size=int(os.getenv("EMBED_BATCH_SIZE", str(EMBED_BATCH_SIZE))),
            embed_batch_delay=float(os.getenv("EMBED_BATCH_DELAY", str(EMBED_BATCH_DELAY))),
            embed_max_chars=int(os.getenv("EMBED_MAX_CHARS", str(EMBED_MAX_CHARS))),
            gemini_api_key=os.getenv("GEMINI_API_KEY", ""),
            gemini_base_url=os.getenv("GEMINI_BASE_URL", GEMINI_BASE_URL),
            gemini_model=os.getenv("GEMINI_MODEL", GEMINI_MODEL),
            chunk_size=int(os.getenv("CHUNK_SIZE", str(CHUNK_SIZE))),
            chunk_overlap=int(os.getenv("CHUNK_OVERLAP", str(CHUNK_OVERLAP))),
            clean_before_chunking=_env_bool("CLEAN_BEFORE_CHUNKING", True),
            retrieval_top_k=int(os.getenv("RETRIEVAL_TOP_K", str(RETRIEVAL_TOP_K))),
            max_context_chars=int(os.getenv("MAX_CONTEXT_CHARS", str(MAX_CONTEXT_CHARS))),
            max_question_chars=int(os.getenv("MAX_QUESTION_CHARS", str(MAX_QUESTION_CHARS))),
            http_timeout=float(os.getenv("HTTP_TIMEOUT", "60.0")),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )

    def missing_credentials(self) -> list[str]:
        """Names of required credentials that are not set."""
        missing = []
        if not self.cohere_api_key:
            missing.append("COHERE_API_KEY")
        if not self.gemini_api_key:
            missing.append("GEMINI_API_KEY")
        if self.vector_backend == "pinecone" and not self.pinecone_api_key:
            missing.append("PINECONE_API_KEY")
        return missing
