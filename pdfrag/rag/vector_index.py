"""Vector index records and the interface shared by the store backends."""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Sequence

from pdfrag.errors import ConfigurationError


@dataclass(frozen=True)
class IndexRecord:
    """A stored (id, vector, metadata) record. Immutable once built."""

    id: str
    values: List[float]
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "values": list(self.values), "metadata": dict(self.metadata)}


@dataclass
class RetrievedMatch:
    """A single similarity-query hit."""

    id: str
    score: float
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def text(self) -> str:
        """Stored chunk text, tolerating list or non-string metadata values."""
        value = self.metadata.get("text")
        if value is None:
            return ""
        if isinstance(value, str):
            return value
        if isinstance(value, (list, tuple)):
            return "\n".join(str(v) for v in value)
        return str(value)

    @property
    def source(self) -> str:
        return str(self.metadata.get("source", ""))


class VectorIndex(ABC):
    """Keyed upsert and top-K similarity query over IndexRecords."""

    name: str = "vector_index"

    @abstractmethod
    async def upsert(self, records: Sequence[IndexRecord]) -> int:
        """Insert or overwrite records by id.

        Returns:
            Number of records written
        """

    @abstractmethod
    async def query(self, vector: List[float], top_k: int = 3) -> List[RetrievedMatch]:
        """Return at most ``top_k`` matches ordered by descending score."""

    @abstractmethod
    async def delete_by_prefix(self, prefix: str, keep: Iterable[str] = ()) -> int:
        """Delete records whose id starts with ``prefix``, except ids in ``keep``.

        Returns:
            Number of records deleted
        """

    def get_stats(self) -> Dict[str, Any]:
        return {"backend": self.name}


def create_vector_index(settings, **kwargs) -> VectorIndex:
    """Build the vector index backend selected by ``settings.vector_backend``."""
    backend = settings.vector_backend
    if backend == "pinecone":
        from pdfrag.rag.store_pinecone import PineconeVectorIndex

        return PineconeVectorIndex.from_settings(settings, **kwargs)
    if backend == "faiss":
        from pdfrag.rag.store_faiss import FAISSVectorIndex

        return FAISSVectorIndex(
            dimension=settings.embedding_dimension,
            index_dir=settings.faiss_index_dir,
        )

    raise ConfigurationError(f"Unknown VECTOR_BACKEND: {backend!r}")
