"""FAISS vector store for local development and tests.

Handles:
- Cosine similarity via inner product on normalised vectors
- Upsert by string id (re-upserting an id overwrites it)
- Deleting a document's records by id prefix
- Metadata persistence next to the FAISS index
"""
import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

import faiss
import numpy as np
import structlog

from pdfrag import config
from pdfrag.errors import EmbeddingDimensionError, VectorIndexRequestError
from pdfrag.rag.vector_index import IndexRecord, RetrievedMatch, VectorIndex

logger = structlog.get_logger()


class FAISSVectorIndex(VectorIndex):
    """In-process FAISS index with string ids and metadata."""

    name = "faiss"

    def __init__(self, dimension: int = None, index_dir: Optional[Path] = None):
        """Initialize the FAISS vector store.

        Args:
            dimension: Embedding dimension (default from config)
            index_dir: Directory to persist index and metadata; in-memory when None
        """
        self.dimension = dimension or config.EMBEDDING_DIMENSION
        self.index_dir = Path(index_dir) if index_dir else None

        self.index = faiss.IndexIDMap2(faiss.IndexFlatIP(self.dimension))
        self._int_ids: Dict[str, int] = {}
        self._str_ids: Dict[int, str] = {}
        self._metadata: Dict[str, Dict[str, Any]] = {}
        self._next_id = 0

        if self.index_dir and self.index_path.exists() and self.metadata_path.exists():
            self.load_index()

        logger.info(
            "faiss_store_initialized",
            dimension=self.dimension,
            persistent=self.index_dir is not None,
            vector_count=self.index.ntotal,
        )

    @property
    def index_path(self) -> Path:
        return self.index_dir / "vectors.index"

    @property
    def metadata_path(self) -> Path:
        return self.index_dir / "metadata.json"

    def _as_matrix(self, vectors: List[List[float]]) -> np.ndarray:
        matrix = np.array(vectors, dtype=np.float32)
        if matrix.ndim != 2 or matrix.shape[1] != self.dimension:
            actual = matrix.shape[1] if matrix.ndim == 2 else 0
            raise EmbeddingDimensionError(self.dimension, actual)
        matrix = np.ascontiguousarray(matrix)
        faiss.normalize_L2(matrix)
        return matrix

    async def upsert(self, records: Sequence[IndexRecord]) -> int:
        if not records:
            return 0

        # Last write wins for duplicate ids inside one call
        latest: Dict[str, IndexRecord] = {}
        for record in records:
            latest[record.id] = record

        matrix = self._as_matrix([r.values for r in latest.values()])

        stale = [self._int_ids[rid] for rid in latest if rid in self._int_ids]
        if stale:
            self.index.remove_ids(np.array(stale, dtype=np.int64))

        ids = []
        for rid in latest:
            int_id = self._int_ids.get(rid)
            if int_id is None:
                int_id = self._next_id
                self._next_id += 1
                self._int_ids[rid] = int_id
                self._str_ids[int_id] = rid
            ids.append(int_id)
            self._metadata[rid] = dict(latest[rid].metadata)

        self.index.add_with_ids(matrix, np.array(ids, dtype=np.int64))

        logger.info(
            "vectors_upserted",
            count=len(latest),
            replaced=len(stale),
            total_vectors=self.index.ntotal,
        )

        # Blocking write; this backend serves local development only
        if self.index_dir:
            self.save_index()

        return len(latest)

    async def delete_by_prefix(self, prefix: str, keep: Iterable[str] = ()) -> int:
        keep = set(keep)
        stale = [rid for rid in self._int_ids if rid.startswith(prefix) and rid not in keep]
        if not stale:
            return 0

        self.index.remove_ids(np.array([self._int_ids[rid] for rid in stale], dtype=np.int64))
        for rid in stale:
            del self._str_ids[self._int_ids.pop(rid)]
            self._metadata.pop(rid, None)

        logger.info("vectors_deleted", prefix=prefix, count=len(stale), total_vectors=self.index.ntotal)

        if self.index_dir:
            self.save_index()

        return len(stale)

    async def query(self, vector: List[float], top_k: int = 3) -> List[RetrievedMatch]:
        query_vector = self._as_matrix([vector])

        top_k = min(top_k, self.index.ntotal)
        if top_k <= 0:
            return []

        scores, indices = self.index.search(query_vector, top_k)

        matches = []
        for score, int_id in zip(scores[0].tolist(), indices[0].tolist()):
            if int_id == -1:
                continue
            rid = self._str_ids[int_id]
            matches.append(
                RetrievedMatch(id=rid, score=float(score), metadata=dict(self._metadata[rid]))
            )

        logger.info("vector_search_completed", top_k=top_k, results_found=len(matches))
        return matches

    def save_index(self) -> None:
        """Save FAISS index and metadata to disk."""
        self.index_dir.mkdir(parents=True, exist_ok=True)

        try:
            faiss.write_index(self.index, str(self.index_path))
            with open(self.metadata_path, "w") as f:
                json.dump(
                    {
                        "embedding_dimension": self.dimension,
                        "index_type": "IndexIDMap2(IndexFlatIP)",
                        "next_id": self._next_id,
                        "ids": self._int_ids,
                        "records": self._metadata,
                    },
                    f,
                    indent=2,
                )
        except (OSError, RuntimeError) as e:
            raise VectorIndexRequestError(f"Failed to save FAISS index: {e}") from e

        logger.debug("faiss_index_saved", path=str(self.index_path), vector_count=self.index.ntotal)

    def load_index(self) -> None:
        """Load FAISS index and metadata from disk.

        Raises:
            EmbeddingDimensionError: If the stored index has another dimension
            VectorIndexRequestError: If the files cannot be read
        """
        try:
            with open(self.metadata_path, "r") as f:
                stored = json.load(f)
            index = faiss.read_index(str(self.index_path))
        except (OSError, RuntimeError, ValueError) as e:
            raise VectorIndexRequestError(f"Failed to load FAISS index: {e}") from e

        stored_dim = stored.get("embedding_dimension")
        if stored_dim != self.dimension:
            raise EmbeddingDimensionError(self.dimension, stored_dim or 0)

        self.index = index
        self._int_ids = {rid: int(i) for rid, i in stored.get("ids", {}).items()}
        self._str_ids = {i: rid for rid, i in self._int_ids.items()}
        self._metadata = stored.get("records", {})
        self._next_id = int(stored.get("next_id", len(self._int_ids)))

        logger.info("faiss_index_loaded", dimension=self.dimension, vector_count=self.index.ntotal)

    def get_stats(self) -> Dict[str, Any]:
        return {
            "backend": self.name,
            "vector_count": self.index.ntotal,
            "dimension": self.dimension,
            "index_exists_on_disk": bool(self.index_dir and self.index_path.exists()),
        }
