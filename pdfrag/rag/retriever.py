"""Retriever that turns a question into cleaned, bounded context blocks.

Handles:
- Query embedding generation (query input type)
- Top-K similarity search
- Cleaning and filtering of retrieved text
- Context size bounding
"""
from typing import List, Optional

import structlog

from pdfrag import config
from pdfrag.errors import ValidationError
from pdfrag.rag.cleaner import clean_text
from pdfrag.rag.embeddings import SEARCH_QUERY, EmbeddingClient
from pdfrag.rag.vector_index import RetrievedMatch, VectorIndex

logger = structlog.get_logger()

TRUNCATION_SUFFIX = "..."
MIN_TRUNCATED_BLOCK = 200


class Retriever:
    """Semantic retriever for the question-answering pipeline."""

    def __init__(
        self,
        embedder: EmbeddingClient,
        vector_index: VectorIndex,
        top_k: int = None,
        max_context_chars: int = None,
    ):
        """Initialize the retriever.

        Args:
            embedder: Client used to embed queries
            vector_index: Index to search
            top_k: Number of results to retrieve (default from config)
            max_context_chars: Upper bound on total context characters
        """
        self.embedder = embedder
        self.vector_index = vector_index
        self.top_k = top_k or config.RETRIEVAL_TOP_K
        self.max_context_chars = max_context_chars or config.MAX_CONTEXT_CHARS

    async def retrieve(self, query: str, top_k: Optional[int] = None) -> List[RetrievedMatch]:
        """Embed a query and return raw matches ordered by descending score.

        Raises:
            ValidationError: If the query is empty
        """
        if not query or not query.strip():
            raise ValidationError("Query is required")

        top_k = top_k or self.top_k

        logger.info("retrieval_started", query_length=len(query), top_k=top_k)

        query_embedding = await self.embedder.embed(query, input_type=SEARCH_QUERY)
        matches = await self.vector_index.query(query_embedding, top_k=top_k)

        matches = sorted(matches, key=lambda m: m.score, reverse=True)[:top_k]

        logger.info(
            "retrieval_completed",
            results_returned=len(matches),
            top_score=matches[0].score if matches else None,
        )
        return matches

    async def retrieve_context(self, query: str, top_k: Optional[int] = None) -> List[str]:
        """Retrieve cleaned context blocks for an LLM prompt.

        Blocks keep score order; blocks that are empty after cleaning are
        dropped and the total size is bounded by ``max_context_chars``.

        Args:
            query: User question
            top_k: Number of matches to retrieve

        Returns:
            List of cleaned text blocks
        """
        matches = await self.retrieve(query, top_k=top_k)
        blocks = [clean_text(match.text) for match in matches]
        blocks = [block for block in blocks if block]
        return self._bound_context(blocks)

    def _bound_context(self, blocks: List[str]) -> List[str]:
        bounded = []
        total_chars = 0
        truncated = False

        for block in blocks:
            if total_chars + len(block) > self.max_context_chars:
                truncated = True
                remaining = self.max_context_chars - total_chars - len(TRUNCATION_SUFFIX)
                # Only add a truncated block if there is meaningful space
                if remaining > MIN_TRUNCATED_BLOCK:
                    bounded.append(block[:remaining].rstrip() + TRUNCATION_SUFFIX)
                break

            bounded.append(block)
            total_chars += len(block)

        if truncated:
            logger.debug(
                "context_truncated",
                kept=len(bounded),
                retrieved=len(blocks),
                max_chars=self.max_context_chars,
            )

        return bounded
