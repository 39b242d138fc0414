"""Builds the pipeline components once from Settings."""
from dataclasses import dataclass
from typing import Optional

import structlog

from pdfrag.config import Settings
from pdfrag.llm_client import GeminiClient
from pdfrag.rag.answer import QuestionAnswerer
from pdfrag.rag.chunker import TextChunker
from pdfrag.rag.embeddings import EmbeddingClient
from pdfrag.rag.ingest import IngestPipeline
from pdfrag.rag.retriever import Retriever
from pdfrag.rag.vector_index import VectorIndex, create_vector_index

logger = structlog.get_logger()


@dataclass
class Services:
    """Components shared by all requests of one process."""

    settings: Settings
    vector_index: VectorIndex
    ingest_pipeline: IngestPipeline
    answerer: QuestionAnswerer


def build_services(
    settings: Settings,
    embedder: Optional[EmbeddingClient] = None,
    vector_index: Optional[VectorIndex] = None,
    generator: Optional[GeminiClient] = None,
) -> Services:
    """Wire the ingestion and query pipelines.

    Collaborators can be passed in to replace the configured ones.

    Raises:
        ConfigurationError: If a required credential is missing
    """
    embedder = embedder or EmbeddingClient.from_settings(settings)
    vector_index = vector_index or create_vector_index(settings)
    generator = generator or GeminiClient.from_settings(settings)

    ingest_pipeline = IngestPipeline(
        embedder=embedder,
        vector_index=vector_index,
        chunker=TextChunker(settings.chunk_size, settings.chunk_overlap),
        clean_before_chunking=settings.clean_before_chunking,
    )
    retriever = Retriever(
        embedder=embedder,
        vector_index=vector_index,
        top_k=settings.retrieval_top_k,
        max_context_chars=settings.max_context_chars,
    )
    answerer = QuestionAnswerer(
        retriever=retriever,
        generator=generator,
        max_question_chars=settings.max_question_chars,
    )

    logger.info(
        "services_built",
        vector_backend=vector_index.name,
        embedding_model=embedder.model,
        generation_model=generator.model,
    )

    return Services(
        settings=settings,
        vector_index=vector_index,
        ingest_pipeline=ingest_pipeline,
        answerer=answerer,
    )
