"""Ingest pipeline for indexing a single uploaded document.

Orchestrates:
- Input validation (document type, empty text)
- Text cleaning and chunking
- Batch embedding generation
- Vector index upsert
"""
import hashlib
import re
from dataclasses import dataclass
from pathlib import PurePath
from typing import List, Optional

import structlog

from pdfrag.errors import EmbeddingMalformedResponseError, ValidationError
from pdfrag.rag.chunker import TextChunk, TextChunker
from pdfrag.rag.cleaner import clean_text
from pdfrag.rag.embeddings import SEARCH_DOCUMENT, EmbeddingClient
from pdfrag.rag.vector_index import IndexRecord, VectorIndex

logger = structlog.get_logger()

DOCUMENT_EXTENSION = ".pdf"
DOCUMENT_CONTENT_TYPES = ("application/pdf", "application/x-pdf")
CONTENT_TYPE_LABEL = "pdf"


@dataclass(frozen=True)
class Document:
    """An uploaded document, alive for one ingestion request."""

    filename: str
    text: str
    page_count: int


@dataclass(frozen=True)
class IngestResult:
    filename: str
    chunks_processed: int
    page_count: int

    def to_dict(self) -> dict:
        return {
            "message": "PDF uploaded and processed successfully",
            "filename": self.filename,
            "chunksProcessed": self.chunks_processed,
            "pageCount": self.page_count,
        }


def validate_document_type(filename: Optional[str], content_type: Optional[str] = None) -> None:
    """Reject uploads that are not PDF documents.

    Raises:
        ValidationError: If the filename or content type is not a PDF
    """
    if not filename:
        raise ValidationError("No file uploaded")
    if not filename.lower().endswith(DOCUMENT_EXTENSION):
        raise ValidationError("Please upload a PDF file", detail=f"Rejected file: {filename}")
    # Browsers sometimes send a generic type; only reject explicit non-PDF types
    if content_type and content_type != "application/octet-stream":
        base_type = content_type.split(";")[0].strip().lower()
        if base_type not in DOCUMENT_CONTENT_TYPES:
            raise ValidationError(
                "Please upload a PDF file", detail=f"Rejected content type: {content_type}"
            )


def document_key(filename: str) -> str:
    """Stable id prefix for all chunks of a document."""
    stem = re.sub(r"[^a-z0-9]+", "-", PurePath(filename).stem.lower()).strip("-") or "document"
    digest = hashlib.sha1(filename.encode("utf-8")).hexdigest()[:8]
    return f"{stem[:40]}-{digest}"


def chunk_prefix(doc_key: str) -> str:
    return f"{doc_key}-chunk-"


def chunk_id(doc_key: str, chunk_index: int) -> str:
    return f"{chunk_prefix(doc_key)}{chunk_index}"


class IngestPipeline:
    """Pipeline for ingesting one document into the vector index."""

    def __init__(
        self,
        embedder: EmbeddingClient,
        vector_index: VectorIndex,
        chunker: Optional[TextChunker] = None,
        clean_before_chunking: bool = True,
    ):
        """Initialize the ingest pipeline.

        Args:
            embedder: Client used for document embeddings
            vector_index: Index receiving the records
            chunker: Text chunker (default sizes from config)
            clean_before_chunking: Normalise the whole text before splitting
        """
        self.embedder = embedder
        self.vector_index = vector_index
        self.chunker = chunker or TextChunker()
        self.clean_before_chunking = clean_before_chunking

        logger.info(
            "ingest_pipeline_initialized",
            chunk_size=self.chunker.chunk_size,
            chunk_overlap=self.chunker.chunk_overlap,
            clean_before_chunking=clean_before_chunking,
        )

    def split_document(self, document: Document) -> List[TextChunk]:
        text = clean_text(document.text) if self.clean_before_chunking else document.text
        return self.chunker.chunk_text(text)

    def build_records(
        self, document: Document, chunks: List[TextChunk], embeddings: List[List[float]]
    ) -> List[IndexRecord]:
        doc_key = document_key(document.filename)
        return [
            IndexRecord(
                id=chunk_id(doc_key, chunk.chunk_index),
                values=embedding,
                metadata={
                    "text": clean_text(chunk.content),
                    "source": document.filename,
                    "type": CONTENT_TYPE_LABEL,
                    "page_count": document.page_count,
                    "chunk_index": chunk.chunk_index,
                },
            )
            for chunk, embedding in zip(chunks, embeddings)
        ]

    async def ingest(self, document: Document, content_type: Optional[str] = None) -> IngestResult:
        """Chunk, embed and index a document.

        Nothing is upserted unless every chunk was embedded successfully.
        Records left from an earlier upload of the same filename are removed
        once the new ones are written.

        Args:
            document: Document with extracted text
            content_type: Upload content type, if known

        Returns:
            IngestResult with the number of chunks indexed

        Raises:
            ValidationError: For non-PDF input or documents without text
            EmbeddingServiceError: If any embedding batch fails
            EmbeddingDimensionError: If a vector has the wrong length
            VectorIndexError: If the upsert fails
        """
        validate_document_type(document.filename, content_type)

        if not document.text or not document.text.strip():
            raise ValidationError("PDF appears to be empty or text could not be extracted")

        logger.info(
            "ingest_started",
            filename=document.filename,
            page_count=document.page_count,
            text_length=len(document.text),
        )

        chunks = self.split_document(document)
        if not chunks:
            raise ValidationError("No text chunks could be created from PDF")

        embeddings = await self.embedder.embed_batch(
            [chunk.content for chunk in chunks], input_type=SEARCH_DOCUMENT
        )

        if len(embeddings) != len(chunks):
            raise EmbeddingMalformedResponseError(
                f"Got {len(embeddings)} embeddings for {len(chunks)} chunks"
            )

        records = self.build_records(document, chunks, embeddings)
        await self.vector_index.upsert(records)

        # A re-upload replaces the previous version, including any trailing chunks
        removed = await self.vector_index.delete_by_prefix(
            chunk_prefix(document_key(document.filename)),
            keep=[record.id for record in records],
        )

        logger.info(
            "ingest_completed",
            filename=document.filename,
            chunks_processed=len(records),
            stale_chunks_removed=removed,
            **self.chunker.get_chunk_stats(chunks),
        )

        return IngestResult(
            filename=document.filename,
            chunks_processed=len(records),
            page_count=document.page_count,
        )
