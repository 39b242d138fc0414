"""Text chunking with overlap for the ingestion pipeline.

Implements character-based chunking to avoid tokenizer dependencies.
"""
from typing import List
from dataclasses import dataclass
import structlog

from pdfrag import config

logger = structlog.get_logger()

# Preferred break points, tried in order
SENTENCE_BREAKS = (". ", "! ", "? ", ".\n", "!\n", "?\n")


@dataclass(frozen=True)
class TextChunk:
    """Represents a chunk of text with position information."""

    content: str
    char_start: int
    char_end: int
    chunk_index: int
    overlap: int = 0


class TextChunker:
    """Character-based text chunker with overlap support."""

    def __init__(
        self,
        chunk_size: int = None,
        chunk_overlap: int = None,
    ):
        """Initialize the text chunker.

        Args:
            chunk_size: Size of each chunk in characters (default from config)
            chunk_overlap: Overlap between chunks in characters (default from config)
        """
        self.chunk_size = config.CHUNK_SIZE if chunk_size is None else chunk_size
        self.chunk_overlap = config.CHUNK_OVERLAP if chunk_overlap is None else chunk_overlap

        # Validate parameters
        if self.chunk_size <= 0:
            raise ValueError(f"Chunk size must be positive, got {self.chunk_size}")
        if self.chunk_overlap < 0:
            raise ValueError(f"Overlap must not be negative, got {self.chunk_overlap}")
        if self.chunk_overlap >= self.chunk_size:
            raise ValueError(
                f"Overlap ({self.chunk_overlap}) must be less than "
                f"chunk size ({self.chunk_size})"
            )

    def chunk_text(self, text: str) -> List[TextChunk]:
        """Split text into overlapping chunks.

        Each chunk after the first starts with the last ``chunk_overlap``
        characters of the previous one. Whitespace-only text yields no chunks.

        Args:
            text: Text to chunk

        Returns:
            List of TextChunk objects
        """
        if not text or not text.strip():
            return []

        text_length = len(text)

        # Handle text shorter than chunk size
        if text_length <= self.chunk_size:
            logger.debug(
                "text_shorter_than_chunk_size",
                text_length=text_length,
                chunk_size=self.chunk_size,
            )
            return [
                TextChunk(
                    content=text,
                    char_start=0,
                    char_end=text_length,
                    chunk_index=0,
                )
            ]

        chunks = []
        start = 0

        while True:
            end = min(start + self.chunk_size, text_length)
            chunk_content = text[start:end]

            # Try to break at sentence or word boundary, except for the tail
            if end < text_length:
                chunk_content = self._adjust_chunk_boundary(chunk_content)
                end = start + len(chunk_content)

            overlap = self.chunk_overlap if chunks else 0
            chunks.append(
                TextChunk(
                    content=chunk_content,
                    char_start=start,
                    char_end=end,
                    chunk_index=len(chunks),
                    overlap=overlap,
                )
            )

            if end >= text_length:
                break

            start = end - self.chunk_overlap

        logger.info(
            "text_chunked",
            text_length=text_length,
            chunk_count=len(chunks),
            avg_chunk_size=sum(len(c.content) for c in chunks) // len(chunks),
        )

        return chunks

    def _adjust_chunk_boundary(self, chunk_content: str) -> str:
        """Pull the chunk end back to a sentence, paragraph or word boundary.

        A boundary is only used when it lies late enough in the window that the
        next chunk still advances past the overlap.

        Args:
            chunk_content: Candidate chunk content of full chunk size

        Returns:
            Adjusted chunk content
        """
        size = len(chunk_content)
        # Never shrink to the point where the next start would not advance
        floor = self.chunk_overlap

        def acceptable(cut: int, ratio: float) -> bool:
            return cut > size * ratio and cut > floor

        for break_seq in SENTENCE_BREAKS:
            last_break = chunk_content.rfind(break_seq)
            cut = last_break + len(break_seq)
            if last_break != -1 and acceptable(cut, 0.7):
                return chunk_content[:cut]

        # Paragraph boundary (double newline)
        last_paragraph = chunk_content.rfind("\n\n")
        if last_paragraph != -1 and acceptable(last_paragraph + 2, 0.7):
            return chunk_content[: last_paragraph + 2]

        # Single newline
        last_newline = chunk_content.rfind("\n")
        if last_newline != -1 and acceptable(last_newline + 1, 0.7):
            return chunk_content[: last_newline + 1]

        # Word boundary (space), only near the end
        last_space = chunk_content.rfind(" ")
        if last_space != -1 and acceptable(last_space + 1, 0.8):
            return chunk_content[: last_space + 1]

        # Hard character cut
        return chunk_content

    def get_chunk_stats(self, chunks: List[TextChunk]) -> dict:
        """Get statistics about a set of chunks.

        Args:
            chunks: List of TextChunk objects

        Returns:
            Dictionary with chunk statistics
        """
        if not chunks:
            return {
                "chunk_count": 0,
                "total_chars": 0,
                "avg_chunk_size": 0,
                "min_chunk_size": 0,
                "max_chunk_size": 0,
                "overlap": self.chunk_overlap,
            }

        chunk_sizes = [len(c.content) for c in chunks]

        return {
            "chunk_count": len(chunks),
            "total_chars": sum(chunk_sizes),
            "avg_chunk_size": sum(chunk_sizes) // len(chunks),
            "min_chunk_size": min(chunk_sizes),
            "max_chunk_size": max(chunk_sizes),
            "overlap": self.chunk_overlap,
        }


def split(text: str, chunk_size: int, overlap: int) -> List[TextChunk]:
    """Split text into overlapping chunks (convenience function).

    Args:
        text: Text to chunk
        chunk_size: Target chunk size in characters
        overlap: Characters repeated at the start of each following chunk

    Returns:
        List of TextChunk objects
    """
    return TextChunker(chunk_size=chunk_size, chunk_overlap=overlap).chunk_text(text)
