#!/usr/bin/env python
"""Index a local PDF and optionally ask a question about it.

Usage:
    python scripts/ingest_pdf.py manual.pdf
    python scripts/ingest_pdf.py manual.pdf --ask "What is the warranty period?"
    python scripts/ingest_pdf.py manual.pdf --backend faiss --persona teacher
"""
import argparse
import asyncio
import dataclasses
import sys
from datetime import datetime
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import structlog

from pdfrag.config import Settings
from pdfrag.errors import PdfRagError
from pdfrag.rag.ingest import Document
from pdfrag.rag.pdf_extract import extract_pdf
from pdfrag.services import build_services

logger = structlog.get_logger()


def print_banner(message: str):
    print(f"\n{'=' * 60}")
    print(f"  {message}")
    print(f"{'=' * 60}\n")


async def main():
    """Main entry point for the ingest script."""
    parser = argparse.ArgumentParser(
        description="Index a PDF for question answering",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/ingest_pdf.py manual.pdf
  python scripts/ingest_pdf.py manual.pdf --ask "Who signed the contract?"
        """,
    )
    parser.add_argument("pdf", type=Path, help="Path to the PDF file")
    parser.add_argument("--ask", default=None, help="Question to ask after indexing")
    parser.add_argument(
        "--persona",
        default=None,
        help="Answer persona: default, lawyer or teacher",
    )
    parser.add_argument(
        "--backend",
        choices=["pinecone", "faiss"],
        default=None,
        help="Vector backend (default: VECTOR_BACKEND or pinecone)",
    )
    args = parser.parse_args()

    settings = Settings.from_env()
    if args.backend:
        settings = dataclasses.replace(settings, vector_backend=args.backend)

    print("\n📋 Configuration:")
    print(f"   Vector backend:   {settings.vector_backend}")
    print(f"   Embedding model:  {settings.embedding_model}")
    print(f"   Chunk size:       {settings.chunk_size} chars")
    print(f"   Chunk overlap:    {settings.chunk_overlap} chars")
    print(f"   Batch size/delay: {settings.embed_batch_size} / {settings.embed_batch_delay}s")

    try:
        services = build_services(settings)

        print_banner(f"Indexing {args.pdf.name}")
        started = datetime.now()

        extracted = extract_pdf(args.pdf.read_bytes())
        document = Document(
            filename=args.pdf.name,
            text=extracted.text,
            page_count=extracted.page_count,
        )
        result = await services.ingest_pipeline.ingest(document)

        elapsed = (datetime.now() - started).total_seconds()
        print(f"  📄 Pages:            {result.page_count}")
        print(f"  📝 Chunks indexed:   {result.chunks_processed}")
        print(f"  ⏱️  Time elapsed:     {elapsed:.1f}s")

        if args.ask:
            print_banner("Answer")
            answer = await services.answerer.answer(args.ask, args.persona)
            print(f"  Q: {answer.query}\n")
            print(f"  A: {answer.answer}\n")
            for i, block in enumerate(answer.context, 1):
                preview = block[:120] + "..." if len(block) > 120 else block
                print(f"  [{i}] {preview}")
            print()

    except KeyboardInterrupt:
        print("\n\n⚠️  Indexing cancelled by user.\n")
        sys.exit(1)

    except FileNotFoundError as e:
        print(f"\n❌ Error: {e}\n")
        sys.exit(1)

    except PdfRagError as e:
        print(f"\n❌ {e.message}")
        if e.detail and e.detail != e.message:
            print(f"   {e.detail}")
        print()
        logger.error("ingest_script_failed", kind=e.kind, error=str(e))
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
