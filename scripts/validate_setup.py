#!/usr/bin/env python
"""Validate setup - check dependencies, configuration and external services."""
import sys
import asyncio
from pathlib import Path

# Color codes for terminal output
GREEN = "\033[92m"
RED = "\033[91m"
YELLOW = "\033[93m"
BLUE = "\033[94m"
RESET = "\033[0m"

def print_success(msg):
    print(f"{GREEN}✓{RESET} {msg}")

def print_error(msg):
    print(f"{RED}✗{RESET} {msg}")

def print_info(msg):
    print(f"{BLUE}ℹ{RESET} {msg}")

def print_warning(msg):
    print(f"{YELLOW}⚠{RESET} {msg}")

def print_section(title):
    print(f"\n{BLUE}{'='*60}{RESET}")
    print(f"{BLUE}{title:^60}{RESET}")
    print(f"{BLUE}{'='*60}{RESET}\n")

async def main(skip_network: bool = False):
    print_section("pdfrag - Setup Validation")

    errors = []
    warnings = []

    # 1. Python version check
    print_section("1. Python Environment")
    python_version = f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}"
    print_info(f"Python version: {python_version}")
    if sys.version_info >= (3, 10):
        print_success("Python version >= 3.10")
    else:
        print_error("Python version < 3.10 (required)")
        errors.append("Python version too old")

    # 2. Import core dependencies
    print_section("2. Core Dependencies")

    dependencies = [
        ("quart", "Quart web framework"),
        ("hypercorn", "Hypercorn ASGI server"),
        ("httpx", "HTTP client"),
        ("faiss", "FAISS vector store"),
        ("numpy", "NumPy"),
        ("fitz", "PyMuPDF text extraction"),
        ("pydantic", "Data validation"),
        ("structlog", "Structured logging"),
        ("pytest", "Testing framework"),
    ]

    for module_name, description in dependencies:
        try:
            __import__(module_name)
            print_success(f"{description:30} ({module_name})")
        except ImportError as e:
            print_error(f"{description:30} ({module_name}) - {e}")
            errors.append(f"Missing: {module_name}")

    # 3. Configuration
    print_section("3. Configuration")

    sys.path.insert(0, str(Path(__file__).parent.parent))
    from pdfrag.config import Settings

    settings = Settings.from_env()
    print_info(f"  Vector backend: {settings.vector_backend}")
    print_info(f"  Pinecone index: {settings.pinecone_index}")
    print_info(f"  Embedding model: {settings.embedding_model} (dim {settings.embedding_dimension})")
    print_info(f"  Generation model: {settings.gemini_model}")
    print_info(f"  Chunk size/overlap: {settings.chunk_size}/{settings.chunk_overlap} chars")

    missing = settings.missing_credentials()
    if missing:
        for name in missing:
            print_error(f"{name} is not set")
        errors.append(f"Missing credentials: {', '.join(missing)}")
    else:
        print_success("All credentials configured")

    if settings.chunk_overlap >= settings.chunk_size:
        print_error("CHUNK_OVERLAP must be less than CHUNK_SIZE")
        errors.append("Invalid chunk configuration")

    # 4. Embedding API test
    print_section("4. Embedding API Test")

    if skip_network or "COHERE_API_KEY" in missing:
        print_warning("Skipped")
        warnings.append("Embedding API not tested")
    else:
        from pdfrag.errors import PdfRagError
        from pdfrag.rag.embeddings import EmbeddingClient

        try:
            vector = await EmbeddingClient.from_settings(settings).embed("test")
            print_success(f"Embedding API working (dimension: {len(vector)})")
        except PdfRagError as e:
            print_error(f"Embedding API test failed: {e.message}")
            print_info(f"  {e.detail}")
            errors.append(f"Embedding API: {e.kind}")

    # 5. Vector index test
    print_section("5. Vector Index")

    if skip_network or "PINECONE_API_KEY" in missing:
        print_warning("Skipped")
        warnings.append("Vector index not tested")
    else:
        from pdfrag.errors import PdfRagError
        from pdfrag.rag.vector_index import create_vector_index

        try:
            index = create_vector_index(settings)
            if settings.vector_backend == "pinecone":
                host = await index.get_host()
                print_success(f"Pinecone index reachable: {host}")
            else:
                print_success(f"FAISS index ready ({index.get_stats()['vector_count']} vectors)")
        except PdfRagError as e:
            print_error(f"Vector index check failed: {e.message}")
            print_info(f"  {e.detail}")
            errors.append(f"Vector index: {e.kind}")

    # 6. Summary
    print_section("Summary")

    if not errors:
        print_success(f"All checks passed! ✨")
    else:
        print_error(f"Found {len(errors)} error(s):")
        for i, error in enumerate(errors, 1):
            print(f"  {i}. {error}")

    if warnings:
        print_warning(f"\nFound {len(warnings)} warning(s):")
        for i, warning in enumerate(warnings, 1):
            print(f"  {i}. {warning}")

    print()
    return errors, warnings

if __name__ == "__main__":
    errors, warnings = asyncio.run(main(skip_network="--offline" in sys.argv))
    sys.exit(1 if errors else 0)
