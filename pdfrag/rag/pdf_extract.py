"""PDF text extraction with PyMuPDF."""
from dataclasses import dataclass

import fitz  # PyMuPDF
import structlog

from pdfrag.errors import ValidationError

logger = structlog.get_logger()


@dataclass(frozen=True)
class ExtractedPdf:
    text: str
    page_count: int


def extract_pdf(data: bytes) -> ExtractedPdf:
    """Extract the text of every page of a PDF.

    Args:
        data: Raw PDF bytes

    Returns:
        ExtractedPdf with pages joined by blank lines

    Raises:
        ValidationError: If the bytes are not a readable PDF
    """
    if not data:
        raise ValidationError("No file uploaded", detail="Uploaded file is empty")

    try:
        doc = fitz.open(stream=data, filetype="pdf")
    except (RuntimeError, ValueError) as e:
        raise ValidationError("Please upload a PDF file", detail=f"Unreadable PDF: {e}") from e

    pages = []
    with doc:
        page_count = doc.page_count
        for page_num, page in enumerate(doc):
            text = page.get_text("text")
            if text.strip():
                pages.append(text)
            else:
                # Scanned page without a text layer
                logger.debug("pdf_page_without_text", page=page_num + 1)

    logger.info(
        "pdf_extracted",
        page_count=page_count,
        pages_with_text=len(pages),
        text_length=sum(len(p) for p in pages),
    )

    return ExtractedPdf(text="\n\n".join(pages), page_count=page_count)
