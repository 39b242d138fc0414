"""Text normalisation for extracted PDF text and retrieved snippets."""
import re
from typing import Optional

# Anything that is not printable ASCII, tab, CR or LF
_NON_TEXT = re.compile(r"[^\x09\x0a\x0d\x20-\x7e]")
_NEWLINE_RUNS = re.compile(r"\n+")
# Stray symbols commonly left behind by PDF text extraction
_PDF_ARTIFACTS = re.compile(r"[•#§ï]")
_WHITESPACE_RUNS = re.compile(r"\s+")


def clean_text(text: Optional[str]) -> str:
    """Normalise text so it is safe to store and to embed in a prompt.

    Removes non-printable and non-ASCII characters, PDF artifact symbols and
    collapses whitespace. Idempotent and never raises.

    Args:
        text: Raw text (None is treated as empty)

    Returns:
        Cleaned text, possibly empty
    """
    if not text:
        return ""

    text = _NON_TEXT.sub("", text)
    text = _NEWLINE_RUNS.sub("\n", text)
    text = _PDF_ARTIFACTS.sub("", text)
    text = _WHITESPACE_RUNS.sub(" ", text)
    return text.strip()


# Short alias used by the pipeline
clean = clean_text
