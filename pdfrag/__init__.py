"""Single-document PDF question answering with retrieval-augmented generation."""

__version__ = "0.1.0"
