"""RAG (Retrieval-Augmented Generation) pipeline components.

This package contains modules for:
- PDF text extraction and cleaning
- Document chunking with overlap
- Embedding generation
- Vector storage (Pinecone, FAISS)
- Retrieval, prompt assembly and answering
"""
