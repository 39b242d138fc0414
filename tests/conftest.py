"""Pytest configuration and in-memory fakes for the pipeline collaborators."""
from typing import List, Sequence

import pytest

from pdfrag.config import Settings
from pdfrag.errors import GenerationServiceError
from pdfrag.rag.vector_index import IndexRecord, RetrievedMatch, VectorIndex

DIMENSION = 384


def vector_for(text: str, dimension: int = DIMENSION) -> List[float]:
    """Deterministic fake embedding derived from the text."""
    seed = sum(ord(c) for c in text) % 97 + 1
    return [float((seed * (i + 1)) % 13) for i in range(dimension)]


class FakeEmbedder:
    """Records calls; optionally fails on a given call number."""

    model = "fake-embed"

    def __init__(self, fail_on_batch_call: int = None, error: Exception = None):
        self.batch_calls: List[List[str]] = []
        self.single_calls: List[tuple] = []
        self.fail_on_batch_call = fail_on_batch_call
        self.error = error

    @property
    def call_count(self) -> int:
        return len(self.batch_calls) + len(self.single_calls)

    async def embed(self, text: str, input_type: str = "search_query") -> List[float]:
        self.single_calls.append((text, input_type))
        if self.error is not None and self.fail_on_batch_call is None:
            raise self.error
        return vector_for(text)

    async def embed_batch(self, texts: Sequence[str], input_type: str = "search_document"):
        self.batch_calls.append(list(texts))
        if self.fail_on_batch_call == len(self.batch_calls):
            raise self.error
        return [vector_for(t) for t in texts]


class FakeVectorIndex(VectorIndex):
    """Dict-backed index returning preset matches for queries."""

    name = "fake"

    def __init__(self, matches: List[RetrievedMatch] = None):
        self.records = {}
        self.upsert_calls: List[List[IndexRecord]] = []
        self.queries: List[tuple] = []
        self.matches = matches or []

    async def upsert(self, records: Sequence[IndexRecord]) -> int:
        self.upsert_calls.append(list(records))
        for record in records:
            self.records[record.id] = record
        return len(records)

    async def query(self, vector: List[float], top_k: int = 3) -> List[RetrievedMatch]:
        self.queries.append((vector, top_k))
        return sorted(self.matches, key=lambda m: m.score, reverse=True)[:top_k]

    async def delete_by_prefix(self, prefix: str, keep=()) -> int:
        stale = [rid for rid in self.records if rid.startswith(prefix) and rid not in set(keep)]
        for rid in stale:
            del self.records[rid]
        return len(stale)


class FakeGenerator:
    model = "fake-gemini"

    def __init__(self, answer: str = "The answer.", error: Exception = None):
        self.answer = answer
        self.error = error
        self.prompts: List[str] = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.answer


@pytest.fixture
def settings() -> Settings:
    return Settings(
        pinecone_api_key="pc-test",
        cohere_api_key="co-test",
        gemini_api_key="gm-test",
        embed_batch_delay=0.0,
    )


@pytest.fixture
def fake_embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def fake_index() -> FakeVectorIndex:
    return FakeVectorIndex()


@pytest.fixture
def fake_generator() -> FakeGenerator:
    return FakeGenerator()


@pytest.fixture
def generation_error() -> GenerationServiceError:
    return GenerationServiceError("Gemini returned no usable content")
