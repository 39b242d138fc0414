"""Unit tests for context retrieval and assembly."""
import pytest
from structlog.testing import capture_logs

from conftest import FakeEmbedder, FakeVectorIndex
from pdfrag.errors import ValidationError
from pdfrag.rag.embeddings import SEARCH_QUERY
from pdfrag.rag.retriever import Retriever
from pdfrag.rag.vector_index import RetrievedMatch


def _match(i, score, text):
    return RetrievedMatch(id=f"m{i}", score=score, metadata={"text": text, "source": "doc.pdf"})


@pytest.mark.asyncio
async def test_retrieve_context_cleans_filters_and_orders():
    index = FakeVectorIndex(
        matches=[
            _match(1, 0.4, "third   block\n\nwith gaps"),
            _match(2, 0.9, "• first block"),
            _match(3, 0.7, "###   "),
            _match(4, 0.6, ["second", "block"]),
        ]
    )
    embedder = FakeEmbedder()
    retriever = Retriever(embedder, index, top_k=4)

    blocks = await retriever.retrieve_context("What is in the document?")

    assert blocks == ["first block", "second block", "third block with gaps"]
    assert embedder.single_calls == [("What is in the document?", SEARCH_QUERY)]
    assert index.queries[0][1] == 4


@pytest.mark.asyncio
async def test_default_top_k_is_three():
    index = FakeVectorIndex(matches=[_match(i, i / 10, f"block {i}") for i in range(6)])
    blocks = await Retriever(FakeEmbedder(), index).retrieve_context("question")
    assert blocks == ["block 5", "block 4", "block 3"]


@pytest.mark.asyncio
async def test_missing_or_non_string_text():
    index = FakeVectorIndex(
        matches=[
            RetrievedMatch(id="a", score=0.9, metadata={}),
            RetrievedMatch(id="b", score=0.8, metadata={"text": 42}),
        ]
    )
    blocks = await Retriever(FakeEmbedder(), index).retrieve_context("question")
    assert blocks == ["42"]


@pytest.mark.asyncio
async def test_empty_query_rejected_before_embedding():
    embedder = FakeEmbedder()
    retriever = Retriever(embedder, FakeVectorIndex())
    with pytest.raises(ValidationError):
        await retriever.retrieve_context("  ")
    assert embedder.call_count == 0


@pytest.mark.asyncio
async def test_context_is_bounded():
    index = FakeVectorIndex(
        matches=[_match(1, 0.9, "a" * 600), _match(2, 0.8, "b" * 600), _match(3, 0.7, "c" * 600)]
    )
    retriever = Retriever(FakeEmbedder(), index, max_context_chars=1000)

    blocks = await retriever.retrieve_context("question")

    assert blocks[0] == "a" * 600
    assert blocks[1] == "b" * 397 + "..."
    assert len(blocks) == 2
    assert sum(len(b) for b in blocks) <= 1000


@pytest.mark.asyncio
async def test_small_remainder_is_dropped():
    index = FakeVectorIndex(matches=[_match(1, 0.9, "a" * 900), _match(2, 0.8, "b" * 600)])
    retriever = Retriever(FakeEmbedder(), index, max_context_chars=1000)
    assert await retriever.retrieve_context("question") == ["a" * 900]


@pytest.mark.asyncio
async def test_truncation_of_last_block_is_logged():
    index = FakeVectorIndex(matches=[_match(1, 0.9, "a" * 600), _match(2, 0.8, "b" * 600)])
    retriever = Retriever(FakeEmbedder(), index, max_context_chars=1000)

    with capture_logs() as logs:
        blocks = await retriever.retrieve_context("question")

    assert len(blocks) == 2
    assert blocks[1].endswith("...")
    events = [e for e in logs if e["event"] == "context_truncated"]
    assert len(events) == 1
    assert events[0]["kept"] == 2


@pytest.mark.asyncio
async def test_context_within_budget_is_not_reported_truncated():
    index = FakeVectorIndex(matches=[_match(1, 0.9, "a" * 500), _match(2, 0.8, "b" * 500)])
    retriever = Retriever(FakeEmbedder(), index, max_context_chars=1000)

    with capture_logs() as logs:
        blocks = await retriever.retrieve_context("question")

    assert blocks == ["a" * 500, "b" * 500]
    assert not [e for e in logs if e["event"] == "context_truncated"]
