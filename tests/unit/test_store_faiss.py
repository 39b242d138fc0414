"""Unit tests for the local FAISS vector index."""
import pytest

from pdfrag.errors import EmbeddingDimensionError
from pdfrag.rag.store_faiss import FAISSVectorIndex
from pdfrag.rag.vector_index import IndexRecord

DIM = 8


def _unit(axis: int) -> list:
    vector = [0.0] * DIM
    vector[axis] = 1.0
    return vector


@pytest.mark.asyncio
async def test_query_orders_by_similarity():
    index = FAISSVectorIndex(dimension=DIM)
    await index.upsert(
        [
            IndexRecord(id="x", values=_unit(0), metadata={"text": "x axis"}),
            IndexRecord(id="y", values=_unit(1), metadata={"text": "y axis"}),
            IndexRecord(id="xy", values=[1.0, 1.0] + [0.0] * (DIM - 2), metadata={"text": "diagonal"}),
        ]
    )

    matches = await index.query(_unit(0), top_k=3)

    assert [m.id for m in matches] == ["x", "xy", "y"]
    assert matches[0].score == pytest.approx(1.0, abs=1e-5)
    assert matches[0].text == "x axis"


@pytest.mark.asyncio
async def test_upsert_same_id_overwrites():
    index = FAISSVectorIndex(dimension=DIM)
    await index.upsert([IndexRecord(id="a", values=_unit(0), metadata={"text": "old"})])
    await index.upsert([IndexRecord(id="a", values=_unit(2), metadata={"text": "new"})])

    assert index.get_stats()["vector_count"] == 1
    matches = await index.query(_unit(2), top_k=3)
    assert len(matches) == 1
    assert matches[0].text == "new"
    assert matches[0].score == pytest.approx(1.0, abs=1e-5)


@pytest.mark.asyncio
async def test_top_k_limits_results_and_empty_index():
    index = FAISSVectorIndex(dimension=DIM)
    assert await index.query(_unit(0), top_k=3) == []

    await index.upsert([IndexRecord(id=str(i), values=_unit(i), metadata={}) for i in range(5)])
    assert len(await index.query(_unit(0), top_k=2)) == 2


@pytest.mark.asyncio
async def test_wrong_dimension_rejected():
    index = FAISSVectorIndex(dimension=DIM)
    with pytest.raises(EmbeddingDimensionError):
        await index.upsert([IndexRecord(id="a", values=[1.0, 2.0], metadata={})])
    with pytest.raises(EmbeddingDimensionError):
        await index.query([1.0] * (DIM + 1))


@pytest.mark.asyncio
async def test_persists_and_reloads(tmp_path):
    index = FAISSVectorIndex(dimension=DIM, index_dir=tmp_path)
    await index.upsert([IndexRecord(id="a", values=_unit(3), metadata={"text": "saved"})])

    reloaded = FAISSVectorIndex(dimension=DIM, index_dir=tmp_path)
    matches = await reloaded.query(_unit(3), top_k=1)

    assert matches[0].id == "a"
    assert matches[0].text == "saved"


@pytest.mark.asyncio
async def test_reload_with_other_dimension_fails(tmp_path):
    index = FAISSVectorIndex(dimension=DIM, index_dir=tmp_path)
    await index.upsert([IndexRecord(id="a", values=_unit(0), metadata={})])

    with pytest.raises(EmbeddingDimensionError):
        FAISSVectorIndex(dimension=DIM * 2, index_dir=tmp_path)


@pytest.mark.asyncio
async def test_delete_by_prefix_keeps_other_records(tmp_path):
    index = FAISSVectorIndex(dimension=DIM, index_dir=tmp_path)
    await index.upsert(
        [
            IndexRecord(id=f"doc-chunk-{i}", values=_unit(i), metadata={"text": f"doc {i}"})
            for i in range(4)
        ]
        + [IndexRecord(id="other-chunk-0", values=_unit(5), metadata={"text": "other"})]
    )

    deleted = await index.delete_by_prefix("doc-chunk-", keep=["doc-chunk-0"])

    assert deleted == 3
    assert index.get_stats()["vector_count"] == 2
    ids = sorted(m.id for m in await index.query(_unit(0), top_k=5))
    assert ids == ["doc-chunk-0", "other-chunk-0"]
    assert await index.delete_by_prefix("missing-") == 0

    reloaded = FAISSVectorIndex(dimension=DIM, index_dir=tmp_path)
    assert reloaded.get_stats()["vector_count"] == 2
