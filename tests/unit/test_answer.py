"""Unit tests for question answering."""
import pytest

from conftest import FakeEmbedder, FakeGenerator, FakeVectorIndex
from pdfrag.errors import GenerationServiceError, ValidationError
from pdfrag.rag.answer import GENERATION_FALLBACK, QuestionAnswerer
from pdfrag.rag.prompts import NOT_IN_CONTEXT
from pdfrag.rag.retriever import Retriever
from pdfrag.rag.vector_index import RetrievedMatch


def _answerer(matches=None, generator=None, **kwargs):
    embedder = FakeEmbedder()
    index = FakeVectorIndex(matches=matches or [])
    generator = generator or FakeGenerator()
    answerer = QuestionAnswerer(Retriever(embedder, index), generator, **kwargs)
    return answerer, embedder, index, generator


MATCHES = [
    RetrievedMatch(id="1", score=0.9, metadata={"text": "The warranty lasts two years."}),
    RetrievedMatch(id="2", score=0.5, metadata={"text": "Returns within 30 days."}),
]


@pytest.mark.asyncio
async def test_empty_index_answers_with_fallback_sentence():
    answerer, _, _, generator = _answerer()

    result = await answerer.answer("what is the capital of Mars?")

    assert result.answer == NOT_IN_CONTEXT
    assert result.context == []
    assert result.query == "what is the capital of Mars?"
    assert generator.prompts == []


@pytest.mark.asyncio
async def test_answer_uses_context_and_persona():
    answerer, _, _, generator = _answerer(MATCHES, FakeGenerator("Two years."))

    result = await answerer.answer("How long is the warranty?", "teacher")

    assert result.answer == "Two years."
    assert result.context == ["The warranty lasts two years.", "Returns within 30 days."]
    prompt = generator.prompts[0]
    assert prompt.startswith("You are a friendly teacher.")
    assert "--- BLOCK 1 ---\nThe warranty lasts two years." in prompt
    assert "QUESTION: How long is the warranty?" in prompt


@pytest.mark.asyncio
async def test_unknown_persona_falls_back_to_default():
    answerer, _, _, generator = _answerer(MATCHES)
    await answerer.answer("Question?", "pirate")
    assert generator.prompts[0].startswith("You are a helpful AI assistant.")


@pytest.mark.asyncio
async def test_backticks_are_stripped():
    answerer, *_ = _answerer(MATCHES, FakeGenerator("```json\n{\"a\": 1}\n```"))
    result = await answerer.answer("Question?")
    assert "```" not in result.answer
    assert result.answer == "json\n{\"a\": 1}"


@pytest.mark.asyncio
async def test_generation_failure_degrades_to_fallback_text():
    generator = FakeGenerator(error=GenerationServiceError("unreachable"))
    answerer, *_ = _answerer(MATCHES, generator)

    result = await answerer.answer("Question?")

    assert result.answer == GENERATION_FALLBACK
    assert len(result.context) == 2


@pytest.mark.asyncio
async def test_blank_generation_output_uses_fallback_text():
    answerer, *_ = _answerer(MATCHES, FakeGenerator("``````"))
    assert (await answerer.answer("Question?")).answer == GENERATION_FALLBACK


@pytest.mark.asyncio
@pytest.mark.parametrize("question", [None, "", "   ", 5])
async def test_empty_question_rejected(question):
    answerer, embedder, _, _ = _answerer(MATCHES)
    with pytest.raises(ValidationError):
        await answerer.answer(question)
    assert embedder.call_count == 0


@pytest.mark.asyncio
async def test_too_long_question_rejected():
    answerer, *_ = _answerer(MATCHES, max_question_chars=10)
    with pytest.raises(ValidationError):
        await answerer.answer("x" * 11)


def test_result_to_dict():
    from pdfrag.rag.answer import AnswerResult

    result = AnswerResult(query="q", answer="a", context=["c"])
    assert result.to_dict() == {"query": "q", "answer": "a", "context": ["c"]}
