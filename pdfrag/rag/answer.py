"""Question answering over the indexed document."""
from dataclasses import dataclass, field
from typing import List, Optional

import structlog

from pdfrag import config
from pdfrag.errors import GenerationServiceError, ValidationError
from pdfrag.llm_client import GeminiClient
from pdfrag.rag.prompts import NOT_IN_CONTEXT, Persona, build_prompt
from pdfrag.rag.retriever import Retriever

logger = structlog.get_logger()

GENERATION_FALLBACK = "I couldn't generate a response. Please try again."


@dataclass
class AnswerResult:
    query: str
    answer: str
    context: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"query": self.query, "answer": self.answer, "context": list(self.context)}


def clean_answer(text: str) -> str:
    """Strip literal triple backticks from generated output."""
    return text.replace("```", "")


class QuestionAnswerer:
    """Retrieve context for a question and ask the generator."""

    def __init__(
        self,
        retriever: Retriever,
        generator: GeminiClient,
        max_question_chars: int = None,
    ):
        self.retriever = retriever
        self.generator = generator
        self.max_question_chars = max_question_chars or config.MAX_QUESTION_CHARS

    def validate_question(self, question: Optional[str]) -> str:
        if not isinstance(question, str) or not question.strip():
            raise ValidationError("Query is required")
        if len(question) > self.max_question_chars:
            raise ValidationError(
                f"Query too long (max {self.max_question_chars} characters)"
            )
        return question

    async def answer(self, question: str, persona=None) -> AnswerResult:
        """Answer a question using only retrieved context.

        Args:
            question: Natural-language question
            persona: Persona or raw persona key; unknown keys use the default

        Returns:
            AnswerResult with the answer and the context blocks used

        Raises:
            ValidationError: If the question is empty or too long
            EmbeddingServiceError: If the query cannot be embedded
            VectorIndexError: If the index query fails
        """
        question = self.validate_question(question)
        selected = Persona.parse(persona)

        context = await self.retriever.retrieve_context(question)

        logger.info(
            "answer_context_ready",
            persona=selected.value,
            context_blocks=len(context),
            context_chars=sum(len(c) for c in context),
        )

        if not context:
            logger.info("no_relevant_context_found")
            return AnswerResult(query=question, answer=NOT_IN_CONTEXT, context=[])

        prompt = build_prompt(selected, context, question)

        try:
            answer = await self.generator.generate(prompt)
        except GenerationServiceError as e:
            # Degrade to a fixed answer; the context is still returned
            logger.error("generation_failed", error=str(e))
            answer = GENERATION_FALLBACK

        answer = clean_answer(answer).strip() or GENERATION_FALLBACK

        logger.info("answer_generated", answer_length=len(answer))
        return AnswerResult(query=question, answer=answer, context=context)
