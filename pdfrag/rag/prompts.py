"""Persona templates and prompt assembly."""
from enum import Enum
from typing import Optional, Sequence

NOT_IN_CONTEXT = "This detail isn't mentioned in the context."


class Persona(str, Enum):
    """Closed set of answer personas."""

    DEFAULT = "default"
    LAWYER = "lawyer"
    TEACHER = "teacher"

    @classmethod
    def parse(cls, value: Optional[str]) -> "Persona":
        """Map external input onto a persona; anything unknown is DEFAULT."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        return cls.DEFAULT


PERSONA_PROMPTS = {
    Persona.DEFAULT: f"""
You are a helpful AI assistant.
Answer strictly using the provided context.
If not found, say: "{NOT_IN_CONTEXT}"
""",
    Persona.LAWYER: f"""
You are a professional lawyer.
Answer formally and legally.
Base your answers strictly on the context.
If not found, say: "{NOT_IN_CONTEXT}"
""",
    Persona.TEACHER: f"""
You are a friendly teacher.
Explain clearly in simple terms.
Use examples if helpful.
Only use the context provided.
If not found, say: "{NOT_IN_CONTEXT}"
""",
}


def build_prompt(persona, context_blocks: Sequence[str], question: str) -> str:
    """Combine persona instructions, numbered context blocks and the question.

    Args:
        persona: Persona or raw persona key (unknown keys use the default)
        context_blocks: Cleaned context blocks in relevance order
        question: The user's question, included verbatim

    Returns:
        Prompt text for the generator
    """
    instructions = PERSONA_PROMPTS[Persona.parse(persona)].strip()
    blocks = "\n".join(
        f"--- BLOCK {i} ---\n{block}" for i, block in enumerate(context_blocks, 1)
    )
    return f"{instructions}\nCONTEXT BLOCKS:\n{blocks}\nQUESTION: {question}\n"
