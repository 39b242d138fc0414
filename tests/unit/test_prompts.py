"""Unit tests for personas and prompt assembly."""
import pytest

from pdfrag.rag.prompts import NOT_IN_CONTEXT, PERSONA_PROMPTS, Persona, build_prompt


@pytest.mark.parametrize(
    "value,expected",
    [
        ("default", Persona.DEFAULT),
        ("lawyer", Persona.LAWYER),
        ("teacher", Persona.TEACHER),
        (" Teacher ", Persona.TEACHER),
        (Persona.LAWYER, Persona.LAWYER),
        ("pirate", Persona.DEFAULT),
        ("", Persona.DEFAULT),
        (None, Persona.DEFAULT),
        (42, Persona.DEFAULT),
    ],
)
def test_persona_parse_is_total(value, expected):
    assert Persona.parse(value) is expected


def test_every_persona_has_fallback_instruction():
    assert set(PERSONA_PROMPTS) == set(Persona)
    for template in PERSONA_PROMPTS.values():
        assert NOT_IN_CONTEXT in template


def test_build_prompt_layout():
    prompt = build_prompt("lawyer", ["first block", "second block"], "Who signed?")

    assert prompt.startswith("You are a professional lawyer.")
    assert "CONTEXT BLOCKS:\n--- BLOCK 1 ---\nfirst block\n--- BLOCK 2 ---\nsecond block\n" in prompt
    assert prompt.rstrip().endswith("QUESTION: Who signed?")
    assert prompt.index("BLOCK 1") < prompt.index("BLOCK 2") < prompt.index("QUESTION:")


def test_unknown_persona_uses_default_template():
    assert build_prompt("unknown", ["x"], "q") == build_prompt(Persona.DEFAULT, ["x"], "q")
    assert build_prompt(None, ["x"], "q").startswith("You are a helpful AI assistant.")


def test_question_included_verbatim():
    question = "What about ```code``` and  spaces?"
    assert f"QUESTION: {question}" in build_prompt("teacher", [], question)
