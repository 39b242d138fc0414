"""Unit tests for text cleaning."""
import pytest

from pdfrag.rag.cleaner import clean, clean_text


def test_empty_and_none_return_empty_string():
    assert clean_text("") == ""
    assert clean_text(None) == ""


def test_collapses_whitespace_and_newlines():
    assert clean_text("  Hello\n\n\nworld \t  again  ") == "Hello world again"


def test_removes_non_ascii_and_pdf_artifacts():
    assert clean_text("• Item # one § ï café") == "Item one caf"


def test_removes_control_characters():
    assert clean_text("abc\x00\x07def\x1b[0m") == "abcdef[0m"


def test_alias_matches():
    assert clean is clean_text


@pytest.mark.parametrize(
    "raw",
    [
        "",
        "plain text",
        "  lots\n\n of \r\n   whitespace\t",
        "#heading\n• bullet\n§ 12 ï",
        "mixed \x00 control \x1f chars \x7f and émojis 🎉",
        "a b c",
        "\n\n\n",
    ],
)
def test_idempotent(raw):
    once = clean_text(raw)
    assert clean_text(once) == once


def test_output_has_no_control_characters():
    cleaned = clean_text("line1\nline2\x0bline3\x0c\x01")
    assert all(32 <= ord(c) < 127 for c in cleaned)
