"""Unit tests for JSON parsing helpers."""

from learnfeed.llm.json_utils import (
    extract_first_json_object,
    fix_escape_sequences,
    json_candidates,
    strip_markdown_fences,
    try_parse_json_object,
)


class TestStripMarkdownFences:
    """Tests for strip_markdown_fences."""

    def test_fenced(self) -> None:
        """Should remove fences with a language tag."""
        assert strip_markdown_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_unfenced(self) -> None:
        """Should only trim whitespace."""
        assert strip_markdown_fences('  {"a": 1}\n') == '{"a": 1}'


class TestExtraction:
    """Tests for object extraction and candidates."""

    def test_extract(self) -> None:
        """Should return the outermost braces."""
        assert extract_first_json_object('x {"a": {"b": 1}} y') == '{"a": {"b": 1}}'

    def test_extract_missing(self) -> None:
        """Should return None without braces."""
        assert extract_first_json_object("no json") is None
        assert extract_first_json_object("} backwards {") is None

    def test_candidates(self) -> None:
        """Should add the extracted span only when it differs."""
        assert json_candidates('{"a": 1}') == ['{"a": 1}']
        assert json_candidates('ok {"a": 1}') == ['ok {"a": 1}', '{"a": 1}']


class TestParsing:
    """Tests for escape repair and parsing."""

    def test_fix_escape_sequences(self) -> None:
        """Should double lone backslashes and keep valid escapes."""
        assert fix_escape_sequences(r"a\_b") == r"a\\_b"
        assert fix_escape_sequences(r"a\nb") == r"a\nb"

    def test_parse_object(self) -> None:
        """Should parse objects and reject other JSON values."""
        assert try_parse_json_object('{"a": 1}') == {"a": 1}
        assert try_parse_json_object("[1, 2]") is None
        assert try_parse_json_object("{broken") is None
