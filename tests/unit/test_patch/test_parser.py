"""Tests for the SEARCH/REPLACE document parser."""

import pytest

from agentexec.errors import ParseError
from agentexec.patch.parser import (
    is_divider,
    is_replace_end,
    is_search_start,
    parse_search_replace,
)
from agentexec.types import SearchReplaceBlock


def block(search, replace):
    return f"------- SEARCH\n{search}\n=======\n{replace}\n+++++++ REPLACE"


class TestMarkers:
    """Tests for marker recognition."""

    @pytest.mark.parametrize(
        "line", ["------- SEARCH", "<<<<<<< SEARCH", "--- SEARCH", "<<<<<<<<<<< SEARCH"]
    )
    def test_search_start(self, line):
        """Dashes or angle brackets, three or more, then SEARCH."""
        assert is_search_start(line) is True

    @pytest.mark.parametrize(
        "line", ["-- SEARCH", "-<-<- SEARCH", "------- SEARCH ", "------- search", "-------"]
    )
    def test_not_search_start(self, line):
        """Short, mixed or misspelled markers are ordinary text."""
        assert is_search_start(line) is False

    def test_divider(self):
        """Three or more equals signs form the divider."""
        assert is_divider("=======") is True
        assert is_divider("===") is True
        assert is_divider("==") is False
        assert is_divider("=== x") is False

    def test_replace_end(self):
        """Plus signs or closing angle brackets, then REPLACE."""
        assert is_replace_end("+++++++ REPLACE") is True
        assert is_replace_end(">>>>>>> REPLACE") is True
        assert is_replace_end("+++++++") is False


class TestParseSearchReplace:
    """Tests for parse_search_replace."""

    def test_single_block(self):
        """One block yields one search/replace pair."""
        assert parse_search_replace(block("foo()", "foo(1)")) == [
            SearchReplaceBlock(search_text="foo()", replace_text="foo(1)")
        ]

    def test_alternative_markers(self):
        """Merge-conflict style markers are accepted."""
        diff = "<<<<<<< SEARCH\na\n=======\nb\n>>>>>>> REPLACE"
        assert parse_search_replace(diff)[0].replace_text == "b"

    def test_multiline_text(self):
        """Lines inside a block are joined with newlines."""
        blocks = parse_search_replace(block("one\n  two", "three\n\nfour"))
        assert blocks[0].search_text == "one\n  two"
        assert blocks[0].replace_text == "three\n\nfour"

    def test_blocks_in_document_order(self):
        """Several blocks are returned in order; text between them is ignored."""
        diff = "intro\n" + block("a", "b") + "\nsome prose\n" + block("c", "d") + "\n"
        blocks = parse_search_replace(diff)
        assert len(blocks) == 2
        assert [b.search_text for b in blocks] == ["a", "c"]

    def test_crlf_document(self):
        """A trailing carriage return is dropped from each line."""
        diff = "------- SEARCH\r\na\r\n=======\r\nb\r\n+++++++ REPLACE\r\n"
        assert parse_search_replace(diff) == [SearchReplaceBlock(search_text="a", replace_text="b")]

    def test_empty_search(self):
        """A block may have empty search text."""
        diff = "------- SEARCH\n=======\nnew line\n+++++++ REPLACE"
        assert parse_search_replace(diff)[0].search_text == ""

    def test_empty_replace(self):
        """A block may delete its search text."""
        diff = "------- SEARCH\nold\n=======\n+++++++ REPLACE"
        assert parse_search_replace(diff)[0].replace_text == ""

    def test_empty_document(self):
        """No markers means no blocks."""
        assert parse_search_replace("") == []
        assert parse_search_replace("just some text") == []


class TestParseErrors:
    """Tests for malformed documents."""

    def test_divider_without_search(self):
        """A divider outside a block is reported with its line number."""
        with pytest.raises(ParseError) as exc_info:
            parse_search_replace("text\n=======\nb\n+++++++ REPLACE")
        assert exc_info.value.line_number == 2
        assert str(exc_info.value) == "Unexpected ======= without preceding SEARCH block (line 2)"

    def test_nested_search(self):
        """A second SEARCH before the first block closes is an error."""
        with pytest.raises(ParseError, match="previous block not completed") as exc_info:
            parse_search_replace("------- SEARCH\na\n------- SEARCH\nb")
        assert exc_info.value.line_number == 3

    def test_replace_end_without_divider(self):
        """REPLACE directly after SEARCH content is an error."""
        with pytest.raises(ParseError, match="REPLACE block end without preceding content"):
            parse_search_replace("------- SEARCH\na\n+++++++ REPLACE")

    def test_replace_end_alone(self):
        """A stray REPLACE marker is an error."""
        with pytest.raises(ParseError) as exc_info:
            parse_search_replace("+++++++ REPLACE")
        assert exc_info.value.line_number == 1

    @pytest.mark.parametrize(
        "diff",
        ["------- SEARCH\na", "------- SEARCH\na\n=======\nb", "------- SEARCH"],
    )
    def test_unclosed_block(self, diff):
        """A document that ends inside a block is incomplete."""
        with pytest.raises(ParseError, match="missing closing marker") as exc_info:
            parse_search_replace(diff)
        assert exc_info.value.line_number is None

    def test_errors_after_valid_block(self):
        """Line numbers count from the top of the document."""
        diff = block("a", "b") + "\n=======\n"
        with pytest.raises(ParseError) as exc_info:
            parse_search_replace(diff)
        assert exc_info.value.line_number == 6
