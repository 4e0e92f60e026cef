"""Tests for the markdown content parser."""

import hashlib

import pytest

from vaultgraph.index._internal.parsing.markdown import (
    compute_content_hash,
    is_heading,
    parse_markdown,
)


class TestBlocks:
    """Heading-delimited block extraction."""

    def test_two_headings_yield_two_blocks(self) -> None:
        """Each heading starts a block that runs to the line before the next."""
        # Given
        content = "# A\nalpha one\nalpha two\n## B\nbeta one\nbeta two"

        # When
        parsed = parse_markdown(content)

        # Then
        assert [(b.key, b.line_start, b.line_end) for b in parsed.blocks] == [
            ("# A", 1, 3),
            ("## B", 4, 6),
        ]
        assert parsed.blocks[0].text == "# A\nalpha one\nalpha two"
        assert parsed.blocks[1].text == "## B\nbeta one\nbeta two"

    def test_no_headings_yields_single_document_block(self) -> None:
        """A document without headings is one block spanning every line."""
        parsed = parse_markdown("just some text\nover two lines")

        assert len(parsed.blocks) == 1
        block = parsed.blocks[0]
        assert block.key == "document"
        assert (block.line_start, block.line_end) == (1, 2)
        assert block.text == "just some text\nover two lines"

    def test_empty_input_yields_no_blocks(self) -> None:
        """Zero remaining lines means zero blocks."""
        parsed = parse_markdown("")

        assert parsed.blocks == ()
        assert parsed.full_text == ""

    def test_text_before_first_heading_is_not_a_block(self) -> None:
        """Blocks start at headings; a preamble belongs to no block."""
        parsed = parse_markdown("preamble\n# Title\nbody")

        assert [(b.key, b.line_start, b.line_end) for b in parsed.blocks] == [("# Title", 2, 3)]

    def test_indented_heading_key_is_trimmed(self) -> None:
        """Leading whitespace is ignored for detection and stripped from the key."""
        parsed = parse_markdown("   ## Spaced   \ntext")

        assert parsed.blocks[0].key == "## Spaced"

    def test_duplicate_headings_get_unique_keys(self) -> None:
        """Repeated heading text is suffixed from the second occurrence on."""
        parsed = parse_markdown("## Notes\na\n## Notes\nb\n## Notes\nc")

        assert [b.key for b in parsed.blocks] == ["## Notes", "## Notes [2]", "## Notes [3]"]

    def test_trailing_newline_extends_last_block(self) -> None:
        """A trailing newline adds an empty final line to the last block."""
        parsed = parse_markdown("# A\ntext\n")

        assert (parsed.blocks[0].line_start, parsed.blocks[0].line_end) == (1, 3)


class TestHeadingDetection:
    """Heading line rules."""

    @pytest.mark.parametrize(
        "line",
        ["# One", "###### Six", "  ## Indented", "#\tTabbed"],
    )
    def test_headings(self, line: str) -> None:
        assert is_heading(line)

    @pytest.mark.parametrize(
        "line",
        ["#NoSpace", "####### Seven", "text # not heading", "", "#"],
    )
    def test_not_headings(self, line: str) -> None:
        assert not is_heading(line)


class TestFrontmatter:
    """Leading metadata block handling."""

    def test_frontmatter_stripped_and_lines_offset(self) -> None:
        """Lines consumed by frontmatter are added back to block line numbers."""
        # Given
        content = "---\ntitle: x\ntags: [a]\n---\n# A\nbody"

        # When
        parsed = parse_markdown(content)

        # Then
        assert parsed.full_text == "# A\nbody"
        assert [(b.key, b.line_start, b.line_end) for b in parsed.blocks] == [("# A", 5, 6)]

    def test_unclosed_frontmatter_is_kept(self) -> None:
        """Without a closing delimiter the whole input is content."""
        content = "---\ntitle: x\n# A\nbody"

        parsed = parse_markdown(content)

        assert parsed.full_text == content
        assert parsed.blocks[0].line_start == 3

    def test_delimiter_must_open_the_document(self) -> None:
        """A --- line later in the document is not frontmatter."""
        content = "intro\n---\nmore\n---"

        assert parse_markdown(content).full_text == content

    def test_frontmatter_only_document_is_empty(self) -> None:
        """Nothing after the closing delimiter yields empty text and no blocks."""
        parsed = parse_markdown("---\ntitle: x\n---")

        assert parsed.full_text == ""
        assert parsed.blocks == ()


class TestContentHash:
    """Hash of canonical full text."""

    def test_hash_is_sha256_hex_of_full_text(self) -> None:
        parsed = parse_markdown("---\na: 1\n---\nbody")

        assert parsed.content_hash == hashlib.sha256(b"body").hexdigest()
        assert parsed.content_hash == compute_content_hash("body")

    def test_frontmatter_change_does_not_change_hash(self) -> None:
        """Only canonical text contributes to the hash."""
        a = parse_markdown("---\ntags: [a]\n---\nsame body")
        b = parse_markdown("---\ntags: [b]\n---\nsame body")

        assert a.content_hash == b.content_hash
