"""Tests for filename, Markdown and frontmatter helpers."""

import pytest

from blinkosync.utils.converters import (
    ensure_trailing_newline,
    extract_wiki_embeds,
    first_content_line,
    normalize_folder,
    sanitize_filename,
    sanitize_path_segment,
)
from blinkosync.utils.frontmatter import (
    attachments_from_frontmatter,
    identity_from_frontmatter,
    quote_tag,
    split_frontmatter,
)
from blinkosync.utils.time import instant_to_epoch_ms


class TestConverters:
    def test_sanitize_filename(self):
        assert sanitize_filename('a\\b/c:d*e?f"g<h>i|j') == "a-b-c-d-e-f-g-h-i-j"

    def test_sanitize_path_segment_collapses_whitespace(self):
        assert sanitize_path_segment("  My   big\tidea  ") == "My big idea"

    @pytest.mark.parametrize(
        "value,expected",
        [("/", ""), ("", ""), (None, ""), ("Blinko/Notes/", "Blinko/Notes"), ("a\\b", "a/b"), ("./x//y", "x/y")],
    )
    def test_normalize_folder(self, value, expected):
        assert normalize_folder(value) == expected

    def test_first_content_line(self):
        assert first_content_line("\n\n## Heading here\nbody") == "Heading here"
        assert first_content_line("  \n ") == ""

    def test_extract_wiki_embeds(self):
        content = "![[a.png]] text ![[folder/b.png|300]] ![[a.png]] [[not-embed.png]]"
        assert extract_wiki_embeds(content) == ["a.png", "b.png"]

    @pytest.mark.parametrize(
        "value,expected",
        [("", "\n"), ("  \n", "\n"), ("x", "x\n"), ("x\n", "x\n"), ("a\r\nb\r\n", "a\nb\n")],
    )
    def test_ensure_trailing_newline(self, value, expected):
        assert ensure_trailing_newline(value) == expected


class TestFrontmatter:
    def test_split(self):
        frontmatter, body = split_frontmatter("---\nid: 3\nsource: blinko\n---\n\nbody\n")
        assert frontmatter == {"id": 3, "source": "blinko"}
        assert body == "\nbody\n"

    def test_no_frontmatter(self):
        assert split_frontmatter("just text") == ({}, "just text")

    def test_invalid_yaml_ignored(self):
        frontmatter, body = split_frontmatter("---\nid: [unclosed\n---\nbody")
        assert frontmatter == {}
        assert body == "body"

    def test_bom_tolerated(self):
        frontmatter, _ = split_frontmatter("\ufeff---\nid: 1\n---\n")
        assert frontmatter == {"id": 1}

    def test_identity(self):
        identity = identity_from_frontmatter({"id": "12", "source": "Blinko"})
        assert identity.id == 12
        assert identity.is_blinko
        assert identity_from_frontmatter({"title": "x"}) is None
        assert identity_from_frontmatter({"blinkoId": 4}).id == 4

    @pytest.mark.parametrize(
        "data,expected",
        [
            ({"attachments": ["a.png", " b.pdf ", ""]}, ["a.png", "b.pdf"]),
            ({"attachments": "a.png, b.pdf"}, ["a.png", "b.pdf"]),
            ({"attachments": None}, []),
            ({}, []),
        ],
    )
    def test_attachments(self, data, expected):
        assert attachments_from_frontmatter(data) == expected

    def test_quote_tag(self):
        assert quote_tag("plain/path") == "plain/path"
        assert quote_tag("with space") == '"with space"'
        assert quote_tag("c#") == '"c#"'


class TestEpochMillis:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("2024-03-10T00:00:00.000Z", 1_710_028_800_000),
            ("2024-03-10T00:00:00.001Z", 1_710_028_800_001),
            ("2024-03-10T01:00:00.999+01:00", 1_710_028_800_999),
        ],
    )
    def test_exact_milliseconds(self, value, expected):
        assert instant_to_epoch_ms(value) == expected

    @pytest.mark.parametrize("value", [None, "", "not a date"])
    def test_unparsable(self, value):
        assert instant_to_epoch_ms(value) is None
