"""Tests for front matter parsing."""

from datetime import datetime

from motion.daemon.front_matter import parse, parse_tags


NOW = datetime(2025, 8, 11, 9, 30, 0)


def test_full_header():
    """All known fields are read and the body follows the block."""
    doc = "---\ntitle: T\ncategory: C\ndate: 2025-08-01 12:34:56\ntags: a, b\n---\nBODY"
    result = parse(doc)

    assert result.title == "T"
    assert result.category == "C"
    assert result.date == datetime(2025, 8, 1, 12, 34, 56)
    assert result.has_date
    assert result.tags == ["a", "b"]
    assert result.body == "BODY"


def test_no_header():
    """Plain text keeps all defaults and is returned whole."""
    result = parse("just text", now=NOW)

    assert result.title == ""
    assert result.category == "unknown"
    assert result.tags == []
    assert result.body == "just text"
    assert result.date == NOW
    assert not result.has_date


def test_malformed_date_is_not_fatal():
    doc = "---\ntitle: Walk\ndate: yesterday-ish\n---\nBody"
    result = parse(doc, now=NOW)

    assert result.title == "Walk"
    assert result.date == NOW
    assert not result.has_date


def test_first_occurrence_wins_and_unknown_lines_ignored():
    doc = "---\ntitle: First\nmood: calm\ntitle: Second\n---\nBody"
    result = parse(doc)

    assert result.title == "First"
    assert result.body == "Body"


def test_prefixes_are_case_sensitive():
    doc = "---\nTitle: Upper\ncategory: idea\n---\nBody"
    result = parse(doc)

    assert result.title == ""
    assert result.category == "idea"


def test_unclosed_block_is_not_a_header():
    doc = "---\ntitle: Dangling\nno closing line"
    result = parse(doc)

    assert result.title == ""
    assert result.body == doc


def test_header_must_open_the_document():
    doc = "Intro line\n---\ntitle: Late\n---\nBody"
    result = parse(doc)

    assert result.title == ""
    assert result.body == doc


def test_body_leading_blank_lines_stripped_internal_kept():
    doc = "---\ntitle: T\n---\n\n\nFirst paragraph\n\nSecond paragraph"
    result = parse(doc)

    assert result.body == "First paragraph\n\nSecond paragraph"


def test_quoted_values_are_unwrapped():
    doc = "---\ndate: '2025-08-01 08:00:00'\ntitle: \"Quoted: title\"\n---\nBody"
    result = parse(doc)

    assert result.has_date
    assert result.date == datetime(2025, 8, 1, 8, 0, 0)
    assert result.title == "Quoted: title"


def test_quoted_values_decode_escapes():
    doc = (
        "---\n"
        "title: 'Don''t forget: milk'\n"
        "category: \"say \\\"hi\\\"\\tnow\"\n"
        "tags: 'a' or 'b'\n"
        "---\n"
        "Body"
    )
    result = parse(doc)

    assert result.title == "Don't forget: milk"
    assert result.category == 'say "hi"\tnow'
    assert result.tags == ["a' or 'b"]


def test_tags_drop_empty_entries():
    assert parse_tags(" a, ,b ,, c ") == ["a", "b", "c"]
    assert parse_tags("") == []
