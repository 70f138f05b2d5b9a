"""Tests for docpipe.postproc.markers."""

from __future__ import annotations

import pytest

from docpipe.errors import TemplateError
from docpipe.postproc.markers import GENERATED, LITERAL, MarkerManager

DOCUMENT = """Intro
<!-- docpipe:begin:table -->
old
<!-- docpipe:end:table -->
Between
<!-- docpipe:begin:other -->
keep me
<!-- docpipe:end:other -->
Outro
"""


def test_wrap_adds_markers_and_single_trailing_newline() -> None:
    manager = MarkerManager()
    assert manager.wrap("table", "body\n\n") == (
        "<!-- docpipe:begin:table -->\nbody\n<!-- docpipe:end:table -->\n"
    )


def test_parse_then_serialize_is_identity() -> None:
    manager = MarkerManager()
    segments = manager.parse(DOCUMENT)

    assert [seg.kind for seg in segments] == [LITERAL, GENERATED, LITERAL, GENERATED, LITERAL]
    assert segments[1].key == "table"
    assert manager.serialize(segments) == DOCUMENT


def test_replace_only_touches_the_named_region() -> None:
    manager = MarkerManager()
    updated = manager.replace(DOCUMENT, "table", "new\nrows")

    assert updated == DOCUMENT.replace("old\n", "new\nrows\n")
    assert manager.extract(updated) == {"table": "new\nrows\n", "other": "keep me\n"}


def test_replace_is_idempotent() -> None:
    manager = MarkerManager()
    once = manager.replace(DOCUMENT, "table", "new")
    assert manager.replace(once, "table", "new") == once


def test_replace_preserves_crlf_line_endings() -> None:
    manager = MarkerManager()
    document = DOCUMENT.replace("\n", "\r\n")

    updated = manager.replace(document, "table", "a\nb")

    assert "<!-- docpipe:begin:table -->\r\na\r\nb\r\n<!-- docpipe:end:table -->\r\n" in updated
    assert "\r\nkeep me\r\n" in updated


def test_replace_with_empty_body_leaves_adjacent_markers() -> None:
    manager = MarkerManager()
    updated = manager.replace(DOCUMENT, "table", "")
    assert "<!-- docpipe:begin:table -->\n<!-- docpipe:end:table -->\n" in updated


def test_replace_missing_region_raises() -> None:
    with pytest.raises(TemplateError, match="docpipe:begin:missing"):
        MarkerManager().replace(DOCUMENT, "missing", "x")


def test_marker_text_inside_a_line_is_not_a_marker() -> None:
    document = "Use `<!-- docpipe:begin:table -->` to mark a region.\n"
    assert MarkerManager().extract(document) == {}


@pytest.mark.parametrize(
    "document, message",
    [
        ("<!-- docpipe:begin:a -->\n", "never closed"),
        ("<!-- docpipe:end:a -->\n", "no matching begin"),
        (
            "<!-- docpipe:begin:a -->\n<!-- docpipe:begin:b -->\n"
            "<!-- docpipe:end:b -->\n<!-- docpipe:end:a -->\n",
            "opens before 'a' is closed",
        ),
        ("<!-- docpipe:begin:a -->\n<!-- docpipe:end:b -->\n", "does not close"),
        (
            "<!-- docpipe:begin:a -->\n<!-- docpipe:end:a -->\n"
            "<!-- docpipe:begin:a -->\n<!-- docpipe:end:a -->\n",
            "more than once",
        ),
    ],
)
def test_malformed_markers_raise(document: str, message: str) -> None:
    with pytest.raises(TemplateError, match=message):
        MarkerManager().parse(document)
