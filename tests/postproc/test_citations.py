"""Tests for docpipe.postproc.citations."""

from __future__ import annotations

from pathlib import Path

import pytest

from docpipe.postproc.citations import strip_citations, strip_citations_in_files


def test_reference_citation_is_removed() -> None:
    assert strip_citations("See [docs][ref1] for more.") == "See  for more."


def test_empty_reference_is_removed() -> None:
    assert strip_citations("Read [the guide][] now.") == "Read  now."


@pytest.mark.parametrize(
    "text",
    [
        "A lone [bracket] stays.",
        "Inline [links](https://example.com) stay.",
        "[ref1]: https://example.com/definition",
        "- [ ] unchecked task",
        "Split [across\nlines][ref] stays.",
    ],
)
def test_non_citations_are_preserved(text: str) -> None:
    assert strip_citations(text) == text


def test_multiple_citations_on_one_line() -> None:
    assert strip_citations("[a][1] and [b][2].") == " and ."


def test_strip_citations_in_files_reports_changed_files(tmp_path: Path) -> None:
    dirty = tmp_path / "dirty.md"
    clean = tmp_path / "clean.md"
    dirty.write_bytes(b"Title\r\nSee [docs][ref] here.\r\n")
    clean.write_bytes(b"Nothing to strip.\n")

    changed = strip_citations_in_files([dirty, clean])

    assert changed == [dirty]
    assert dirty.read_bytes() == b"Title\r\nSee  here.\r\n"
    assert clean.read_bytes() == b"Nothing to strip.\n"
