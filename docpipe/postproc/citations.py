"""Removal of reference-style citations that cannot resolve outside their origin repo."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Iterable, List

# "[text][ref]" on a single line, neither bracket pair containing "]".
# Lone "[text]" spans, inline links and nested brackets are left untouched.
CITATION_PATTERN = re.compile(r"\[[^\]\n]*\]\[[^\]\n]*\]")


def strip_citations(text: str) -> str:
    """Delete every ``[text][ref]`` citation, keeping the surrounding text."""
    return CITATION_PATTERN.sub("", text)


def strip_citations_in_files(paths: Iterable[Path]) -> List[Path]:
    """Rewrite each file in place; return the files whose content changed."""
    changed: List[Path] = []
    for path in paths:
        original = path.read_bytes().decode("utf-8", errors="surrogateescape")
        cleaned = strip_citations(original)
        if cleaned != original:
            path.write_bytes(cleaned.encode("utf-8", errors="surrogateescape"))
            changed.append(path)
    return changed


__all__ = ["CITATION_PATTERN", "strip_citations", "strip_citations_in_files"]
