"""Flattens the documentation tree into a single llms corpus."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable, Iterator, Mapping

from ..fsutils import atomic_write_text
from ..logging import get_logger
from ..models import CorpusEntry, DocNode
from .tree import ExclusionRule, build_rules, is_excluded, normalize_path

HEADER_FMT = "==> {path} <=="

logger = get_logger("corpus")


def iter_entries(
    tree: Mapping[str, DocNode],
    exclusions: Iterable[str | ExclusionRule] = (),
) -> Iterator[CorpusEntry]:
    """Yield non-excluded entries in lexicographic order of their normalized path."""
    rules = build_rules(exclusions)
    working: Dict[str, DocNode] = {}
    for raw_path, node in tree.items():
        path = normalize_path(raw_path)
        if path in working:
            raise ValueError(f"Documentation tree has two entries for {path}")
        working[path] = node

    for path in sorted(working):
        if is_excluded(path, rules):
            continue
        content = working[path].content.decode("utf-8", errors="replace")
        yield CorpusEntry(path=path, content=content)


def render_entry(entry: CorpusEntry) -> str:
    body = entry.content if entry.content.endswith("\n") or not entry.content else f"{entry.content}\n"
    return f"{HEADER_FMT.format(path=entry.path)}\n{body}\n"


def flatten(
    tree: Mapping[str, DocNode],
    exclusions: Iterable[str | ExclusionRule] = (),
) -> str:
    """Concatenate the working set into one text artifact.

    Pure: identical inputs always give byte-identical output.
    """
    return "".join(render_entry(entry) for entry in iter_entries(tree, exclusions))


def write_corpus(path: Path, text: str) -> None:
    atomic_write_text(path, text)
    logger.info("Wrote corpus %s (%d bytes)", path, len(text.encode("utf-8")))


__all__ = ["HEADER_FMT", "flatten", "iter_entries", "render_entry", "write_corpus"]
