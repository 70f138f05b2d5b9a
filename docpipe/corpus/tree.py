"""Documentation tree loading and path exclusion rules."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from fnmatch import fnmatchcase
from pathlib import Path, PurePosixPath
from typing import Iterable, List, Sequence

from ..logging import get_logger
from ..models import ORIGIN_LOCAL, ORIGIN_SYNCED, DocNode, DocTree

_EXCLUDED_DIRS = {
    ".git",
    "__pycache__",
    ".ipynb_checkpoints",
    ".cache",
}

logger = get_logger("corpus.tree")


@dataclass(frozen=True)
class ExclusionRule:
    """A gitignore-flavoured glob removing paths from the working set."""

    pattern: str
    directory_only: bool = False
    negate: bool = False

    @property
    def has_slash(self) -> bool:
        return "/" in self.pattern

    def matches(self, rel_path: str) -> bool:
        if not self.pattern:
            return False
        parts = rel_path.split("/")
        if self.has_slash:
            if not self.directory_only and fnmatchcase(rel_path, self.pattern):
                return True
            # A directory pattern also covers everything beneath it.
            return any(
                fnmatchcase("/".join(parts[:depth]), self.pattern) for depth in range(1, len(parts))
            )
        candidates = parts[:-1] if self.directory_only else parts
        return any(fnmatchcase(part, self.pattern) for part in candidates)


def build_rule(raw: str) -> ExclusionRule | None:
    pattern = raw.strip()
    if not pattern or pattern.startswith("#"):
        return None
    negate = pattern.startswith("!")
    if negate:
        pattern = pattern[1:]
    directory_only = pattern.endswith("/")
    if directory_only:
        pattern = pattern.rstrip("/")
    pattern = pattern.lstrip("/")
    if not pattern:
        return None
    return ExclusionRule(pattern=pattern, directory_only=directory_only, negate=negate)


def build_rules(patterns: Iterable[str | ExclusionRule]) -> List[ExclusionRule]:
    rules: List[ExclusionRule] = []
    for item in patterns:
        rule = item if isinstance(item, ExclusionRule) else build_rule(item)
        if rule is not None:
            rules.append(rule)
    return rules


def is_excluded(rel_path: str, rules: Sequence[ExclusionRule]) -> bool:
    """Last matching rule wins, so ``!pattern`` can re-include a path."""
    excluded = False
    for rule in rules:
        if rule.matches(rel_path):
            excluded = not rule.negate
    return excluded


def normalize_path(path: str) -> str:
    cleaned = path.replace("\\", "/")
    normalized = PurePosixPath(cleaned).as_posix()
    while normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized.lstrip("/")


def load_tree(
    docs_dir: Path,
    *,
    suffixes: Sequence[str] = (".md", ".txt", ".ipynb"),
    synced_dirs: Sequence[Path] = (),
    skip: Sequence[Path] = (),
) -> DocTree:
    """Read every matching file beneath ``docs_dir`` into a DocNode mapping."""
    root = docs_dir.resolve()
    if not root.is_dir():
        raise NotADirectoryError(f"Documentation directory not found: {docs_dir}")

    wanted = tuple(suffix.lower() for suffix in suffixes)
    synced = [_relative_to(root, path) for path in synced_dirs]
    skipped = {path.resolve() for path in skip}
    tree: DocTree = {}

    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(name for name in dirnames if name not in _EXCLUDED_DIRS)
        current = Path(dirpath)
        for filename in sorted(filenames):
            path = current / filename
            if not filename.lower().endswith(wanted) or path.resolve() in skipped:
                continue
            rel_path = path.relative_to(root).as_posix()
            raw = path.read_bytes()
            if filename.lower().endswith(".ipynb"):
                raw = render_notebook(raw, rel_path).encode("utf-8")
            origin = ORIGIN_SYNCED if _is_under(rel_path, synced) else ORIGIN_LOCAL
            tree[rel_path] = DocNode(path=rel_path, content=raw, origin=origin)

    logger.debug("Loaded %d documents from %s", len(tree), root)
    return tree


def render_notebook(raw: bytes, rel_path: str = "") -> str:
    """Flatten a notebook to markdown: markdown cells verbatim, code fenced, outputs dropped."""
    try:
        payload = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        logger.warning("Notebook %s is not valid JSON; including it verbatim", rel_path)
        return raw.decode("utf-8", errors="replace")

    cells = payload.get("cells") if isinstance(payload, dict) else None
    if not isinstance(cells, list):
        return ""
    language = "python"
    metadata = payload.get("metadata")
    if isinstance(metadata, dict):
        info = metadata.get("language_info")
        if isinstance(info, dict) and isinstance(info.get("name"), str):
            language = info["name"]

    blocks: List[str] = []
    for cell in cells:
        if not isinstance(cell, dict):
            continue
        source = cell.get("source", "")
        text = "".join(source) if isinstance(source, list) else str(source)
        if not text.strip():
            continue
        kind = cell.get("cell_type")
        if kind == "markdown":
            blocks.append(text.strip("\n"))
        elif kind == "code":
            blocks.append(f"```{language}\n{text.strip(chr(10))}\n```")
    return "\n\n".join(blocks) + ("\n" if blocks else "")


def _relative_to(root: Path, path: Path) -> str:
    try:
        return path.resolve().relative_to(root).as_posix()
    except ValueError:
        return ""


def _is_under(rel_path: str, prefixes: Sequence[str]) -> bool:
    return any(prefix and (rel_path == prefix or rel_path.startswith(f"{prefix}/")) for prefix in prefixes)


__all__ = [
    "ExclusionRule",
    "build_rule",
    "build_rules",
    "is_excluded",
    "load_tree",
    "normalize_path",
    "render_notebook",
]
