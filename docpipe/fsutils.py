"""Filesystem helpers shared by the writers."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path


def atomic_write_text(path: Path, text: str) -> None:
    """Write ``text`` to ``path`` via a sibling temporary file and rename.

    Readers observe either the previous file or the complete new one.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    handle = tempfile.NamedTemporaryFile(
        "w",
        encoding="utf-8",
        newline="",
        dir=path.parent,
        prefix=f".{path.name}.",
        suffix=".tmp",
        delete=False,
    )
    tmp_path = Path(handle.name)
    try:
        with handle:
            handle.write(text)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise


def has_any_file(directory: Path) -> bool:
    """Return True when ``directory`` exists and contains at least one file."""
    if not directory.is_dir():
        return False
    for _root, _dirs, files in os.walk(directory):
        if files:
            return True
    return False


__all__ = ["atomic_write_text", "has_any_file"]
