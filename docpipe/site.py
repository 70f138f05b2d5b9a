"""Adapter for the MkDocs static-site collaborator."""

from __future__ import annotations

import shlex
import subprocess
import sys
from pathlib import Path
from typing import Callable, List, Sequence

from .errors import SiteError
from .logging import get_logger

Runner = Callable[[List[str], Path], None]

logger = get_logger("site")


def _subprocess_runner(args: List[str], cwd: Path) -> None:
    try:
        subprocess.run(args, check=True, cwd=cwd)
    except FileNotFoundError as exc:  # pragma: no cover - environment dependent
        raise SiteError(f"Unable to locate executable '{args[0]}'.") from exc
    except subprocess.CalledProcessError as exc:
        raise SiteError(
            f"`{shlex.join(args)}` failed with exit code {exc.returncode}"
        ) from exc


class SiteBuilder:
    """Invokes `python -m mkdocs` and preparation commands from the docs root."""

    def __init__(
        self,
        root: Path,
        config_file: Path,
        site_dir: Path,
        *,
        prepare: Sequence[str] = (),
        watch: Sequence[str] = (),
        python: str | None = None,
        runner: Runner | None = None,
    ) -> None:
        self.root = root
        self.config_file = config_file
        self.site_dir = site_dir
        self.prepare_commands = list(prepare)
        self.watch = list(watch)
        self.python = python or sys.executable
        self._runner = runner or _subprocess_runner

    def prepare(self) -> None:
        """Run the configured preparation commands (e.g. notebook copying)."""
        for command in self.prepare_commands:
            args = shlex.split(command)
            if not args:
                continue
            logger.info("Running %s", command)
            self._runner(args, self.root)

    def build(self, *, strict: bool = True) -> None:
        self.prepare()
        args = [self.python, "-m", "mkdocs", "build", "--clean", "-f", str(self.config_file)]
        if strict:
            args.append("--strict")
        args.extend(["-d", str(self.site_dir)])
        logger.info("Building site into %s", self.site_dir)
        self._runner(args, self.root)

    def serve(self, *, clean: bool = False, open_browser: bool = False) -> None:
        """Serve the docs; ``clean`` rebuilds strictly instead of using dirty reloads."""
        self.prepare()
        args = [self.python, "-m", "mkdocs", "serve", "-f", str(self.config_file)]
        if clean:
            args.extend(["-c", "--strict"])
        else:
            args.append("--dirty")
        for path in self.watch:
            args.extend(["-w", path])
        if open_browser:
            args.append("-o")
        self._runner(args, self.root)


__all__ = ["SiteBuilder"]
