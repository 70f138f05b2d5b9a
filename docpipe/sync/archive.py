"""Synchronise an externally authored docs subtree from a snapshot tarball."""

from __future__ import annotations

import io
import os
import shutil
import socket
import tarfile
import tempfile
import warnings
from dataclasses import dataclass, field
from fnmatch import fnmatchcase
from pathlib import Path, PurePosixPath
from typing import Callable, List, Optional, Sequence
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from ..errors import SyncError, SyncWarning
from ..fsutils import has_any_file
from ..logging import get_logger
from ..postproc.citations import strip_citations_in_files

Fetch = Callable[[str, float], bytes]

DEFAULT_STRIP_COMPONENTS = 4
DEFAULT_TEXT_SUFFIXES = (".md", ".markdown", ".txt")
USER_AGENT = "docpipe-sync/0.1"

logger = get_logger("sync")


@dataclass
class SyncOutcome:
    """What a sync run did to the destination directory."""

    destination: Path
    skipped: bool = False
    files: List[str] = field(default_factory=list)
    cleaned: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def urllib_fetch(url: str, timeout: float) -> bytes:
    """Download ``url`` in full; any failure is a :class:`SyncError`."""
    request = Request(url, headers={"User-Agent": USER_AGENT})
    try:
        with urlopen(request, timeout=timeout) as response:  # type: ignore[arg-type]
            return response.read()
    except HTTPError as exc:
        raise SyncError(f"Snapshot download failed with HTTP {exc.code}: {url}") from exc
    except (socket.timeout, TimeoutError) as exc:
        raise SyncError(f"Snapshot download timed out after {timeout:g}s: {url}") from exc
    except URLError as exc:
        raise SyncError(f"Snapshot download failed: {exc.reason}") from exc


class DocsSyncJob:
    """Fetches a snapshot archive once and installs a cleaned subtree of it."""

    def __init__(
        self,
        *,
        fetch: Fetch | None = None,
        strip_components: int = DEFAULT_STRIP_COMPONENTS,
        text_suffixes: Sequence[str] = DEFAULT_TEXT_SUFFIXES,
        timeout: float = 60.0,
    ) -> None:
        if strip_components < 0:
            raise ValueError("strip_components must be zero or positive")
        self.fetch = fetch or urllib_fetch
        self.strip_components = strip_components
        self.text_suffixes = tuple(suffix.lower() for suffix in text_suffixes)
        self.timeout = timeout

    def sync_external_docs(
        self,
        archive_url: str,
        selector: str | Sequence[str],
        destination_dir: Path,
    ) -> SyncOutcome:
        """Populate ``destination_dir`` from ``archive_url`` unless it already has files."""
        destination = Path(destination_dir)
        outcome = SyncOutcome(destination=destination)
        if has_any_file(destination):
            logger.info("Skipping docs sync; %s is already populated", destination)
            outcome.skipped = True
            return outcome

        patterns = [selector] if isinstance(selector, str) else list(selector)
        if not patterns:
            raise SyncError("At least one archive selector is required")

        logger.info("Fetching docs snapshot from %s", archive_url)
        try:
            raw = self.fetch(archive_url, self.timeout)
        except SyncError:
            raise
        except OSError as exc:
            raise SyncError(f"Snapshot download failed: {exc}") from exc

        destination.parent.mkdir(parents=True, exist_ok=True)
        staging = Path(
            tempfile.mkdtemp(prefix=f".{destination.name}.sync-", dir=destination.parent)
        )
        try:
            outcome.files = self._extract(raw, patterns, staging)
            if not outcome.files:
                message = (
                    f"Snapshot {archive_url} has no entries matching {', '.join(patterns)}; "
                    f"{destination} left unchanged"
                )
                warnings.warn(message, SyncWarning, stacklevel=2)
                logger.warning(message)
                outcome.warnings.append(message)
                return outcome

            text_files = [
                staging / rel for rel in outcome.files if rel.lower().endswith(self.text_suffixes)
            ]
            outcome.cleaned = [
                path.relative_to(staging).as_posix() for path in strip_citations_in_files(text_files)
            ]
            self._install(staging, destination)
        finally:
            shutil.rmtree(staging, ignore_errors=True)

        logger.info(
            "Synced %d files into %s (%d rewritten)",
            len(outcome.files),
            destination,
            len(outcome.cleaned),
        )
        return outcome

    # ------------------------------------------------------------------
    # Extraction helpers

    def _extract(self, raw: bytes, patterns: Sequence[str], staging: Path) -> List[str]:
        written: List[str] = []
        try:
            with tarfile.open(fileobj=io.BytesIO(raw), mode="r:*") as archive:
                for member in archive:
                    if not member.isfile():
                        continue
                    name = member.name.removeprefix("./")
                    if not any(fnmatchcase(name, pattern) for pattern in patterns):
                        continue
                    relative = self._strip(name)
                    if relative is None:
                        logger.debug("Skipping archive entry outside the subtree: %s", name)
                        continue
                    source = archive.extractfile(member)
                    if source is None:
                        continue
                    target = staging / relative
                    target.parent.mkdir(parents=True, exist_ok=True)
                    with source, target.open("wb") as handle:
                        shutil.copyfileobj(source, handle)
                    written.append(relative)
        except (tarfile.TarError, EOFError, OSError) as exc:
            raise SyncError(f"Snapshot is not a readable archive: {exc}") from exc
        return sorted(written)

    def _strip(self, name: str) -> Optional[str]:
        path = PurePosixPath(name)
        if path.is_absolute():
            return None
        parts = path.parts[self.strip_components:]
        if not parts or any(part in {"..", ""} for part in parts):
            return None
        return "/".join(parts)

    @staticmethod
    def _install(staging: Path, destination: Path) -> None:
        if destination.exists():
            # Only empty directories can remain here; has_any_file() was False.
            shutil.rmtree(destination)
        staging.chmod(0o755)
        os.replace(staging, destination)


__all__ = ["DocsSyncJob", "SyncOutcome", "urllib_fetch"]
