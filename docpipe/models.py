"""Core data models shared across docpipe components."""

from dataclasses import dataclass, field, replace
from typing import Dict, Optional

ORIGIN_LOCAL = "local"
ORIGIN_SYNCED = "synced"


@dataclass(frozen=True)
class Package:
    """Third-party extension package listed in the catalog."""

    name: str
    ecosystem: str = field(compare=False)
    registry_id: str
    repo_url: str = field(compare=False)
    description: str = field(default="", compare=False)

    @property
    def key(self) -> str:
        """Stable identity used by the stats store."""
        return f"{self.registry_id}:{self.name}"


@dataclass(frozen=True)
class StatsRecord:
    """Download signal for a single package from one pipeline run."""

    package_key: str
    download_count: Optional[int]
    as_of: str
    is_stale: bool = False

    def __post_init__(self) -> None:
        if self.download_count is not None and self.download_count < 0:
            raise ValueError(f"download_count must be non-negative for {self.package_key}")

    def as_stale(self) -> "StatsRecord":
        return replace(self, is_stale=True)


@dataclass(frozen=True)
class DocNode:
    """A single file of the documentation tree."""

    path: str
    content: bytes
    origin: str = ORIGIN_LOCAL


@dataclass(frozen=True)
class CorpusEntry:
    """Path and decoded text emitted by the corpus flattener."""

    path: str
    content: str


DocTree = Dict[str, DocNode]
