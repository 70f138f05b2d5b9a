"""Configuration loading for docpipe (.docpipe.yml)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from .errors import ConfigError

CONFIG_FILENAME = ".docpipe.yml"

DEFAULT_ARCHIVE_URL = "https://api.github.com/repos/langchain-ai/langgraph/tarball/main"
DEFAULT_SELECTORS = ("*/docs/docs/cloud/*.md", "*/docs/docs/cloud/*/img/*")

ENV_DEADLINE = "DOCPIPE_STATS_DEADLINE"
ENV_OFFLINE = "DOCPIPE_OFFLINE"


@dataclass
class StatsConfig:
    """Download-stats fetcher settings."""

    store: Path
    concurrency: int = 5
    attempts: int = 3
    timeout: float = 10.0
    backoff_initial: float = 0.5
    backoff_max: float = 8.0
    deadline: Optional[float] = None


@dataclass
class PrebuiltConfig:
    """Where the catalog lives and which page receives the generated table."""

    catalog: Path
    page: Path
    language: str = "js"


@dataclass
class SyncConfig:
    """External documentation snapshot settings."""

    destination: Path
    enabled: bool = True
    archive_url: str = DEFAULT_ARCHIVE_URL
    selectors: List[str] = field(default_factory=lambda: list(DEFAULT_SELECTORS))
    strip_components: int = 4
    text_suffixes: List[str] = field(default_factory=lambda: [".md", ".markdown", ".txt"])
    timeout: float = 60.0


@dataclass
class CorpusConfig:
    """Flattened llms corpus settings."""

    docs_dir: Path
    output: Path
    exclude_paths: List[str] = field(default_factory=list)
    suffixes: List[str] = field(default_factory=lambda: [".md", ".txt", ".ipynb"])


@dataclass
class SiteConfig:
    """MkDocs invocation settings."""

    config_file: Path
    site_dir: Path
    watch: List[str] = field(default_factory=list)
    prepare: List[str] = field(default_factory=list)
    keep_notebooks_under: List[str] = field(default_factory=lambda: ["troubleshooting/errors"])


@dataclass
class DocPipeConfig:
    """Represents the high-level settings defined in .docpipe.yml."""

    root: Path
    stats: StatsConfig
    prebuilt: PrebuiltConfig
    sync: SyncConfig
    corpus: CorpusConfig
    site: SiteConfig
    offline: bool = False


def default_config(root: Path) -> DocPipeConfig:
    """Return settings matching the conventional docs layout under ``root``."""
    docs_dir = root / "docs"
    return DocPipeConfig(
        root=root,
        stats=StatsConfig(store=root / "stats.json"),
        prebuilt=PrebuiltConfig(
            catalog=root / "packages.yml",
            page=docs_dir / "agents" / "prebuilt.md",
        ),
        sync=SyncConfig(destination=docs_dir / "cloud"),
        corpus=CorpusConfig(docs_dir=docs_dir, output=docs_dir / "llms-full.txt"),
        site=SiteConfig(config_file=root / "mkdocs.yml", site_dir=root / "site"),
    )


def load_config(config_path: Path) -> DocPipeConfig:
    """Load configuration from disk, falling back to defaults when absent."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()
    config = default_config(root)

    if config_file.exists():
        data = _read_config(config_file)
        if not isinstance(data, dict):
            raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")
        _apply_stats(config, _as_dict(data.get("stats")))
        _apply_prebuilt(config, _as_dict(data.get("prebuilt")))
        _apply_sync(config, _as_dict(data.get("sync")))
        _apply_corpus(config, _as_dict(data.get("corpus")))
        _apply_site(config, _as_dict(data.get("site")))
        offline = _as_bool(data.get("offline"))
        if offline is not None:
            config.offline = offline

    _apply_environment(config)
    return config


def _apply_stats(config: DocPipeConfig, data: Dict[str, Any]) -> None:
    if not data:
        return
    stats = config.stats
    store = _as_str(data.get("store"))
    if store:
        stats.store = config.root / store
    stats.concurrency = _positive(_as_int(data.get("concurrency")), stats.concurrency, "stats.concurrency")
    stats.attempts = _positive(_as_int(data.get("attempts")), stats.attempts, "stats.attempts")
    stats.timeout = _as_float(data.get("timeout")) or stats.timeout
    stats.backoff_initial = _as_float(data.get("backoff_initial")) or stats.backoff_initial
    stats.backoff_max = _as_float(data.get("backoff_max")) or stats.backoff_max
    deadline = _as_float(data.get("deadline"))
    if deadline is not None:
        stats.deadline = deadline if deadline > 0 else None


def _apply_prebuilt(config: DocPipeConfig, data: Dict[str, Any]) -> None:
    if not data:
        return
    prebuilt = config.prebuilt
    catalog = _as_str(data.get("catalog"))
    if catalog:
        prebuilt.catalog = config.root / catalog
    page = _as_str(data.get("page"))
    if page:
        prebuilt.page = config.root / page
    language = _as_str(data.get("language"))
    if language:
        prebuilt.language = language


def _apply_sync(config: DocPipeConfig, data: Dict[str, Any]) -> None:
    if not data:
        return
    sync = config.sync
    enabled = _as_bool(data.get("enabled"))
    if enabled is not None:
        sync.enabled = enabled
    destination = _as_str(data.get("destination"))
    if destination:
        sync.destination = config.root / destination
    archive_url = _as_str(data.get("archive_url"))
    if archive_url:
        sync.archive_url = archive_url
    if "selectors" in data:
        sync.selectors = _as_str_list(data.get("selectors"))
    strip = _as_int(data.get("strip_components"))
    if strip is not None:
        if strip < 0:
            raise ConfigError("sync.strip_components must be zero or positive")
        sync.strip_components = strip
    if "text_suffixes" in data:
        sync.text_suffixes = _as_str_list(data.get("text_suffixes"))
    sync.timeout = _as_float(data.get("timeout")) or sync.timeout


def _apply_corpus(config: DocPipeConfig, data: Dict[str, Any]) -> None:
    if not data:
        return
    corpus = config.corpus
    docs_dir = _as_str(data.get("docs_dir"))
    if docs_dir:
        corpus.docs_dir = config.root / docs_dir
    output = _as_str(data.get("output"))
    if output:
        corpus.output = config.root / output
    corpus.exclude_paths = _as_str_list(data.get("exclude_paths"))
    if "suffixes" in data:
        corpus.suffixes = _as_str_list(data.get("suffixes"))


def _apply_site(config: DocPipeConfig, data: Dict[str, Any]) -> None:
    if not data:
        return
    site = config.site
    config_file = _as_str(data.get("config_file"))
    if config_file:
        site.config_file = config.root / config_file
    site_dir = _as_str(data.get("site_dir"))
    if site_dir:
        site.site_dir = config.root / site_dir
    site.watch = _as_str_list(data.get("watch"))
    site.prepare = _as_str_list(data.get("prepare"))
    if "keep_notebooks_under" in data:
        site.keep_notebooks_under = _as_str_list(data.get("keep_notebooks_under"))


def _apply_environment(config: DocPipeConfig) -> None:
    deadline = _as_float(os.getenv(ENV_DEADLINE))
    if deadline is not None:
        config.stats.deadline = deadline if deadline > 0 else None
    offline = _as_bool(os.getenv(ENV_OFFLINE))
    if offline is not None:
        config.offline = offline


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Any:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded if loaded is not None else {}


def _positive(value: Optional[int], default: int, name: str) -> int:
    if value is None:
        return default
    if value < 1:
        raise ConfigError(f"{name} must be at least 1")
    return value


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float)) and not isinstance(value, bool) else None


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    return []


__all__ = [
    "CONFIG_FILENAME",
    "ConfigError",
    "CorpusConfig",
    "DocPipeConfig",
    "PrebuiltConfig",
    "SiteConfig",
    "StatsConfig",
    "SyncConfig",
    "default_config",
    "load_config",
]
