"""Tests for docpipe.orchestrator."""

from __future__ import annotations

import json
from pathlib import Path
from typing import List

import pytest

from docpipe.config import DocPipeConfig, default_config
from docpipe.errors import CatalogError, RegistryResponseError, TemplateError
from docpipe.models import StatsRecord
from docpipe.orchestrator import Orchestrator
from docpipe.site import SiteBuilder
from docpipe.stores import StatsStore
from tests._fixtures.builders import FakeRegistry, RecordingFetch, make_tarball

COUNTS = {"langgraph-cua": 10, "langgraph-swarm": 20, "langgraph-supervisor": 30}


class RecordingRunner:
    """Site runner double that records every command line."""

    def __init__(self) -> None:
        self.calls: List[List[str]] = []

    def __call__(self, args: List[str], cwd: Path) -> None:
        self.calls.append(list(args))


@pytest.fixture
def config(tmp_path: Path, catalog_path: Path, page_path: Path) -> DocPipeConfig:
    config = default_config(tmp_path)
    config.prebuilt.catalog = catalog_path
    config.prebuilt.page = page_path
    config.corpus.docs_dir.mkdir(parents=True)
    return config


def _orchestrator(
    config: DocPipeConfig,
    registry: FakeRegistry | None = None,
    fetch: RecordingFetch | None = None,
    runner: RecordingRunner | None = None,
) -> Orchestrator:
    site = SiteBuilder(
        config.root,
        config.site.config_file,
        config.site.site_dir,
        python="python3",
        runner=runner or RecordingRunner(),
    )
    return Orchestrator(
        config,
        transport=registry or FakeRegistry(COUNTS),
        fetch=fetch or RecordingFetch(make_tarball({"x/docs/docs/cloud/index.md": "cloud\n"})),
        site_builder=site,
        sleep=lambda _: None,
    )


def test_run_prebuilt_ranks_js_packages(config: DocPipeConfig) -> None:
    job = _orchestrator(config).run_prebuilt()

    text = config.prebuilt.page.read_text(encoding="utf-8")
    supervisor = text.index("[@langchain/langgraph-supervisor]")
    cua = text.index("[@langchain/langgraph-cua]")
    assert job.ok and job.warnings == []
    assert supervisor < cua
    assert "langgraph-swarm" not in text
    assert "| 30 |" in text
    assert "Hand-written footer." in text
    stored = json.loads(config.stats.store.read_text(encoding="utf-8"))["entries"]
    assert sorted(stored) == [
        "npm:@langchain/langgraph-cua",
        "npm:@langchain/langgraph-supervisor",
        "pypi:langgraph-swarm",
    ]


def test_run_prebuilt_for_another_language(config: DocPipeConfig) -> None:
    _orchestrator(config).run_prebuilt(language="python")

    text = config.prebuilt.page.read_text(encoding="utf-8")
    assert "[langgraph-swarm]" in text
    assert "langgraph-cua" not in text


def test_run_prebuilt_marks_stale_counts(config: DocPipeConfig) -> None:
    store = StatsStore(config.stats.store)
    store.replace_all([StatsRecord("npm:@langchain/langgraph-cua", 120, "2024-12-01T00:00:00Z")])
    store.persist()
    registry = FakeRegistry(
        {
            "langgraph-cua": RegistryResponseError("bad payload"),
            "langgraph-swarm": 20,
            "langgraph-supervisor": 30,
        }
    )

    job = _orchestrator(config, registry=registry).run_prebuilt()

    text = config.prebuilt.page.read_text(encoding="utf-8")
    assert job.ok
    assert len(job.warnings) == 1
    assert "| 120 (stale) |" in text
    assert text.index("langgraph-cua") < text.index("langgraph-supervisor")


def test_missing_markers_abort_before_fetching(config: DocPipeConfig) -> None:
    config.prebuilt.page.write_text("# No markers\n", encoding="utf-8")
    registry = FakeRegistry(COUNTS)

    with pytest.raises(TemplateError):
        _orchestrator(config, registry=registry).run_prebuilt()

    assert registry.calls == []
    assert not config.stats.store.exists()
    assert config.prebuilt.page.read_text(encoding="utf-8") == "# No markers\n"


def test_offline_prebuilt_uses_cached_stats_only(config: DocPipeConfig) -> None:
    config.offline = True
    registry = FakeRegistry(COUNTS)

    job = _orchestrator(config, registry=registry).run_prebuilt()

    assert registry.calls == []
    assert len(job.warnings) == 3
    assert "| n/a |" in config.prebuilt.page.read_text(encoding="utf-8")


def test_sync_failure_is_confined_to_its_job(config: DocPipeConfig) -> None:
    runner = RecordingRunner()
    fetch = RecordingFetch(ConnectionRefusedError("connection refused"))

    report = _orchestrator(config, fetch=fetch, runner=runner).run_build()

    assert [job.name for job in report.jobs] == ["prebuilt", "sync", "site"]
    assert not report.ok
    assert [job.name for job in report.failures] == ["sync"]
    assert "connection refused" in (report.failures[0].error or "")
    assert len(runner.calls) == 1
    assert "--strict" in runner.calls[0]
    assert "| 30 |" in config.prebuilt.page.read_text(encoding="utf-8")


def test_build_succeeds_and_populates_synced_docs(config: DocPipeConfig) -> None:
    report = _orchestrator(config).run_build(strict=False)

    assert report.ok
    assert (config.sync.destination / "index.md").read_text(encoding="utf-8") == "cloud\n"


def test_sync_without_matches_warns_unless_strict(config: DocPipeConfig) -> None:
    fetch = RecordingFetch(make_tarball({"x/README.md": "nothing\n"}))
    orchestrator = _orchestrator(config, fetch=fetch)

    lenient = orchestrator.run_sync()
    strict = orchestrator.run_sync(strict=True)

    assert lenient.ok and lenient.warnings
    assert not strict.ok
    assert strict.error == "snapshot yielded no matching entries"


def test_sync_is_skipped_offline(config: DocPipeConfig) -> None:
    config.offline = True
    fetch = RecordingFetch(b"")

    job = _orchestrator(config, fetch=fetch).run_sync()

    assert job.skipped and job.ok
    assert fetch.calls == []


def test_sync_can_be_disabled(config: DocPipeConfig) -> None:
    config.sync.enabled = False
    fetch = RecordingFetch(b"")

    job = _orchestrator(config, fetch=fetch).run_sync()

    assert job.skipped
    assert fetch.calls == []


def test_catalog_errors_are_fatal(config: DocPipeConfig) -> None:
    config.prebuilt.catalog.write_text("version: 1\npackages: [nope]\n", encoding="utf-8")

    with pytest.raises(CatalogError):
        _orchestrator(config).run_build()


def test_run_llms_text_writes_the_corpus(config: DocPipeConfig) -> None:
    docs = config.corpus.docs_dir
    (docs / "guide").mkdir()
    (docs / "guide" / "intro.md").write_text("Intro\n", encoding="utf-8")
    (docs / "drafts").mkdir()
    (docs / "drafts" / "wip.md").write_text("WIP\n", encoding="utf-8")
    config.corpus.output.write_text("stale corpus\n", encoding="utf-8")
    config.corpus.exclude_paths = ["drafts/"]

    _orchestrator(config).run_llms_text()

    assert config.corpus.output.read_text(encoding="utf-8") == "==> guide/intro.md <==\nIntro\n\n"


def test_run_clean_removes_generated_artifacts(config: DocPipeConfig) -> None:
    docs = config.corpus.docs_dir
    (docs / "how-tos").mkdir()
    (docs / "how-tos" / "copied.ipynb").write_text("{}", encoding="utf-8")
    kept = docs / "troubleshooting" / "errors"
    kept.mkdir(parents=True)
    (kept / "GRAPH_RECURSION_LIMIT.ipynb").write_text("{}", encoding="utf-8")
    config.sync.destination.mkdir(parents=True)
    (config.sync.destination / "index.md").write_text("x", encoding="utf-8")
    config.site.site_dir.mkdir()

    job = _orchestrator(config).run_clean()

    assert job.ok
    assert not (docs / "how-tos" / "copied.ipynb").exists()
    assert (kept / "GRAPH_RECURSION_LIMIT.ipynb").exists()
    assert not config.sync.destination.exists()
    assert not config.site.site_dir.exists()


def test_serve_clean_removes_artifacts_first(config: DocPipeConfig) -> None:
    runner = RecordingRunner()
    config.site.site_dir.mkdir()

    _orchestrator(config, runner=runner).serve(clean=True)

    assert not config.site.site_dir.exists()
    assert runner.calls[0][3] == "serve"
