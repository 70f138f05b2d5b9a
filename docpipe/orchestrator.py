"""Sequential build driver for the documentation pipeline."""

from __future__ import annotations

import shutil
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from .catalog import load_catalog
from .config import DocPipeConfig
from .corpus import flatten, load_tree, write_corpus
from .errors import SiteError, SyncError, SyncWarning, TemplateError
from .logging import get_logger
from .models import Package
from .postproc.markers import MarkerManager
from .prebuilt import PrebuiltPageGenerator
from .prebuilt.page import REGION_KEY
from .site import SiteBuilder
from .stats import StatsFetcher, StatsFetchResult
from .stats.registries import Transport
from .stores import StatsStore
from .sync import DocsSyncJob
from .sync.archive import Fetch


@dataclass
class JobResult:
    """Outcome of one pipeline job."""

    name: str
    ok: bool = True
    skipped: bool = False
    warnings: List[str] = field(default_factory=list)
    error: Optional[str] = None
    detail: Optional[str] = None


@dataclass
class RunReport:
    """Aggregates job outcomes so warnings surface even on success."""

    jobs: List[JobResult] = field(default_factory=list)

    def add(self, job: JobResult) -> JobResult:
        self.jobs.append(job)
        return job

    @property
    def ok(self) -> bool:
        return all(job.ok for job in self.jobs)

    @property
    def warnings(self) -> List[str]:
        return [f"{job.name}: {message}" for job in self.jobs for message in job.warnings]

    @property
    def failures(self) -> List[JobResult]:
        return [job for job in self.jobs if not job.ok]


class Orchestrator:
    """Coordinates the prebuilt, sync, corpus and site jobs for one docs root.

    Fatal configuration errors (catalog, template markers) propagate; per-job
    failures such as a snapshot download are recorded and siblings still run.
    """

    def __init__(
        self,
        config: DocPipeConfig,
        *,
        transport: Transport | None = None,
        fetch: Fetch | None = None,
        page_generator: PrebuiltPageGenerator | None = None,
        site_builder: SiteBuilder | None = None,
        sleep: Callable[[float], object] | None = None,
    ) -> None:
        self.config = config
        self.logger = get_logger("orchestrator")
        self.page_generator = page_generator or PrebuiltPageGenerator()
        self._transport = transport
        self._fetch = fetch
        self._sleep = sleep
        self.site_builder = site_builder or SiteBuilder(
            config.root,
            config.site.config_file,
            config.site.site_dir,
            prepare=config.site.prepare,
            watch=config.site.watch,
        )

    # ------------------------------------------------------------------
    # Jobs

    def run_stats(self) -> JobResult:
        """Refresh the stats store for every catalog package."""
        catalog = load_catalog(self.config.prebuilt.catalog)
        result = self._fetch_stats(catalog.list_packages())
        job = JobResult(name="stats", warnings=list(result.warnings))
        job.detail = f"{len(result.records)} packages, {len(result.stale)} stale, {len(result.missing)} missing"
        return job

    def run_prebuilt(self, *, language: str | None = None) -> JobResult:
        """Fetch stats and regenerate the prebuilt page region."""
        settings = self.config.prebuilt
        ecosystem = language or settings.language
        catalog = load_catalog(settings.catalog)
        # Validate the destination before any stats are fetched or persisted.
        self._check_template(settings.page)

        packages = catalog.for_ecosystem(ecosystem)
        if not packages:
            self.logger.warning("Catalog has no packages for ecosystem '%s'", ecosystem)
        result = self._fetch_stats(catalog.list_packages())
        changed = self.page_generator.write_page(result.records, ecosystem, settings.page)

        job = JobResult(name="prebuilt", warnings=list(result.warnings))
        job.detail = f"{settings.page} {'updated' if changed else 'unchanged'} ({len(packages)} packages)"
        return job

    def run_sync(self, *, strict: bool = False) -> JobResult:
        """Install the external docs subtree; failures are confined to this job."""
        settings = self.config.sync
        job = JobResult(name="sync")
        if not settings.enabled:
            job.skipped = True
            job.detail = "disabled in configuration"
            return job
        if self.config.offline:
            job.skipped = True
            job.warnings.append("offline mode; external docs were not synced")
            return job

        sync_job = DocsSyncJob(
            fetch=self._fetch,
            strip_components=settings.strip_components,
            text_suffixes=settings.text_suffixes,
            timeout=settings.timeout,
        )
        try:
            with warnings.catch_warnings():
                warnings.simplefilter("ignore", SyncWarning)
                outcome = sync_job.sync_external_docs(
                    settings.archive_url, settings.selectors, settings.destination
                )
        except SyncError as exc:
            self.logger.error("Docs sync failed: %s", exc)
            job.ok = False
            job.error = str(exc)
            return job

        job.skipped = outcome.skipped
        job.warnings.extend(outcome.warnings)
        if outcome.warnings and strict:
            job.ok = False
            job.error = "snapshot yielded no matching entries"
        job.detail = (
            f"{settings.destination} already populated"
            if outcome.skipped
            else f"{len(outcome.files)} files synced into {settings.destination}"
        )
        return job

    def run_llms_text(self, output: Path | None = None) -> JobResult:
        """Write the flattened corpus of the docs tree."""
        settings = self.config.corpus
        target = output or settings.output
        tree = load_tree(
            settings.docs_dir,
            suffixes=settings.suffixes,
            synced_dirs=[self.config.sync.destination],
            skip=[target],
        )
        text = flatten(tree, settings.exclude_paths)
        write_corpus(target, text)
        return JobResult(name="llms-text", detail=f"{target} written from {len(tree)} documents")

    def run_clean(self) -> JobResult:
        """Remove copied notebooks, the synced subtree and the built site."""
        docs_dir = self.config.corpus.docs_dir
        keep = [docs_dir / rel for rel in self.config.site.keep_notebooks_under]
        removed = 0
        if docs_dir.is_dir():
            for notebook in sorted(docs_dir.rglob("*.ipynb")):
                if any(_is_relative_to(notebook, kept) for kept in keep):
                    continue
                notebook.unlink()
                removed += 1
        for directory in (self.config.sync.destination, self.config.site.site_dir):
            if directory.exists():
                shutil.rmtree(directory)
                removed += 1
        self.logger.info("Removed %d generated artifacts", removed)
        return JobResult(name="clean", detail=f"{removed} artifacts removed")

    def run_site(self, *, strict: bool = True) -> JobResult:
        job = JobResult(name="site")
        try:
            self.site_builder.build(strict=strict)
        except SiteError as exc:
            self.logger.error("Site build failed: %s", exc)
            job.ok = False
            job.error = str(exc)
        return job

    def run_build(self, *, strict: bool = True) -> RunReport:
        """Prebuilt page, then docs sync, then the static site."""
        report = RunReport()
        report.add(self.run_prebuilt())
        report.add(self.run_sync(strict=False))
        report.add(self.run_site(strict=strict))
        return report

    def serve(self, *, clean: bool = False, open_browser: bool = False) -> None:
        if clean:
            self.run_clean()
        self.site_builder.serve(clean=clean, open_browser=open_browser)

    # ------------------------------------------------------------------
    # Helpers

    def _fetch_stats(self, packages: Sequence[Package]) -> StatsFetchResult:
        settings = self.config.stats
        store = StatsStore(settings.store)
        fetcher = StatsFetcher(
            store,
            transport=self._transport,
            max_workers=settings.concurrency,
            attempts=settings.attempts,
            timeout=settings.timeout,
            backoff_initial=settings.backoff_initial,
            backoff_max=settings.backoff_max,
            deadline=settings.deadline,
            sleep=self._sleep,
        )
        if self.config.offline:
            self.logger.info("Offline mode; using cached download stats")
            return fetcher.cached_stats(packages)
        return fetcher.fetch_stats(packages)

    @staticmethod
    def _check_template(page: Path) -> None:
        generator = MarkerManager()
        try:
            document = page.read_bytes().decode("utf-8")
        except FileNotFoundError as exc:
            raise TemplateError(f"Prebuilt page template not found: {page}") from exc
        if REGION_KEY not in generator.extract(document):
            raise TemplateError(
                f"{page}: markers {generator.BEGIN_FMT.format(key=REGION_KEY)} and "
                f"{generator.END_FMT.format(key=REGION_KEY)} not found"
            )


def _is_relative_to(path: Path, parent: Path) -> bool:
    try:
        path.relative_to(parent)
    except ValueError:
        return False
    return True


__all__ = ["JobResult", "Orchestrator", "RunReport"]
