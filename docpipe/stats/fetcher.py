"""Concurrent download-stats fetcher with cached fallback."""

from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Callable, Dict, List, Optional, Sequence

from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    stop_any,
    stop_when_event_set,
    wait_exponential,
    wait_random,
)

from ..errors import TransientRegistryError
from ..logging import get_logger
from ..models import Package, StatsRecord
from ..stores import StatsStore
from .registries import Transport, endpoint_for, parse_download_count, urllib_transport

DEFAULT_MAX_WORKERS = 5
DEFAULT_ATTEMPTS = 3
DEFAULT_TIMEOUT = 10.0

logger = get_logger("stats.fetcher")


@dataclass
class StatsFetchResult:
    """Records for every requested package plus the warnings raised on the way."""

    records: Dict[Package, StatsRecord]
    warnings: List[str] = field(default_factory=list)

    @property
    def stale(self) -> List[Package]:
        return [pkg for pkg, record in self.records.items() if record.is_stale]

    @property
    def missing(self) -> List[Package]:
        return [pkg for pkg, record in self.records.items() if record.download_count is None]


class StatsFetcher:
    """Fans registry queries out over a bounded pool and gathers one record per package."""

    def __init__(
        self,
        store: StatsStore,
        *,
        transport: Transport | None = None,
        max_workers: int = DEFAULT_MAX_WORKERS,
        attempts: int = DEFAULT_ATTEMPTS,
        timeout: float = DEFAULT_TIMEOUT,
        backoff_initial: float = 0.5,
        backoff_max: float = 8.0,
        deadline: Optional[float] = None,
        sleep: Callable[[float], object] | None = None,
    ) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        if attempts < 1:
            raise ValueError("attempts must be at least 1")
        self.store = store
        self.transport = transport or urllib_transport
        self.max_workers = max_workers
        self.attempts = attempts
        self.timeout = timeout
        self.backoff_initial = backoff_initial
        self.backoff_max = backoff_max
        self.deadline = deadline
        self._sleep = sleep

    def fetch_stats(self, packages: Sequence[Package]) -> StatsFetchResult:
        """Query every package, fall back on failures and rewrite the store."""
        unique = list(dict.fromkeys(packages))
        cancel = threading.Event()
        futures: Dict[Package, Future[int]] = {}
        not_done: set[Future[int]] = set()

        if unique:
            workers = min(self.max_workers, len(unique))
            executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="docpipe-stats")
            try:
                for package in unique:
                    futures[package] = executor.submit(self._query, package, cancel)
                _, not_done = wait(futures.values(), timeout=self.deadline)
            finally:
                if not_done:
                    logger.warning(
                        "Stats deadline of %ss expired with %d queries unfinished",
                        self.deadline,
                        len(not_done),
                    )
                    cancel.set()
                executor.shutdown(wait=not not_done, cancel_futures=True)

        as_of = _utc_now()
        result = StatsFetchResult(records={})
        for package in unique:
            future = futures[package]
            if future in not_done:
                reason = "deadline expired before the query finished"
            else:
                error = future.exception()
                if error is None:
                    count = future.result()
                    result.records[package] = StatsRecord(
                        package_key=package.key, download_count=count, as_of=as_of
                    )
                    logger.debug("%s: %d downloads", package.key, count)
                    continue
                reason = str(error) or error.__class__.__name__
            result.records[package] = self._fallback(package, reason, as_of, result.warnings)

        self.store.replace_all(result.records.values())
        self.store.persist()
        return result

    def cached_stats(self, packages: Sequence[Package]) -> StatsFetchResult:
        """Build records from the store alone; nothing is queried or persisted."""
        as_of = _utc_now()
        result = StatsFetchResult(records={})
        for package in dict.fromkeys(packages):
            result.records[package] = self._fallback(
                package, "offline mode", as_of, result.warnings
            )
        return result

    # ------------------------------------------------------------------
    # Query helpers

    def _query(self, package: Package, cancel: threading.Event) -> int:
        url = endpoint_for(package)
        retrying = Retrying(
            stop=stop_any(stop_after_attempt(self.attempts), stop_when_event_set(cancel)),
            wait=wait_exponential(multiplier=self.backoff_initial, max=self.backoff_max)
            + wait_random(0, self.backoff_initial),
            retry=retry_if_exception_type(TransientRegistryError),
            sleep=self._sleep or cancel.wait,
            before_sleep=_log_retry(package),
            reraise=True,
        )
        raw = retrying(self.transport, url, self.timeout)
        return parse_download_count(package, raw)

    def _fallback(
        self, package: Package, reason: str, as_of: str, warnings: List[str]
    ) -> StatsRecord:
        cached = self.store.get(package.key)
        if cached is not None and cached.download_count is not None:
            message = f"{package.key}: {reason}; reusing cached stats from {cached.as_of}"
            logger.warning(message)
            warnings.append(message)
            return cached.as_stale()
        message = f"{package.key}: {reason}; no cached stats available"
        logger.warning(message)
        warnings.append(message)
        return StatsRecord(package_key=package.key, download_count=None, as_of=as_of)


def _log_retry(package: Package) -> Callable[[RetryCallState], None]:
    def _before_sleep(state: RetryCallState) -> None:
        error = state.outcome.exception() if state.outcome else None
        delay = state.next_action.sleep if state.next_action else 0.0
        logger.debug(
            "Retrying %s after attempt %d (%s); sleeping %.2fs",
            package.key,
            state.attempt_number,
            error,
            delay,
        )

    return _before_sleep


def _utc_now() -> str:
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


__all__ = ["StatsFetchResult", "StatsFetcher"]
