"""Persistent store of the last known download stats per package."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, Iterable, Mapping, Optional

from ..fsutils import atomic_write_text
from ..logging import get_logger
from ..models import StatsRecord

_STORE_VERSION = 1

logger = get_logger("stores.stats")


class StatsStore:
    """Keeps StatsRecords keyed by package identity across runs."""

    def __init__(self, path: Path | None) -> None:
        self._path = path
        self._entries: Dict[str, StatsRecord] = {}
        self._dirty = False
        if self._path is not None:
            self._load(self._path)

    @property
    def path(self) -> Path | None:
        return self._path

    def get(self, key: str) -> Optional[StatsRecord]:
        return self._entries.get(key)

    def keys(self) -> Iterable[str]:
        return self._entries.keys()

    def replace_all(self, records: Iterable[StatsRecord]) -> None:
        """Supersede the stored entries with exactly ``records``."""
        self._entries = {record.package_key: record for record in records}
        self._dirty = True

    def persist(self) -> None:
        if not self._dirty or self._path is None:
            return
        payload = {
            "version": _STORE_VERSION,
            "entries": {
                key: _record_to_dict(record) for key, record in sorted(self._entries.items())
            },
        }
        atomic_write_text(self._path, json.dumps(payload, indent=2, sort_keys=True) + "\n")
        self._dirty = False

    # ------------------------------------------------------------------
    # Internal helpers

    def _load(self, path: Path) -> None:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable stats store %s: %s", path, exc)
            return
        if not isinstance(data, dict) or data.get("version") != _STORE_VERSION:
            logger.warning("Ignoring stats store %s with unsupported layout", path)
            return
        entries = data.get("entries")
        if not isinstance(entries, dict):
            return
        valid: Dict[str, StatsRecord] = {}
        for key, raw in entries.items():
            record = _record_from_dict(key, raw)
            if record is not None:
                valid[key] = record
        self._entries = valid
        self._dirty = False


def _record_to_dict(record: StatsRecord) -> Dict[str, object]:
    return {
        "download_count": record.download_count,
        "as_of": record.as_of,
        "is_stale": record.is_stale,
    }


def _record_from_dict(key: object, payload: object) -> Optional[StatsRecord]:
    if not isinstance(key, str) or not isinstance(payload, Mapping):
        return None
    count = payload.get("download_count")
    as_of = payload.get("as_of")
    if count is not None and (isinstance(count, bool) or not isinstance(count, int) or count < 0):
        return None
    if not isinstance(as_of, str):
        return None
    return StatsRecord(
        package_key=key,
        download_count=count,
        as_of=as_of,
        is_stale=bool(payload.get("is_stale", False)),
    )


__all__ = ["StatsStore"]
