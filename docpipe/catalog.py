"""Declarative catalog of prebuilt third-party packages."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

import yaml

from .errors import CatalogError
from .logging import get_logger
from .models import Package
from .stats.registries import SUPPORTED_REGISTRIES

CATALOG_VERSION = 1
_REQUIRED_FIELDS = ("name", "ecosystem", "registry", "repo")

logger = get_logger("catalog")


class Catalog:
    """Read-only, ordered view over the packages declared for a run."""

    def __init__(self, packages: Iterable[Package]) -> None:
        self._packages: Tuple[Package, ...] = tuple(packages)
        self._by_key: Dict[str, Package] = {}
        for package in self._packages:
            if package.key in self._by_key:
                raise CatalogError(f"Duplicate package identity: {package.key}")
            self._by_key[package.key] = package

    def list_packages(self) -> Tuple[Package, ...]:
        """Return every package in declaration order."""
        return self._packages

    def for_ecosystem(self, ecosystem: str) -> Tuple[Package, ...]:
        wanted = ecosystem.strip().lower()
        return tuple(pkg for pkg in self._packages if pkg.ecosystem.lower() == wanted)

    def get(self, key: str) -> Optional[Package]:
        return self._by_key.get(key)

    def __contains__(self, package: object) -> bool:
        return isinstance(package, Package) and self._by_key.get(package.key) == package

    def __len__(self) -> int:
        return len(self._packages)


def load_catalog(path: Path) -> Catalog:
    """Parse the YAML catalog at ``path``.

    Any structural problem raises :class:`CatalogError`; downstream steps
    cannot run without a trustworthy catalog.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise CatalogError(f"Unable to read catalog {path}: {exc}") from exc
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise CatalogError(f"Failed to parse catalog {path.name}: {exc}") from exc

    if not isinstance(data, dict):
        raise CatalogError(f"Catalog {path.name} must contain a mapping at the root")
    version = data.get("version")
    if version != CATALOG_VERSION:
        raise CatalogError(
            f"Unsupported catalog version {version!r} in {path.name}; expected {CATALOG_VERSION}"
        )
    entries = data.get("packages")
    if not isinstance(entries, list):
        raise CatalogError(f"Catalog {path.name} must define a 'packages' list")

    packages: List[Package] = []
    seen: Dict[str, int] = {}
    for index, entry in enumerate(entries):
        package = _parse_entry(entry, index)
        if package.key in seen:
            raise CatalogError(
                f"Catalog entry #{index} duplicates entry #{seen[package.key]} ({package.key})"
            )
        seen[package.key] = index
        packages.append(package)

    logger.debug("Loaded %d packages from %s", len(packages), path)
    return Catalog(packages)


def _parse_entry(entry: Any, index: int) -> Package:
    if not isinstance(entry, dict):
        raise CatalogError(f"Catalog entry #{index} must be a mapping")
    values: Dict[str, str] = {}
    for field_name in _REQUIRED_FIELDS:
        raw = entry.get(field_name)
        if not isinstance(raw, str) or not raw.strip():
            raise CatalogError(f"Catalog entry #{index} is missing required field '{field_name}'")
        values[field_name] = raw.strip()

    registry = values["registry"].lower()
    if registry not in SUPPORTED_REGISTRIES:
        raise CatalogError(
            f"Catalog entry #{index} ({values['name']}) uses unknown registry '{values['registry']}'"
        )

    description = entry.get("description")
    return Package(
        name=values["name"],
        ecosystem=values["ecosystem"],
        registry_id=registry,
        repo_url=values["repo"],
        description=description.strip() if isinstance(description, str) else "",
    )


__all__ = ["CATALOG_VERSION", "Catalog", "CatalogError", "load_catalog"]
