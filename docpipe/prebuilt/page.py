"""Renders the ranked prebuilt-packages table into a managed page region."""

from __future__ import annotations

from pathlib import Path
from typing import List, Mapping, Tuple

from jinja2 import Environment, StrictUndefined

from ..errors import TemplateError
from ..fsutils import atomic_write_text
from ..logging import get_logger
from ..models import Package, StatsRecord
from ..postproc.markers import MarkerManager

REGION_KEY = "prebuilt"
ABSENT_PLACEHOLDER = "n/a"
STALE_SUFFIX = " (stale)"

_TABLE_TEMPLATE = """\
| Name | Description | Monthly downloads |
| :--- | :--- | ---: |
{% for row in rows %}
| [{{ row.name | md_cell }}]({{ row.url }}) | {{ row.description | md_cell }} | {{ row.downloads }} |
{% endfor %}
{% if not rows %}

_No prebuilt packages are listed for {{ ecosystem }} yet._
{% endif %}
"""

logger = get_logger("prebuilt")


def _md_cell(value: str) -> str:
    return " ".join(str(value).split()).replace("|", "\\|")


def sort_key(item: Tuple[Package, StatsRecord]) -> Tuple[bool, int, str, str]:
    """Descending count, absent counts last, then case-insensitive name."""
    package, record = item
    count = record.download_count
    return (count is None, -(count or 0), package.name.casefold(), package.name)


def format_downloads(record: StatsRecord) -> str:
    text = ABSENT_PLACEHOLDER if record.download_count is None else f"{record.download_count:,}"
    if record.is_stale:
        text += STALE_SUFFIX
    return text


class PrebuiltPageGenerator:
    """Builds the prebuilt table and splices it between the page markers."""

    def __init__(self, marker_manager: MarkerManager | None = None) -> None:
        self.marker_manager = marker_manager or MarkerManager()
        self._env = Environment(
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
            undefined=StrictUndefined,
            autoescape=False,
        )
        self._env.filters["md_cell"] = _md_cell
        self._template = self._env.from_string(_TABLE_TEMPLATE)

    def ordered(
        self, stats: Mapping[Package, StatsRecord], target_ecosystem: str
    ) -> List[Tuple[Package, StatsRecord]]:
        wanted = target_ecosystem.strip().lower()
        selected = {
            package.key: (package, record)
            for package, record in stats.items()
            if package.ecosystem.lower() == wanted
        }
        return sorted(selected.values(), key=sort_key)

    def generate_page(self, stats: Mapping[Package, StatsRecord], target_ecosystem: str) -> str:
        """Return the markdown body for the generated region."""
        rows = [
            {
                "name": package.name,
                "url": package.repo_url,
                "description": package.description,
                "downloads": format_downloads(record),
            }
            for package, record in self.ordered(stats, target_ecosystem)
        ]
        return self._template.render(rows=rows, ecosystem=target_ecosystem)

    def apply(self, page_path: Path, body: str) -> bool:
        """Replace the managed region of ``page_path``; return True if the file changed."""
        try:
            original = page_path.read_bytes().decode("utf-8")
        except FileNotFoundError as exc:
            raise TemplateError(f"Prebuilt page template not found: {page_path}") from exc
        try:
            updated = self.marker_manager.replace(original, REGION_KEY, body)
        except TemplateError as exc:
            raise TemplateError(f"{page_path}: {exc}") from exc
        if updated == original:
            logger.info("Prebuilt page already up to date: %s", page_path)
            return False
        atomic_write_text(page_path, updated)
        logger.info("Prebuilt page updated: %s", page_path)
        return True

    def write_page(
        self,
        stats: Mapping[Package, StatsRecord],
        target_ecosystem: str,
        page_path: Path,
    ) -> bool:
        return self.apply(page_path, self.generate_page(stats, target_ecosystem))


__all__ = [
    "ABSENT_PLACEHOLDER",
    "PrebuiltPageGenerator",
    "REGION_KEY",
    "format_downloads",
    "sort_key",
]
