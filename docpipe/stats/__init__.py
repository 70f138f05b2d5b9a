"""Download statistics for catalog packages."""

from .fetcher import StatsFetcher, StatsFetchResult
from .registries import SUPPORTED_REGISTRIES, endpoint_for, parse_download_count

__all__ = [
    "SUPPORTED_REGISTRIES",
    "StatsFetchResult",
    "StatsFetcher",
    "endpoint_for",
    "parse_download_count",
]
