"""Registry endpoints and download-count extraction."""

from __future__ import annotations

import json
import socket
from typing import Callable, Dict, Mapping
from urllib.error import HTTPError, URLError
from urllib.parse import quote
from urllib.request import Request, urlopen

from ..errors import RegistryError, RegistryResponseError, TransientRegistryError
from ..models import Package

Transport = Callable[[str, float], bytes]

USER_AGENT = "docpipe-stats/0.1 (+https://github.com/langchain-ai/langgraphjs)"

NPM_ENDPOINT = "https://api.npmjs.org/downloads/point/last-month/{name}"
PYPI_ENDPOINT = "https://pypistats.org/api/packages/{name}/recent"


def _npm_url(name: str) -> str:
    # Scoped names keep their "@" and "/" for the downloads API.
    return NPM_ENDPOINT.format(name=quote(name, safe="@/"))


def _pypi_url(name: str) -> str:
    return PYPI_ENDPOINT.format(name=quote(name.lower(), safe=""))


def _npm_count(payload: Mapping[str, object]) -> object:
    return payload.get("downloads")


def _pypi_count(payload: Mapping[str, object]) -> object:
    data = payload.get("data")
    if not isinstance(data, dict):
        return None
    return data.get("last_month")


_URL_BUILDERS: Dict[str, Callable[[str], str]] = {
    "npm": _npm_url,
    "pypi": _pypi_url,
}

_COUNT_EXTRACTORS: Dict[str, Callable[[Mapping[str, object]], object]] = {
    "npm": _npm_count,
    "pypi": _pypi_count,
}

SUPPORTED_REGISTRIES = frozenset(_URL_BUILDERS)


def endpoint_for(package: Package) -> str:
    """Resolve the download-count endpoint for ``package``."""
    builder = _URL_BUILDERS.get(package.registry_id)
    if builder is None:
        raise RegistryError(
            f"No endpoint known for registry '{package.registry_id}'",
            package_key=package.key,
        )
    return builder(package.name)


def parse_download_count(package: Package, raw: bytes) -> int:
    """Extract a non-negative download count from a registry response body."""
    try:
        payload = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise RegistryResponseError(
            f"{package.key}: registry returned invalid JSON", package_key=package.key
        ) from exc
    if not isinstance(payload, dict):
        raise RegistryResponseError(
            f"{package.key}: unexpected registry payload", package_key=package.key
        )
    value = _COUNT_EXTRACTORS[package.registry_id](payload)
    if isinstance(value, bool) or not isinstance(value, int):
        raise RegistryResponseError(
            f"{package.key}: registry payload has no download count", package_key=package.key
        )
    if value < 0:
        raise RegistryResponseError(
            f"{package.key}: registry reported a negative count ({value})",
            package_key=package.key,
        )
    return value


def urllib_transport(url: str, timeout: float) -> bytes:
    """Perform a read-only GET, classifying failures as transient or permanent."""
    request = Request(url, headers={"Accept": "application/json", "User-Agent": USER_AGENT})
    try:
        with urlopen(request, timeout=timeout) as response:  # type: ignore[arg-type]
            return response.read()
    except HTTPError as exc:
        if exc.code == 429 or exc.code >= 500:
            raise TransientRegistryError(f"HTTP {exc.code} from {url}") from exc
        raise RegistryError(f"HTTP {exc.code} from {url}") from exc
    except (socket.timeout, TimeoutError) as exc:
        raise TransientRegistryError(f"Timed out after {timeout:g}s querying {url}") from exc
    except URLError as exc:
        raise TransientRegistryError(f"Connection to {url} failed: {exc.reason}") from exc


__all__ = [
    "SUPPORTED_REGISTRIES",
    "Transport",
    "endpoint_for",
    "parse_download_count",
    "urllib_transport",
]
