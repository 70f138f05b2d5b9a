from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

import pytest

from tests._fixtures.builders import CATALOG_YAML, PAGE_TEMPLATE, DocsBuilder


@pytest.fixture(autouse=True)
def _restore_logging() -> Iterator[None]:
    """CLI runs detach the docpipe logger; reattach it so caplog keeps working."""
    yield
    logger = logging.getLogger("docpipe")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def docs_builder(tmp_path: Path) -> DocsBuilder:
    """Provide a reusable docs root builder rooted at the pytest tmp_path."""
    return DocsBuilder(tmp_path)


@pytest.fixture
def catalog_path(tmp_path: Path) -> Path:
    path = tmp_path / "packages.yml"
    path.write_text(CATALOG_YAML, encoding="utf-8")
    return path


@pytest.fixture
def page_path(tmp_path: Path) -> Path:
    path = tmp_path / "prebuilt.md"
    path.write_text(PAGE_TEMPLATE, encoding="utf-8")
    return path
