"""Tests for docpipe.logging."""

from __future__ import annotations

import logging
from pathlib import Path

from docpipe.logging import configure_logging, get_logger


def test_get_logger_nests_under_the_package_logger() -> None:
    assert get_logger("stats.fetcher").name == "docpipe.stats.fetcher"
    assert get_logger().name == "docpipe"


def test_configure_logging_writes_the_file_sink(tmp_path: Path) -> None:
    log_file = tmp_path / "logs" / "docpipe.log"

    logger = configure_logging(verbose=True, log_file=log_file)
    get_logger("sync").debug("skipping entry %s", "a.md")
    for handler in logger.handlers:
        handler.flush()

    assert logger.level == logging.DEBUG
    text = log_file.read_text(encoding="utf-8")
    assert "DEBUG docpipe.sync [MainThread]: skipping entry a.md" in text


def test_reconfiguring_replaces_handlers(tmp_path: Path) -> None:
    configure_logging(log_file=tmp_path / "first.log")
    logger = configure_logging()

    assert logger.level == logging.INFO
    assert len(logger.handlers) == 1
    assert not any(isinstance(h, logging.FileHandler) for h in logger.handlers)
