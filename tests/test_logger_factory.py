from __future__ import annotations

import logging
from pathlib import Path

from sujood.logging_utils import LoggerFactory


def _flush(logger: logging.Logger) -> None:
    for handler in logger.handlers:
        handler.flush()


def test_logger_factory_writes_to_rotating_file(tmp_path: Path) -> None:
    log_path = tmp_path / "logs" / "app.log"
    logger = LoggerFactory.create("test_logger_file", log_file=log_path)
    logger.info("hello log")

    _flush(logger)

    assert log_path.exists()
    assert "hello log" in log_path.read_text(encoding="utf-8")


def test_logger_factory_is_idempotent(tmp_path: Path) -> None:
    first = LoggerFactory.create("test_logger_once", log_file=tmp_path / "a.log")
    second = LoggerFactory.create("test_logger_once", log_file=tmp_path / "b.log")

    assert first is second
    assert len(second.handlers) == 2
    assert not (tmp_path / "b.log").exists()
