"""Tests for screengate.logging."""

from __future__ import annotations

import logging
from pathlib import Path

from screengate.logging import configure_logging, get_logger


def test_stage_loggers_share_the_screengate_hierarchy() -> None:
    assert get_logger("plan.builder").name == "screengate.plan.builder"
    assert get_logger().name == "screengate"


def test_configure_logging_replaces_handlers_and_writes_file(tmp_path: Path) -> None:
    log_file = tmp_path / "logs" / "run.log"

    configure_logging()
    logger = configure_logging(verbose=True, log_file=log_file)
    get_logger("remediation.controller").debug("cycle %d scored", 2)
    for handler in logger.handlers:
        handler.flush()

    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 2
    assert "screengate.remediation.controller: cycle 2 scored" in log_file.read_text(encoding="utf-8")

    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
