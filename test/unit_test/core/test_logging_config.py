from __future__ import annotations

import logging
from pathlib import Path

import pytest

from capability_router.core import logging_config
from capability_router.core.logging_config import (
    DETAILED_FORMAT,
    JSON_FORMAT,
    LOG_FILE_NAME,
    SIMPLE_FORMAT,
    get_logger,
    setup_logging,
)


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


def test_console_handler_uses_requested_level_and_format(restore_root_logger) -> None:
    setup_logging(log_level="warning", log_format="simple", enable_file=False)
    (handler,) = restore_root_logger.handlers
    assert handler.level == logging.WARNING
    assert handler.formatter._fmt == SIMPLE_FORMAT
    assert logging.getLogger("httpx").level == logging.WARNING
    assert logging.getLogger("capability_router.routing").level == logging.DEBUG


@pytest.mark.parametrize("name,expected", [("json", JSON_FORMAT), ("detailed", DETAILED_FORMAT), ("x", DETAILED_FORMAT)])
def test_format_selection(name: str, expected: str) -> None:
    assert logging_config._format_for(name) == expected


def test_file_logging(restore_root_logger, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(logging_config.settings, "log_file_dir", str(tmp_path / "logs"))
    setup_logging(log_level="INFO", log_format="detailed", enable_file=True)
    assert len(restore_root_logger.handlers) == 2
    assert (tmp_path / "logs").is_dir()
    file_handler = restore_root_logger.handlers[1]
    assert Path(file_handler.baseFilename).name == LOG_FILE_NAME


def test_get_logger() -> None:
    assert get_logger("capability_router.gql") is logging.getLogger("capability_router.gql")
