import json
import logging
from logging.handlers import RotatingFileHandler

import pytest

from tabtorrent.utils.structured_logger import (
    StructuredLogger,
    configure_file_logging,
    create_session_logger,
)


@pytest.fixture
def clean_package_logger():
    logger = logging.getLogger("tabtorrent")
    before = list(logger.handlers)
    yield logger
    for handler in logger.handlers[:]:
        if handler not in before:
            logger.removeHandler(handler)
            handler.close()


def test_json_events_carry_run_context(tmp_path):
    with StructuredLogger("tabtorrent.test", log_dir=tmp_path) as logger:
        logger.info("session_started", session_id=1, uri="magnet:?xt=abc")

    (log_file,) = tmp_path.glob("tabtorrent_*.jsonl")
    entry = json.loads(log_file.read_text(encoding="utf-8").splitlines()[0])
    assert entry["event"] == "session_started"
    assert entry["level"] == "INFO"
    assert entry["session_id"] == 1
    assert "run_id" in entry


def test_session_logger_without_directory_writes_no_files(tmp_path, caplog):
    events = create_session_logger()

    with caplog.at_level(logging.INFO, logger="tabtorrent.sessions"):
        events.session_finished(3, "completed", 1.234)

    assert "[session_finished] session_id=3 state=completed" in caplog.text
    assert list(tmp_path.iterdir()) == []


def test_file_logging_is_installed_once(tmp_path, clean_package_logger):
    first = configure_file_logging(tmp_path, max_files=3, max_bytes=2048)
    second = configure_file_logging(tmp_path)

    assert first is second
    assert isinstance(first, RotatingFileHandler)
    assert first.backupCount == 3
    assert first.maxBytes == 2048
    assert (tmp_path / "tabtorrent.log").exists()
