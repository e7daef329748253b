import logging
from logging.handlers import RotatingFileHandler

import pytest

from gplus import logging_setup
from gplus.infrastructure import log_utils

LOGGER_TAG = "TEST"


@pytest.fixture
def temp_logger(tmp_path):
    log_path = tmp_path / "gplus.log"
    logging_setup.configure_logging(log_path=log_path, force=True)
    adapter = logging_setup.get_logger(LOGGER_TAG)
    base_logger = logging.getLogger(logging_setup.LOGGER_NAME)
    try:
        yield adapter, base_logger, log_path
    finally:
        logging_setup.reset_logging()


def test_rotating_handler_defaults(temp_logger):
    adapter, base_logger, log_path = temp_logger
    rotating_handlers = [h for h in base_logger.handlers if isinstance(h, RotatingFileHandler)]
    assert rotating_handlers, "Expected at least one rotating handler"
    handler = rotating_handlers[0]
    assert handler.maxBytes == logging_setup.DEFAULT_MAX_BYTES
    assert handler.backupCount == logging_setup.DEFAULT_BACKUP_COUNT
    assert handler.baseFilename == str(log_path)


def test_rotating_handler_rollover(tmp_path):
    log_path = tmp_path / "gplus.log"
    base_logger = logging.getLogger(logging_setup.LOGGER_NAME)
    logging_setup.configure_logging(
        log_path=log_path,
        force=True,
        max_bytes=512,
        backup_count=2,
    )
    adapter = logging_setup.get_logger(LOGGER_TAG)
    try:
        payload = "x" * 256
        for _ in range(10):
            adapter.info(payload)
        for handler in base_logger.handlers:
            handler.flush()
        assert log_path.exists()
        assert log_path.with_name("gplus.log.1").exists(), "Expected first rotated log file to exist"
    finally:
        logging_setup.reset_logging()


def test_log_message_tags_by_module(temp_logger):
    _, base_logger, log_path = temp_logger

    log_utils.log_message("refreshing", "INFO", tag="TOKEN")
    for handler in base_logger.handlers:
        handler.flush()

    assert "[INFO] [TOKEN] refreshing" in log_path.read_text(encoding="utf-8")


def test_tag_lookup_falls_back_to_general():
    assert logging_setup.get_tag_for_module("gplus.application.authorization") == "AUTH"
    assert logging_setup.get_tag_for_module("something.else") == "GEN"


def test_mask_token_truncates():
    assert log_utils.mask_token("abcdefghijkl") == "abcdefgh..."
    assert log_utils.mask_token(None) == "EMPTY"
    assert log_utils.mask_token("abc") == "***"
