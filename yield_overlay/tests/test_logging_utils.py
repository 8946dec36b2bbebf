import logging
from logging.handlers import RotatingFileHandler

from yield_overlay.logging_utils import (
    DEV_MODE_ENV_VAR,
    LOG_DIR_ENV_VAR,
    LOG_FILE_NAME,
    build_rotating_file_handler,
    configure_logging,
    is_dev_mode,
    resolve_log_level,
    resolve_logs_dir,
)


def test_dev_mode_tokens(monkeypatch):
    assert is_dev_mode("1")
    assert is_dev_mode(" Yes ")
    assert not is_dev_mode("0")
    monkeypatch.setenv(DEV_MODE_ENV_VAR, "true")
    assert is_dev_mode()
    monkeypatch.delenv(DEV_MODE_ENV_VAR)
    assert not is_dev_mode()


def test_log_level():
    assert resolve_log_level(True) == logging.DEBUG
    assert resolve_log_level(False) == logging.INFO


def test_logs_dir_env_override(tmp_path, monkeypatch):
    target = tmp_path / "custom-logs"
    monkeypatch.setenv(LOG_DIR_ENV_VAR, str(target))
    assert resolve_logs_dir() == target
    assert target.is_dir()


def test_rotating_handler_retention(tmp_path):
    handler = build_rotating_file_handler(tmp_path, "x.log", retention=3)
    try:
        assert isinstance(handler, RotatingFileHandler)
        assert handler.backupCount == 2
    finally:
        handler.close()


def test_configure_logging_writes_file_and_replaces_handlers(tmp_path):
    logger = configure_logging(debug_enabled=True, log_dir=tmp_path, stream=False)
    configure_logging(debug_enabled=True, log_dir=tmp_path, stream=False)

    assert logger.name == "YieldOverlay"
    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 1
    logging.getLogger("YieldOverlay.Test").debug("hello from the tests")
    for handler in logger.handlers:
        handler.flush()
    assert "hello from the tests" in (tmp_path / LOG_FILE_NAME).read_text(encoding="utf-8")
