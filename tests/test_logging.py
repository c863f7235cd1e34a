"""Tests for logging setup."""

import logging
import logging.handlers

import pytest
from rich.logging import RichHandler

from blinkosync.core.config import AppConfig, GeneralConfig
from blinkosync.utils.logging import resolve_level, setup_logging


def _config(tmp_path, **general) -> AppConfig:
    return AppConfig(general=GeneralConfig(data_dir=tmp_path, **general))


class TestResolveLevel:
    def test_config_level(self, tmp_path):
        assert resolve_level(_config(tmp_path, log_level="WARNING")) == logging.WARNING

    def test_override_wins(self, tmp_path):
        assert resolve_level(_config(tmp_path), "error") == logging.ERROR

    def test_debug_wins_over_override(self, tmp_path):
        assert resolve_level(_config(tmp_path, debug=True), "error") == logging.DEBUG

    def test_unknown_override(self, tmp_path):
        with pytest.raises(ValueError):
            resolve_level(_config(tmp_path), "chatty")


class TestSetupLogging:
    def test_handlers_installed(self, tmp_path, restore_root_logger):
        path = setup_logging(_config(tmp_path))

        handlers = logging.getLogger().handlers
        assert len(handlers) == 2
        assert any(isinstance(h, RichHandler) for h in handlers)
        assert any(isinstance(h, logging.handlers.RotatingFileHandler) for h in handlers)
        assert path == tmp_path / "logs" / "blinkosync.log"
        assert logging.getLogger("httpx").level == logging.WARNING

    def test_second_call_replaces_handlers(self, tmp_path, restore_root_logger):
        setup_logging(_config(tmp_path))
        setup_logging(_config(tmp_path, debug=True))

        assert len(logging.getLogger().handlers) == 2
        assert logging.getLogger("httpx").level == logging.DEBUG

    def test_file_receives_debug_records(self, tmp_path, restore_root_logger):
        path = setup_logging(_config(tmp_path, log_level="ERROR"))

        logging.getLogger("blinkosync.test").debug("only in the file")
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert "only in the file" in path.read_text(encoding="utf-8")
