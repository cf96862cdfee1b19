"""Tests for config-driven logging setup."""
from __future__ import annotations

import logging

import pytest

from imagemarkup.services.config_service import ConfigService
from imagemarkup.services.logging_service import (
    log_file_path,
    reset_logging,
    resolve_log_level,
    setup_logging,
)


@pytest.fixture()
def root_logger():
    """The root logger, restored to its previous level and handlers afterwards."""
    root = logging.getLogger()
    level = root.level
    reset_logging()
    yield root
    reset_logging()
    root.setLevel(level)


def _own_handlers(root, before):
    return [h for h in root.handlers if h not in before]


# ─────────────────────────────────────────────────────────────────────
# Level names
# ─────────────────────────────────────────────────────────────────────


class TestResolveLevel:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("DEBUG", logging.DEBUG),
            ("warning", logging.WARNING),
            (" error ", logging.ERROR),
            (logging.CRITICAL, logging.CRITICAL),
        ],
    )
    def test_known_levels(self, value, expected):
        assert resolve_log_level(value) == expected

    @pytest.mark.parametrize("value", ["verbose", "", None, True])
    def test_unknown_falls_back_to_info(self, value):
        assert resolve_log_level(value) == logging.INFO


# ─────────────────────────────────────────────────────────────────────
# Handler setup
# ─────────────────────────────────────────────────────────────────────


class TestSetup:
    def test_console_only(self, root_logger, tmp_path):
        before = list(root_logger.handlers)
        setup_logging("WARNING", log_to_file=False, log_dir=tmp_path)
        handlers = _own_handlers(root_logger, before)
        assert root_logger.level == logging.WARNING
        assert len(handlers) == 1
        assert not isinstance(handlers[0], logging.FileHandler)
        assert not any(tmp_path.iterdir())

    def test_file_output_in_configured_dir(self, root_logger, tmp_path):
        before = list(root_logger.handlers)
        log_dir = tmp_path / "logs"
        setup_logging("debug", log_to_file=True, log_dir=log_dir)
        file_handlers = [
            h for h in _own_handlers(root_logger, before) if isinstance(h, logging.FileHandler)
        ]
        assert len(file_handlers) == 1
        assert file_handlers[0].level == logging.DEBUG

        logging.getLogger("imagemarkup.test").info("written to file")
        file_handlers[0].flush()
        assert "written to file" in log_file_path(log_dir).read_text(encoding="utf-8")

    def test_second_call_is_ignored(self, root_logger, tmp_path):
        before = list(root_logger.handlers)
        setup_logging("INFO", log_to_file=False)
        setup_logging("DEBUG", log_to_file=True, log_dir=tmp_path)
        assert len(_own_handlers(root_logger, before)) == 1
        assert root_logger.level == logging.INFO

    def test_reset_removes_installed_handlers(self, root_logger):
        before = list(root_logger.handlers)
        setup_logging("INFO", log_to_file=False)
        reset_logging()
        assert root_logger.handlers == before

    def test_unwritable_dir_stays_on_console(self, root_logger, tmp_path):
        blocker = tmp_path / "not_a_dir"
        blocker.write_text("")
        before = list(root_logger.handlers)
        setup_logging("INFO", log_to_file=True, log_dir=blocker / "logs")
        handlers = _own_handlers(root_logger, before)
        assert len(handlers) == 1
        assert not isinstance(handlers[0], logging.FileHandler)

    def test_follows_config_values(self, root_logger, tmp_path):
        path = tmp_path / "config.json"
        config = ConfigService(path)
        config.set("logging", {"level": "ERROR", "to_file": True, "log_dir": str(tmp_path / "out")})
        before = list(root_logger.handlers)
        setup_logging(config.log_level, config.log_to_file, config.log_dir)
        assert root_logger.level == logging.ERROR
        assert any(isinstance(h, logging.FileHandler) for h in _own_handlers(root_logger, before))
        assert log_file_path(tmp_path / "out").exists()
