"""Tests for logging setup."""

from __future__ import annotations

import logging

from stepwise.config.schema import LoggingConfig
from stepwise.logging import (
    TRACE,
    VERBOSE,
    get_logger,
    logger,
    parse_level,
    reset_logging,
    resolve_level,
    setup_logging,
)


class TestLevels:
    def test_parse_level_names(self) -> None:
        assert parse_level("debug") == logging.DEBUG
        assert parse_level("WARN") == logging.WARNING
        assert parse_level("verbose") == VERBOSE
        assert parse_level("trace") == TRACE

    def test_parse_level_unknown_uses_default(self) -> None:
        assert parse_level("loud") == logging.INFO
        assert parse_level(None, logging.ERROR) == logging.ERROR

    def test_verbose_wins_over_level(self) -> None:
        config = LoggingConfig(level="error", verbose=3)
        assert resolve_level(config) == VERBOSE

    def test_verbose_is_clamped(self) -> None:
        assert resolve_level(LoggingConfig(verbose=9)) == TRACE
        assert resolve_level(LoggingConfig(verbose=0)) == logging.ERROR

    def test_default_is_info(self) -> None:
        assert resolve_level(None) == logging.INFO
        assert resolve_level(LoggingConfig()) == logging.INFO


class TestSetup:
    def test_writes_to_configured_file(self, tmp_path) -> None:
        log_file = tmp_path / "stepwise.log"
        setup_logging(LoggingConfig(level="debug", file=str(log_file)))

        get_logger("engine").debug("step %d", 3)
        for handler in logger.handlers:
            handler.flush()

        text = log_file.read_text(encoding="utf-8")
        assert "debug stepwise.engine: step 3" in text

    def test_second_call_is_noop(self, tmp_path) -> None:
        setup_logging(LoggingConfig(file=str(tmp_path / "a.log")))
        count = len(logger.handlers)
        setup_logging(LoggingConfig(file=str(tmp_path / "b.log")))

        assert len(logger.handlers) == count
        assert not (tmp_path / "b.log").exists()

    def test_reset_removes_handlers(self, tmp_path) -> None:
        before = len(logger.handlers)
        setup_logging(LoggingConfig(file=str(tmp_path / "a.log")))
        reset_logging()

        assert len(logger.handlers) == before

    def test_env_var_used_without_config_file(self, tmp_path, monkeypatch) -> None:
        log_file = tmp_path / "env.log"
        monkeypatch.setenv("STEPWISE_LOG", str(log_file))
        setup_logging(LoggingConfig(level="info"))

        get_logger().info("hello")
        for handler in logger.handlers:
            handler.flush()

        assert "hello" in log_file.read_text(encoding="utf-8")
