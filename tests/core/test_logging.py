"""Tests for structured logging."""

import json
import logging
from pathlib import Path

import pytest
import structlog

from vaultgraph.config.models import LoggingConfig, LogOutputConfig
from vaultgraph.core.logging import configure_logging, get_log_file_path, get_logger
from vaultgraph.core.progress import suppress_console_logs


class TestLoggingConfiguration:
    """Logging configuration tests."""

    def setup_method(self) -> None:
        """Reset structlog and stdlib logging before each test."""
        structlog.reset_defaults()
        structlog.contextvars.clear_contextvars()
        logging.getLogger().handlers.clear()

    def test_given_json_format_when_log_then_valid_json_output(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """JSON format produces valid JSON with required fields."""
        # Given
        configure_logging(json_format=True, level="INFO")
        logger = get_logger("test")

        # When
        logger.info("pipeline_complete", processed=3)

        # Then
        captured = capsys.readouterr()
        lines = [line for line in captured.err.strip().split("\n") if line]
        if lines:
            data = json.loads(lines[-1])
            assert data["event"] == "pipeline_complete"
            assert data["processed"] == 3
            assert "timestamp" in data
            assert data["level"] == "info"

    def test_given_config_object_when_configure_then_takes_precedence(self, tmp_path: Path) -> None:
        """LoggingConfig object takes precedence over simple params."""
        # Given
        log_file = tmp_path / "test.log"
        config = LoggingConfig(
            level="DEBUG",
            outputs=[LogOutputConfig(format="json", destination=str(log_file))],
        )

        # When
        configure_logging(config=config, json_format=False, level="ERROR")
        get_logger().debug("debug msg")

        # Then
        assert "debug msg" in log_file.read_text()
        assert get_log_file_path() == log_file

    def test_given_multi_output_config_when_configure_then_respects_levels(
        self, tmp_path: Path
    ) -> None:
        """Each output filters by its own level."""
        # Given
        debug_file = tmp_path / "debug.log"
        info_file = tmp_path / "info.log"
        config = LoggingConfig(
            level="DEBUG",
            outputs=[
                LogOutputConfig(format="json", destination=str(info_file), level="INFO"),
                LogOutputConfig(format="json", destination=str(debug_file)),
            ],
        )

        # When
        configure_logging(config=config)
        logger = get_logger()
        logger.debug("debug only")
        logger.info("info msg")

        # Then
        info_content = info_file.read_text()
        assert "info msg" in info_content
        assert "debug only" not in info_content

        debug_content = debug_file.read_text()
        assert "debug only" in debug_content
        assert "info msg" in debug_content

    def test_given_live_display_when_log_then_file_still_receives(self, tmp_path: Path) -> None:
        """Console suppression never drops file output."""
        log_file = tmp_path / "run.log"
        config = LoggingConfig(
            level="INFO",
            outputs=[
                LogOutputConfig(format="console", destination="stderr"),
                LogOutputConfig(format="json", destination=str(log_file)),
            ],
        )
        configure_logging(config=config)

        with suppress_console_logs():
            get_logger().info("during_progress")

        assert "during_progress" in log_file.read_text()

    def test_noisy_libraries_raised_to_warning(self) -> None:
        """watchfiles and httpx only log warnings and above."""
        configure_logging(level="DEBUG")

        assert logging.getLogger("watchfiles.main").level == logging.WARNING
        assert logging.getLogger("httpx").level == logging.WARNING

    def test_given_state_dir_when_log_then_vault_file_tagged(self, tmp_path: Path) -> None:
        """The per-vault log is JSON, carries the vault root, and becomes the log pointer."""
        # Given
        vault = tmp_path / "vault"
        state_dir = vault / ".vaultgraph"
        config = LoggingConfig(level="ERROR", outputs=[LogOutputConfig(destination="stderr")])

        # When
        configure_logging(config=config, vault_root=vault, state_dir=state_dir)
        get_logger().info("pipeline_complete", processed=2)
        get_logger().debug("below_vault_level")

        # Then
        log_file = state_dir / "vaultgraph.log"
        lines = [json.loads(line) for line in log_file.read_text().splitlines()]
        assert [line["event"] for line in lines] == ["pipeline_complete"]
        assert lines[0]["vault"] == str(vault)
        assert lines[0]["processed"] == 2
        assert get_log_file_path() == log_file

    def test_given_vault_log_disabled_then_no_file(self, tmp_path: Path) -> None:
        state_dir = tmp_path / ".vaultgraph"
        config = LoggingConfig(vault_log=False)

        configure_logging(config=config, vault_root=tmp_path, state_dir=state_dir)
        get_logger().info("anything")

        assert not (state_dir / "vaultgraph.log").exists()
        assert get_log_file_path() is None
