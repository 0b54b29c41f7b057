"""
Tests for observability — logging setup and per-logger levels.
"""

import logging
import threading
from pathlib import Path

from click.testing import CliRunner

from apexgraph.core.engine.executor import _run_parallel
from apexgraph.core.observability.logging_config import (
    apply_logger_levels,
    is_valid_level,
    logger_name,
    parse_level,
    setup_logging,
)
from apexgraph.main import cli


class TestParseLevel:
    def test_names(self):
        assert parse_level("DEBUG") == logging.DEBUG
        assert parse_level("info") == logging.INFO

    def test_fallbacks(self):
        assert parse_level(None) == logging.WARNING
        assert parse_level("") == logging.WARNING
        assert parse_level("LOUD") == logging.WARNING

    def test_is_valid_level(self):
        assert is_valid_level("debug")
        assert is_valid_level("ERROR")
        assert not is_valid_level("LOUD")
        assert not is_valid_level("")
        assert not is_valid_level(None)


class TestSetupLogging:
    def test_console_level(self, restore_logging):
        setup_logging(level="INFO")
        root = logging.getLogger()
        assert root.level == logging.INFO
        assert len(root.handlers) == 1

    def test_replaces_handlers(self, restore_logging):
        setup_logging(level="INFO")
        setup_logging(level="ERROR")
        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert root.level == logging.ERROR

    def test_file_handler(self, tmp_path: Path, restore_logging):
        log_file = tmp_path / "apexgraph.log"
        setup_logging(level="WARNING", log_file=str(log_file), log_file_level="DEBUG")

        root = logging.getLogger()
        assert len(root.handlers) == 2
        assert root.level == logging.DEBUG

        logging.getLogger("apexgraph.test").debug("detail for the file")
        for handler in root.handlers:
            handler.flush()
        assert "detail for the file" in log_file.read_text()

    def test_debug_format_has_thread(self, restore_logging):
        setup_logging(level="DEBUG")
        fmt = logging.getLogger().handlers[0].formatter._fmt
        assert "%(threadName)s" in fmt

    def test_quiets_third_party(self, restore_logging):
        setup_logging(level="INFO")
        assert logging.getLogger("concurrent.futures").level == logging.WARNING


class TestApplyLoggerLevels:
    def test_relative_names(self):
        assert logger_name("core.engine.executor") == "apexgraph.core.engine.executor"
        assert logger_name("apexgraph") == "apexgraph"
        assert logger_name("apexgraph.adapters.memory") == "apexgraph.adapters.memory"
        assert logger_name("apexgraphx") == "apexgraph.apexgraphx"

    def test_sets_levels(self, restore_logging):
        applied = apply_logger_levels({"core.engine.executor": "debug", "apexgraph.adapters.memory": "INFO"})

        assert applied == {
            "apexgraph.core.engine.executor": logging.DEBUG,
            "apexgraph.adapters.memory": logging.INFO,
        }
        assert logging.getLogger("apexgraph.core.engine.executor").level == logging.DEBUG
        assert logging.getLogger("apexgraph.adapters.memory").level == logging.INFO

    def test_unknown_level_skipped(self, restore_logging):
        applied = apply_logger_levels({"core.engine.executor": "LOUD"})
        assert applied == {}
        assert logging.getLogger("apexgraph.core.engine.executor").level == logging.NOTSET

    def test_lowers_console_handler(self, restore_logging):
        setup_logging(level="WARNING")
        apply_logger_levels({"core.engine.executor": "DEBUG"})

        root = logging.getLogger()
        assert root.level == logging.WARNING
        assert root.handlers[0].level == logging.DEBUG

    def test_handlers_untouched_when_nothing_applied(self, restore_logging):
        setup_logging(level="ERROR")
        apply_logger_levels({})
        assert logging.getLogger().handlers[0].level == logging.ERROR


class TestPoolThreadNames:
    def test_workers_named_after_phase(self):
        names = []
        lock = threading.Lock()

        def record(_item):
            with lock:
                names.append(threading.current_thread().name)

        _run_parallel(record, [1, 2, 3], 2, "collect")

        assert len(names) == 3
        assert all(name.startswith("apexgraph-collect") for name in names)


class TestCLILogging:
    def test_env_level(self, graph_yml: Path, monkeypatch, restore_logging):
        monkeypatch.setenv("APEXGRAPH_LOG_LEVEL", "INFO")
        runner = CliRunner()
        result = runner.invoke(cli, ["--config", str(graph_yml), "config", "check"])
        assert result.exit_code == 0
        assert logging.getLogger().level == logging.INFO

    def test_debug_flag_wins(self, graph_yml: Path, monkeypatch, restore_logging):
        monkeypatch.setenv("APEXGRAPH_LOG_LEVEL", "ERROR")
        runner = CliRunner()
        result = runner.invoke(cli, ["--debug", "--config", str(graph_yml), "config", "check"])
        assert result.exit_code == 0
        assert logging.getLogger().level == logging.DEBUG

    def test_log_file_env(self, graph_yml: Path, tmp_path: Path, monkeypatch, restore_logging):
        log_file = tmp_path / "run.log"
        monkeypatch.setenv("APEXGRAPH_LOG_FILE", str(log_file))
        monkeypatch.setenv("APEXGRAPH_LOG_FILE_LEVEL", "INFO")
        runner = CliRunner()
        result = runner.invoke(cli, ["-q", "--config", str(graph_yml), "run"])
        assert result.exit_code == 0
        for handler in logging.getLogger().handlers:
            handler.flush()
        assert "Loaded graph 'sample'" in log_file.read_text()
