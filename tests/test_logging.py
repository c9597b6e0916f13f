import json
import logging

import pytest

from subscription_sync.config import LoggingConfig
from subscription_sync.logging import ColoredFormatter, LoggerConfig, StructuredFormatter
from subscription_sync.logging.logger_config import LoggingManager


@pytest.fixture
def manager():
    root = logging.getLogger()
    level = root.level
    manager = LoggingManager()
    yield manager
    manager.close_handlers()
    root.setLevel(level)


def make_record(level=logging.INFO, msg="synced %s", args=("exercism/a",)):
    return logging.LogRecord(
        "subscription_sync.engine", level, __file__, 42, msg, args, None, func="update"
    )


@pytest.mark.parametrize("configured,verbose,expected", [
    ("WARNING", 0, "WARNING"),
    ("error", 0, "ERROR"),
    ("WARNING", 1, "INFO"),
    ("DEBUG", 1, "DEBUG"),
    ("WARNING", 2, "DEBUG"),
    ("INFO", 3, "DEBUG"),
])
def test_verbosity_raises_configured_level(configured, verbose, expected):
    config = LoggerConfig.from_app_config(LoggingConfig(level=configured), verbose)

    assert config.level == expected


def test_from_app_config_copies_file_settings():
    config = LoggerConfig.from_app_config(
        LoggingConfig(file="sync.log", max_file_size=2, backup_count=1, structured=True)
    )

    assert config.file_path == "sync.log"
    assert config.max_file_size == 2
    assert config.backup_count == 1
    assert config.enable_structured is True


def test_structured_formatter_emits_json_with_extra():
    record = make_record()
    record.repo = "exercism/a"

    entry = json.loads(StructuredFormatter().format(record))

    assert entry["level"] == "INFO"
    assert entry["logger"] == "subscription_sync.engine"
    assert entry["message"] == "synced exercism/a"
    assert entry["function"] == "update"
    assert entry["line"] == 42
    assert entry["extra"]["repo"] == "exercism/a"
    assert "msg" not in entry["extra"]


def test_structured_formatter_without_extra():
    record = make_record()
    record.repo = "exercism/a"

    entry = json.loads(StructuredFormatter(include_extra=False).format(record))

    assert "extra" not in entry


def test_colored_formatter_wraps_line_in_level_color():
    formatter = ColoredFormatter("%(levelname)s %(message)s")

    line = formatter.format(make_record(logging.WARNING, "rate limit low", ()))

    assert line.startswith(ColoredFormatter.COLORS["WARNING"])
    assert line.endswith(ColoredFormatter.COLORS["RESET"])
    assert f"{ColoredFormatter.COLORS['BOLD']}WARNING" in line
    assert "rate limit low" in line


def test_setup_runs_once(manager):
    root = logging.getLogger()
    before = len(root.handlers)

    manager.setup_logging(LoggerConfig(level="INFO"))
    manager.setup_logging(LoggerConfig(level="DEBUG"))

    assert len(root.handlers) == before + 1
    assert root.level == logging.INFO
    assert logging.getLogger("urllib3").level == logging.WARNING

    manager.close_handlers()
    assert len(root.handlers) == before


def test_structured_console_handler(manager):
    manager.setup_logging(LoggerConfig(enable_structured=True))

    assert isinstance(manager._handlers["console"].formatter, StructuredFormatter)


def test_file_handler_writes_log(manager, tmp_path):
    log_file = tmp_path / "logs" / "sync.log"
    manager.setup_logging(LoggerConfig(level="INFO", file_path=str(log_file)))

    logging.getLogger("subscription_sync.test").info("exported 3 repositories")
    manager.close_handlers()

    assert "exported 3 repositories" in log_file.read_text(encoding="utf-8")
