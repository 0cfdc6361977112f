"""Tests for configuration loading and logging."""

from __future__ import annotations

import logging
from pathlib import Path

import orjson
import pytest

from notum.core.config import Settings, get_settings
from notum.core.logging import JsonFormatter, NotumHandler, configure_logging, get_logger


def test_yaml_and_env_overrides(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config = tmp_path / "config.yaml"
    config.write_text(
        "storage:\n"
        "  db_path: ~/notum-test.db\n"
        "  seed_default_templates: false\n"
        "review:\n"
        "  max_interval_days: 90\n"
        "worker:\n"
        "  timeout_seconds: 5\n"
        "logging:\n"
        "  level: DEBUG\n"
    )
    monkeypatch.delenv("NOTUM_DB_PATH")
    monkeypatch.setenv("NOTUM_CONFIG", str(config))
    monkeypatch.setenv("NOTUM_MAX_INTERVAL_DAYS", "30")

    settings = get_settings()

    assert settings.db_path == Path("~/notum-test.db").expanduser()
    assert settings.seed_default_templates is False
    assert settings.max_interval_days == 30
    assert settings.worker_timeout_seconds == 5
    assert settings.log_level == "DEBUG"


def test_defaults_without_config(tmp_path: Path) -> None:
    settings = Settings.from_yaml(tmp_path / "absent.yaml")
    assert settings.db_path == tmp_path / "notum.db"
    assert settings.initial_difficulty == 3
    assert settings.bus_timeout_seconds is None


def test_invalid_values_are_rejected() -> None:
    with pytest.raises(ValueError):
        Settings(initial_difficulty=7)
    with pytest.raises(ValueError):
        Settings(log_level="loud")
    assert Settings(log_level="warning").log_level == "WARNING"


def test_json_formatter_includes_context_fields() -> None:
    record = logging.LogRecord("notum.test", logging.INFO, __file__, 1, "hello %s", ("world",), None)
    record.ctx_report = {"tracks": 1}
    payload = orjson.loads(JsonFormatter().format(record))
    assert payload["message"] == "hello world"
    assert payload["level"] == "INFO"
    assert payload["logger"] == "notum.test"
    assert payload["context"] == {"report": {"tracks": 1}}
    assert payload["timestamp"].endswith("+00:00")


@pytest.fixture
def root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers = handlers
    root.setLevel(level)


def test_configure_logging_follows_settings(root_logger: logging.Logger) -> None:
    foreign = logging.NullHandler()
    root_logger.addHandler(foreign)

    configure_logging(Settings(log_level="debug", log_json=False))
    configure_logging(Settings(log_level="WARNING", log_json=True))

    ours = [h for h in root_logger.handlers if isinstance(h, NotumHandler)]
    assert len(ours) == 1
    assert isinstance(ours[0].formatter, JsonFormatter)
    assert foreign in root_logger.handlers
    assert root_logger.level == logging.WARNING
    assert logging.getLogger("aiosqlite").level == logging.WARNING


def test_get_logger_installs_defaults(root_logger: logging.Logger) -> None:
    root_logger.handlers = [h for h in root_logger.handlers if not isinstance(h, NotumHandler)]
    logger = get_logger("notum.sample")
    assert logger.name == "notum.sample"
    assert any(isinstance(h, NotumHandler) for h in root_logger.handlers)
    assert root_logger.level == logging.INFO
