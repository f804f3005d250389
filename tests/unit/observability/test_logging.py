"""Unit tests for smart_router.observability.logging module."""

import json
from pathlib import Path
from typing import Any

import pytest

from smart_router.observability.logging import (
    LoggingConfig,
    LogMode,
    bind_context,
    clear_context,
    configure_logging,
    get_current_config,
    get_logger,
    is_configured,
    reset_logging,
    set_console_logging,
    unbind_context,
)


@pytest.fixture(autouse=True)
def reset_logging_state() -> Any:
    """Reset logging state before and after each test."""
    reset_logging()
    set_console_logging(True)
    yield
    reset_logging()
    set_console_logging(False)


class TestLoggingConfig:
    def test_defaults(self) -> None:
        config = LoggingConfig()
        assert config.mode == LogMode.DEV
        assert config.log_level == "INFO"
        assert config.log_to_file is False

    def test_retention_days_validation(self) -> None:
        with pytest.raises(ValueError):
            LoggingConfig(retention_days=0)


class TestConfigureLogging:
    def test_get_logger_auto_configures(self) -> None:
        assert not is_configured()
        get_logger(__name__)
        assert is_configured()

    def test_env_selects_prod_mode(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SMART_ROUTER_LOG_MODE", "prod")
        configure_logging()
        config = get_current_config()
        assert config is not None
        assert config.mode == LogMode.PROD

    def test_unknown_env_mode_defaults_to_dev(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SMART_ROUTER_LOG_MODE", "loud")
        configure_logging()
        assert get_current_config().mode == LogMode.DEV  # type: ignore[union-attr]


class TestOutput:
    def test_prod_mode_renders_json(self, capsys: Any) -> None:
        configure_logging(LoggingConfig(mode=LogMode.PROD))
        get_logger("test").info("selector.model.selected", model="gpt-4o-mini")

        line = capsys.readouterr().err.strip().splitlines()[-1]
        entry = json.loads(line)
        assert entry["event"] == "selector.model.selected"
        assert entry["model"] == "gpt-4o-mini"
        assert entry["level"] == "info"
        assert "timestamp" in entry

    def test_bound_context_is_merged(self, capsys: Any) -> None:
        configure_logging(LoggingConfig(mode=LogMode.PROD))
        bind_context(wallet="0xabc", decision_id="d-1")
        get_logger("test").info("decision.log.recorded")
        unbind_context("decision_id")
        get_logger("test").info("quota.decision.incremented")
        clear_context()

        lines = [json.loads(x) for x in capsys.readouterr().err.strip().splitlines()]
        assert lines[-2]["wallet"] == "0xabc"
        assert lines[-2]["decision_id"] == "d-1"
        assert "decision_id" not in lines[-1]
        assert lines[-1]["wallet"] == "0xabc"

    def test_secrets_are_masked(self, capsys: Any) -> None:
        configure_logging(LoggingConfig(mode=LogMode.PROD))
        get_logger("test").info(
            "persistence.database.opened",
            db_password="hunter2",
            url="postgresql://router:hunter2@db/sr",
            wallet="0x52908400098527886E0F7030069857D2E4169EE7",
        )

        entry = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert entry["db_password"] == "<REDACTED>"
        assert entry["url"] == "postgresql://router:***@db/sr"
        assert entry["wallet"] == "0x52908400098527886E0F7030069857D2E4169EE7"

    def test_info_level_filters_debug(self, capsys: Any) -> None:
        configure_logging(LoggingConfig(mode=LogMode.PROD, log_level="INFO"))
        get_logger("test").debug("analyzer.task.analyzed")
        assert capsys.readouterr().err == ""

    def test_console_can_be_silenced(self, capsys: Any) -> None:
        configure_logging(LoggingConfig(mode=LogMode.PROD))
        set_console_logging(False)
        get_logger("test").info("router.request.routed")
        assert capsys.readouterr().err == ""

    def test_file_logging(self, tmp_path: Path) -> None:
        configure_logging(
            LoggingConfig(mode=LogMode.PROD, log_dir=tmp_path, log_to_file=True)
        )
        get_logger("test").info("pattern.store.created", pattern_id="p-1")

        content = (tmp_path / "smart-router.log").read_text()
        assert "pattern.store.created" in content

    def test_nested_secrets_are_masked(self, capsys: Any) -> None:
        configure_logging(LoggingConfig(mode=LogMode.PROD))
        key = "0x" + "4c0883a69102937d6231471b5dbb6204fe512961708279f3a2f5b1c4e5d9ab12"
        get_logger("test").info("quota.tier.rejected", details={"proof": key})

        entry = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert entry["details"]["proof"] == "0x...ab12"

    def test_file_logging_is_off_by_default(self, tmp_path: Path) -> None:
        configure_logging(LoggingConfig(mode=LogMode.PROD, log_dir=tmp_path))
        get_logger("test").info("router.request.routed")
        assert not (tmp_path / "smart-router.log").exists()
