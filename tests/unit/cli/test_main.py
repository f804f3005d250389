"""Unit tests for the Smart Router CLI."""

from pathlib import Path
import re

import pytest
from typer.testing import CliRunner
import yaml

from smart_router import __version__
from smart_router.cli.main import app
from smart_router.config.loader import resolve_database_url
from smart_router.config.models import PersistenceConfig, QuotaConfig, get_default_config
from smart_router.persistence.database import Database
from smart_router.persistence.models import RoutingDecision
from smart_router.routing.engine import SmartRouter

runner = CliRunner()


def _clean(output: str) -> str:
    """Strip the ANSI codes Rich adds."""
    return re.sub(r"\x1b\[[0-9;]*m", "", output)


def _invoke(*args: str) -> tuple[int, str]:
    result = runner.invoke(app, list(args))
    return result.exit_code, _clean(result.output)


def _stored_decisions(wallet: str) -> list[RoutingDecision]:
    db = Database(resolve_database_url(get_default_config()))
    db.initialize()
    router = SmartRouter(get_default_config(), db)
    try:
        return router.recent_decisions(wallet)
    finally:
        router.close()


class TestMainApp:
    """Tests for the main Typer application."""

    def test_app_has_help(self) -> None:
        code, output = _invoke("--help")
        assert code == 0
        assert "Smart Router" in output

    def test_version_option(self) -> None:
        code, output = _invoke("--version")
        assert code == 0
        assert __version__ in output

    def test_no_args_shows_help(self) -> None:
        code, output = _invoke()
        assert code == 2
        assert "Smart Router" in output

    @pytest.mark.parametrize("group", ["quota", "patterns", "config"])
    def test_command_groups_registered(self, group: str) -> None:
        code, _ = _invoke(group, "--help")
        assert code == 0


class TestRouteCommands:
    def test_route_records_a_decision(self) -> None:
        code, output = _invoke("route", "What is JavaScript?", "--wallet", "0xabc")
        assert code == 0
        assert "Routing Decision" in output
        assert "gpt-4o-mini" in output
        assert "99 of 100" in output

        decisions = _stored_decisions("0xabc")
        assert len(decisions) == 1
        assert decisions[0].task_type == "query"

    def test_route_with_context_file(self, tmp_path: Path) -> None:
        context = tmp_path / "context.txt"
        context.write_text("Error at line 42")
        code, _ = _invoke(
            "route",
            "Fix this error: TypeError: Cannot read property of undefined",
            "--wallet",
            "0xabc",
            "--context-file",
            str(context),
        )
        assert code == 0
        decision = _stored_decisions("0xabc")[0]
        assert decision.task_type == "debugging"
        assert decision.context_length == len("Error at line 42")

    def test_route_exits_2_when_quota_is_exhausted(self, tmp_path: Path) -> None:
        config = get_default_config().model_copy(
            update={"quota": QuotaConfig(free_daily_limit=1)}
        )
        path = tmp_path / "limited.yaml"
        path.write_text(yaml.safe_dump(config.model_dump(mode="json")))

        assert _invoke("--config", str(path), "route", "one", "-w", "0xabc")[0] == 0
        code, output = _invoke("--config", str(path), "route", "two", "-w", "0xabc")
        assert code == 2
        assert "Quota exhausted" in output

    def test_missing_config_file(self, tmp_path: Path) -> None:
        code, output = _invoke(
            "--config", str(tmp_path / "missing.yaml"), "route", "hi", "-w", "0xabc"
        )
        assert code == 1
        assert "not found" in output

    def test_outcome_and_correction(self) -> None:
        _invoke("route", "What is JavaScript?", "--wallet", "0xabc")
        decision_id = _stored_decisions("0xabc")[0].id

        code, output = _invoke("outcome", decision_id, "--success", "--cost", "0.0004")
        assert code == 0
        assert "Outcome recorded" in output

        code, output = _invoke("outcome", decision_id, "--failure", "--quality", "0.2")
        assert code == 0
        assert "revision 2" in output

        stored = _stored_decisions("0xabc")[0]
        assert stored.outcome is not None
        assert not stored.outcome.was_successful
        assert stored.outcome.response_quality == 0.2

    def test_outcome_for_unknown_decision(self) -> None:
        code, output = _invoke("outcome", "missing")
        assert code == 1
        assert "Not found" in output

    def test_decision_show(self) -> None:
        _invoke("route", "What is JavaScript?", "--wallet", "0xabc")
        decision_id = _stored_decisions("0xabc")[0].id

        code, output = _invoke("decision", decision_id)
        assert code == 0
        assert "Alternatives" in output

    def test_stats(self) -> None:
        _invoke("route", "What is JavaScript?", "--wallet", "0xabc")
        code, output = _invoke("stats", "--wallet", "0xabc")
        assert code == 0
        assert "Routing Stats" in output
        assert "By Task Type" in output


class TestQuotaCommands:
    def test_show_new_wallet(self) -> None:
        code, output = _invoke("quota", "show", "0xabc")
        assert code == 0
        assert "free" in output
        assert "100" in output

    def test_set_tier_pro(self) -> None:
        code, output = _invoke("quota", "set-tier", "0xabc", "pro", "--days", "30")
        assert code == 0
        assert "is now pro" in output

        code, output = _invoke("quota", "show", "0xabc")
        assert code == 0
        assert "unlimited" in output

    def test_set_tier_rejects_both_expiry_options(self) -> None:
        code, _ = _invoke(
            "quota", "set-tier", "0xabc", "pro", "--days", "3", "--paid-until", "2030-01-01"
        )
        assert code == 1

    def test_set_tier_rejects_unknown_tier(self) -> None:
        code, _ = _invoke("quota", "set-tier", "0xabc", "enterprise")
        assert code == 2


class TestPatternCommands:
    def test_list_empty(self) -> None:
        code, output = _invoke("patterns", "list")
        assert code == 0
        assert "No patterns" in output

    def test_add_and_list(self) -> None:
        code, output = _invoke(
            "patterns", "add", "0xabc", "code", "gpt-4o", "--provider", "openai",
            "--min", "0.2", "--max", "0.6", "-k", "Python",
        )
        assert code == 0
        assert "created" in output

        code, output = _invoke("patterns", "list", "--wallet", "0xabc")
        assert code == 0
        assert "Patterns" in output

    def test_add_rejects_inverted_range(self) -> None:
        code, output = _invoke(
            "patterns", "add", "0xabc", "code", "gpt-4o", "--provider", "openai",
            "--min", "0.8", "--max", "0.2",
        )
        assert code == 1
        assert "Invalid pattern" in output


class TestConfigCommands:
    def test_init_writes_config(self, isolated_home: Path) -> None:
        code, output = _invoke("config", "init")
        assert code == 0
        assert "Configuration written" in output
        assert (isolated_home / "config.yaml").exists()

    def test_init_refuses_to_overwrite(self) -> None:
        _invoke("config", "init")
        assert _invoke("config", "init")[0] == 1
        assert _invoke("config", "init", "--force")[0] == 0

    def test_show(self) -> None:
        code, output = _invoke("config", "show")
        assert code == 0
        assert "Current Configuration" in output
        assert "Candidates" in output

    def test_show_section(self) -> None:
        code, output = _invoke("config", "show", "quota")
        assert code == 0
        assert "free_daily_limit: 100" in output

    def test_show_hides_database_password(self, tmp_path: Path) -> None:
        config = get_default_config().model_copy(
            update={
                "persistence": PersistenceConfig(
                    database_url="postgresql://router:hunter2@db:5432/sr"
                )
            }
        )
        path = tmp_path / "postgres.yaml"
        path.write_text(yaml.safe_dump(config.model_dump(mode="json")))

        code, output = _invoke("--config", str(path), "config", "show")
        assert code == 0
        assert "hunter2" not in output

        code, output = _invoke("--config", str(path), "config", "show", "persistence")
        assert code == 0
        assert "hunter2" not in output
        assert "postgresql://router:***@db:5432/sr" in output

    def test_show_unknown_section(self) -> None:
        code, output = _invoke("config", "show", "nope")
        assert code == 1
        assert "Unknown section" in output
