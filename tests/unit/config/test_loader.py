"""Unit tests for smart_router.config.loader."""

from pathlib import Path

import pytest
import yaml

from smart_router.config.loader import (
    config_exists,
    create_default_config,
    ensure_config_dir,
    load_config,
    resolve_database_url,
)
from smart_router.config.models import RouterConfig, get_default_config
from smart_router.core.errors import ConfigError


class TestEnsureConfigDir:
    def test_creates_subdirectories(self, tmp_path: Path) -> None:
        config_dir = ensure_config_dir(tmp_path / "cfg")
        assert (config_dir / "data").is_dir()
        assert (config_dir / "logs").is_dir()


class TestCreateDefaultConfig:
    """create_default_config writes a loadable file."""

    def test_round_trips_defaults(self, tmp_path: Path) -> None:
        path = create_default_config(tmp_path)
        assert path == tmp_path / "config.yaml"
        assert load_config(path) == get_default_config()

    def test_refuses_to_overwrite(self, tmp_path: Path) -> None:
        create_default_config(tmp_path)
        with pytest.raises(ConfigError, match="already exists"):
            create_default_config(tmp_path)

    def test_overwrite_flag(self, tmp_path: Path) -> None:
        create_default_config(tmp_path)
        assert create_default_config(tmp_path, overwrite=True).exists()

    def test_uses_home_by_default(self, isolated_home: Path) -> None:
        create_default_config()
        assert config_exists()
        assert (isolated_home / "config.yaml").exists()


class TestLoadConfig:
    """load_config reports every failure as ConfigError."""

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="not found"):
            load_config(tmp_path / "missing.yaml")

    def test_malformed_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("scoring: [unclosed")
        with pytest.raises(ConfigError, match="parse"):
            load_config(path)

    def test_validation_failure_names_field(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text(
            yaml.safe_dump(
                {"scoring": {"weights": {"complexity_match": 0.9, "budget_constraint": 0.9}}}
            )
        )
        with pytest.raises(ConfigError, match="scoring.weights") as exc_info:
            load_config(path)
        assert exc_info.value.config_file == str(path)

    def test_empty_file_gives_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("")
        assert load_config(path) == RouterConfig()

    def test_partial_override(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({"quota": {"free_daily_limit": 25}}))
        assert load_config(path).quota.free_daily_limit == 25


class TestResolveDatabaseUrl:
    def test_relative_path_under_config_dir(self, tmp_path: Path) -> None:
        url = resolve_database_url(get_default_config(), tmp_path)
        assert url == f"sqlite:///{tmp_path / 'data' / 'smart-router.db'}"

    def test_explicit_url_wins(self, tmp_path: Path) -> None:
        config = RouterConfig.model_validate(
            {"persistence": {"database_url": "sqlite:///:memory:"}}
        )
        assert resolve_database_url(config, tmp_path) == "sqlite:///:memory:"
