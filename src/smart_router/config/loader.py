"""Configuration loading and management for Smart Router.

Functions:
    load_config: Load configuration from <home>/config.yaml
    create_default_config: Write the default configuration file
    ensure_config_dir: Ensure the home directory and its subdirectories exist
    config_exists: Check whether a configuration file exists
    resolve_database_url: Build the SQLAlchemy URL for a configuration
"""

from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import ValidationError as PydanticValidationError
import yaml

# Load .env from the current directory and the default home directory
load_dotenv()
load_dotenv(Path.home() / ".smart-router" / ".env")

from smart_router.config.models import (  # noqa: E402
    RouterConfig,
    get_config_dir,
    get_default_config,
)
from smart_router.core.errors import ConfigError  # noqa: E402


def ensure_config_dir(config_dir: Path | None = None) -> Path:
    """Ensure the configuration directory exists.

    Creates the home directory with its data/ and logs/ subdirectories.

    Returns:
        Path to the configuration directory.
    """
    if config_dir is None:
        config_dir = get_config_dir()
    config_dir.mkdir(parents=True, exist_ok=True)
    (config_dir / "data").mkdir(exist_ok=True)
    (config_dir / "logs").mkdir(exist_ok=True)
    return config_dir


def _model_to_yaml_dict(model: RouterConfig) -> dict[str, Any]:
    """Convert the configuration to a YAML-serializable dict."""
    return model.model_dump(mode="json")


def create_default_config(
    config_dir: Path | None = None,
    *,
    overwrite: bool = False,
) -> Path:
    """Create the default config.yaml.

    Args:
        config_dir: Directory to create the file in. Defaults to the home dir.
        overwrite: If True, overwrite an existing file.

    Returns:
        Path of the written configuration file.

    Raises:
        ConfigError: If the file exists and overwrite=False.
    """
    config_dir = ensure_config_dir(config_dir)
    config_path = config_dir / "config.yaml"

    if config_path.exists() and not overwrite:
        raise ConfigError(
            f"Configuration file already exists: {config_path}",
            config_file=str(config_path),
        )

    with config_path.open("w") as f:
        yaml.dump(
            _model_to_yaml_dict(get_default_config()),
            f,
            default_flow_style=False,
            sort_keys=False,
            allow_unicode=True,
        )

    return config_path


def _format_validation_errors(error: PydanticValidationError) -> str:
    lines = []
    for item in error.errors():
        loc = ".".join(str(x) for x in item["loc"])
        lines.append(f"  - {loc or '<root>'}: {item['msg']}")
    return "\n".join(lines)


def load_config(config_path: Path | None = None) -> RouterConfig:
    """Load configuration from a YAML file.

    Args:
        config_path: Path to config file. Defaults to <home>/config.yaml.

    Returns:
        Validated RouterConfig instance.

    Raises:
        ConfigError: If the file doesn't exist, is malformed, or fails validation.
    """
    if config_path is None:
        config_path = get_config_dir() / "config.yaml"

    if not config_path.exists():
        raise ConfigError(
            f"Configuration file not found: {config_path}. "
            "Run `smart-router config init` to create default configuration.",
            config_file=str(config_path),
        )

    try:
        with config_path.open() as f:
            config_dict = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Failed to parse configuration file: {e}",
            config_file=str(config_path),
            details={"yaml_error": str(e)},
        ) from e

    if config_dict is None:
        config_dict = {}

    try:
        return RouterConfig.model_validate(config_dict)
    except PydanticValidationError as e:
        raise ConfigError(
            "Configuration validation failed:\n" + _format_validation_errors(e),
            config_file=str(config_path),
            details={"validation_errors": e.errors(include_url=False)},
        ) from e


def config_exists(config_dir: Path | None = None) -> bool:
    """Check if config.yaml exists in the configuration directory."""
    if config_dir is None:
        config_dir = get_config_dir()
    return (config_dir / "config.yaml").exists()


def resolve_database_url(config: RouterConfig, config_dir: Path | None = None) -> str:
    """Build the SQLAlchemy URL for the configured database.

    ``persistence.database_url`` wins; otherwise ``database_path`` is resolved
    against the configuration directory and opened with SQLite.
    """
    if config.persistence.database_url:
        return config.persistence.database_url

    if config_dir is None:
        config_dir = get_config_dir()
    db_path = Path(config.persistence.database_path).expanduser()
    if not db_path.is_absolute():
        db_path = config_dir / db_path
    db_path.parent.mkdir(parents=True, exist_ok=True)
    return f"sqlite:///{db_path}"
