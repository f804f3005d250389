"""Process-wide configuration lifecycle.

The pricing table, candidate list, weights and bands are loaded once at
startup and read as an immutable snapshot. ``ConfigRegistry.reload`` is the
only way to replace the snapshot; callers that already hold the previous
snapshot finish their work with it.

Usage:
    registry = ConfigRegistry.from_file()      # load at startup
    config = registry.current                  # read anywhere
    registry.reload(Path("/etc/router.yaml"))  # controlled swap
"""

from pathlib import Path
import threading

from smart_router.config.loader import load_config
from smart_router.config.models import RouterConfig
from smart_router.observability.logging import get_logger

log = get_logger(__name__)


class ConfigRegistry:
    """Holder of the active RouterConfig snapshot."""

    def __init__(self, config: RouterConfig, *, source: Path | None = None) -> None:
        self._lock = threading.Lock()
        self._config = config
        self._source = source
        self._generation = 1

    @classmethod
    def from_file(cls, config_path: Path | None = None) -> "ConfigRegistry":
        """Load the configuration file and wrap it in a registry.

        Raises:
            ConfigError: If the file cannot be loaded.
        """
        config = load_config(config_path)
        log.info("config.registry.loaded", source=str(config_path) if config_path else "default")
        return cls(config, source=config_path)

    @property
    def current(self) -> RouterConfig:
        """The active configuration snapshot."""
        return self._config

    @property
    def generation(self) -> int:
        """Incremented on every successful reload."""
        return self._generation

    def reload(self, new: RouterConfig | Path | None = None) -> RouterConfig:
        """Replace the active snapshot.

        Args:
            new: A validated RouterConfig, a path to load, or None to re-read
                the file the registry was created from.

        Returns:
            The newly active configuration.

        Raises:
            ConfigError: If loading fails; the previous snapshot stays active.
        """
        if isinstance(new, RouterConfig):
            config = new
        else:
            path = new if new is not None else self._source
            config = load_config(path)
            self._source = path

        with self._lock:
            self._config = config
            self._generation += 1
            generation = self._generation

        log.info(
            "config.registry.reloaded",
            generation=generation,
            candidate_count=len(config.candidates),
            pricing_count=len(config.pricing),
        )
        return config
