"""Shared fixtures for Smart Router tests."""

from collections.abc import Iterator
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from smart_router.config.models import RouterConfig, get_default_config
from smart_router.observability.logging import set_console_logging
from smart_router.persistence.database import Database
from smart_router.routing.engine import SmartRouter


class FakeClock:
    """Settable clock for day rollover and subscription expiry."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point SMART_ROUTER_HOME at a temporary directory."""
    home = tmp_path / "home"
    monkeypatch.setenv("SMART_ROUTER_HOME", str(home))
    set_console_logging(False)
    return home


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 3, 10, 12, 0, tzinfo=UTC))


@pytest.fixture
def config() -> RouterConfig:
    return get_default_config()


@pytest.fixture
def db(tmp_path: Path) -> Iterator[Database]:
    """A freshly initialized SQLite database."""
    database = Database(f"sqlite:///{tmp_path / 'router.db'}")
    database.initialize()
    yield database
    database.close()


@pytest.fixture
def router(config: RouterConfig, db: Database, clock: FakeClock) -> SmartRouter:
    return SmartRouter(config, db, clock=clock)
