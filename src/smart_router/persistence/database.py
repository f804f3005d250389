"""Database connection management for Smart Router.

Wraps a synchronous SQLAlchemy Engine shared by the quota, decision, pattern
and performance stores. All operations run inside ``begin()`` transactions.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any

from sqlalchemy import Connection, Engine, Insert, Table, create_engine, event
from sqlalchemy.dialects import postgresql, sqlite

from smart_router.config.models import get_config_dir
from smart_router.core.errors import PersistenceError
from smart_router.observability.logging import get_logger
from smart_router.persistence.schema import metadata

log = get_logger(__name__)


class Database:
    """Owner of the engine and the schema.

    Usage:
        db = Database("sqlite:///router.db")
        db.initialize()

        with db.begin() as conn:
            conn.execute(...)

        db.close()
    """

    def __init__(self, database_url: str | None = None) -> None:
        """Initialize Database with a SQLAlchemy URL.

        Args:
            database_url: SQLAlchemy database URL. Defaults to
                data/smart-router.db under the Smart Router home
                (SMART_ROUTER_HOME, else ~/.smart-router).
        """
        if database_url is None:
            db_path = get_config_dir() / "data" / "smart-router.db"
            db_path.parent.mkdir(parents=True, exist_ok=True)
            database_url = f"sqlite:///{db_path}"
        self._database_url = database_url
        self._engine: Engine | None = None
        self._active: ContextVar[Connection | None] = ContextVar(
            f"smart_router_connection_{id(self)}", default=None
        )

    @property
    def url(self) -> str:
        return self._database_url

    @property
    def engine(self) -> Engine:
        """The live engine.

        Raises:
            PersistenceError: If initialize() has not been called.
        """
        if self._engine is None:
            raise PersistenceError(
                "Database not initialized. Call initialize() first.",
                operation="connect",
            )
        return self._engine

    def initialize(self) -> None:
        """Create the engine and all tables.

        This method is idempotent - calling it multiple times is safe.
        """
        try:
            if self._engine is None:
                connect_args = {}
                if self._database_url.startswith("sqlite"):
                    # Pooled connections move between request threads
                    connect_args["check_same_thread"] = False
                self._engine = create_engine(
                    self._database_url, echo=False, connect_args=connect_args
                )
                if self._engine.dialect.name == "sqlite":
                    event.listen(self._engine, "connect", _sqlite_on_connect)
            metadata.create_all(self._engine)
        except Exception as e:
            raise PersistenceError(
                f"Failed to initialize database: {e}",
                operation="initialize",
            ) from e

        log.debug("persistence.database.initialized", dialect=self._engine.dialect.name)

    @contextmanager
    def begin(self) -> Iterator[Connection]:
        """Open a transaction; commits on success, rolls back on error.

        A ``begin()`` nested inside another one on the same thread joins the
        outer transaction, so several store calls commit or roll back together.
        """
        active = self._active.get()
        if active is not None:
            yield active
            return
        with self.engine.begin() as conn:
            token = self._active.set(conn)
            try:
                yield conn
            finally:
                self._active.reset(token)

    def insert_ignore(self, table: Table) -> Insert:
        """Build an INSERT that leaves an existing row with the same key alone.

        Used to create default rows before an atomic UPDATE, so concurrent
        first accesses never race on the insert.
        """
        dialect = self.engine.dialect.name
        if dialect == "sqlite":
            return sqlite.insert(table).on_conflict_do_nothing()
        if dialect == "postgresql":
            return postgresql.insert(table).on_conflict_do_nothing()
        if dialect in ("mysql", "mariadb"):
            return table.insert().prefix_with("IGNORE")
        raise PersistenceError(
            f"insert_ignore is not supported for dialect '{dialect}'",
            operation="insert_ignore",
            table=table.name,
        )

    def close(self) -> None:
        """Dispose of the engine and its pooled connections."""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None


def _sqlite_on_connect(dbapi_connection: Any, _connection_record: Any) -> None:
    # Wait for a concurrent writer instead of failing with "database is locked"
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA busy_timeout = 30000")
    cursor.close()
