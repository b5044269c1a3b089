"""Database connection management for SchemaGraph."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import Engine, create_engine, event, text
from sqlalchemy.orm import Session, sessionmaker

from schemagraph.exceptions import ConnectionError

if TYPE_CHECKING:
    from sqlalchemy.engine.url import URL

logger = logging.getLogger(__name__)


def _enable_sqlite_pragmas(dbapi_connection: Any, connection_record: Any) -> None:
    """Turn on foreign key enforcement for every new DBAPI connection.

    SQLite scopes ``PRAGMA foreign_keys`` to a single connection, so it has to
    run on connect rather than once per engine.
    """
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA foreign_keys = ON")
    finally:
        cursor.close()


class DatabaseConnection:
    """Owns the SQLite engine and session factory for one metadata database.

    The handle is created explicitly and passed to every component; nothing in
    SchemaGraph keeps a module-level connection. Call ``close()`` (or use the
    handle as a context manager) to tear it down.
    """

    SUPPORTED_DIALECTS = ("sqlite",)

    def __init__(self, url: str | URL, echo: bool = False) -> None:
        """Initialize database connection.

        Args:
            url: SQLite URL, e.g. "sqlite:///path/to/schema.db" or "sqlite:///:memory:"
            echo: Whether to echo SQL statements (for debugging)
        """
        self._url = str(url)
        self._echo = echo
        self._engine: Engine | None = None
        self._session_factory: sessionmaker[Session] | None = None

    @property
    def url(self) -> str:
        """Database URL this handle was opened with."""
        return self._url

    @property
    def engine(self) -> Engine:
        """Get or create the SQLAlchemy engine.

        Raises:
            ConnectionError: If the engine cannot be created or the dialect is unsupported
        """
        if self._engine is None:
            try:
                engine = create_engine(
                    self._url,
                    echo=self._echo,
                    connect_args={"check_same_thread": False},
                )
            except Exception as e:
                raise ConnectionError(f"Failed to create database engine: {e}") from e

            if engine.dialect.name not in self.SUPPORTED_DIALECTS:
                engine.dispose()
                raise ConnectionError(
                    f"Unsupported database dialect: {engine.dialect.name}. "
                    f"Supported: {', '.join(self.SUPPORTED_DIALECTS)}",
                    {"dialect": engine.dialect.name},
                )

            event.listen(engine, "connect", _enable_sqlite_pragmas)
            self._engine = engine
            logger.debug(f"Opened SQLite engine for {self._url}")
        return self._engine

    @property
    def session_factory(self) -> sessionmaker[Session]:
        """Get the session factory."""
        if self._session_factory is None:
            self._session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)
        return self._session_factory

    def get_session(self) -> Session:
        """Create a new database session."""
        return self.session_factory()

    def test_connection(self) -> bool:
        """Test if the database connection works.

        Returns:
            True if connection is successful

        Raises:
            ConnectionError: If connection test fails
        """
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except ConnectionError:
            raise
        except Exception as e:
            raise ConnectionError(f"Database connection test failed: {e}") from e

    def close(self) -> None:
        """Close the database connection and dispose of the engine."""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            self._session_factory = None
            logger.debug(f"Closed SQLite engine for {self._url}")

    def __enter__(self) -> DatabaseConnection:
        """Context manager entry."""
        self.test_connection()
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        """Context manager exit."""
        self.close()
