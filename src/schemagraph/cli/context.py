"""Per-invocation state shared by every CLI command.

Two ways into a database exist. ``get_db`` opens the full ``SchemaGraph``
facade, which migrates on open. ``evolver`` opens a bare connection so the
admin commands can inspect or migrate the layout themselves.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field

from schemagraph import SchemaGraph
from schemagraph.cli.output import OutputFormatter
from schemagraph.core.connection import DatabaseConnection
from schemagraph.core.engine import DEFAULT_DATABASE_URL
from schemagraph.core.types import MigrationReport
from schemagraph.schema.migrations import SchemaEvolver


@dataclass
class CLIContext:
    """Global options plus the lazily opened database."""

    database_url: str
    echo: bool
    json_output: bool
    formatter: OutputFormatter = field(init=False, repr=False)
    _db: SchemaGraph | None = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        self.formatter = OutputFormatter(self.json_output)

    @classmethod
    def from_options(cls, database: str | None, echo: bool, json_output: bool) -> "CLIContext":
        """Build the context from ``--database`` (already merged with SCHEMAGRAPH_URL)."""
        return cls(
            database_url=database or DEFAULT_DATABASE_URL, echo=echo, json_output=json_output
        )

    def get_db(self) -> SchemaGraph:
        """Open the facade on first use; opening applies pending migration steps."""
        if self._db is None:
            self._db = SchemaGraph(self.database_url, echo=self.echo)
        return self._db

    @property
    def startup_report(self) -> MigrationReport:
        """What opening the database migrated."""
        return self.get_db().startup_report

    @contextmanager
    def evolver(self) -> Iterator[SchemaEvolver]:
        """Yield an evolver over a connection that has not been migrated.

        Raises:
            ConnectionError: If the URL is not SQLite or cannot be opened
        """
        with DatabaseConnection(self.database_url, echo=self.echo) as connection:
            yield SchemaEvolver(connection)

    def close(self) -> None:
        if self._db is not None:
            self._db.close()
            self._db = None
