"""Schema evolution for the SchemaGraph metadata tables.

Databases created by older releases lack the key columns on ``fields`` and the
``entity_relationships`` table. At startup the evolver compares the physical
layout (read through SQLAlchemy's inspector and ``sqlite_master``) with the
required one and applies one additive step per gap.

Steps only ever add: SQLite cannot drop or retype a column in place, and
existing metadata must survive an upgrade. Every step checks its own gap, runs
in its own transaction, and is safe to re-run. A failing step is logged and
the remaining steps still run; the caller gets a ``MigrationReport`` and
decides whether to continue startup. Applied steps are recorded in
``schema_migrations`` for auditing, but the gap is always re-derived from the
live layout.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from functools import partial
from typing import TYPE_CHECKING

from sqlalchemy import func, inspect, select, text
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from schemagraph.core.types import MigrationFailure, MigrationReport, MigrationStatus
from schemagraph.exceptions import MigrationStepError
from schemagraph.schema.models import (
    BASELINE_TABLES,
    Base,
    EntityRelationship,
    SchemaMigration,
    utc_now,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Connection, Engine

    from schemagraph.core.connection import DatabaseConnection

logger = logging.getLogger(__name__)

FIELDS_TABLE = "fields"
RELATIONSHIPS_TABLE = EntityRelationship.__tablename__
MIGRATION_LOG_TABLE = SchemaMigration.__tablename__
RELATIONSHIPS_TRIGGER = "update_entity_relationships_updated_at"

# Columns added to ``fields`` after the first release, with the DDL used to add
# them. Every definition has a default (or allows NULL) so existing rows stay valid.
REQUIRED_FIELD_COLUMNS: dict[str, str] = {
    "is_primary_key": "BOOLEAN NOT NULL DEFAULT 0",
    "is_foreign_key": "BOOLEAN NOT NULL DEFAULT 0",
    "foreign_entity_id": "VARCHAR(36) REFERENCES entities(id) ON DELETE SET NULL",
    "foreign_field_id": "VARCHAR(36) REFERENCES fields(id) ON DELETE SET NULL",
    "accepts_multiple": "BOOLEAN NOT NULL DEFAULT 0",
    "max_file_size": "INTEGER",
    "allowed_extensions": "TEXT",
}

# Only fires for writes that left updated_at alone (raw SQL); ORM updates set it themselves.
RELATIONSHIPS_TRIGGER_DDL = f"""
CREATE TRIGGER IF NOT EXISTS {RELATIONSHIPS_TRIGGER}
AFTER UPDATE ON {RELATIONSHIPS_TABLE}
FOR EACH ROW
WHEN NEW.updated_at IS OLD.updated_at
BEGIN
    UPDATE {RELATIONSHIPS_TABLE} SET updated_at = CURRENT_TIMESTAMP WHERE id = NEW.id;
END
"""


@dataclass(frozen=True)
class SchemaSnapshot:
    """Physical layout facts the migration steps decide on."""

    tables: frozenset[str]
    field_columns: frozenset[str]
    triggers: frozenset[str]


@dataclass(frozen=True)
class MigrationStep:
    """One additive, idempotent change to the physical layout.

    ``apply`` returns False when it found the change already in place and
    wrote nothing; any other return value counts as applied.
    """

    name: str
    description: str
    is_pending: Callable[[SchemaSnapshot], bool]
    apply: Callable[[Connection], bool | None]


# Registry, in application order
MIGRATION_STEPS: list[MigrationStep] = []


def migration(
    name: str, description: str, pending: Callable[[SchemaSnapshot], bool]
) -> Callable[[Callable[[Connection], None]], Callable[[Connection], None]]:
    """Decorator to register a migration step."""

    def decorator(func: Callable[[Connection], None]) -> Callable[[Connection], None]:
        MIGRATION_STEPS.append(MigrationStep(name, description, pending, func))
        return func

    return decorator


def take_snapshot(engine: Engine) -> SchemaSnapshot:
    """Read the current physical layout. Never writes."""
    inspector = inspect(engine)
    tables = frozenset(inspector.get_table_names())
    field_columns: frozenset[str] = frozenset()
    if FIELDS_TABLE in tables:
        field_columns = frozenset(col["name"] for col in inspector.get_columns(FIELDS_TABLE))

    with engine.connect() as conn:
        triggers = frozenset(
            conn.execute(text("SELECT name FROM sqlite_master WHERE type = 'trigger'")).scalars()
        )
    return SchemaSnapshot(tables=tables, field_columns=field_columns, triggers=triggers)


# === Migration Definitions ===


@migration(
    "baseline_tables",
    "Create projects, entities and fields tables",
    pending=lambda snap: any(table.name not in snap.tables for table in BASELINE_TABLES),
)
def create_baseline_tables(conn: Connection) -> None:
    Base.metadata.create_all(conn, tables=list(BASELINE_TABLES), checkfirst=True)


@migration(
    "migration_log_table",
    "Create schema_migrations table to record applied steps",
    pending=lambda snap: MIGRATION_LOG_TABLE not in snap.tables,
)
def create_migration_log(conn: Connection) -> None:
    SchemaMigration.__table__.create(conn, checkfirst=True)


def _field_column_missing(column: str, snap: SchemaSnapshot) -> bool:
    return column not in snap.field_columns


def _add_field_column(column: str, ddl: str, conn: Connection) -> bool:
    # Re-check inside the transaction so a concurrent run cannot add it twice.
    existing = {col["name"] for col in inspect(conn).get_columns(FIELDS_TABLE)}
    if column in existing:
        return False
    conn.execute(text(f"ALTER TABLE {FIELDS_TABLE} ADD COLUMN {column} {ddl}"))
    return True


for _column, _ddl in REQUIRED_FIELD_COLUMNS.items():
    MIGRATION_STEPS.append(
        MigrationStep(
            name=f"fields.{_column}",
            description=f"Add {_column} column to fields",
            is_pending=partial(_field_column_missing, _column),
            apply=partial(_add_field_column, _column, _ddl),
        )
    )


@migration(
    "entity_relationships_table",
    "Create entity_relationships table",
    pending=lambda snap: RELATIONSHIPS_TABLE not in snap.tables,
)
def create_relationships_table(conn: Connection) -> None:
    EntityRelationship.__table__.create(conn, checkfirst=True)


@migration(
    "entity_relationships_trigger",
    "Keep entity_relationships.updated_at current on raw updates",
    pending=lambda snap: RELATIONSHIPS_TRIGGER not in snap.triggers,
)
def create_relationships_trigger(conn: Connection) -> None:
    conn.execute(text(RELATIONSHIPS_TRIGGER_DDL))


class SchemaEvolver:
    """Brings the physical layout of a metadata database up to date.

    Run ``run_migrations()`` once, before any other component touches the
    database. ``needs_migration()`` and ``get_migration_status()`` are
    read-only and can be called at any time.
    """

    def __init__(
        self,
        connection: DatabaseConnection,
        steps: Sequence[MigrationStep] | None = None,
    ) -> None:
        """Initialize the evolver.

        Args:
            connection: Database connection to migrate
            steps: Steps to apply, in order (defaults to MIGRATION_STEPS)
        """
        self._connection = connection
        self._steps = list(steps) if steps is not None else list(MIGRATION_STEPS)

    @property
    def steps(self) -> list[MigrationStep]:
        return list(self._steps)

    def pending_steps(self) -> list[MigrationStep]:
        """Steps whose gap is present in the current layout."""
        snapshot = take_snapshot(self._connection.engine)
        return [step for step in self._steps if step.is_pending(snapshot)]

    def needs_migration(self) -> bool:
        """Check whether any step is pending, without changing anything."""
        return bool(self.pending_steps())

    def get_migration_status(self) -> MigrationStatus:
        """Describe which required columns and tables are present."""
        engine = self._connection.engine
        snapshot = take_snapshot(engine)

        relationship_table_present = RELATIONSHIPS_TABLE in snapshot.tables
        migration_log_present = MIGRATION_LOG_TABLE in snapshot.tables
        relationship_row_count = 0
        applied_steps: list[str] = []
        with engine.connect() as conn:
            if relationship_table_present:
                relationship_row_count = conn.execute(
                    select(func.count()).select_from(EntityRelationship.__table__)
                ).scalar_one()
            if migration_log_present:
                applied_steps = list(
                    conn.execute(
                        select(SchemaMigration.name).order_by(
                            SchemaMigration.applied_at, SchemaMigration.name
                        )
                    ).scalars()
                )

        return MigrationStatus(
            missing_columns=[c for c in REQUIRED_FIELD_COLUMNS if c not in snapshot.field_columns],
            present_columns=[c for c in REQUIRED_FIELD_COLUMNS if c in snapshot.field_columns],
            relationship_table_present=relationship_table_present,
            relationship_row_count=relationship_row_count,
            relationship_trigger_present=RELATIONSHIPS_TRIGGER in snapshot.triggers,
            migration_log_present=migration_log_present,
            applied_steps=applied_steps,
            migrations_needed=any(step.is_pending(snapshot) for step in self._steps),
        )

    def run_migrations(self) -> MigrationReport:
        """Apply every pending step.

        Safe to call repeatedly: with no gap, nothing is written.

        Returns:
            MigrationReport listing applied and failed steps
        """
        report = MigrationReport()
        pending = self.pending_steps()
        if not pending:
            logger.debug("Metadata schema is current, no migrations to apply")
            return report

        engine = self._connection.engine
        logger.info(f"Applying {len(pending)} migration step(s)")
        for step in pending:
            logger.info(f"Applying migration step {step.name}: {step.description}")
            try:
                with engine.begin() as conn:
                    outcome = step.apply(conn)
            except Exception as e:
                error = MigrationStepError(step.name, str(e))
                logger.error(error.message)
                report.failed.append(MigrationFailure(step=error.step, reason=error.reason))
                continue
            if outcome is False:
                logger.debug(f"Migration step {step.name} found nothing to change")
                report.skipped.append(step.name)
                continue
            report.applied.append(step.name)

        self._record(report)

        if report.success:
            logger.info(f"Migrations complete: {len(report.applied)} step(s) applied")
        else:
            logger.error(
                f"Migrations finished with {len(report.failed)} failed step(s): "
                f"{', '.join(f.step for f in report.failed)}"
            )
        return report

    def _record(self, report: MigrationReport) -> None:
        """Write applied steps to the migration log, when the log exists."""
        if not report.applied:
            return
        descriptions = {step.name: step.description for step in self._steps}
        try:
            with self._connection.engine.begin() as conn:
                if not inspect(conn).has_table(MIGRATION_LOG_TABLE):
                    return
                now = utc_now()
                for name in report.applied:
                    stmt = sqlite_insert(SchemaMigration.__table__).values(
                        name=name, description=descriptions.get(name), applied_at=now
                    )
                    conn.execute(
                        stmt.on_conflict_do_update(
                            index_elements=["name"],
                            set_={"description": stmt.excluded.description, "applied_at": now},
                        )
                    )
        except Exception as e:
            logger.error(f"Could not record applied migration steps: {e}")
            report.failed.append(MigrationFailure(step=MIGRATION_LOG_TABLE, reason=str(e)))
