"""Main SchemaGraph engine."""

from __future__ import annotations

import logging
from typing import Any

from schemagraph.core.connection import DatabaseConnection
from schemagraph.core.types import (
    DiagramData,
    EntityInfo,
    FieldInfo,
    InferredRelationship,
    MigrationReport,
    MigrationStatus,
    ProjectInfo,
    ProjectStats,
    RelationshipDetail,
    RelationshipInfo,
    RelationshipListing,
)
from schemagraph.diagram.composer import DiagramComposer
from schemagraph.diagram.inference import EntityNameResolver, RelationshipInferencer
from schemagraph.schema.migrations import SchemaEvolver
from schemagraph.schema.models import generate_uuid
from schemagraph.schema.store import MetadataStore
from schemagraph.schema.validation import SchemaValidator

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite:///./schemagraph.db"


class SchemaGraph:
    """Schema metadata engine over one SQLite database.

    Opening a SchemaGraph brings the database layout up to date before any
    other call is served. Writes are validated first and then handed to the
    metadata store; diagrams and statistics are recomputed on every call.

    Lookups, updates and deletes of a missing id return ``None`` or ``False``.
    Invalid changes raise a ``ValidationError`` subclass, and a change whose
    referenced project, entity or field is missing raises the matching
    ``NotFoundError``.

    Example:
        with SchemaGraph("sqlite:///blog.db") as sg:
            project = sg.create_project("Blog")
            user = sg.create_entity(project.id, "User")
            sg.create_field(user.id, "id", "integer", is_primary_key=True)
            post = sg.create_entity(project.id, "Post")
            sg.create_field(post.id, "user_id", "integer")
            diagram = sg.generate_diagram(project.id)
    """

    def __init__(
        self,
        url: str = DEFAULT_DATABASE_URL,
        echo: bool = False,
        resolver: EntityNameResolver | None = None,
    ) -> None:
        """Initialize SchemaGraph.

        Args:
            url: SQLite database URL
            echo: Whether to echo SQL statements (for debugging)
            resolver: Entity name resolver used for relationship inference
        """
        self._connection = DatabaseConnection(url, echo=echo)

        # Layout reconciliation runs before anything else touches the database
        self._evolver = SchemaEvolver(self._connection)
        self._startup_report = self._evolver.run_migrations()
        if not self._startup_report.success:
            logger.warning(
                "SchemaGraph started with an incomplete schema; "
                "run 'schemagraph admin migrate' to retry the failed steps"
            )

        self._store = MetadataStore(self._connection)
        self._validator = SchemaValidator(self._store)
        self._inferencer = RelationshipInferencer(self._store, resolver)
        self._composer = DiagramComposer(self._store, self._inferencer)
        logger.info(f"SchemaGraph initialized with {self._connection.url}")

    @property
    def connection(self) -> DatabaseConnection:
        return self._connection

    @property
    def store(self) -> MetadataStore:
        """Direct, unvalidated access to the metadata store."""
        return self._store

    @property
    def startup_report(self) -> MigrationReport:
        """Outcome of the migration run performed when this instance opened."""
        return self._startup_report

    def close(self) -> None:
        """Close the database connection."""
        self._connection.close()

    def __enter__(self) -> SchemaGraph:
        """Context manager entry."""
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        """Context manager exit."""
        self.close()

    # === Projects ===

    def create_project(
        self, name: str, description: str | None = None, project_id: str | None = None
    ) -> ProjectInfo:
        """Create a project.

        Args:
            name: Project name
            description: Human-readable description
            project_id: Id to use (a UUID4 is generated when omitted)
        """
        return self._store.projects.create(
            project_id or generate_uuid(), {"name": name, "description": description}
        )

    def get_project(self, project_id: str) -> ProjectInfo | None:
        return self._store.projects.get(project_id)

    def list_projects(self) -> list[ProjectInfo]:
        """List all projects, newest first."""
        return self._store.projects.list_all()

    def update_project(self, project_id: str, **changes: Any) -> ProjectInfo | None:
        """Update a project's name and/or description."""
        return self._store.projects.update(project_id, changes)

    def delete_project(self, project_id: str) -> bool:
        """Delete a project with all of its entities, fields and relationships."""
        deleted = self._store.projects.delete(project_id)
        logger.debug(f"Delete project {project_id}: {'removed' if deleted else 'not found'}")
        return deleted

    # === Entities ===

    def create_entity(
        self,
        project_id: str,
        name: str,
        description: str | None = None,
        entity_id: str | None = None,
    ) -> EntityInfo:
        """Create an entity in a project.

        Raises:
            ProjectNotFoundError: If the project does not exist
        """
        spec = self._validator.validate_entity_create(
            {"project_id": project_id, "name": name, "description": description}
        )
        return self._store.entities.create(entity_id or generate_uuid(), spec)

    def get_entity(self, entity_id: str) -> EntityInfo | None:
        return self._store.entities.get(entity_id)

    def list_entities(self, project_id: str) -> list[EntityInfo]:
        """List a project's entities, alphabetically."""
        return self._store.entities.list_by_project(project_id)

    def update_entity(self, entity_id: str, **changes: Any) -> EntityInfo | None:
        """Update an entity's name and/or description."""
        return self._store.entities.update(entity_id, changes)

    def delete_entity(self, entity_id: str) -> bool:
        """Delete an entity.

        Its fields and every relationship naming it go with it. Fields of
        other entities that referenced it stop being foreign keys.
        """
        deleted = self._store.entities.delete(entity_id)
        logger.debug(f"Delete entity {entity_id}: {'removed' if deleted else 'not found'}")
        return deleted

    # === Fields ===

    def create_field(
        self,
        entity_id: str,
        name: str,
        field_type: str = "string",
        field_id: str | None = None,
        **attributes: Any,
    ) -> FieldInfo:
        """Add a field to an entity.

        Args:
            entity_id: Owning entity
            name: Field name, unique within the entity
            field_type: One of the FieldType values
            field_id: Id to use (a UUID4 is generated when omitted)
            **attributes: Any other FieldSpec attribute (is_required,
                is_primary_key, is_foreign_key, foreign_entity_id, ...)

        Raises:
            ValidationError: If the field breaks a key or naming invariant
            NotFoundError: If the entity or a referenced key target is missing
        """
        spec = self._validator.validate_field_create(
            {"entity_id": entity_id, "name": name, "type": field_type, **attributes}
        )
        return self._store.fields.create(field_id or generate_uuid(), spec)

    def get_field(self, field_id: str) -> FieldInfo | None:
        return self._store.fields.get(field_id)

    def list_fields(self, entity_id: str) -> list[FieldInfo]:
        """List an entity's fields in creation order."""
        return self._store.fields.list_by_entity(entity_id)

    def update_field(self, field_id: str, **changes: Any) -> FieldInfo | None:
        """Update a field. Checks run against the field as it would be after the update."""
        update = self._validator.validate_field_update(field_id, changes)
        if update is None:
            return None
        return self._store.fields.update(field_id, update)

    def delete_field(self, field_id: str) -> bool:
        """Delete a field and clear every foreign key or relationship pointer at it."""
        deleted = self._store.fields.delete(field_id)
        logger.debug(f"Delete field {field_id}: {'removed' if deleted else 'not found'}")
        return deleted

    # === Explicit relationships ===

    def create_relationship(
        self,
        source_entity_id: str,
        target_entity_id: str,
        relationship_type: str,
        relationship_id: str | None = None,
        **attributes: Any,
    ) -> RelationshipInfo:
        """Declare a relationship between two entities.

        Args:
            source_entity_id: Entity the relationship starts from
            target_entity_id: Entity the relationship points at
            relationship_type: one_to_one, one_to_many, many_to_one or many_to_many
            relationship_id: Id to use (a UUID4 is generated when omitted)
            **attributes: source_field_id, target_field_id, name, description,
                is_required, cascade_delete

        Raises:
            ValidationError: On an unknown type, foreign endpoint field or duplicate
            NotFoundError: If an endpoint entity or field is missing
        """
        spec = self._validator.validate_relationship_create(
            {
                "source_entity_id": source_entity_id,
                "target_entity_id": target_entity_id,
                "relationship_type": relationship_type,
                **attributes,
            }
        )
        return self._store.relationships.create(relationship_id or generate_uuid(), spec)

    def get_relationship(self, relationship_id: str) -> RelationshipInfo | None:
        return self._store.relationships.get(relationship_id)

    def list_entity_relationships(self, entity_id: str) -> list[RelationshipInfo]:
        """List explicit relationships where the entity is source or target."""
        return self._store.relationships.list_by_entity(entity_id)

    def list_relationship_details(self, project_id: str | None = None) -> list[RelationshipDetail]:
        """List explicit relationships with entity and field names filled in."""
        return self._store.relationships.list_with_details(project_id)

    def update_relationship(self, relationship_id: str, **changes: Any) -> RelationshipInfo | None:
        update = self._validator.validate_relationship_update(relationship_id, changes)
        if update is None:
            return None
        return self._store.relationships.update(relationship_id, update)

    def delete_relationship(self, relationship_id: str) -> bool:
        deleted = self._store.relationships.delete(relationship_id)
        logger.debug(
            f"Delete relationship {relationship_id}: {'removed' if deleted else 'not found'}"
        )
        return deleted

    # === Diagrams ===

    def infer_relationships(self, project_id: str) -> list[InferredRelationship]:
        """Derive many-to-one relationships from ``<entity>_id`` field names."""
        return self._inferencer.infer(project_id)

    def list_relationships(self, project_id: str) -> list[RelationshipListing]:
        """List inferred relationships of a project by entity and field name."""
        return self._inferencer.list_relationships(project_id)

    def generate_diagram(self, project_id: str) -> DiagramData:
        """Build the node/edge diagram of a project."""
        return self._composer.generate_diagram(project_id)

    def get_project_stats(self, project_id: str) -> ProjectStats:
        """Count entities, fields, inferred relationships and field types."""
        return self._composer.get_project_stats(project_id)

    # === Migrations ===

    def needs_migration(self) -> bool:
        """Check whether the database layout is behind, without changing it."""
        return self._evolver.needs_migration()

    def get_migration_status(self) -> MigrationStatus:
        return self._evolver.get_migration_status()

    def run_migrations(self) -> MigrationReport:
        """Apply any pending migration steps. Safe to call repeatedly."""
        return self._evolver.run_migrations()
