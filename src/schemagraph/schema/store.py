"""Metadata store: persistent CRUD over projects, entities, fields and relationships.

The store trusts its caller. Cross-record invariants (primary/foreign key
exclusivity, foreign fields belonging to their foreign entity, duplicate
relationship endpoints) are checked by ``SchemaValidator`` before any write
reaches this module. Whatever slips past is left to SQLite's own constraints,
and the resulting ``IntegrityError`` propagates unchanged.

Lookups and updates by id never raise for a missing record: they return
``None`` (or ``False`` for deletes and existence checks).
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel
from sqlalchemy import or_
from sqlalchemy.orm import Session, aliased

from schemagraph.core.types import (
    EntityInfo,
    EntitySpec,
    EntityUpdate,
    FieldInfo,
    FieldSpec,
    FieldUpdate,
    ProjectInfo,
    ProjectSpec,
    ProjectUpdate,
    RelationshipDetail,
    RelationshipInfo,
    RelationshipSpec,
    RelationshipUpdate,
)
from schemagraph.schema.models import (
    Base,
    EntityDefinition,
    EntityRelationship,
    FieldDefinition,
    Project,
    utc_now,
)

if TYPE_CHECKING:
    from sqlalchemy.orm.query import Query

    from schemagraph.core.connection import DatabaseConnection


def _matches(column: Any, value: str | None) -> Any:
    """Equality that treats None as SQL NULL."""
    return column.is_(None) if value is None else column == value


class _RecordStore:
    """CRUD shared by every metadata record kind."""

    model: type[Base]
    info_type: type[BaseModel]
    create_spec: type[BaseModel]
    update_spec: type[BaseModel]

    def __init__(self, connection: DatabaseConnection) -> None:
        """Initialize the store.

        Args:
            connection: Database connection to use
        """
        self._connection = connection

    def _get_session(self) -> Session:
        """Get a new database session."""
        return self._connection.get_session()

    def _to_info(self, row: Base) -> Any:
        return self.info_type.model_validate(row)

    def _changes(self, partial: BaseModel | Mapping[str, Any]) -> dict[str, Any]:
        """Extract the column assignments a partial update asks for.

        Unknown keys are dropped, as is ``None`` for columns that cannot be NULL.
        """
        if isinstance(partial, BaseModel):
            values = partial.model_dump(exclude_unset=True)
        else:
            values = self.update_spec.model_validate(dict(partial)).model_dump(exclude_unset=True)

        columns = self.model.__table__.columns
        return {
            key: value
            for key, value in values.items()
            if key in columns and key != "id" and (value is not None or columns[key].nullable)
        }

    def create(self, record_id: str, data: BaseModel | Mapping[str, Any]) -> Any:
        """Insert a new record with a caller-supplied id.

        Args:
            record_id: Opaque unique id (UUID-shaped by convention)
            data: Create spec, or a mapping that validates into one

        Returns:
            The persisted record

        Raises:
            sqlalchemy.exc.IntegrityError: If storage rejects the row
        """
        if isinstance(data, self.create_spec):
            spec = data
        else:
            spec = self.create_spec.model_validate(dict(data))  # type: ignore[arg-type]

        with self._get_session() as session:
            row = self.model(id=record_id, **spec.model_dump())
            session.add(row)
            session.commit()
            return self._to_info(row)

    def get(self, record_id: str) -> Any | None:
        """Get a record by id, or None if it does not exist."""
        with self._get_session() as session:
            row = session.get(self.model, record_id)
            return self._to_info(row) if row is not None else None

    def exists(self, record_id: str) -> bool:
        """Check if a record exists."""
        with self._get_session() as session:
            return (
                session.query(self.model.id).filter_by(id=record_id).first()  # type: ignore[attr-defined]
                is not None
            )

    def update(self, record_id: str, partial: BaseModel | Mapping[str, Any]) -> Any | None:
        """Apply a partial update.

        Only attributes present in ``partial`` are written. With nothing to
        write, the current record is returned untouched.

        Returns:
            The updated (or unchanged) record, or None if the id does not exist
        """
        with self._get_session() as session:
            row = session.get(self.model, record_id)
            if row is None:
                return None

            changes = self._changes(partial)
            if not changes:
                return self._to_info(row)

            for key, value in changes.items():
                setattr(row, key, value)
            row.updated_at = utc_now()  # type: ignore[attr-defined]
            session.commit()
            return self._to_info(row)

    def delete(self, record_id: str) -> bool:
        """Delete a record. Returns whether a row was removed."""
        with self._get_session() as session:
            removed = self._delete_rows(session, [record_id])
            session.commit()
            return removed > 0

    def _delete_rows(self, session: Session, record_ids: list[str]) -> int:
        return (
            session.query(self.model)
            .filter(self.model.id.in_(record_ids))  # type: ignore[attr-defined]
            .delete(synchronize_session=False)
        )


def _detach_fields(session: Session, field_ids: list[str]) -> None:
    """Clear every pointer at the given fields without touching the pointers' owners."""
    now = utc_now()
    session.query(FieldDefinition).filter(FieldDefinition.foreign_field_id.in_(field_ids)).update(
        {FieldDefinition.foreign_field_id: None, FieldDefinition.updated_at: now},
        synchronize_session=False,
    )
    session.query(EntityRelationship).filter(
        EntityRelationship.source_field_id.in_(field_ids)
    ).update(
        {EntityRelationship.source_field_id: None, EntityRelationship.updated_at: now},
        synchronize_session=False,
    )
    session.query(EntityRelationship).filter(
        EntityRelationship.target_field_id.in_(field_ids)
    ).update(
        {EntityRelationship.target_field_id: None, EntityRelationship.updated_at: now},
        synchronize_session=False,
    )


def _purge_entities(session: Session, entity_ids: list[str]) -> int:
    """Delete entities with everything they own, and unhook everything pointing at them.

    Owned rows (fields, relationships naming the entity) are deleted. Fields of
    other entities that referenced a deleted entity keep their row but lose
    the foreign key, so no field is left flagged as a foreign key without a
    target.
    """
    owned_fields = [
        field_id
        for (field_id,) in session.query(FieldDefinition.id)
        .filter(FieldDefinition.entity_id.in_(entity_ids))
        .all()
    ]
    if owned_fields:
        _detach_fields(session, owned_fields)

    session.query(EntityRelationship).filter(
        or_(
            EntityRelationship.source_entity_id.in_(entity_ids),
            EntityRelationship.target_entity_id.in_(entity_ids),
        )
    ).delete(synchronize_session=False)

    session.query(FieldDefinition).filter(
        FieldDefinition.foreign_entity_id.in_(entity_ids),
        FieldDefinition.entity_id.not_in(entity_ids),
    ).update(
        {
            FieldDefinition.foreign_entity_id: None,
            FieldDefinition.foreign_field_id: None,
            FieldDefinition.is_foreign_key: False,
            FieldDefinition.updated_at: utc_now(),
        },
        synchronize_session=False,
    )

    session.query(FieldDefinition).filter(FieldDefinition.entity_id.in_(entity_ids)).delete(
        synchronize_session=False
    )
    return (
        session.query(EntityDefinition)
        .filter(EntityDefinition.id.in_(entity_ids))
        .delete(synchronize_session=False)
    )


class ProjectStore(_RecordStore):
    """Projects."""

    model = Project
    info_type = ProjectInfo
    create_spec = ProjectSpec
    update_spec = ProjectUpdate

    def list_all(self) -> list[ProjectInfo]:
        """List all projects, newest first."""
        with self._get_session() as session:
            rows = session.query(Project).order_by(Project.created_at.desc(), Project.id).all()
            return [self._to_info(row) for row in rows]

    def _delete_rows(self, session: Session, record_ids: list[str]) -> int:
        entity_ids = [
            entity_id
            for (entity_id,) in session.query(EntityDefinition.id)
            .filter(EntityDefinition.project_id.in_(record_ids))
            .all()
        ]
        if entity_ids:
            _purge_entities(session, entity_ids)
        return super()._delete_rows(session, record_ids)


class EntityStore(_RecordStore):
    """Entities within projects."""

    model = EntityDefinition
    info_type = EntityInfo
    create_spec = EntitySpec
    update_spec = EntityUpdate

    def list_by_project(self, project_id: str) -> list[EntityInfo]:
        """List a project's entities in alphabetical order of name.

        The order is stable for equal names (ties broken by id), which makes
        it safe to use as a first-match tie-break.
        """
        with self._get_session() as session:
            rows = (
                session.query(EntityDefinition)
                .filter_by(project_id=project_id)
                .order_by(EntityDefinition.name, EntityDefinition.id)
                .all()
            )
            return [self._to_info(row) for row in rows]

    def belongs_to_project(self, entity_id: str, project_id: str) -> bool:
        """Check if an entity belongs to a project."""
        with self._get_session() as session:
            return (
                session.query(EntityDefinition.id)
                .filter_by(id=entity_id, project_id=project_id)
                .first()
                is not None
            )

    def _delete_rows(self, session: Session, record_ids: list[str]) -> int:
        return _purge_entities(session, record_ids)


class FieldStore(_RecordStore):
    """Fields of entities."""

    model = FieldDefinition
    info_type = FieldInfo
    create_spec = FieldSpec
    update_spec = FieldUpdate

    def list_by_entity(self, entity_id: str) -> list[FieldInfo]:
        """List an entity's fields in creation order."""
        with self._get_session() as session:
            rows = (
                session.query(FieldDefinition)
                .filter_by(entity_id=entity_id)
                .order_by(FieldDefinition.created_at, FieldDefinition.id)
                .all()
            )
            return [self._to_info(row) for row in rows]

    def list_by_project(self, project_id: str) -> list[FieldInfo]:
        """List every field of every entity in a project."""
        with self._get_session() as session:
            rows = (
                session.query(FieldDefinition)
                .join(EntityDefinition, FieldDefinition.entity_id == EntityDefinition.id)
                .filter(EntityDefinition.project_id == project_id)
                .order_by(EntityDefinition.name, FieldDefinition.name, FieldDefinition.id)
                .all()
            )
            return [self._to_info(row) for row in rows]

    def belongs_to_entity(self, field_id: str, entity_id: str) -> bool:
        """Check if a field belongs to an entity."""
        with self._get_session() as session:
            return (
                session.query(FieldDefinition.id)
                .filter_by(id=field_id, entity_id=entity_id)
                .first()
                is not None
            )

    def exists_by_name_in_entity(
        self, name: str, entity_id: str, exclude_id: str | None = None
    ) -> bool:
        """Check if the entity already has a field with this name.

        Args:
            name: Field name to look for
            entity_id: Entity to search
            exclude_id: Field to ignore (the one being renamed)
        """
        with self._get_session() as session:
            query = session.query(FieldDefinition.id).filter_by(name=name, entity_id=entity_id)
            if exclude_id:
                query = query.filter(FieldDefinition.id != exclude_id)
            return query.first() is not None

    def _delete_rows(self, session: Session, record_ids: list[str]) -> int:
        _detach_fields(session, record_ids)
        return super()._delete_rows(session, record_ids)


class RelationshipStore(_RecordStore):
    """Explicit relationships between entities."""

    model = EntityRelationship
    info_type = RelationshipInfo
    create_spec = RelationshipSpec
    update_spec = RelationshipUpdate

    def list_by_entity(self, entity_id: str) -> list[RelationshipInfo]:
        """List relationships where the entity is the source or the target."""
        with self._get_session() as session:
            rows = (
                session.query(EntityRelationship)
                .filter(
                    or_(
                        EntityRelationship.source_entity_id == entity_id,
                        EntityRelationship.target_entity_id == entity_id,
                    )
                )
                .order_by(EntityRelationship.created_at.desc(), EntityRelationship.id)
                .all()
            )
            return [self._to_info(row) for row in rows]

    def list_by_project(self, project_id: str) -> list[RelationshipInfo]:
        """List relationships whose source entity belongs to the project."""
        with self._get_session() as session:
            rows = (
                self._project_query(session, project_id)
                .order_by(EntityRelationship.created_at.desc(), EntityRelationship.id)
                .all()
            )
            return [self._to_info(row) for row in rows]

    def list_with_details(self, project_id: str | None = None) -> list[RelationshipDetail]:
        """List relationships joined with entity and field names.

        Args:
            project_id: Restrict to relationships whose source is in this project
        """
        source_entity = aliased(EntityDefinition)
        target_entity = aliased(EntityDefinition)
        source_field = aliased(FieldDefinition)
        target_field = aliased(FieldDefinition)

        with self._get_session() as session:
            query = (
                session.query(
                    EntityRelationship,
                    source_entity.name,
                    target_entity.name,
                    source_field.name,
                    target_field.name,
                )
                .outerjoin(source_entity, EntityRelationship.source_entity_id == source_entity.id)
                .outerjoin(target_entity, EntityRelationship.target_entity_id == target_entity.id)
                .outerjoin(source_field, EntityRelationship.source_field_id == source_field.id)
                .outerjoin(target_field, EntityRelationship.target_field_id == target_field.id)
            )
            if project_id is not None:
                query = query.filter(source_entity.project_id == project_id)

            details = []
            for row, source_name, target_name, source_field_name, target_field_name in (
                query.order_by(EntityRelationship.created_at.desc(), EntityRelationship.id).all()
            ):
                detail = RelationshipDetail.model_validate(row)
                detail.source_entity_name = source_name
                detail.target_entity_name = target_name
                detail.source_field_name = source_field_name
                detail.target_field_name = target_field_name
                details.append(detail)
            return details

    def exists_between(
        self,
        source_entity_id: str,
        target_entity_id: str,
        source_field_id: str | None = None,
        target_field_id: str | None = None,
        exclude_id: str | None = None,
    ) -> bool:
        """Check if a relationship with exactly these endpoints exists.

        Missing field ids match NULL, so the check covers the full
        (source entity, target entity, source field, target field) tuple.
        """
        with self._get_session() as session:
            query = session.query(EntityRelationship.id).filter(
                EntityRelationship.source_entity_id == source_entity_id,
                EntityRelationship.target_entity_id == target_entity_id,
                _matches(EntityRelationship.source_field_id, source_field_id),
                _matches(EntityRelationship.target_field_id, target_field_id),
            )
            if exclude_id:
                query = query.filter(EntityRelationship.id != exclude_id)
            return query.first() is not None

    @staticmethod
    def _project_query(session: Session, project_id: str) -> Query[EntityRelationship]:
        return (
            session.query(EntityRelationship)
            .join(EntityDefinition, EntityRelationship.source_entity_id == EntityDefinition.id)
            .filter(EntityDefinition.project_id == project_id)
        )


class MetadataStore:
    """Groups the per-kind stores over one database connection."""

    def __init__(self, connection: DatabaseConnection) -> None:
        self.projects = ProjectStore(connection)
        self.entities = EntityStore(connection)
        self.fields = FieldStore(connection)
        self.relationships = RelationshipStore(connection)
