"""Validation of metadata changes before they reach the store.

Each check raises a typed ``ValidationError`` (or ``NotFoundError`` for a
missing referenced record), so callers can tell a broken invariant apart from
a storage failure without reading SQLite's error text.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel

from schemagraph.core.types import (
    EntitySpec,
    FieldSpec,
    FieldType,
    FieldUpdate,
    RelationshipSpec,
    RelationshipTypeEnum,
    RelationshipUpdate,
)
from schemagraph.exceptions import (
    EntityNotFoundError,
    FieldAlreadyExistsError,
    FieldNotFoundError,
    FieldOwnershipError,
    ForeignFieldMismatchError,
    InvalidFieldTypeError,
    InvalidRelationshipTypeError,
    MissingForeignEntityError,
    PrimaryForeignKeyConflictError,
    ProjectNotFoundError,
    RelationshipAlreadyExistsError,
)
from schemagraph.schema.store import MetadataStore


# Attributes a partial update may clear by passing None; for any other
# attribute None means "leave unchanged", matching the store.
_CLEARABLE = frozenset(
    {
        "foreign_entity_id",
        "foreign_field_id",
        "source_field_id",
        "target_field_id",
        "default_value",
        "max_length",
        "description",
        "max_file_size",
        "allowed_extensions",
    }
)


def _merge(current: BaseModel, update: BaseModel) -> Any:
    changes = {
        key: value
        for key, value in update.model_dump(exclude_unset=True).items()
        if value is not None or key in _CLEARABLE
    }
    return current.model_copy(update=changes)


def _as_spec(data: BaseModel | Mapping[str, Any], spec_type: type[BaseModel]) -> Any:
    if isinstance(data, spec_type):
        return data
    if isinstance(data, BaseModel):
        data = data.model_dump(exclude_unset=True)
    return spec_type.model_validate(dict(data))


class SchemaValidator:
    """Checks metadata invariants against the current store contents."""

    def __init__(self, store: MetadataStore) -> None:
        self._store = store

    # === Single-value checks ===

    @staticmethod
    def validate_field_type(field_type: str) -> FieldType:
        """Validate and return a FieldType enum value."""
        try:
            return FieldType(field_type)
        except ValueError as e:
            raise InvalidFieldTypeError(field_type) from e

    @staticmethod
    def validate_relationship_type(relationship_type: str) -> RelationshipTypeEnum:
        """Validate and return a RelationshipTypeEnum value."""
        try:
            return RelationshipTypeEnum(relationship_type)
        except ValueError as e:
            raise InvalidRelationshipTypeError(relationship_type) from e

    # === Entities ===

    def validate_entity_create(self, data: EntitySpec | Mapping[str, Any]) -> EntitySpec:
        """Check that the owning project exists."""
        spec: EntitySpec = _as_spec(data, EntitySpec)
        if not self._store.projects.exists(spec.project_id):
            raise ProjectNotFoundError(spec.project_id)
        return spec

    # === Fields ===

    def validate_field_create(self, data: FieldSpec | Mapping[str, Any]) -> FieldSpec:
        """Check a new field against its entity and its foreign key target.

        Raises:
            EntityNotFoundError: If the owning entity does not exist
            FieldAlreadyExistsError: If the entity already has a field with this name
            InvalidFieldTypeError: If the type is not a known FieldType
            PrimaryForeignKeyConflictError: If both key flags are set
            MissingForeignEntityError: If a foreign key names no entity
            ForeignFieldMismatchError: If foreign_field_id is not a field of foreign_entity_id
        """
        spec: FieldSpec = _as_spec(data, FieldSpec)
        if not self._store.entities.exists(spec.entity_id):
            raise EntityNotFoundError(spec.entity_id)
        if self._store.fields.exists_by_name_in_entity(spec.name, spec.entity_id):
            raise FieldAlreadyExistsError(spec.name, spec.entity_id)

        self.validate_field_type(spec.type)
        self._check_keys(
            spec.name,
            spec.is_primary_key,
            spec.is_foreign_key,
            spec.foreign_entity_id,
            spec.foreign_field_id,
        )
        return spec

    def validate_field_update(
        self, field_id: str, data: FieldUpdate | Mapping[str, Any]
    ) -> FieldUpdate | None:
        """Check a partial field update against the field's merged state.

        Returns:
            The parsed update, or None if the field does not exist. The
            payload of an update to a missing field is never parsed.
        """
        current = self._store.fields.get(field_id)
        if current is None:
            return None
        update: FieldUpdate = _as_spec(data, FieldUpdate)

        merged = _merge(current, update)
        if update.name is not None and update.name != current.name:
            if self._store.fields.exists_by_name_in_entity(
                merged.name, current.entity_id, exclude_id=field_id
            ):
                raise FieldAlreadyExistsError(merged.name, current.entity_id)
        if update.type is not None:
            self.validate_field_type(update.type)

        self._check_keys(
            merged.name,
            merged.is_primary_key,
            merged.is_foreign_key,
            merged.foreign_entity_id,
            merged.foreign_field_id,
        )
        return update

    def _check_keys(
        self,
        field_name: str,
        is_primary_key: bool,
        is_foreign_key: bool,
        foreign_entity_id: str | None,
        foreign_field_id: str | None,
    ) -> None:
        if is_primary_key and is_foreign_key:
            raise PrimaryForeignKeyConflictError(field_name)
        if is_foreign_key and not foreign_entity_id:
            raise MissingForeignEntityError(field_name)
        if foreign_entity_id and not self._store.entities.exists(foreign_entity_id):
            raise EntityNotFoundError(foreign_entity_id, "It is referenced as foreign_entity_id.")
        if foreign_field_id:
            if not self._store.fields.exists(foreign_field_id):
                raise FieldNotFoundError(foreign_field_id, "It is referenced as foreign_field_id.")
            if not foreign_entity_id or not self._store.fields.belongs_to_entity(
                foreign_field_id, foreign_entity_id
            ):
                raise ForeignFieldMismatchError(foreign_field_id, foreign_entity_id or "")

    # === Relationships ===

    def validate_relationship_create(
        self, data: RelationshipSpec | Mapping[str, Any]
    ) -> RelationshipSpec:
        """Check endpoints, ownership of endpoint fields, and tuple uniqueness.

        Raises:
            InvalidRelationshipTypeError: If the cardinality is unknown
            EntityNotFoundError: If either endpoint entity is missing
            FieldNotFoundError: If an endpoint field is missing
            FieldOwnershipError: If an endpoint field belongs to another entity
            RelationshipAlreadyExistsError: If the endpoint tuple is taken
        """
        spec: RelationshipSpec = _as_spec(data, RelationshipSpec)
        self.validate_relationship_type(spec.relationship_type)
        for entity_id in (spec.source_entity_id, spec.target_entity_id):
            if not self._store.entities.exists(entity_id):
                raise EntityNotFoundError(entity_id)

        self._check_endpoints(
            spec.source_entity_id,
            spec.target_entity_id,
            spec.source_field_id,
            spec.target_field_id,
        )
        return spec

    def validate_relationship_update(
        self, relationship_id: str, data: RelationshipUpdate | Mapping[str, Any]
    ) -> RelationshipUpdate | None:
        """Check a partial relationship update against the merged state.

        Returns None, without parsing ``data``, if the relationship is missing.
        """
        current = self._store.relationships.get(relationship_id)
        if current is None:
            return None
        update: RelationshipUpdate = _as_spec(data, RelationshipUpdate)

        merged = _merge(current, update)
        if update.relationship_type is not None:
            self.validate_relationship_type(update.relationship_type)

        endpoint_fields = {"source_field_id", "target_field_id"}
        if endpoint_fields & update.model_fields_set:
            self._check_endpoints(
                merged.source_entity_id,
                merged.target_entity_id,
                merged.source_field_id,
                merged.target_field_id,
                exclude_id=relationship_id,
            )
        return update

    def _check_endpoints(
        self,
        source_entity_id: str,
        target_entity_id: str,
        source_field_id: str | None,
        target_field_id: str | None,
        exclude_id: str | None = None,
    ) -> None:
        for role, field_id, entity_id in (
            ("source", source_field_id, source_entity_id),
            ("target", target_field_id, target_entity_id),
        ):
            if not field_id:
                continue
            if not self._store.fields.exists(field_id):
                raise FieldNotFoundError(field_id)
            if not self._store.fields.belongs_to_entity(field_id, entity_id):
                raise FieldOwnershipError(field_id, entity_id, role)

        if self._store.relationships.exists_between(
            source_entity_id,
            target_entity_id,
            source_field_id,
            target_field_id,
            exclude_id=exclude_id,
        ):
            raise RelationshipAlreadyExistsError(
                source_entity_id, target_entity_id, source_field_id, target_field_id
            )
