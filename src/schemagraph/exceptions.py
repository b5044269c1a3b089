"""Custom exceptions for SchemaGraph.

Errors are grouped by kind so callers (an HTTP layer, the CLI) can map them
to responses without parsing messages:

- Validation conflicts: the requested change would break a metadata invariant
- Missing references: a record the change points at does not exist
- Migration step failures: collected in a report, never raised by the evolver

Looking up a record by its own id never raises; the store returns ``None``.
Storage-level constraint violations surface as ``sqlalchemy.exc.IntegrityError``.
"""

from __future__ import annotations

from typing import Any


class SchemaGraphError(Exception):
    """Base exception for all SchemaGraph errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def to_dict(self) -> dict[str, Any]:
        """Return error as JSON-serializable dict."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
        }


class ConnectionError(SchemaGraphError):
    """Failed to connect to the database."""

    pass


# === Missing references ===


class NotFoundError(SchemaGraphError):
    """A referenced record does not exist."""

    kind = "record"

    def __init__(self, record_id: str, detail: str | None = None) -> None:
        message = f"{self.kind.capitalize()} '{record_id}' not found."
        if detail:
            message = f"{message} {detail}"
        super().__init__(message, {f"{self.kind}_id": record_id})
        self.record_id = record_id


class ProjectNotFoundError(NotFoundError):
    """Project does not exist."""

    kind = "project"


class EntityNotFoundError(NotFoundError):
    """Entity does not exist."""

    kind = "entity"


class FieldNotFoundError(NotFoundError):
    """Field does not exist."""

    kind = "field"


class RelationshipNotFoundError(NotFoundError):
    """Relationship does not exist."""

    kind = "relationship"


# === Validation conflicts ===


class ValidationError(SchemaGraphError):
    """A metadata change would violate an invariant."""

    pass


class InvalidFieldTypeError(ValidationError):
    """Invalid field type specified."""

    VALID_TYPES = [
        "string",
        "number",
        "boolean",
        "date",
        "text",
        "integer",
        "decimal",
        "file",
        "image",
        "document",
    ]

    def __init__(self, field_type: str) -> None:
        message = f"Invalid field type '{field_type}'. Valid types: {', '.join(self.VALID_TYPES)}"
        super().__init__(message, {"field_type": field_type, "valid_types": self.VALID_TYPES})
        self.field_type = field_type


class InvalidRelationshipTypeError(ValidationError):
    """Invalid relationship type specified."""

    VALID_TYPES = ["one_to_one", "one_to_many", "many_to_one", "many_to_many"]

    def __init__(self, relationship_type: str) -> None:
        message = (
            f"Invalid relationship type '{relationship_type}'. "
            f"Valid types: {', '.join(self.VALID_TYPES)}"
        )
        super().__init__(
            message, {"relationship_type": relationship_type, "valid_types": self.VALID_TYPES}
        )
        self.relationship_type = relationship_type


class FieldAlreadyExistsError(ValidationError):
    """Another field with the same name exists on the entity."""

    def __init__(self, field_name: str, entity_id: str) -> None:
        message = (
            f"Field '{field_name}' already exists on entity '{entity_id}'. "
            "Choose a different name or update the existing field."
        )
        super().__init__(message, {"field_name": field_name, "entity_id": entity_id})
        self.field_name = field_name
        self.entity_id = entity_id


class PrimaryForeignKeyConflictError(ValidationError):
    """A field cannot be a primary key and a foreign key at the same time."""

    def __init__(self, field_name: str) -> None:
        message = (
            f"Field '{field_name}' cannot be both a primary key and a foreign key. "
            "Clear one of is_primary_key / is_foreign_key."
        )
        super().__init__(message, {"field_name": field_name})
        self.field_name = field_name


class MissingForeignEntityError(ValidationError):
    """A foreign key field must name the entity it references."""

    def __init__(self, field_name: str) -> None:
        message = f"Foreign key field '{field_name}' requires foreign_entity_id."
        super().__init__(message, {"field_name": field_name})
        self.field_name = field_name


class ForeignFieldMismatchError(ValidationError):
    """foreign_field_id does not belong to foreign_entity_id."""

    def __init__(self, foreign_field_id: str, foreign_entity_id: str) -> None:
        message = (
            f"Field '{foreign_field_id}' does not belong to entity '{foreign_entity_id}'. "
            "foreign_field_id must reference a field of foreign_entity_id."
        )
        super().__init__(
            message,
            {"foreign_field_id": foreign_field_id, "foreign_entity_id": foreign_entity_id},
        )
        self.foreign_field_id = foreign_field_id
        self.foreign_entity_id = foreign_entity_id


class FieldOwnershipError(ValidationError):
    """A relationship endpoint field does not belong to its endpoint entity."""

    def __init__(self, field_id: str, entity_id: str, role: str) -> None:
        message = f"The {role} field '{field_id}' does not belong to the {role} entity '{entity_id}'."
        super().__init__(message, {"field_id": field_id, "entity_id": entity_id, "role": role})
        self.field_id = field_id
        self.entity_id = entity_id
        self.role = role


class RelationshipAlreadyExistsError(ValidationError):
    """A relationship with the same endpoints already exists."""

    def __init__(
        self,
        source_entity_id: str,
        target_entity_id: str,
        source_field_id: str | None = None,
        target_field_id: str | None = None,
    ) -> None:
        message = (
            f"A relationship from '{source_entity_id}' to '{target_entity_id}' "
            "with the same source and target fields already exists."
        )
        super().__init__(
            message,
            {
                "source_entity_id": source_entity_id,
                "target_entity_id": target_entity_id,
                "source_field_id": source_field_id,
                "target_field_id": target_field_id,
            },
        )
        self.source_entity_id = source_entity_id
        self.target_entity_id = target_entity_id


# === Migrations ===


class MigrationStepError(SchemaGraphError):
    """One additive schema change failed.

    The evolver does not raise this; it is stored on the ``MigrationReport``
    so the caller can decide whether to retry or continue startup.
    """

    def __init__(self, step: str, reason: str) -> None:
        message = f"Migration step '{step}' failed: {reason}"
        super().__init__(message, {"step": step, "reason": reason})
        self.step = step
        self.reason = reason
