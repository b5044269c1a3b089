"""Metadata storage, validation and schema evolution for SchemaGraph."""

from schemagraph.schema.migrations import SchemaEvolver
from schemagraph.schema.models import (
    EntityDefinition,
    EntityRelationship,
    FieldDefinition,
    Project,
    SchemaMigration,
)
from schemagraph.schema.store import MetadataStore
from schemagraph.schema.validation import SchemaValidator

__all__ = [
    "MetadataStore",
    "SchemaEvolver",
    "SchemaValidator",
    "Project",
    "EntityDefinition",
    "FieldDefinition",
    "EntityRelationship",
    "SchemaMigration",
]
