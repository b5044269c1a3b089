"""Core components for SchemaGraph."""

from schemagraph.core.connection import DatabaseConnection
from schemagraph.core.types import (
    DiagramData,
    EntityInfo,
    EntitySpec,
    FieldInfo,
    FieldSpec,
    FieldType,
    ProjectInfo,
    ProjectSpec,
    RelationshipInfo,
    RelationshipSpec,
    RelationshipTypeEnum,
)

__all__ = [
    "DatabaseConnection",
    "FieldType",
    "RelationshipTypeEnum",
    "ProjectSpec",
    "EntitySpec",
    "FieldSpec",
    "RelationshipSpec",
    "ProjectInfo",
    "EntityInfo",
    "FieldInfo",
    "RelationshipInfo",
    "DiagramData",
]
