"""Relationship inference and diagram synthesis."""

from schemagraph.diagram.composer import DiagramComposer
from schemagraph.diagram.inference import (
    ConventionResolver,
    EntityNameResolver,
    RelationshipInferencer,
)

__all__ = [
    "DiagramComposer",
    "RelationshipInferencer",
    "EntityNameResolver",
    "ConventionResolver",
]
