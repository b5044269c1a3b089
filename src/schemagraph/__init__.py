"""SchemaGraph - dynamic schema metadata engine on SQLite.

Projects hold entities, entities hold typed fields (optionally primary or
foreign keys), and explicit relationships connect entities. On open, the
database layout is migrated forward with additive, idempotent steps.
Relationships implied by ``<entity>_id`` field names are inferred on demand
and drawn as a node/edge diagram.

Example:
    from schemagraph import SchemaGraph

    with SchemaGraph("sqlite:///blog.db") as sg:
        project = sg.create_project("Blog")
        user = sg.create_entity(project.id, "User")
        sg.create_field(user.id, "id", "integer", is_primary_key=True)
        sg.create_field(user.id, "email", "string", is_unique=True)

        post = sg.create_entity(project.id, "Post")
        sg.create_field(
            post.id, "user_id", "integer", is_foreign_key=True, foreign_entity_id=user.id
        )

        diagram = sg.generate_diagram(project.id)
        stats = sg.get_project_stats(project.id)
"""

from schemagraph.core.engine import SchemaGraph
from schemagraph.core.types import (
    DiagramData,
    DiagramEdge,
    DiagramNode,
    EntityInfo,
    EntitySpec,
    FieldInfo,
    FieldSpec,
    FieldType,
    InferredRelationship,
    MigrationReport,
    MigrationStatus,
    ProjectInfo,
    ProjectSpec,
    ProjectStats,
    RelationshipDetail,
    RelationshipInfo,
    RelationshipListing,
    RelationshipSpec,
    RelationshipTypeEnum,
)
from schemagraph.diagram import ConventionResolver, EntityNameResolver
from schemagraph.exceptions import (
    EntityNotFoundError,
    FieldAlreadyExistsError,
    FieldNotFoundError,
    FieldOwnershipError,
    ForeignFieldMismatchError,
    InvalidFieldTypeError,
    InvalidRelationshipTypeError,
    MigrationStepError,
    MissingForeignEntityError,
    NotFoundError,
    PrimaryForeignKeyConflictError,
    ProjectNotFoundError,
    RelationshipAlreadyExistsError,
    RelationshipNotFoundError,
    SchemaGraphError,
    ValidationError,
)

__version__ = "0.1.0"

__all__ = [
    # Main class
    "SchemaGraph",
    # Types
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
    "RelationshipDetail",
    # Inference and diagrams
    "EntityNameResolver",
    "ConventionResolver",
    "InferredRelationship",
    "RelationshipListing",
    "DiagramData",
    "DiagramNode",
    "DiagramEdge",
    "ProjectStats",
    # Migrations
    "MigrationStatus",
    "MigrationReport",
    # Exceptions
    "SchemaGraphError",
    "NotFoundError",
    "ProjectNotFoundError",
    "EntityNotFoundError",
    "FieldNotFoundError",
    "ValidationError",
    "InvalidFieldTypeError",
    "InvalidRelationshipTypeError",
    "FieldAlreadyExistsError",
    "PrimaryForeignKeyConflictError",
    "MissingForeignEntityError",
    "ForeignFieldMismatchError",
    "FieldOwnershipError",
    "RelationshipAlreadyExistsError",
    "RelationshipNotFoundError",
    "MigrationStepError",
]
