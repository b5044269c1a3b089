"""Core types and specifications for SchemaGraph.

Input specs are what callers pass to create/update operations; ``*Info``
models are the plain records the store hands back. All of them are pydantic
models and serialize to JSON with ``model_dump(mode="json")``.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class FieldType(StrEnum):
    """Known field types.

    The ``fields.type`` column is a plain string, so the set is open at the
    storage level; the validator only accepts these values.
    """

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    TEXT = "text"
    INTEGER = "integer"
    DECIMAL = "decimal"
    FILE = "file"
    IMAGE = "image"
    DOCUMENT = "document"

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid field type values."""
        return [t.value for t in cls]


class RelationshipTypeEnum(StrEnum):
    """Cardinality of an explicit relationship between two entities."""

    ONE_TO_ONE = "one_to_one"  # e.g., User -> Profile
    ONE_TO_MANY = "one_to_many"  # e.g., Author -> Posts
    MANY_TO_ONE = "many_to_one"  # e.g., Post -> Author
    MANY_TO_MANY = "many_to_many"  # e.g., Post <-> Tag

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid relationship type values."""
        return [t.value for t in cls]


# === Input specs ===


class ProjectSpec(BaseModel):
    """Specification for creating a project."""

    name: str = Field(..., description="Project name")
    description: str | None = Field(default=None, description="Human-readable description")


class ProjectUpdate(BaseModel):
    """Partial update for a project. Only attributes that are set are applied."""

    name: str | None = None
    description: str | None = None


class EntitySpec(BaseModel):
    """Specification for creating an entity inside a project."""

    project_id: str = Field(..., description="Owning project id")
    name: str = Field(..., description="Entity name (PascalCase recommended)")
    description: str | None = Field(default=None, description="Human-readable description")


class EntityUpdate(BaseModel):
    """Partial update for an entity."""

    name: str | None = None
    description: str | None = None


class FieldSpec(BaseModel):
    """Specification for creating a field on an entity."""

    entity_id: str = Field(..., description="Owning entity id")
    name: str = Field(..., description="Field name (snake_case recommended)")
    type: str = Field(default=FieldType.STRING.value, description="Field data type")
    is_required: bool = False
    is_unique: bool = False
    is_primary_key: bool = False
    is_foreign_key: bool = False
    foreign_entity_id: str | None = Field(
        default=None, description="Entity referenced when is_foreign_key is set"
    )
    foreign_field_id: str | None = Field(
        default=None, description="Field of foreign_entity_id being referenced"
    )
    default_value: str | None = None
    max_length: int | None = None
    description: str | None = None
    # File-attribute extensions (file/image/document fields)
    accepts_multiple: bool = False
    max_file_size: int | None = None
    allowed_extensions: str | None = None


class FieldUpdate(BaseModel):
    """Partial update for a field. The owning entity cannot be changed."""

    name: str | None = None
    type: str | None = None
    is_required: bool | None = None
    is_unique: bool | None = None
    is_primary_key: bool | None = None
    is_foreign_key: bool | None = None
    foreign_entity_id: str | None = None
    foreign_field_id: str | None = None
    default_value: str | None = None
    max_length: int | None = None
    description: str | None = None
    accepts_multiple: bool | None = None
    max_file_size: int | None = None
    allowed_extensions: str | None = None


class RelationshipSpec(BaseModel):
    """Specification for an explicit relationship between two entities."""

    source_entity_id: str
    target_entity_id: str
    relationship_type: str = Field(..., description="one_to_one, one_to_many, ...")
    source_field_id: str | None = None
    target_field_id: str | None = None
    name: str | None = None
    description: str | None = None
    is_required: bool = False
    cascade_delete: bool = False


class RelationshipUpdate(BaseModel):
    """Partial update for a relationship. Endpoint entities are fixed."""

    relationship_type: str | None = None
    source_field_id: str | None = None
    target_field_id: str | None = None
    name: str | None = None
    description: str | None = None
    is_required: bool | None = None
    cascade_delete: bool | None = None


# === Stored records (output format) ===


class _Record(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    @field_validator("created_at", "updated_at", check_fields=False)
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        # SQLite drops the offset, stored timestamps are always UTC
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value


class ProjectInfo(_Record):
    """A stored project."""

    id: str
    name: str
    description: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class EntityInfo(_Record):
    """A stored entity."""

    id: str
    project_id: str
    name: str
    description: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class FieldInfo(_Record):
    """A stored field."""

    id: str
    entity_id: str
    name: str
    type: str
    is_required: bool = False
    is_unique: bool = False
    is_primary_key: bool = False
    is_foreign_key: bool = False
    foreign_entity_id: str | None = None
    foreign_field_id: str | None = None
    default_value: str | None = None
    max_length: int | None = None
    description: str | None = None
    accepts_multiple: bool = False
    max_file_size: int | None = None
    allowed_extensions: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class RelationshipInfo(_Record):
    """A stored explicit relationship."""

    id: str
    source_entity_id: str
    target_entity_id: str
    relationship_type: str
    source_field_id: str | None = None
    target_field_id: str | None = None
    name: str | None = None
    description: str | None = None
    is_required: bool = False
    cascade_delete: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None


class RelationshipDetail(RelationshipInfo):
    """A relationship joined with the names of its endpoints."""

    source_entity_name: str | None = None
    target_entity_name: str | None = None
    source_field_name: str | None = None
    target_field_name: str | None = None


# === Inference and diagrams ===


class InferredRelationship(BaseModel):
    """A many-to-one relationship derived from a ``<entity>_id`` field name."""

    source_entity_id: str
    source_entity: str
    target_entity_id: str
    target_entity: str
    field_id: str
    field_name: str
    relationship_type: str = RelationshipTypeEnum.MANY_TO_ONE.value


class RelationshipListing(BaseModel):
    """Row of the inferred relationship listing."""

    source_entity: str
    target_entity: str
    field_name: str
    relationship_type: str


class Position(BaseModel):
    x: float
    y: float


class DiagramField(BaseModel):
    """Field as shown inside a diagram node."""

    id: str
    name: str
    type: str
    is_required: bool
    is_unique: bool
    is_primary_key: bool
    is_foreign_key: bool
    default_value: str | None = None
    max_length: int | None = None
    description: str | None = None


class DiagramEntity(BaseModel):
    id: str
    name: str
    description: str | None = None


class DiagramNodeData(BaseModel):
    label: str
    entity: DiagramEntity
    fields: list[DiagramField] = Field(default_factory=list)


class DiagramNode(BaseModel):
    """One entity box of the diagram."""

    id: str
    type: str = "entityNode"
    position: Position
    data: DiagramNodeData


class DiagramEdgeData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    relationship: str
    source_cardinality: str = Field(alias="sourceCardinality")
    target_cardinality: str = Field(alias="targetCardinality")


class DiagramEdge(BaseModel):
    """One inferred relationship drawn between two nodes."""

    id: str
    source: str
    target: str
    type: str = "smoothstep"
    label: str | None = None
    data: DiagramEdgeData | None = None


class Viewport(BaseModel):
    x: float = 0
    y: float = 0
    zoom: float = 1


class DiagramData(BaseModel):
    """Node/edge graph for a project, ready for a flow-chart renderer.

    Serialize with ``model_dump(by_alias=True)`` to get the renderer's
    camelCase edge keys.
    """

    nodes: list[DiagramNode] = Field(default_factory=list)
    edges: list[DiagramEdge] = Field(default_factory=list)
    viewport: Viewport = Field(default_factory=Viewport)


class FieldTypeCount(BaseModel):
    type: str
    count: int


class ProjectStats(BaseModel):
    """Aggregate statistics shown next to a project diagram."""

    total_entities: int
    total_fields: int
    total_relationships: int
    field_types: list[FieldTypeCount] = Field(default_factory=list)


# === Migrations ===


class MigrationStatus(BaseModel):
    """Which parts of the required physical layout are present."""

    missing_columns: list[str] = Field(default_factory=list)
    present_columns: list[str] = Field(default_factory=list)
    relationship_table_present: bool = False
    relationship_row_count: int = 0
    relationship_trigger_present: bool = False
    migration_log_present: bool = False
    applied_steps: list[str] = Field(default_factory=list)
    migrations_needed: bool = True


class MigrationFailure(BaseModel):
    step: str
    reason: str


class MigrationReport(BaseModel):
    """Outcome of one ``run_migrations`` call."""

    applied: list[str] = Field(default_factory=list)
    # Pending at snapshot time but already satisfied when reached
    skipped: list[str] = Field(default_factory=list)
    failed: list[MigrationFailure] = Field(default_factory=list)

    @property
    def success(self) -> bool:
        """True when no step failed."""
        return not self.failed
