"""SQLAlchemy ORM models for the SchemaGraph metadata tables.

Projects own entities, entities own fields, and entity_relationships connects
pairs of entities. Ownership cascades at the database level (ON DELETE
CASCADE); references that are only pointers (a field's foreign entity or
foreign field) are cleared instead (ON DELETE SET NULL).
"""

from __future__ import annotations

from datetime import UTC, datetime
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def generate_uuid() -> str:
    """Generate a new UUID as string."""
    return str(uuid4())


def utc_now() -> datetime:
    """Get current UTC timestamp."""
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Base class for all SchemaGraph models."""

    pass


class Project(Base):
    """A workspace that groups entities."""

    __tablename__ = "projects"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, server_default=func.current_timestamp()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        onupdate=utc_now,
        server_default=func.current_timestamp(),
    )

    entities: Mapped[list[EntityDefinition]] = relationship(
        "EntityDefinition", back_populates="project", passive_deletes=True
    )


class EntityDefinition(Base):
    """A user-defined record type (like User, Post, Invoice)."""

    __tablename__ = "entities"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    project_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, server_default=func.current_timestamp()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        onupdate=utc_now,
        server_default=func.current_timestamp(),
    )

    project: Mapped[Project] = relationship("Project", back_populates="entities")
    fields: Mapped[list[FieldDefinition]] = relationship(
        "FieldDefinition",
        back_populates="entity",
        foreign_keys="FieldDefinition.entity_id",
        passive_deletes=True,
    )

    __table_args__ = (Index("ix_entities_project", "project_id", "name"),)


class FieldDefinition(Base):
    """A typed attribute of an entity, optionally a primary or foreign key."""

    __tablename__ = "fields"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    entity_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("entities.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(Text, nullable=False)
    is_required: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_unique: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    default_value: Mapped[str | None] = mapped_column(Text, nullable=True)
    max_length: Mapped[int | None] = mapped_column(Integer, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Key metadata
    is_primary_key: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_foreign_key: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    foreign_entity_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("entities.id", ondelete="SET NULL"), nullable=True
    )
    foreign_field_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("fields.id", ondelete="SET NULL"), nullable=True
    )

    # File-attribute extensions
    accepts_multiple: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    max_file_size: Mapped[int | None] = mapped_column(Integer, nullable=True)
    allowed_extensions: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, server_default=func.current_timestamp()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        onupdate=utc_now,
        server_default=func.current_timestamp(),
    )

    entity: Mapped[EntityDefinition] = relationship(
        "EntityDefinition", back_populates="fields", foreign_keys=[entity_id]
    )

    __table_args__ = (Index("ix_fields_entity", "entity_id", "name"),)


class EntityRelationship(Base):
    """An explicit, cardinality-typed association between two entities."""

    __tablename__ = "entity_relationships"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    source_entity_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("entities.id", ondelete="CASCADE"), nullable=False
    )
    target_entity_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("entities.id", ondelete="CASCADE"), nullable=False
    )
    relationship_type: Mapped[str] = mapped_column(Text, nullable=False)
    source_field_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("fields.id", ondelete="SET NULL"), nullable=True
    )
    target_field_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("fields.id", ondelete="SET NULL"), nullable=True
    )
    name: Mapped[str | None] = mapped_column(Text, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_required: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    cascade_delete: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, server_default=func.current_timestamp()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        onupdate=utc_now,
        server_default=func.current_timestamp(),
    )

    __table_args__ = (
        UniqueConstraint(
            "source_entity_id",
            "target_entity_id",
            "source_field_id",
            "target_field_id",
            name="uq_entity_relationships_endpoints",
        ),
        CheckConstraint(
            "relationship_type IN ('one_to_one', 'one_to_many', 'many_to_one', 'many_to_many')",
            name="ck_entity_relationships_type",
        ),
    )


class SchemaMigration(Base):
    """Log of migration steps applied to this database."""

    __tablename__ = "schema_migrations"

    name: Mapped[str] = mapped_column(String(255), primary_key=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    applied_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=func.current_timestamp(),
        nullable=False,
    )


# Tables every database starts with; the rest arrive through migrations.
BASELINE_TABLES = (Project.__table__, EntityDefinition.__table__, FieldDefinition.__table__)
