"""Relationship inference from field naming conventions.

A field named ``<token>_id`` is read as a many-to-one reference from its
entity to the entity whose name matches ``<token>``. Matching is delegated to
an ``EntityNameResolver``; the default ``ConventionResolver`` accepts the
token itself, its naive plural and its naive singular.

Inference is a read-only projection. It never looks at or writes explicit
``entity_relationships`` rows.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from typing import Protocol

from schemagraph.core.types import (
    EntityInfo,
    FieldInfo,
    InferredRelationship,
    RelationshipListing,
    RelationshipTypeEnum,
)
from schemagraph.schema.store import MetadataStore

logger = logging.getLogger(__name__)

# "<token>_id" with a non-empty token; a field named plain "id" never matches.
REFERENCE_FIELD_PATTERN = re.compile(r"^(?P<token>.+)_id$")


def reference_token(field_name: str) -> str | None:
    """Return the entity token of a ``<token>_id`` field name, or None."""
    match = REFERENCE_FIELD_PATTERN.match(field_name)
    return match.group("token") if match else None


class EntityNameResolver(Protocol):
    """Picks the entity a reference token points at."""

    def resolve(self, token: str, candidates: Sequence[EntityInfo]) -> EntityInfo | None:
        """Return the referenced entity, or None if the token matches nothing.

        ``candidates`` arrive in a stable order (alphabetical by name);
        resolvers that accept several matches must take the first.
        """
        ...


class ConventionResolver:
    """Case-insensitive match on the token, token + "s", or token minus its last character.

    Candidates are scanned in order and the first entity satisfying any of
    the three forms wins. When several entities match, no form is preferred
    over another; only enumeration order decides.
    """

    @staticmethod
    def name_forms(token: str) -> tuple[str, ...]:
        lowered = token.lower()
        forms = [lowered, lowered + "s"]
        if len(lowered) > 1:
            forms.append(lowered[:-1])
        return tuple(forms)

    def resolve(self, token: str, candidates: Sequence[EntityInfo]) -> EntityInfo | None:
        forms = self.name_forms(token)
        for entity in candidates:
            if entity.name.lower() in forms:
                return entity
        return None


class RelationshipInferencer:
    """Derives implicit many-to-one relationships for a project."""

    def __init__(self, store: MetadataStore, resolver: EntityNameResolver | None = None) -> None:
        """Initialize the inferencer.

        Args:
            store: Metadata store to read entities and fields from
            resolver: Token resolver (defaults to ConventionResolver)
        """
        self._store = store
        self._resolver = resolver or ConventionResolver()

    @property
    def resolver(self) -> EntityNameResolver:
        return self._resolver

    def infer(self, project_id: str) -> list[InferredRelationship]:
        """Infer relationships from the project's ``<token>_id`` fields.

        Sources are visited in alphabetical entity order and, within an
        entity, alphabetical field order. Unresolved fields are skipped.

        Args:
            project_id: Project to inspect

        Returns:
            One many-to-one relationship per resolved field
        """
        entities = self._store.entities.list_by_project(project_id)
        if not entities:
            return []

        fields_by_entity: dict[str, list[FieldInfo]] = {}
        for field in self._store.fields.list_by_project(project_id):
            fields_by_entity.setdefault(field.entity_id, []).append(field)

        inferred: list[InferredRelationship] = []
        for entity in entities:
            for field in fields_by_entity.get(entity.id, []):
                token = reference_token(field.name)
                if token is None:
                    continue
                target = self._resolver.resolve(token, entities)
                if target is None:
                    logger.debug(f"No entity matches reference field {entity.name}.{field.name}")
                    continue
                inferred.append(
                    InferredRelationship(
                        source_entity_id=entity.id,
                        source_entity=entity.name,
                        target_entity_id=target.id,
                        target_entity=target.name,
                        field_id=field.id,
                        field_name=field.name,
                        relationship_type=RelationshipTypeEnum.MANY_TO_ONE.value,
                    )
                )
        return inferred

    def list_relationships(self, project_id: str) -> list[RelationshipListing]:
        """List inferred relationships by entity and field name."""
        return [
            RelationshipListing(
                source_entity=rel.source_entity,
                target_entity=rel.target_entity,
                field_name=rel.field_name,
                relationship_type=rel.relationship_type,
            )
            for rel in self.infer(project_id)
        ]
