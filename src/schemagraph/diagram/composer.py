"""Diagram synthesis: entity nodes, inferred edges and project statistics.

Everything is recomputed from the metadata store on each call. A project's
schema is small, so there is nothing worth caching.
"""

from __future__ import annotations

import math
from collections import Counter

from schemagraph.core.types import (
    DiagramData,
    DiagramEdge,
    DiagramEdgeData,
    DiagramEntity,
    DiagramField,
    DiagramNode,
    DiagramNodeData,
    FieldTypeCount,
    Position,
    ProjectStats,
    Viewport,
)
from schemagraph.diagram.inference import RelationshipInferencer
from schemagraph.schema.store import MetadataStore

# Grid layout, in pixels
NODE_WIDTH = 300
NODE_HEIGHT = 200
NODE_SPACING = 50


def grid_position(index: int, count: int) -> Position:
    """Place the node at ``index`` on a square grid sized for ``count`` nodes."""
    columns = max(1, math.ceil(math.sqrt(count)))
    row, column = divmod(index, columns)
    return Position(
        x=column * (NODE_WIDTH + NODE_SPACING),
        y=row * (NODE_HEIGHT + NODE_SPACING),
    )


class DiagramComposer:
    """Builds the entity-relationship diagram of a project."""

    def __init__(self, store: MetadataStore, inferencer: RelationshipInferencer) -> None:
        self._store = store
        self._inferencer = inferencer

    def generate_diagram(self, project_id: str) -> DiagramData:
        """Generate nodes, edges and viewport for a project.

        Nodes follow alphabetical entity order and carry their fields in
        alphabetical order. Edge ids are ``{source}-{target}-{field}``, so
        unchanged metadata always yields the same diagram.

        Args:
            project_id: Project to draw

        Returns:
            DiagramData ready for a flow-chart renderer
        """
        entities = self._store.entities.list_by_project(project_id)

        fields_by_entity: dict[str, list[DiagramField]] = {}
        for field in self._store.fields.list_by_project(project_id):
            fields_by_entity.setdefault(field.entity_id, []).append(
                DiagramField.model_validate(field.model_dump())
            )

        nodes = [
            DiagramNode(
                id=entity.id,
                position=grid_position(index, len(entities)),
                data=DiagramNodeData(
                    label=entity.name,
                    entity=DiagramEntity(
                        id=entity.id, name=entity.name, description=entity.description
                    ),
                    fields=sorted(fields_by_entity.get(entity.id, []), key=lambda f: f.name),
                ),
            )
            for index, entity in enumerate(entities)
        ]

        edges = [
            DiagramEdge(
                id=f"{rel.source_entity_id}-{rel.target_entity_id}-{rel.field_id}",
                source=rel.source_entity_id,
                target=rel.target_entity_id,
                label=rel.field_name,
                data=DiagramEdgeData(
                    relationship=rel.relationship_type,
                    source_cardinality="many",
                    target_cardinality="one",
                ),
            )
            for rel in self._inferencer.infer(project_id)
        ]

        return DiagramData(nodes=nodes, edges=edges, viewport=Viewport())

    def get_project_stats(self, project_id: str) -> ProjectStats:
        """Count entities, fields and inferred relationships of a project.

        The field-type histogram is ordered by descending count, ties by type name.
        """
        entities = self._store.entities.list_by_project(project_id)
        fields = self._store.fields.list_by_project(project_id)
        type_counts = Counter(field.type for field in fields)

        return ProjectStats(
            total_entities=len(entities),
            total_fields=len(fields),
            total_relationships=len(self._inferencer.infer(project_id)),
            field_types=[
                FieldTypeCount(type=field_type, count=count)
                for field_type, count in sorted(type_counts.items(), key=lambda tc: (-tc[1], tc[0]))
            ],
        )
