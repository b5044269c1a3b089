"""Tests for core types."""

from schemagraph.core.types import (
    DiagramEdgeData,
    FieldSpec,
    FieldType,
    FieldUpdate,
    MigrationFailure,
    MigrationReport,
    RelationshipTypeEnum,
)


class TestFieldType:
    """Tests for FieldType enum."""

    def test_all_types_exist(self):
        """All documented field types should exist."""
        expected = [
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
        assert FieldType.values() == expected

    def test_from_string(self):
        """Can create FieldType from string."""
        assert FieldType("integer") == FieldType.INTEGER
        assert FieldType.IMAGE == "image"


class TestRelationshipTypeEnum:
    def test_values(self):
        assert RelationshipTypeEnum.values() == [
            "one_to_one",
            "one_to_many",
            "many_to_one",
            "many_to_many",
        ]


class TestFieldSpec:
    """Tests for FieldSpec model."""

    def test_minimal_spec(self):
        """Can create spec with just entity and name."""
        spec = FieldSpec(entity_id="e1", name="email")
        assert spec.type == "string"
        assert spec.is_required is False
        assert spec.is_primary_key is False
        assert spec.is_foreign_key is False
        assert spec.foreign_entity_id is None
        assert spec.accepts_multiple is False

    def test_update_tracks_set_attributes(self):
        """Only explicitly given attributes count as changes, None included."""
        update = FieldUpdate(description=None)
        assert update.model_dump(exclude_unset=True) == {"description": None}


class TestDiagramEdgeData:
    def test_populate_by_name_and_alias(self):
        by_name = DiagramEdgeData(
            relationship="many_to_one", source_cardinality="many", target_cardinality="one"
        )
        by_alias = DiagramEdgeData.model_validate(
            {"relationship": "many_to_one", "sourceCardinality": "many", "targetCardinality": "one"}
        )
        assert by_name == by_alias
        assert "sourceCardinality" in by_name.model_dump(by_alias=True)
        assert "source_cardinality" in by_name.model_dump()


class TestMigrationReport:
    def test_success(self):
        assert MigrationReport().success is True
        report = MigrationReport(
            applied=["baseline_tables"],
            failed=[MigrationFailure(step="fields.max_file_size", reason="locked")],
        )
        assert report.success is False
