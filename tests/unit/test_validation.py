"""Tests for the validation layer and its error taxonomy."""

import pytest

from schemagraph.core.types import FieldType, RelationshipTypeEnum
from schemagraph.exceptions import (
    EntityNotFoundError,
    FieldAlreadyExistsError,
    FieldNotFoundError,
    FieldOwnershipError,
    ForeignFieldMismatchError,
    InvalidFieldTypeError,
    InvalidRelationshipTypeError,
    MissingForeignEntityError,
    NotFoundError,
    PrimaryForeignKeyConflictError,
    ProjectNotFoundError,
    RelationshipAlreadyExistsError,
    SchemaGraphError,
    ValidationError,
)
from schemagraph.schema.store import MetadataStore
from schemagraph.schema.validation import SchemaValidator


@pytest.fixture
def validator(store: MetadataStore) -> SchemaValidator:
    return SchemaValidator(store)


@pytest.fixture
def shop(store: MetadataStore):
    """Customer(id) and Order(id, total) in one project."""
    store.projects.create("p1", {"name": "Shop"})
    store.entities.create("customer", {"project_id": "p1", "name": "Customer"})
    store.entities.create("order", {"project_id": "p1", "name": "Order"})
    store.fields.create("customer.id", {"entity_id": "customer", "name": "id", "is_primary_key": True})
    store.fields.create("order.id", {"entity_id": "order", "name": "id", "is_primary_key": True})
    store.fields.create("order.total", {"entity_id": "order", "name": "total", "type": "decimal"})
    return store


class TestTypeChecks:
    """Enumerated type checks."""

    def test_valid_field_types(self):
        for value in FieldType.values():
            assert SchemaValidator.validate_field_type(value) == FieldType(value)

    def test_invalid_field_type(self):
        with pytest.raises(InvalidFieldTypeError) as exc_info:
            SchemaValidator.validate_field_type("varchar")
        assert exc_info.value.context["field_type"] == "varchar"
        assert "string" in exc_info.value.context["valid_types"]

    def test_field_type_list_matches_enum(self):
        assert InvalidFieldTypeError.VALID_TYPES == FieldType.values()

    def test_valid_relationship_types(self):
        for value in RelationshipTypeEnum.values():
            assert SchemaValidator.validate_relationship_type(value).value == value

    def test_invalid_relationship_type(self):
        with pytest.raises(InvalidRelationshipTypeError):
            SchemaValidator.validate_relationship_type("belongs_to")


class TestEntityValidation:
    def test_missing_project(self, validator: SchemaValidator):
        with pytest.raises(ProjectNotFoundError) as exc_info:
            validator.validate_entity_create({"project_id": "nope", "name": "User"})
        assert exc_info.value.context == {"project_id": "nope"}

    def test_existing_project(self, validator: SchemaValidator, shop):
        spec = validator.validate_entity_create({"project_id": "p1", "name": "Invoice"})
        assert spec.name == "Invoice"


class TestFieldCreateValidation:
    """Checks run before a field is created."""

    def test_missing_entity(self, validator: SchemaValidator, shop):
        with pytest.raises(EntityNotFoundError):
            validator.validate_field_create({"entity_id": "nope", "name": "x"})

    def test_duplicate_name(self, validator: SchemaValidator, shop):
        with pytest.raises(FieldAlreadyExistsError):
            validator.validate_field_create({"entity_id": "order", "name": "total"})

    def test_same_name_on_other_entity_is_fine(self, validator: SchemaValidator, shop):
        validator.validate_field_create({"entity_id": "customer", "name": "total"})

    def test_invalid_type(self, validator: SchemaValidator, shop):
        with pytest.raises(InvalidFieldTypeError):
            validator.validate_field_create({"entity_id": "order", "name": "x", "type": "blob"})

    def test_primary_and_foreign_key(self, validator: SchemaValidator, shop):
        with pytest.raises(PrimaryForeignKeyConflictError):
            validator.validate_field_create(
                {
                    "entity_id": "order",
                    "name": "customer_id",
                    "is_primary_key": True,
                    "is_foreign_key": True,
                    "foreign_entity_id": "customer",
                }
            )

    def test_foreign_key_without_entity(self, validator: SchemaValidator, shop):
        with pytest.raises(MissingForeignEntityError):
            validator.validate_field_create(
                {"entity_id": "order", "name": "customer_id", "is_foreign_key": True}
            )

    def test_foreign_entity_missing(self, validator: SchemaValidator, shop):
        with pytest.raises(EntityNotFoundError):
            validator.validate_field_create(
                {
                    "entity_id": "order",
                    "name": "customer_id",
                    "is_foreign_key": True,
                    "foreign_entity_id": "ghost",
                }
            )

    def test_foreign_field_missing(self, validator: SchemaValidator, shop):
        with pytest.raises(FieldNotFoundError):
            validator.validate_field_create(
                {
                    "entity_id": "order",
                    "name": "customer_id",
                    "is_foreign_key": True,
                    "foreign_entity_id": "customer",
                    "foreign_field_id": "ghost",
                }
            )

    def test_foreign_field_of_other_entity(self, validator: SchemaValidator, shop):
        with pytest.raises(ForeignFieldMismatchError):
            validator.validate_field_create(
                {
                    "entity_id": "order",
                    "name": "customer_id",
                    "is_foreign_key": True,
                    "foreign_entity_id": "customer",
                    "foreign_field_id": "order.total",
                }
            )

    def test_valid_foreign_key(self, validator: SchemaValidator, shop):
        spec = validator.validate_field_create(
            {
                "entity_id": "order",
                "name": "customer_id",
                "type": "integer",
                "is_foreign_key": True,
                "foreign_entity_id": "customer",
                "foreign_field_id": "customer.id",
            }
        )
        assert spec.foreign_entity_id == "customer"


class TestFieldUpdateValidation:
    """Checks run against the merged state of a field."""

    def test_unknown_field_is_not_parsed(self, validator: SchemaValidator, shop):
        """An update to a missing field yields None, however malformed."""
        assert validator.validate_field_update("ghost", {"name": "x"}) is None
        assert validator.validate_field_update("ghost", {"name": 123}) is None
        assert validator.validate_relationship_update("ghost", {"is_required": "maybe"}) is None

    def test_rename_to_existing_name(self, validator: SchemaValidator, shop):
        with pytest.raises(FieldAlreadyExistsError):
            validator.validate_field_update("order.total", {"name": "id"})

    def test_rename_to_own_name(self, validator: SchemaValidator, shop):
        validator.validate_field_update("order.total", {"name": "total"})

    def test_setting_foreign_key_on_primary_key(self, validator: SchemaValidator, shop):
        """The stored primary key flag counts even though the update does not mention it."""
        with pytest.raises(PrimaryForeignKeyConflictError):
            validator.validate_field_update(
                "order.id", {"is_foreign_key": True, "foreign_entity_id": "customer"}
            )

    def test_switching_primary_to_foreign_key(self, validator: SchemaValidator, shop):
        validator.validate_field_update(
            "order.id",
            {"is_primary_key": False, "is_foreign_key": True, "foreign_entity_id": "customer"},
        )

    def test_clearing_foreign_entity_of_foreign_key(self, validator: SchemaValidator, shop):
        shop.fields.update(
            "order.total", {"is_foreign_key": True, "foreign_entity_id": "customer"}
        )
        with pytest.raises(MissingForeignEntityError):
            validator.validate_field_update("order.total", {"foreign_entity_id": None})

    def test_invalid_type(self, validator: SchemaValidator, shop):
        with pytest.raises(InvalidFieldTypeError):
            validator.validate_field_update("order.total", {"type": "money"})


class TestRelationshipValidation:
    """Endpoint, ownership and uniqueness checks."""

    def test_missing_endpoint_entity(self, validator: SchemaValidator, shop):
        with pytest.raises(EntityNotFoundError):
            validator.validate_relationship_create(
                {
                    "source_entity_id": "order",
                    "target_entity_id": "ghost",
                    "relationship_type": "many_to_one",
                }
            )

    def test_invalid_type(self, validator: SchemaValidator, shop):
        with pytest.raises(InvalidRelationshipTypeError):
            validator.validate_relationship_create(
                {
                    "source_entity_id": "order",
                    "target_entity_id": "customer",
                    "relationship_type": "belongs_to",
                }
            )

    def test_missing_endpoint_field(self, validator: SchemaValidator, shop):
        with pytest.raises(FieldNotFoundError):
            validator.validate_relationship_create(
                {
                    "source_entity_id": "order",
                    "target_entity_id": "customer",
                    "relationship_type": "many_to_one",
                    "source_field_id": "ghost",
                }
            )

    def test_endpoint_field_of_other_entity(self, validator: SchemaValidator, shop):
        with pytest.raises(FieldOwnershipError) as exc_info:
            validator.validate_relationship_create(
                {
                    "source_entity_id": "order",
                    "target_entity_id": "customer",
                    "relationship_type": "many_to_one",
                    "target_field_id": "order.id",
                }
            )
        assert exc_info.value.role == "target"

    def test_duplicate_tuple(self, validator: SchemaValidator, shop):
        data = {
            "source_entity_id": "order",
            "target_entity_id": "customer",
            "relationship_type": "many_to_one",
            "target_field_id": "customer.id",
        }
        shop.relationships.create("r1", validator.validate_relationship_create(data))
        with pytest.raises(RelationshipAlreadyExistsError):
            validator.validate_relationship_create({**data, "relationship_type": "one_to_one"})

    def test_duplicate_tuple_without_fields(self, validator: SchemaValidator, shop):
        """Tuples with NULL fields are duplicates too, though SQLite's UNIQUE lets them pass."""
        data = {
            "source_entity_id": "order",
            "target_entity_id": "customer",
            "relationship_type": "many_to_one",
        }
        shop.relationships.create("r1", validator.validate_relationship_create(data))
        with pytest.raises(RelationshipAlreadyExistsError):
            validator.validate_relationship_create(data)

    def test_update_onto_existing_tuple(self, validator: SchemaValidator, shop):
        base = {
            "source_entity_id": "order",
            "target_entity_id": "customer",
            "relationship_type": "many_to_one",
        }
        shop.relationships.create("r1", base)
        shop.relationships.create("r2", {**base, "target_field_id": "customer.id"})
        with pytest.raises(RelationshipAlreadyExistsError):
            validator.validate_relationship_update("r2", {"target_field_id": None})

    def test_update_without_endpoint_change(self, validator: SchemaValidator, shop):
        shop.relationships.create(
            "r1",
            {
                "source_entity_id": "order",
                "target_entity_id": "customer",
                "relationship_type": "many_to_one",
            },
        )
        update = validator.validate_relationship_update("r1", {"relationship_type": "one_to_one"})
        assert update.relationship_type == "one_to_one"


class TestErrorTaxonomy:
    """Errors are distinguishable by kind."""

    def test_hierarchy(self):
        assert issubclass(PrimaryForeignKeyConflictError, ValidationError)
        assert issubclass(RelationshipAlreadyExistsError, ValidationError)
        assert issubclass(FieldNotFoundError, NotFoundError)
        assert issubclass(ValidationError, SchemaGraphError)
        assert issubclass(NotFoundError, SchemaGraphError)

    def test_to_dict(self):
        error = ForeignFieldMismatchError("f1", "e1")
        data = error.to_dict()
        assert data["error"] == "ForeignFieldMismatchError"
        assert data["context"] == {"foreign_field_id": "f1", "foreign_entity_id": "e1"}
        assert "does not belong" in data["message"]
