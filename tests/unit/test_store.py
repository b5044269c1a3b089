"""Tests for the metadata store."""

import pytest
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError

from schemagraph.core.types import FieldUpdate, ProjectUpdate
from schemagraph.schema.store import MetadataStore


@pytest.fixture
def project(store: MetadataStore):
    return store.projects.create("p1", {"name": "Shop"})


@pytest.fixture
def customer(store: MetadataStore, project):
    return store.entities.create("e-customer", {"project_id": project.id, "name": "Customer"})


@pytest.fixture
def order(store: MetadataStore, project):
    return store.entities.create("e-order", {"project_id": project.id, "name": "Order"})


class TestRecordLifecycle:
    """Create, get, update, delete and exists."""

    def test_create_returns_persisted_record(self, store: MetadataStore):
        """Created records come back with the caller's id and timestamps."""
        project = store.projects.create("p1", {"name": "Shop", "description": "Orders"})
        assert project.id == "p1"
        assert project.name == "Shop"
        assert project.created_at is not None

        fetched = store.projects.get("p1")
        assert fetched is not None
        assert fetched.description == "Orders"

    def test_created_record_equals_fetched_record(self, store: MetadataStore, customer):
        """Timestamps read back from SQLite keep their UTC timezone."""
        project = store.projects.get(customer.project_id)
        field = store.fields.create("f1", {"entity_id": customer.id, "name": "email"})

        assert store.entities.get(customer.id) == customer
        assert store.fields.get(field.id) == field
        assert project.created_at.tzinfo is not None
        assert project.created_at <= store.entities.get(customer.id).created_at

    def test_duplicate_id_raises_integrity_error(self, store: MetadataStore, project):
        """Storage uniqueness violations propagate unchanged."""
        with pytest.raises(IntegrityError):
            store.projects.create(project.id, {"name": "Again"})

    def test_missing_owner_raises_integrity_error(self, store: MetadataStore):
        """Foreign keys are enforced by SQLite."""
        with pytest.raises(IntegrityError):
            store.entities.create("e1", {"project_id": "nope", "name": "Orphan"})

    def test_get_unknown_returns_none(self, store: MetadataStore):
        assert store.projects.get("missing") is None
        assert store.entities.get("missing") is None
        assert store.fields.get("missing") is None
        assert store.relationships.get("missing") is None

    def test_exists(self, store: MetadataStore, project):
        assert store.projects.exists(project.id) is True
        assert store.projects.exists("missing") is False

    def test_update_applies_only_given_attributes(self, store: MetadataStore, project):
        """Partial updates leave other attributes alone."""
        store.projects.update(project.id, {"description": "Online shop"})
        updated = store.projects.update(project.id, ProjectUpdate(name="Store"))
        assert updated is not None
        assert updated.name == "Store"
        assert updated.description == "Online shop"

    def test_update_with_no_attributes_returns_current_record(
        self, store: MetadataStore, project
    ):
        """An empty update is a no-op, not an error."""
        before = store.projects.get(project.id)
        result = store.projects.update(project.id, {})
        assert result is not None
        assert result.name == before.name
        assert store.projects.get(project.id).updated_at == before.updated_at

    def test_update_ignores_unknown_keys(self, store: MetadataStore, project):
        """Unrecognized attributes count as nothing to update."""
        before = store.projects.get(project.id)
        result = store.projects.update(project.id, {"color": "blue", "id": "p2"})
        assert result is not None
        assert result.id == project.id
        assert store.projects.get(project.id).updated_at == before.updated_at

    def test_update_unknown_id_returns_none(self, store: MetadataStore):
        assert store.projects.update("missing", {"name": "X"}) is None
        assert store.fields.update("missing", {}) is None

    def test_update_unknown_id_ignores_malformed_payload(self, store: MetadataStore):
        """The payload is only parsed once the record is known to exist."""
        assert store.projects.update("missing", {"name": 123}) is None
        assert store.fields.update("missing", {"is_required": "maybe"}) is None

    def test_malformed_payload_for_existing_record_raises(self, store: MetadataStore, project):
        with pytest.raises(ValidationError):
            store.projects.update(project.id, {"name": 123})

    def test_update_changes_updated_at(self, store: MetadataStore, project):
        before = store.projects.get(project.id)
        store.projects.update(project.id, {"name": "Renamed"})
        after = store.projects.get(project.id)
        assert after.updated_at != before.updated_at

    def test_none_for_required_column_means_unchanged(self, store: MetadataStore, customer):
        """None is only written to nullable columns."""
        field = store.fields.create("f1", {"entity_id": customer.id, "name": "email"})
        updated = store.fields.update(
            field.id, FieldUpdate(name=None, description=None, is_required=None)
        )
        assert updated.name == "email"
        assert updated.is_required is False

    def test_delete(self, store: MetadataStore, project):
        assert store.projects.delete(project.id) is True
        assert store.projects.get(project.id) is None

    def test_delete_unknown_returns_false(self, store: MetadataStore):
        assert store.projects.delete("missing") is False
        assert store.entities.delete("missing") is False
        assert store.fields.delete("missing") is False
        assert store.relationships.delete("missing") is False


class TestListingAndMembership:
    """Listing order and membership checks."""

    def test_entities_listed_alphabetically(self, store: MetadataStore, project):
        for entity_id, name in [("e1", "Zebra"), ("e2", "Apple"), ("e3", "Mango")]:
            store.entities.create(entity_id, {"project_id": project.id, "name": name})
        names = [e.name for e in store.entities.list_by_project(project.id)]
        assert names == ["Apple", "Mango", "Zebra"]

    def test_fields_listed_in_creation_order(self, store: MetadataStore, customer):
        for field_id, name in [("f1", "zip"), ("f2", "address"), ("f3", "name")]:
            store.fields.create(field_id, {"entity_id": customer.id, "name": name})
        names = [f.name for f in store.fields.list_by_entity(customer.id)]
        assert names == ["zip", "address", "name"]

    def test_fields_by_project(self, store: MetadataStore, project, customer, order):
        store.fields.create("f1", {"entity_id": customer.id, "name": "name"})
        store.fields.create("f2", {"entity_id": order.id, "name": "total"})
        other = store.projects.create("p2", {"name": "Other"})
        elsewhere = store.entities.create("e-x", {"project_id": other.id, "name": "X"})
        store.fields.create("f3", {"entity_id": elsewhere.id, "name": "x"})

        fields = store.fields.list_by_project(project.id)
        assert [f.name for f in fields] == ["name", "total"]

    def test_belongs_to_project(self, store: MetadataStore, project, customer):
        assert store.entities.belongs_to_project(customer.id, project.id) is True
        assert store.entities.belongs_to_project(customer.id, "other") is False

    def test_belongs_to_entity(self, store: MetadataStore, customer, order):
        field = store.fields.create("f1", {"entity_id": customer.id, "name": "name"})
        assert store.fields.belongs_to_entity(field.id, customer.id) is True
        assert store.fields.belongs_to_entity(field.id, order.id) is False

    def test_exists_by_name_in_entity(self, store: MetadataStore, customer, order):
        field = store.fields.create("f1", {"entity_id": customer.id, "name": "email"})
        assert store.fields.exists_by_name_in_entity("email", customer.id) is True
        assert store.fields.exists_by_name_in_entity("email", order.id) is False
        # Renaming a field to its own name is not a duplicate
        assert (
            store.fields.exists_by_name_in_entity("email", customer.id, exclude_id=field.id)
            is False
        )


class TestRelationships:
    """Explicit relationship storage."""

    def test_create_and_list(self, store: MetadataStore, project, customer, order):
        rel = store.relationships.create(
            "r1",
            {
                "source_entity_id": order.id,
                "target_entity_id": customer.id,
                "relationship_type": "many_to_one",
                "name": "customer",
            },
        )
        assert rel.relationship_type == "many_to_one"
        assert [r.id for r in store.relationships.list_by_entity(customer.id)] == ["r1"]
        assert [r.id for r in store.relationships.list_by_entity(order.id)] == ["r1"]
        assert [r.id for r in store.relationships.list_by_project(project.id)] == ["r1"]

    def test_list_with_details(self, store: MetadataStore, project, customer, order):
        source_field = store.fields.create("f1", {"entity_id": order.id, "name": "customer_id"})
        store.relationships.create(
            "r1",
            {
                "source_entity_id": order.id,
                "target_entity_id": customer.id,
                "relationship_type": "many_to_one",
                "source_field_id": source_field.id,
            },
        )

        (detail,) = store.relationships.list_with_details(project.id)
        assert detail.source_entity_name == "Order"
        assert detail.target_entity_name == "Customer"
        assert detail.source_field_name == "customer_id"
        assert detail.target_field_name is None
        assert store.relationships.list_with_details("other") == []

    def test_storage_rejects_unknown_type(self, store: MetadataStore, customer, order):
        with pytest.raises(IntegrityError):
            store.relationships.create(
                "r1",
                {
                    "source_entity_id": order.id,
                    "target_entity_id": customer.id,
                    "relationship_type": "belongs_to",
                },
            )

    def test_exists_between_matches_null_fields(self, store: MetadataStore, customer, order):
        store.relationships.create(
            "r1",
            {
                "source_entity_id": order.id,
                "target_entity_id": customer.id,
                "relationship_type": "many_to_one",
            },
        )
        assert store.relationships.exists_between(order.id, customer.id) is True
        assert store.relationships.exists_between(customer.id, order.id) is False
        assert store.relationships.exists_between(order.id, customer.id, "f1") is False
        assert store.relationships.exists_between(order.id, customer.id, exclude_id="r1") is False


class TestDeleteCascades:
    """Ownership cascades and pointer clearing."""

    def test_deleting_entity_removes_fields_and_relationships(
        self, store: MetadataStore, customer, order
    ):
        store.fields.create("f1", {"entity_id": order.id, "name": "total"})
        store.relationships.create(
            "r1",
            {
                "source_entity_id": order.id,
                "target_entity_id": customer.id,
                "relationship_type": "many_to_one",
            },
        )

        assert store.entities.delete(order.id) is True
        assert store.fields.get("f1") is None
        assert store.relationships.get("r1") is None
        assert store.entities.get(customer.id) is not None

    def test_deleting_referenced_entity_clears_foreign_keys(
        self, store: MetadataStore, customer, order
    ):
        pk = store.fields.create("f-pk", {"entity_id": customer.id, "name": "id"})
        fk = store.fields.create(
            "f-fk",
            {
                "entity_id": order.id,
                "name": "customer_id",
                "is_foreign_key": True,
                "foreign_entity_id": customer.id,
                "foreign_field_id": pk.id,
            },
        )

        store.entities.delete(customer.id)

        survivor = store.fields.get(fk.id)
        assert survivor is not None
        assert survivor.foreign_entity_id is None
        assert survivor.foreign_field_id is None
        assert survivor.is_foreign_key is False

    def test_deleting_field_clears_pointers(self, store: MetadataStore, customer, order):
        pk = store.fields.create("f-pk", {"entity_id": customer.id, "name": "id"})
        fk = store.fields.create(
            "f-fk",
            {
                "entity_id": order.id,
                "name": "customer_id",
                "is_foreign_key": True,
                "foreign_entity_id": customer.id,
                "foreign_field_id": pk.id,
            },
        )
        store.relationships.create(
            "r1",
            {
                "source_entity_id": order.id,
                "target_entity_id": customer.id,
                "relationship_type": "many_to_one",
                "source_field_id": fk.id,
                "target_field_id": pk.id,
            },
        )

        assert store.fields.delete(pk.id) is True

        survivor = store.fields.get(fk.id)
        assert survivor.foreign_field_id is None
        assert survivor.foreign_entity_id == customer.id
        relationship = store.relationships.get("r1")
        assert relationship is not None
        assert relationship.target_field_id is None
        assert relationship.source_field_id == fk.id

    def test_deleting_project_removes_everything(self, store: MetadataStore, project, customer):
        store.fields.create("f1", {"entity_id": customer.id, "name": "name"})
        assert store.projects.delete(project.id) is True
        assert store.entities.get(customer.id) is None
        assert store.fields.get("f1") is None
