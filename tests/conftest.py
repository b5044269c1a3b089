"""Shared test fixtures for SchemaGraph."""

from collections.abc import Generator
from dataclasses import dataclass
from pathlib import Path

import pytest

from schemagraph import SchemaGraph
from schemagraph.core.connection import DatabaseConnection
from schemagraph.core.types import EntityInfo, FieldInfo, ProjectInfo
from schemagraph.schema.migrations import SchemaEvolver
from schemagraph.schema.store import MetadataStore


@pytest.fixture
def memory_db() -> Generator[SchemaGraph, None, None]:
    """Create a SchemaGraph instance with SQLite in-memory."""
    database = SchemaGraph("sqlite:///:memory:")
    yield database
    database.close()


@pytest.fixture
def temp_db_url(tmp_path: Path) -> str:
    """SQLite URL of a database file that does not exist yet."""
    return f"sqlite:///{tmp_path / 'schemagraph.db'}"


@pytest.fixture
def connection() -> Generator[DatabaseConnection, None, None]:
    """Unmigrated in-memory connection."""
    conn = DatabaseConnection("sqlite:///:memory:")
    yield conn
    conn.close()


@pytest.fixture
def store(connection: DatabaseConnection) -> MetadataStore:
    """Metadata store over a freshly migrated in-memory database."""
    report = SchemaEvolver(connection).run_migrations()
    assert report.success, report.failed
    return MetadataStore(connection)


@dataclass
class BlogProject:
    """User/Post project: Post.user_id is a foreign key to User.id."""

    project: ProjectInfo
    user: EntityInfo
    post: EntityInfo
    user_id: FieldInfo
    email: FieldInfo
    post_id: FieldInfo
    post_user_id: FieldInfo
    title: FieldInfo


@pytest.fixture
def blog(memory_db: SchemaGraph) -> BlogProject:
    """Build the User/Post project used by the end-to-end tests."""
    project = memory_db.create_project("Blog", description="Users and their posts")
    user = memory_db.create_entity(project.id, "User")
    user_id = memory_db.create_field(user.id, "id", "integer", is_primary_key=True)
    email = memory_db.create_field(user.id, "email", "string", is_unique=True)

    post = memory_db.create_entity(project.id, "Post")
    post_id = memory_db.create_field(post.id, "id", "integer", is_primary_key=True)
    post_user_id = memory_db.create_field(
        post.id,
        "user_id",
        "integer",
        is_foreign_key=True,
        foreign_entity_id=user.id,
        foreign_field_id=user_id.id,
    )
    title = memory_db.create_field(post.id, "title", "string", is_required=True)

    return BlogProject(
        project=project,
        user=user,
        post=post,
        user_id=user_id,
        email=email,
        post_id=post_id,
        post_user_id=post_user_id,
        title=title,
    )
