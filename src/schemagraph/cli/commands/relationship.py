"""Explicit relationship commands."""

from typing import Annotated

import typer

from schemagraph.cli.context import CLIContext
from schemagraph.exceptions import RelationshipNotFoundError

# Create relationship subcommand group
app = typer.Typer(help="Manage explicit relationships between entities")


@app.command("create")
def relationship_create(
    ctx: typer.Context,
    source_entity_id: Annotated[str, typer.Argument(help="Source entity id")],
    target_entity_id: Annotated[str, typer.Argument(help="Target entity id")],
    relationship_type: Annotated[
        str,
        typer.Argument(help="one_to_one, one_to_many, many_to_one or many_to_many"),
    ],
    source_field: Annotated[
        str | None, typer.Option("--source-field", help="Field id on the source entity")
    ] = None,
    target_field: Annotated[
        str | None, typer.Option("--target-field", help="Field id on the target entity")
    ] = None,
    name: Annotated[str | None, typer.Option("--name", help="Relationship name")] = None,
    description: Annotated[
        str | None, typer.Option("--description", help="Relationship description")
    ] = None,
    required: Annotated[bool, typer.Option("--required", help="Relationship is required")] = False,
    cascade_delete: Annotated[
        bool, typer.Option("--cascade-delete", help="Deleting the target deletes the source")
    ] = False,
) -> None:
    """Declare a relationship between two entities.

    Examples:

        schemagraph relationship create <post-id> <user-id> many_to_one --name author
    """
    cli_ctx: CLIContext = ctx.obj
    formatter = cli_ctx.formatter

    try:
        db = cli_ctx.get_db()
        relationship = db.create_relationship(
            source_entity_id,
            target_entity_id,
            relationship_type,
            source_field_id=source_field,
            target_field_id=target_field,
            name=name,
            description=description,
            is_required=required,
            cascade_delete=cascade_delete,
        )
        formatter.print_success(
            "Relationship created",
            {"id": relationship.id, "type": relationship.relationship_type},
        )
    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)
    finally:
        cli_ctx.close()


@app.command("list")
def relationship_list(
    ctx: typer.Context,
    project_id: Annotated[
        str | None,
        typer.Option("--project", "-p", help="Only relationships of this project"),
    ] = None,
) -> None:
    """List explicit relationships with entity and field names."""
    cli_ctx: CLIContext = ctx.obj
    formatter = cli_ctx.formatter

    try:
        db = cli_ctx.get_db()
        details = db.list_relationship_details(project_id)
        formatter.print_records(
            f"Relationships ({len(details)} total)",
            details,
            [
                "source_entity_name",
                "source_field_name",
                "relationship_type",
                "target_entity_name",
                "target_field_name",
            ],
        )
    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)
    finally:
        cli_ctx.close()


@app.command("delete")
def relationship_delete(
    ctx: typer.Context,
    relationship_id: Annotated[str, typer.Argument(help="Relationship id")],
) -> None:
    """Delete an explicit relationship."""
    cli_ctx: CLIContext = ctx.obj
    formatter = cli_ctx.formatter

    try:
        db = cli_ctx.get_db()
        if not db.delete_relationship(relationship_id):
            raise RelationshipNotFoundError(relationship_id)
        formatter.print_success(f"Relationship '{relationship_id}' deleted")
    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)
    finally:
        cli_ctx.close()
