"""Entity management commands."""

from typing import Annotated

import typer

from schemagraph.cli.context import CLIContext
from schemagraph.cli.parsing import parse_field_spec
from schemagraph.exceptions import EntityNotFoundError, FieldAlreadyExistsError
from schemagraph.schema.validation import SchemaValidator

# Create entity subcommand group
app = typer.Typer(help="Manage entities within a project")


@app.command("create")
def entity_create(
    ctx: typer.Context,
    project_id: Annotated[str, typer.Argument(help="Owning project id")],
    name: Annotated[str, typer.Argument(help="Entity name (e.g., User, Post)")],
    fields: Annotated[
        list[str] | None,
        typer.Option(
            "--field",
            "-f",
            help="Field spec: name:type[:modifier]. Can be repeated.",
        ),
    ] = None,
    description: Annotated[
        str | None,
        typer.Option("--description", help="Entity description"),
    ] = None,
    entity_id: Annotated[
        str | None,
        typer.Option("--id", help="Entity id (generated when omitted)"),
    ] = None,
) -> None:
    """Create a new entity, optionally with fields.

    Examples:

        schemagraph entity create <project-id> User --field "id:integer:pk" --field "email:string:unique"
    """
    cli_ctx: CLIContext = ctx.obj
    formatter = cli_ctx.formatter

    try:
        # Check every spec before touching the database so a typo leaves nothing behind
        parsed_fields = [parse_field_spec(spec) for spec in fields or []]
        seen: set[str] = set()
        for spec in parsed_fields:
            SchemaValidator.validate_field_type(spec["type"])
            if spec["name"] in seen:
                raise FieldAlreadyExistsError(spec["name"], entity_id or name)
            seen.add(spec["name"])

        db = cli_ctx.get_db()
        entity = db.create_entity(project_id, name, description=description, entity_id=entity_id)
        try:
            for spec in parsed_fields:
                field_name = spec.pop("name")
                field_type = spec.pop("type")
                db.create_field(entity.id, field_name, field_type, **spec)
        except Exception:
            db.delete_entity(entity.id)
            raise

        formatter.print_success(
            f"Entity '{entity.name}' created",
            {"id": entity.id, "fields": len(parsed_fields)},
        )
    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)
    finally:
        cli_ctx.close()


@app.command("list")
def entity_list(
    ctx: typer.Context,
    project_id: Annotated[str, typer.Argument(help="Project id")],
) -> None:
    """List a project's entities alphabetically."""
    cli_ctx: CLIContext = ctx.obj
    formatter = cli_ctx.formatter

    try:
        db = cli_ctx.get_db()
        entities = db.list_entities(project_id)
        formatter.print_records(
            f"Entities ({len(entities)} total)",
            entities,
            ["name", "description", "id"],
        )
    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)
    finally:
        cli_ctx.close()


@app.command("update")
def entity_update(
    ctx: typer.Context,
    entity_id: Annotated[str, typer.Argument(help="Entity id")],
    name: Annotated[str | None, typer.Option("--name", help="New name")] = None,
    description: Annotated[
        str | None, typer.Option("--description", help="New description")
    ] = None,
) -> None:
    """Rename an entity or change its description."""
    cli_ctx: CLIContext = ctx.obj
    formatter = cli_ctx.formatter

    changes = {
        key: value
        for key, value in {"name": name, "description": description}.items()
        if value is not None
    }

    try:
        db = cli_ctx.get_db()
        entity = db.update_entity(entity_id, **changes)
        if entity is None:
            raise EntityNotFoundError(entity_id)
        formatter.print_success(f"Entity '{entity.name}' updated", {"id": entity.id})
    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)
    finally:
        cli_ctx.close()


@app.command("delete")
def entity_delete(
    ctx: typer.Context,
    entity_id: Annotated[str, typer.Argument(help="Entity id")],
    force: Annotated[
        bool,
        typer.Option("--force", help="Skip confirmation prompt"),
    ] = False,
) -> None:
    """Delete an entity with its fields and relationships.

    Fields of other entities that referenced it stay, but lose their foreign key.
    """
    cli_ctx: CLIContext = ctx.obj
    formatter = cli_ctx.formatter

    # Confirmation prompt
    if not force and not cli_ctx.json_output:
        confirm = typer.confirm(f"Are you sure you want to delete entity '{entity_id}'?")
        if not confirm:
            typer.echo("Cancelled.")
            raise typer.Exit(code=0)

    try:
        db = cli_ctx.get_db()
        if not db.delete_entity(entity_id):
            raise EntityNotFoundError(entity_id)
        formatter.print_success(f"Entity '{entity_id}' deleted")
    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)
    finally:
        cli_ctx.close()
