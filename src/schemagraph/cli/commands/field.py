"""Field management commands."""

from typing import Annotated, Any

import typer

from schemagraph.cli.context import CLIContext
from schemagraph.exceptions import EntityNotFoundError, FieldNotFoundError

# Create field subcommand group
app = typer.Typer(help="Manage fields of an entity")


@app.command("add")
def field_add(
    ctx: typer.Context,
    entity_id: Annotated[str, typer.Argument(help="Owning entity id")],
    name: Annotated[str, typer.Argument(help="Field name (e.g., email, user_id)")],
    field_type: Annotated[
        str,
        typer.Option("--type", "-t", help="Field type (string, integer, date, file, ...)"),
    ] = "string",
    required: Annotated[bool, typer.Option("--required", help="Field is required")] = False,
    unique: Annotated[bool, typer.Option("--unique", help="Values must be unique")] = False,
    primary_key: Annotated[
        bool, typer.Option("--primary-key", "--pk", help="Field is the primary key")
    ] = False,
    foreign_entity: Annotated[
        str | None,
        typer.Option("--references", help="Make a foreign key to this entity id"),
    ] = None,
    foreign_field: Annotated[
        str | None,
        typer.Option("--references-field", help="Field id of the referenced entity"),
    ] = None,
    default: Annotated[str | None, typer.Option("--default", help="Default value")] = None,
    max_length: Annotated[
        int | None, typer.Option("--max-length", help="Maximum length")
    ] = None,
    multiple: Annotated[
        bool, typer.Option("--multiple", help="File field holds several files")
    ] = False,
    max_file_size: Annotated[
        int | None, typer.Option("--max-file-size", help="Largest accepted file, in bytes")
    ] = None,
    allowed_extensions: Annotated[
        str | None,
        typer.Option("--allowed-extensions", help="Accepted extensions, e.g. '.png,.jpg'"),
    ] = None,
    description: Annotated[
        str | None, typer.Option("--description", help="Field description")
    ] = None,
    field_id: Annotated[
        str | None,
        typer.Option("--id", help="Field id (generated when omitted)"),
    ] = None,
) -> None:
    """Add a field to an entity.

    Examples:

        schemagraph field add <entity-id> id --type integer --pk
        schemagraph field add <entity-id> user_id --type integer --references <user-entity-id>
        schemagraph field add <entity-id> photos -t image --multiple --allowed-extensions .png,.jpg
    """
    cli_ctx: CLIContext = ctx.obj
    formatter = cli_ctx.formatter

    try:
        db = cli_ctx.get_db()
        field = db.create_field(
            entity_id,
            name,
            field_type,
            field_id=field_id,
            is_required=required,
            is_unique=unique,
            is_primary_key=primary_key,
            is_foreign_key=foreign_entity is not None,
            foreign_entity_id=foreign_entity,
            foreign_field_id=foreign_field,
            default_value=default,
            max_length=max_length,
            description=description,
            accepts_multiple=multiple,
            max_file_size=max_file_size,
            allowed_extensions=allowed_extensions,
        )
        formatter.print_success(
            f"Field '{field.name}' added",
            {"id": field.id, "type": field.type},
        )
    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)
    finally:
        cli_ctx.close()


@app.command("list")
def field_list(
    ctx: typer.Context,
    entity_id: Annotated[str, typer.Argument(help="Entity id")],
) -> None:
    """List an entity's fields in creation order."""
    cli_ctx: CLIContext = ctx.obj
    formatter = cli_ctx.formatter

    try:
        db = cli_ctx.get_db()
        entity = db.get_entity(entity_id)
        if entity is None:
            raise EntityNotFoundError(entity_id)
        fields = db.list_fields(entity_id)
        formatter.print_fields(f"{entity.name} fields ({len(fields)})", fields)
    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)
    finally:
        cli_ctx.close()


@app.command("update")
def field_update(
    ctx: typer.Context,
    field_id: Annotated[str, typer.Argument(help="Field id")],
    name: Annotated[str | None, typer.Option("--name", help="New name")] = None,
    field_type: Annotated[str | None, typer.Option("--type", "-t", help="New type")] = None,
    required: Annotated[
        bool | None, typer.Option("--required/--optional", help="Required flag")
    ] = None,
    unique: Annotated[
        bool | None, typer.Option("--unique/--not-unique", help="Unique flag")
    ] = None,
    primary_key: Annotated[
        bool | None, typer.Option("--primary-key/--no-primary-key", help="Primary key flag")
    ] = None,
    foreign_entity: Annotated[
        str | None,
        typer.Option("--references", help="Make a foreign key to this entity id"),
    ] = None,
    foreign_field: Annotated[
        str | None,
        typer.Option("--references-field", help="Field id of the referenced entity"),
    ] = None,
    drop_reference: Annotated[
        bool,
        typer.Option("--drop-reference", help="Stop being a foreign key"),
    ] = False,
    default: Annotated[str | None, typer.Option("--default", help="Default value")] = None,
    max_length: Annotated[
        int | None, typer.Option("--max-length", help="Maximum length")
    ] = None,
    multiple: Annotated[
        bool | None, typer.Option("--multiple/--single", help="Multiple files flag")
    ] = None,
    max_file_size: Annotated[
        int | None, typer.Option("--max-file-size", help="Largest accepted file, in bytes")
    ] = None,
    allowed_extensions: Annotated[
        str | None,
        typer.Option("--allowed-extensions", help="Accepted extensions, e.g. '.png,.jpg'"),
    ] = None,
    description: Annotated[
        str | None, typer.Option("--description", help="Field description")
    ] = None,
) -> None:
    """Update a field. Only the given options change.

    Examples:

        schemagraph field update <field-id> --name author_id --references <author-entity-id>
        schemagraph field update <field-id> --drop-reference
    """
    cli_ctx: CLIContext = ctx.obj
    formatter = cli_ctx.formatter

    changes: dict[str, Any] = {
        key: value
        for key, value in {
            "name": name,
            "type": field_type,
            "is_required": required,
            "is_unique": unique,
            "is_primary_key": primary_key,
            "foreign_field_id": foreign_field,
            "default_value": default,
            "max_length": max_length,
            "description": description,
            "accepts_multiple": multiple,
            "max_file_size": max_file_size,
            "allowed_extensions": allowed_extensions,
        }.items()
        if value is not None
    }
    if foreign_entity is not None:
        changes.update(is_foreign_key=True, foreign_entity_id=foreign_entity)
    if drop_reference:
        changes.update(is_foreign_key=False, foreign_entity_id=None, foreign_field_id=None)

    try:
        db = cli_ctx.get_db()
        field = db.update_field(field_id, **changes)
        if field is None:
            raise FieldNotFoundError(field_id)
        formatter.print_success(f"Field '{field.name}' updated", {"id": field.id})
    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)
    finally:
        cli_ctx.close()


@app.command("delete")
def field_delete(
    ctx: typer.Context,
    field_id: Annotated[str, typer.Argument(help="Field id")],
    force: Annotated[
        bool,
        typer.Option("--force", help="Skip confirmation prompt"),
    ] = False,
) -> None:
    """Delete a field and clear every reference to it."""
    cli_ctx: CLIContext = ctx.obj
    formatter = cli_ctx.formatter

    # Confirmation prompt
    if not force and not cli_ctx.json_output:
        confirm = typer.confirm(f"Are you sure you want to delete field '{field_id}'?")
        if not confirm:
            typer.echo("Cancelled.")
            raise typer.Exit(code=0)

    try:
        db = cli_ctx.get_db()
        if not db.delete_field(field_id):
            raise FieldNotFoundError(field_id)
        formatter.print_success(f"Field '{field_id}' deleted")
    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)
    finally:
        cli_ctx.close()
