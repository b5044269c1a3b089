"""Project management commands."""

from typing import Annotated

import typer

from schemagraph.cli.context import CLIContext
from schemagraph.exceptions import ProjectNotFoundError

# Create project subcommand group
app = typer.Typer(help="Manage projects")


@app.command("create")
def project_create(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Project name")],
    description: Annotated[
        str | None,
        typer.Option("--description", help="Project description"),
    ] = None,
    project_id: Annotated[
        str | None,
        typer.Option("--id", help="Project id (generated when omitted)"),
    ] = None,
) -> None:
    """Create a new project.

    Examples:

        schemagraph project create Blog --description "Posts and authors"
    """
    cli_ctx: CLIContext = ctx.obj
    formatter = cli_ctx.formatter

    try:
        db = cli_ctx.get_db()
        project = db.create_project(name, description=description, project_id=project_id)
        formatter.print_success(f"Project '{project.name}' created", {"id": project.id})
    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)
    finally:
        cli_ctx.close()


@app.command("list")
def project_list(ctx: typer.Context) -> None:
    """List all projects, newest first."""
    cli_ctx: CLIContext = ctx.obj
    formatter = cli_ctx.formatter

    try:
        db = cli_ctx.get_db()
        projects = db.list_projects()
        formatter.print_records(
            f"Projects ({len(projects)} total)",
            projects,
            ["id", "name", "description"],
        )
    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)
    finally:
        cli_ctx.close()


@app.command("show")
def project_show(
    ctx: typer.Context,
    project_id: Annotated[str, typer.Argument(help="Project id")],
) -> None:
    """Show a project with its entities."""
    cli_ctx: CLIContext = ctx.obj
    formatter = cli_ctx.formatter

    try:
        db = cli_ctx.get_db()
        project = db.get_project(project_id)
        if project is None:
            raise ProjectNotFoundError(project_id)
        entities = db.list_entities(project_id)

        if cli_ctx.json_output:
            formatter.print_data(
                {
                    **project.model_dump(mode="json"),
                    "entities": [e.model_dump(mode="json") for e in entities],
                }
            )
        else:
            typer.echo(f"\nProject: {project.name}")
            typer.echo(f"Id: {project.id}")
            if project.description:
                typer.echo(f"Description: {project.description}")
            if project.created_at:
                typer.echo(f"Created: {project.created_at}")
            formatter.print_table(
                f"Entities ({len(entities)})",
                [
                    {"Name": e.name, "Fields": len(db.list_fields(e.id)), "Id": e.id}
                    for e in entities
                ],
                ["Name", "Fields", "Id"],
            )
    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)
    finally:
        cli_ctx.close()


@app.command("update")
def project_update(
    ctx: typer.Context,
    project_id: Annotated[str, typer.Argument(help="Project id")],
    name: Annotated[str | None, typer.Option("--name", help="New name")] = None,
    description: Annotated[
        str | None, typer.Option("--description", help="New description")
    ] = None,
) -> None:
    """Rename a project or change its description."""
    cli_ctx: CLIContext = ctx.obj
    formatter = cli_ctx.formatter

    changes = {
        key: value
        for key, value in {"name": name, "description": description}.items()
        if value is not None
    }

    try:
        db = cli_ctx.get_db()
        project = db.update_project(project_id, **changes)
        if project is None:
            raise ProjectNotFoundError(project_id)
        formatter.print_success(f"Project '{project.name}' updated", {"id": project.id})
    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)
    finally:
        cli_ctx.close()


@app.command("delete")
def project_delete(
    ctx: typer.Context,
    project_id: Annotated[str, typer.Argument(help="Project id")],
    force: Annotated[
        bool,
        typer.Option("--force", help="Skip confirmation prompt"),
    ] = False,
) -> None:
    """Delete a project with all of its entities, fields and relationships."""
    cli_ctx: CLIContext = ctx.obj
    formatter = cli_ctx.formatter

    # Confirmation prompt
    if not force and not cli_ctx.json_output:
        confirm = typer.confirm(f"Are you sure you want to delete project '{project_id}'?")
        if not confirm:
            typer.echo("Cancelled.")
            raise typer.Exit(code=0)

    try:
        db = cli_ctx.get_db()
        if not db.delete_project(project_id):
            raise ProjectNotFoundError(project_id)
        formatter.print_success(f"Project '{project_id}' deleted")
    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)
    finally:
        cli_ctx.close()
