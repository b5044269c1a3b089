"""Diagram and inferred relationship commands."""

import json
from pathlib import Path
from typing import Annotated

import typer

from schemagraph.cli.context import CLIContext
from schemagraph.exceptions import ProjectNotFoundError

# Create diagram subcommand group
app = typer.Typer(help="Draw projects and inspect inferred relationships")


@app.command("generate")
def diagram_generate(
    ctx: typer.Context,
    project_id: Annotated[str, typer.Argument(help="Project id")],
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Write renderer JSON to this file"),
    ] = None,
) -> None:
    """Build the entity-relationship diagram of a project.

    Examples:

        schemagraph diagram generate <project-id>
        schemagraph diagram generate <project-id> --output diagram.json
    """
    cli_ctx: CLIContext = ctx.obj
    formatter = cli_ctx.formatter

    try:
        db = cli_ctx.get_db()
        if db.get_project(project_id) is None:
            raise ProjectNotFoundError(project_id)
        diagram = db.generate_diagram(project_id)

        if output is not None:
            output.write_text(
                json.dumps(diagram.model_dump(mode="json", by_alias=True), indent=2)
            )
            formatter.print_success(
                f"Diagram written to {output}",
                {"nodes": len(diagram.nodes), "edges": len(diagram.edges)},
            )
        else:
            formatter.print_diagram(diagram)
    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)
    finally:
        cli_ctx.close()


@app.command("relationships")
def diagram_relationships(
    ctx: typer.Context,
    project_id: Annotated[str, typer.Argument(help="Project id")],
) -> None:
    """List relationships inferred from <entity>_id field names."""
    cli_ctx: CLIContext = ctx.obj
    formatter = cli_ctx.formatter

    try:
        db = cli_ctx.get_db()
        listing = db.list_relationships(project_id)
        formatter.print_records(
            f"Inferred relationships ({len(listing)})",
            listing,
            ["source_entity", "field_name", "relationship_type", "target_entity"],
        )
    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)
    finally:
        cli_ctx.close()


@app.command("stats")
def diagram_stats(
    ctx: typer.Context,
    project_id: Annotated[str, typer.Argument(help="Project id")],
) -> None:
    """Show entity, field and relationship counts for a project."""
    cli_ctx: CLIContext = ctx.obj
    formatter = cli_ctx.formatter

    try:
        db = cli_ctx.get_db()
        formatter.print_stats(db.get_project_stats(project_id))
    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)
    finally:
        cli_ctx.close()
