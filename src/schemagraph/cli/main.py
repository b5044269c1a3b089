"""SchemaGraph CLI - Main entry point."""

import logging
import sys
from typing import Annotated

import typer

import schemagraph
from schemagraph.cli.context import CLIContext

# Create main Typer app
app = typer.Typer(
    name="schemagraph",
    help="SchemaGraph CLI - Define entities, fields and relationships, and draw them",
    no_args_is_help=True,
)

# Store CLI context globally (will be set in callback)
state: dict[str, CLIContext] = {}


@app.callback()
def main_callback(
    ctx: typer.Context,
    database: Annotated[
        str | None,
        typer.Option(
            "--database",
            "-d",
            envvar="SCHEMAGRAPH_URL",
            help="SQLite database URL",
        ),
    ] = None,
    echo: Annotated[
        bool,
        typer.Option(
            "--echo",
            "-e",
            help="Echo SQL statements to console",
        ),
    ] = False,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            "-j",
            help="Output as JSON (machine-readable)",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Log debug output to stderr",
        ),
    ] = False,
) -> None:
    """Initialize CLI context with global options."""
    # Logs go to stderr so JSON output on stdout stays parseable
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        stream=sys.stderr,
        format="%(levelname)s %(name)s: %(message)s",
    )

    cli_ctx = CLIContext.from_options(database, echo=echo, json_output=json_output)

    # Store in Typer context for command access
    ctx.obj = cli_ctx
    state["cli_ctx"] = cli_ctx


@app.command()
def version() -> None:
    """Show version information."""
    typer.echo(f"SchemaGraph v{schemagraph.__version__}")


# Register command groups
from schemagraph.cli.commands import admin, diagram, entity, field, project, relationship

app.add_typer(admin.app, name="admin")
app.add_typer(project.app, name="project")
app.add_typer(entity.app, name="entity")
app.add_typer(field.app, name="field")
app.add_typer(relationship.app, name="relationship")
app.add_typer(diagram.app, name="diagram")


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
