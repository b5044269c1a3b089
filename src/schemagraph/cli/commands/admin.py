"""Admin and utility commands."""

import typer

import schemagraph
from schemagraph.cli.context import CLIContext

# Create admin subcommand group
app = typer.Typer(help="Database administration and schema migrations")


@app.command()
def init(
    ctx: typer.Context,
) -> None:
    """Initialize a database with the SchemaGraph tables.

    Creates projects, entities, fields, entity_relationships and
    schema_migrations, or brings an existing database up to date.

    Examples:

        schemagraph admin init
        schemagraph --database sqlite:///./blog.db admin init
    """
    cli_ctx: CLIContext = ctx.obj
    formatter = cli_ctx.formatter

    try:
        # Opening the database runs the migrations
        report = cli_ctx.startup_report

        if not report.success:
            formatter.print_migration_report(report)
            raise typer.Exit(code=1)

        formatter.print_success(
            "Database initialized",
            {
                "database": cli_ctx.database_url,
                "version": schemagraph.__version__,
                "steps_applied": len(report.applied),
            },
        )
    except typer.Exit:
        raise
    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)
    finally:
        cli_ctx.close()


@app.command()
def migrate(
    ctx: typer.Context,
) -> None:
    """Apply pending migration steps and report each one.

    Safe to run repeatedly; a current database is left untouched.

    Examples:

        schemagraph admin migrate
    """
    cli_ctx: CLIContext = ctx.obj
    formatter = cli_ctx.formatter

    try:
        with cli_ctx.evolver() as evolver:
            report = evolver.run_migrations()
        formatter.print_migration_report(report)
        if not report.success:
            raise typer.Exit(code=1)
    except typer.Exit:
        raise
    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)


@app.command()
def status(
    ctx: typer.Context,
) -> None:
    """Show which required columns and tables are present.

    Read-only: pending steps are reported, not applied.

    Examples:

        schemagraph admin status
        schemagraph --json admin status
    """
    cli_ctx: CLIContext = ctx.obj
    formatter = cli_ctx.formatter

    try:
        with cli_ctx.evolver() as evolver:
            migration_status = evolver.get_migration_status()
        formatter.print_migration_status(migration_status)
    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)
