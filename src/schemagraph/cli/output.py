"""Output formatting for CLI commands."""

import json
from typing import Any

from pydantic import BaseModel
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from schemagraph.core.types import (
    DiagramData,
    FieldInfo,
    MigrationReport,
    MigrationStatus,
    ProjectStats,
)
from schemagraph.exceptions import SchemaGraphError

console = Console()


def _jsonable(data: Any) -> Any:
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json", by_alias=True)
    if isinstance(data, list):
        return [_jsonable(item) for item in data]
    return data


class OutputFormatter:
    """Formats output for terminal or JSON mode."""

    def __init__(self, json_mode: bool = False) -> None:
        """Initialize formatter.

        Args:
            json_mode: If True, output JSON instead of Rich formatting
        """
        self.json_mode = json_mode

    def print_table(
        self,
        title: str,
        data: list[dict[str, Any]],
        columns: list[str],
    ) -> None:
        """Print data as Rich table or JSON array.

        Args:
            title: Table title
            data: List of row dictionaries
            columns: Column names to display
        """
        if self.json_mode:
            print(json.dumps(data, default=str, indent=2))
        else:
            table = Table(title=title, show_header=True, header_style="bold magenta")
            for col in columns:
                table.add_column(col)
            for row in data:
                table.add_row(*[str(row.get(col, "") or "") for col in columns])
            console.print(table)

    def print_records(self, title: str, records: list[BaseModel], columns: list[str]) -> None:
        """Print pydantic records, full in JSON mode and as selected columns otherwise."""
        if self.json_mode:
            self.print_data(records)
        else:
            self.print_table(title, [record.model_dump() for record in records], columns)

    def print_fields(self, title: str, fields: list[FieldInfo]) -> None:
        """Print an entity's fields with key markers."""
        if self.json_mode:
            self.print_data(fields)
            return

        table = Table(title=title, show_header=True, header_style="bold cyan")
        table.add_column("Name")
        table.add_column("Type")
        table.add_column("Required")
        table.add_column("Unique")
        table.add_column("Key")
        table.add_column("References")
        for field in fields:
            key = "PK" if field.is_primary_key else "FK" if field.is_foreign_key else ""
            table.add_row(
                field.name,
                field.type,
                "✓" if field.is_required else "",
                "✓" if field.is_unique else "",
                key,
                field.foreign_entity_id or "",
            )
        console.print(table)

    def print_diagram(self, diagram: DiagramData) -> None:
        """Print a diagram as node and edge tables, or as renderer JSON."""
        if self.json_mode:
            self.print_data(diagram)
            return

        names = {node.id: node.data.label for node in diagram.nodes}
        nodes = Table(title=f"Nodes ({len(diagram.nodes)})", header_style="bold magenta")
        nodes.add_column("Entity")
        nodes.add_column("Fields")
        nodes.add_column("Position")
        for node in diagram.nodes:
            nodes.add_row(
                node.data.label,
                str(len(node.data.fields)),
                f"({node.position.x:g}, {node.position.y:g})",
            )
        console.print(nodes)

        edges = Table(title=f"Edges ({len(diagram.edges)})", header_style="bold magenta")
        edges.add_column("Source")
        edges.add_column("Target")
        edges.add_column("Label")
        for edge in diagram.edges:
            edges.add_row(
                names.get(edge.source, edge.source),
                names.get(edge.target, edge.target),
                edge.label or "",
            )
        console.print(edges)

    def print_stats(self, stats: ProjectStats) -> None:
        if self.json_mode:
            self.print_data(stats)
            return

        console.print(f"Entities: {stats.total_entities}")
        console.print(f"Fields: {stats.total_fields}")
        console.print(f"Relationships: {stats.total_relationships}")
        if stats.field_types:
            self.print_table(
                "Field types",
                [{"Type": ft.type, "Count": ft.count} for ft in stats.field_types],
                ["Type", "Count"],
            )

    def print_migration_status(self, status: MigrationStatus) -> None:
        if self.json_mode:
            self.print_data(status)
            return

        if status.migrations_needed:
            console.print("Schema: [yellow]out of date[/yellow]")
        else:
            console.print("Schema: [green]current[/green]")
        console.print(f"Present columns: {', '.join(status.present_columns) or '-'}")
        console.print(f"Missing columns: {', '.join(status.missing_columns) or '-'}")
        console.print(
            f"Relationships table: {'present' if status.relationship_table_present else 'missing'}"
            f" ({status.relationship_row_count} rows)"
        )
        console.print(
            f"Relationships trigger: {'present' if status.relationship_trigger_present else 'missing'}"
        )
        console.print(f"Applied steps: {len(status.applied_steps)}")

    def print_migration_report(self, report: MigrationReport) -> None:
        if self.json_mode:
            print(json.dumps({**report.model_dump(), "success": report.success}, indent=2))
            return

        if not report.applied and not report.failed:
            console.print("✓ Schema is current, nothing to apply", style="green")
        for name in report.applied:
            console.print(f"✓ {name}", style="green")
        for name in report.skipped:
            console.print(f"- {name} (already in place)", style="dim")
        for failure in report.failed:
            console.print(f"✗ {failure.step}: {failure.reason}", style="red")

    def print_success(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Print success message.

        Args:
            message: Success message
            details: Optional details to display
        """
        if self.json_mode:
            output = {"success": True, "message": message}
            if details:
                output.update(details)
            print(json.dumps(output, default=str, indent=2))
        else:
            console.print(f"✓ {message}", style="green")
            if details:
                for key, value in details.items():
                    console.print(f"  {key}: {value}", style="dim")

    def print_error(self, error: Exception) -> None:
        """Print error message.

        Args:
            error: Exception to display
        """
        if self.json_mode:
            if isinstance(error, SchemaGraphError):
                print(json.dumps(error.to_dict(), default=str, indent=2))
            else:
                print(json.dumps({"error": str(error)}, indent=2))
        else:
            error_text = str(error)
            # For SchemaGraphError, include context if available
            if isinstance(error, SchemaGraphError) and error.context:
                context_str = "\n".join(f"{k}: {v}" for k, v in error.context.items())
                error_text = f"{error_text}\n\n{context_str}"

            panel = Panel(
                error_text,
                title="[red]Error[/red]",
                border_style="red",
            )
            console.print(panel)

    def print_data(self, data: Any) -> None:
        """Print generic data (pydantic models, dicts, lists).

        Args:
            data: Data to print
        """
        data = _jsonable(data)
        if self.json_mode:
            print(json.dumps(data, default=str, indent=2))
        else:
            console.print_json(json.dumps(data, default=str))
