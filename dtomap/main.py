"""
Main application entry point for dtomap.

Provides a CLI for one-off conversions, key normalization and CSV header
inspection.
"""

import sys
from typing import Optional, Tuple

import click
import pandas as pd
from rich.console import Console
from rich.table import Table

from dtomap.core.config import configuration_summary
from dtomap.core.exceptions import ConfigurationError, DtoMapError
from dtomap.core.logging import set_correlation_id, setup_logging
from dtomap.data.frames import frame_to_maps
from dtomap.mapping.coercion import convert as convert_value
from dtomap.mapping.context import ConversionContext
from dtomap.mapping.keys import normalize_key, to_camel_case
from dtomap.mapping.kinds import DATE_KINDS, SemanticKind

console = Console()

CLI_KINDS = [kind.value for kind in SemanticKind if kind is not SemanticKind.ENUM]


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--correlation-id", help="Set correlation ID for request tracing")
@click.pass_context
def main(ctx, debug: bool, correlation_id: Optional[str]):
    """Convert values between semantic kinds and normalize record keys."""
    ctx.ensure_object(dict)

    setup_logging(debug=debug, rich_output=True)

    if correlation_id:
        set_correlation_id(correlation_id)

    ctx.obj["debug"] = debug
    ctx.obj["correlation_id"] = correlation_id


@main.command()
@click.argument("value")
@click.option("--kind", "kind_name", required=True, type=click.Choice(CLI_KINDS), help="Target kind")
@click.option("--pattern", help="Date pattern override, e.g. yyyy-MM-dd")
@click.option("--scale", type=click.IntRange(min=0), help="Decimal scale for big_decimal results")
@click.option("--lenient", is_flag=True, help="Accept out-of-range date fields")
@click.pass_context
def convert(
    ctx, value: str, kind_name: str, pattern: Optional[str], scale: Optional[int], lenient: bool
):
    """Convert VALUE (given as text) to the target kind."""
    try:
        context = ConversionContext(
            date_pattern=pattern, decimal_scale=scale, lenient=True if lenient else None
        )
        kind = SemanticKind(kind_name)
        result = convert_value(value, kind, context)

        if result is None:
            console.print(f"[yellow]No conversion from text to {kind.name}[/yellow]")
            sys.exit(1)

        table = Table(title="Conversion")
        table.add_column("Field", style="cyan")
        table.add_column("Value", style="white")
        table.add_row("Input", value)
        table.add_row("Kind", kind.name)
        table.add_row("Result", str(result))
        table.add_row("Type", type(result).__name__)
        if pattern and kind in DATE_KINDS:
            table.add_row("Formatted", convert_value(result, SemanticKind.STRING, context))
        console.print(table)

    except ConfigurationError as e:
        console.print(f"[red]Configuration Error:[/red] {e}")
        sys.exit(1)
    except DtoMapError as e:
        console.print(f"[red]Conversion Error:[/red] {e}")
        if ctx.obj["debug"]:
            import traceback

            console.print(traceback.format_exc())
        sys.exit(1)


@main.command()
@click.argument("keys", nargs=-1, required=True)
@click.option("--normalize", is_flag=True, help="Apply key normalization instead of plain camel case")
def camel(keys: Tuple[str, ...], normalize: bool):
    """Print the camel-case form of each KEY."""
    rewrite = normalize_key if normalize else to_camel_case
    for key in keys:
        console.print(f"{key} -> {rewrite(key)}")


@main.command(name="normalize-csv")
@click.argument("csv_path", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def normalize_csv(ctx, csv_path: str):
    """Show how the headers of a CSV file normalize to record keys."""
    try:
        console.print(f"[blue]Reading CSV: {csv_path}[/blue]")
        frame = pd.read_csv(csv_path)
        rows = frame_to_maps(frame, normalize=True)

        table = Table(title="Normalized Headers")
        table.add_column("Column", style="cyan")
        table.add_column("Key", style="white")
        for column in frame.columns:
            table.add_row(str(column), normalize_key(str(column)))
        console.print(table)

        console.print(f"Rows: {len(rows)}")

    except (DtoMapError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        console.print(f"[red]CSV Error:[/red] {e}")
        if ctx.obj["debug"]:
            import traceback

            console.print(traceback.format_exc())
        sys.exit(1)


@main.command()
def config():
    """Display current configuration."""
    try:
        console.print("[blue]dtomap Configuration[/blue]")

        table = Table()
        table.add_column("Setting", style="cyan")
        table.add_column("Value", style="white")
        for name, value in configuration_summary().items():
            table.add_row(name, "-" if value is None else str(value))
        console.print(table)

    except ConfigurationError as e:
        console.print(f"[red]Configuration Error:[/red] {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
