"""Command Line Interface for fhir-codec.

This module provides a CLI using Typer for converting, validating and
inspecting FHIR documents.

Security Impact:
    - Documents are decoded with the configured size, event and depth limits
    - Document content is never echoed in error messages, only the path
      and reason of the first violation
"""

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from fhir_codec.adapters import JSONCodec, detect_format, get_codec
from fhir_codec.domain import registry
from fhir_codec.domain.ports import CodecError
from fhir_codec.infrastructure.logging_config import setup_logging
from fhir_codec.infrastructure.settings import APP_VERSION, settings

# Initialize Typer app and Rich console
app = typer.Typer(
    name="fhircodec",
    help="fhir-codec: FHIR JSON/XML codec and type inspector",
    add_completion=False
)
console = Console()


def _set_verbose(verbose: bool) -> None:
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        for handler in logging.getLogger().handlers:
            handler.setLevel(logging.DEBUG)


def _decode_file(input_file: Path, streaming: Optional[bool] = None):
    source_format = detect_format(input_file)
    kwargs = {"streaming": streaming} if source_format == "xml" else {}
    codec = get_codec(source_format, **kwargs)
    with open(input_file, "rb") as f:
        return codec.decode(f)


@app.command()
def convert(
    input_file: Path = typer.Argument(..., help="Input document (.json or .xml)", exists=True),
    to: str = typer.Option("json", "--to", "-t", help="Output format: json or xml (MIME types accepted)"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the result here instead of stdout"),
    indent: Optional[int] = typer.Option(None, "--indent", "-i", help="Indentation (JSON spaces; XML pretty-prints when > 0)"),
    streaming: Optional[bool] = typer.Option(None, "--streaming/--no-streaming", help="Force streaming mode (XML only)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """Convert a FHIR document between JSON and XML.

    Examples:
        fhircodec convert patient.xml --to json --indent 2
        fhircodec convert bundle.json --to xml --output bundle.xml
    """
    _set_verbose(verbose)

    try:
        value = _decode_file(input_file, streaming)
        if JSONCodec.handles(to):
            target = get_codec(to, indent=indent)
        else:
            target = get_codec(to, indent=bool(indent))
        text = target.dumps(value)
    except CodecError as e:
        console.print(f"[red]✗[/red] Conversion failed: {escape(str(e))}")
        raise typer.Exit(code=1)

    if output is None:
        typer.echo(text)
        return

    output.write_text(text, encoding="utf-8")
    console.print(f"[green]✓[/green] Wrote {type(value).fhir_type} to {output}")


@app.command()
def validate(
    input_file: Path = typer.Argument(..., help="Input document (.json or .xml)", exists=True),
    streaming: Optional[bool] = typer.Option(None, "--streaming/--no-streaming", help="Force streaming mode (XML only)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """Check that a document decodes into the declared FHIR structure."""
    _set_verbose(verbose)

    try:
        value = _decode_file(input_file, streaming)
    except CodecError as e:
        console.print(f"[red]✗[/red] {input_file}: {escape(str(e))}")
        path = getattr(e, "path", None)
        if path:
            console.print(f"[dim]Path:[/dim] {path}")
        raise typer.Exit(code=1)

    resource_id = value.resource_id() if getattr(value, "is_resource", False) else None
    suffix = f"/{resource_id}" if resource_id else ""
    console.print(f"[green]✓[/green] {input_file}: valid {type(value).fhir_type}{suffix}")


@app.command()
def inspect(
    type_name: str = typer.Argument(..., help="FHIR type name, e.g. Patient or HumanName"),
) -> None:
    """Display the reflective type information of a FHIR type."""
    klass = registry.get_type(type_name)
    if klass is None:
        console.print(f"[red]✗[/red] Unknown FHIR type: {type_name}")
        raise typer.Exit(code=1)

    info = klass.type_info()
    console.print(f"[bold blue]{info.namespace}.{info.name}[/bold blue]")
    if info.base_type is not None:
        console.print(f"[dim]Base type:[/dim] {info.base_type.qualified_name()}")

    table = Table(show_header=True, padding=(0, 2))
    table.add_column("Element")
    table.add_column("Type")
    table.add_column("Cardinality")
    for entry in info.element:
        table.add_row(
            entry.name,
            entry.type.qualified_name(),
            "0..*" if entry.type.list else "0..1",
        )
    console.print(table)


@app.command()
def types(
    resources_only: bool = typer.Option(False, "--resources", "-r", help="List resource types only"),
) -> None:
    """List the registered FHIR types."""
    names = registry.resource_types() if resources_only else registry.types()
    table = Table(show_header=True, padding=(0, 2))
    table.add_column("Type")
    table.add_column("Kind")
    for name in names:
        klass = registry.get_type(name)
        if klass.is_resource:
            kind = "resource"
        elif klass.is_primitive:
            kind = "primitive"
        else:
            kind = "complex"
        table.add_row(name, kind)
    console.print(table)


@app.callback(invoke_without_command=True)
def main_callback(
    version: bool = typer.Option(False, "--version", help="Show version information")
) -> None:
    """fhir-codec: FHIR JSON/XML codec and type inspector."""
    setup_logging(use_json=settings.log_json, log_level=settings.log_level)
    if version:
        console.print(f"fhir-codec v{APP_VERSION}")
        raise typer.Exit()


if __name__ == "__main__":
    app()
