"""``chatwire compile`` — compile a request file into a dialect's request body."""

from __future__ import annotations

import sys
from pathlib import Path

import click

from chatwire.cli_commands._output import console, load_request, print_json
from chatwire.config import load_settings
from chatwire.core.interface.compiler import Dialect, get_compiler
from chatwire.errors import ConversionError


@click.command("compile")
@click.argument("dialect", type=click.Choice([d.value for d in Dialect]))
@click.argument("request_file", type=click.Path(exists=True))
@click.option(
    "--config",
    "config_file",
    default=None,
    type=click.Path(exists=True),
    help="Converter settings YAML (defaults to $CHATWIRE_CONFIG).",
)
@click.option("--telemetry", is_flag=True, help="Export compile spans to the console.")
def compile_cmd(dialect: str, request_file: str, config_file: str | None, telemetry: bool) -> None:
    """Compile REQUEST_FILE (JSON or YAML) for DIALECT and print the body."""
    if telemetry:
        from chatwire.utils.telemetry import configure_telemetry

        try:
            configure_telemetry(export_to_console=True)
        except ImportError as exc:
            console.print(f"[red]Telemetry error:[/red] {exc}")
            sys.exit(1)

    try:
        settings = load_settings(config_file)
        request = load_request(Path(request_file))
        body = get_compiler(dialect).compile(request, settings=settings)
    except ConversionError as exc:
        console.print(f"[red]Compile error:[/red] {exc}")
        sys.exit(1)

    print_json(body)
