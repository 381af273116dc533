"""``chatwire dialects`` — list the supported dialects."""

from __future__ import annotations

import click

from chatwire.cli_commands._output import print_dialects_table, print_json


@click.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def dialects(as_json: bool) -> None:
    """List the dialects a request can be compiled for."""
    from chatwire.core.interface.compilers import build_compilers

    compilers = build_compilers()
    if as_json:
        print_json({dialect.value: type(compiler).__name__ for dialect, compiler in compilers.items()})
    else:
        print_dialects_table(compilers)
