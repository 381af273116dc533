"""CLI subcommand registration."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register all subcommands on the CLI group."""
    from chatwire.cli_commands.compile import compile_cmd
    from chatwire.cli_commands.dialects import dialects
    from chatwire.cli_commands.process import process

    cli.add_command(compile_cmd)
    cli.add_command(process)
    cli.add_command(dialects)
