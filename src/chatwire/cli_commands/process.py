"""``chatwire process`` — run prompt post-processing on a request file."""

from __future__ import annotations

import sys
from pathlib import Path

import click

from chatwire.cli_commands._output import console, load_request, print_json
from chatwire.config import load_settings
from chatwire.core.interface.request import PromptProcessingType
from chatwire.core.processing.merger import post_process_prompt
from chatwire.errors import ConversionError


@click.command()
@click.argument("processing_type", metavar="TYPE", type=click.Choice([t.value for t in PromptProcessingType if t.value]))
@click.argument("request_file", type=click.Path(exists=True))
@click.option(
    "--config",
    "config_file",
    default=None,
    type=click.Path(exists=True),
    help="Converter settings YAML (defaults to $CHATWIRE_CONFIG).",
)
def process(processing_type: str, request_file: str, config_file: str | None) -> None:
    """Merge the messages of REQUEST_FILE with post-processing TYPE."""
    try:
        settings = load_settings(config_file)
        request = load_request(Path(request_file))
        messages = post_process_prompt(
            request.messages,
            processing_type,
            request.prompt_names,
            placeholder=settings.prompt_placeholder,
        )
    except ConversionError as exc:
        console.print(f"[red]Processing error:[/red] {exc}")
        sys.exit(1)

    print_json({"messages": [message.to_openai() for message in messages]})
