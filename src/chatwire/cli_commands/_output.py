"""Shared CLI output formatters and request-file loading."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from chatwire.core.interface.compiler import DialectCompiler  # noqa: TC001
from chatwire.core.interface.request import ChatRequest
from chatwire.errors import ConversionError

console = Console()


class RequestFileError(ConversionError):
    """A request file could not be read or does not describe a chat request."""


def load_request(path: Path) -> ChatRequest:
    """Read a JSON or YAML chat request from *path*.

    Raises:
        RequestFileError: If the file cannot be read, parsed or validated.
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise RequestFileError(f"Cannot read {path}: {exc}") from exc

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise RequestFileError(f"Parse error in {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise RequestFileError(f"Request file {path} must contain a mapping")

    try:
        return ChatRequest.model_validate(data)
    except ValidationError as exc:
        raise RequestFileError(str(exc)) from exc


def print_json(data: Any) -> None:
    """Print *data* as highlighted JSON."""
    console.print_json(json.dumps(data, default=str, ensure_ascii=False))


def print_dialects_table(compilers: dict[Any, DialectCompiler]) -> None:
    """Pretty-print the registered dialects as a table."""
    table = Table(title="Dialects")
    table.add_column("Dialect", style="cyan")
    table.add_column("Compiler")

    for dialect, compiler in compilers.items():
        table.add_row(dialect.value, type(compiler).__name__)

    console.print(table)
