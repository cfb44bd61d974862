"""
CLI utility helpers: settings loading, output formatting and error exits.
"""

from __future__ import annotations

import json
import sys
from dataclasses import asdict
from typing import Any, NoReturn

import typer
from rich.console import Console
from rich.table import Table

from node_lifecycle.core.errors import LifecycleError
from node_lifecycle.core.logging import configure_logging
from node_lifecycle.core.settings import LifecycleSettings, load_settings

console = Console()
err_console = Console(stderr=True)


def cli_settings() -> LifecycleSettings:
    """Load settings and configure console logging, exiting 2 on bad configuration."""
    try:
        settings = load_settings()
    except LifecycleError as exc:
        fail(exc, code=2)
    configure_logging(
        level=settings.log_level,
        json_format=bool(settings.log_json),
        stream=sys.stderr,
    )
    return settings


def fail(error: Exception, *, code: int = 1) -> NoReturn:
    """Print an error and exit."""
    name = type(error).__name__
    message = error.message if isinstance(error, LifecycleError) else str(error)
    err_console.print(f"[bold red]Error[/bold red] ({name}): {message}")
    raise typer.Exit(code=code)


def _to_dict(obj: Any) -> dict[str, Any]:
    """Convert dataclass / pydantic model / dict to plain dict."""
    if hasattr(obj, "model_dump"):
        return obj.model_dump(mode="json")
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    if hasattr(obj, "__dataclass_fields__"):
        return asdict(obj)
    if isinstance(obj, dict):
        return obj
    return {"value": str(obj)}


def output(data: Any, *, as_json: bool = False, title: str = "") -> None:
    """Render a value or list of values to the terminal."""
    if as_json:
        payload = [_to_dict(d) for d in data] if isinstance(data, list | tuple) else _to_dict(data)
        console.print_json(json.dumps(payload, default=str))
        return

    if isinstance(data, list | tuple):
        if not data:
            console.print("[dim]No items.[/dim]")
            return
        _print_table(list(data), title=title)
    else:
        _print_dict(_to_dict(data), title=title)


def _print_table(items: list, *, title: str = "") -> None:
    first = _to_dict(items[0])
    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for col in first:
        table.add_column(col, overflow="fold")
    for item in items:
        d = _to_dict(item)
        table.add_row(*(str(d.get(col, "")) for col in first))
    console.print(table)


def _print_dict(data: dict[str, Any], *, title: str = "") -> None:
    if title:
        console.print(f"[bold]{title}[/bold]")
    for k, v in data.items():
        console.print(f"  [cyan]{k}[/cyan]: {v}")
