"""
CLI utility helpers — output formatting and lifecycle management.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import asdict
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from strata.core.errors import StrataError
from strata.core.lifecycle import StorageLifecycle
from strata.core.logging import configure_logging, is_logging_configured
from strata.core.settings import load_settings
from strata.ops.context import OperationContext
from strata.ops.result import OperationResult

console = Console()
err_console = Console(stderr=True)


# ── Lifecycle helper ─────────────────────────────────────────────────────


@contextmanager
def operation_context(**overrides: Any) -> Iterator[OperationContext]:
    """Build an ``OperationContext`` for one command and close it afterwards.

    *overrides* are settings fields given on the command line; ``None``
    values fall back to the environment.
    """
    try:
        settings = load_settings(**{k: v for k, v in overrides.items() if v is not None})
    except StrataError as exc:
        err_console.print(f"[bold red]Error[/bold red] (CONFIG): {exc.message}")
        raise typer.Exit(code=1) from exc

    if not is_logging_configured():
        configure_logging(level=settings.log_level, json_format=settings.json_logs)

    ctx = OperationContext(lifecycle=StorageLifecycle(settings), caller="cli")
    try:
        yield ctx
    finally:
        ctx.close()


# ── Output helpers ───────────────────────────────────────────────────────


def _to_dict(obj: Any) -> dict[str, Any]:
    """Convert dataclass / pydantic model / dict to plain dict."""
    if hasattr(obj, "model_dump"):
        return obj.model_dump()
    if hasattr(obj, "__dataclass_fields__"):
        return asdict(obj)
    if isinstance(obj, dict):
        return obj
    return {"value": str(obj)}


def output_result(
    result: OperationResult,
    *,
    as_json: bool = False,
    title: str = "",
) -> None:
    """Render an ``OperationResult``; exits with status 1 on failure."""
    if as_json:
        payload = result.to_dict()
        if result.data is not None:
            payload["data"] = _to_dict(result.data)
        console.print_json(json.dumps(payload, default=str))
        if not result.success:
            raise typer.Exit(code=1)
        return

    for warning in result.warnings:
        err_console.print(f"[yellow]Warning:[/yellow] {warning}")

    if not result.success:
        if result.data is not None:
            _print_dict(_to_dict(result.data), title=title)
        err = result.error
        msg = err.message if err else "Unknown error"
        code = err.code if err else "ERROR"
        err_console.print(f"[bold red]Error[/bold red] ({code}): {msg}")
        raise typer.Exit(code=1)

    data = result.data
    if isinstance(data, list):
        if not data:
            console.print("[dim]No items.[/dim]")
            return
        _print_table(data, title=title)
    else:
        _print_dict(_to_dict(data), title=title)


# ── Private helpers ──────────────────────────────────────────────────────


def _print_table(items: list, *, title: str = "") -> None:
    """Render a list of dataclasses/dicts as a Rich table."""
    first = _to_dict(items[0])
    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for col in first:
        table.add_column(col, overflow="fold")
    for item in items:
        d = _to_dict(item)
        table.add_row(*(str(v) for v in d.values()))
    console.print(table)


def _print_dict(data: dict[str, Any], *, title: str = "") -> None:
    """Render a single dict as key-value pairs."""
    if title:
        console.print(f"[bold]{title}[/bold]")
    for k, v in data.items():
        if isinstance(v, list):
            v = ", ".join(str(i) for i in v) or "-"
        console.print(f"  [cyan]{k}[/cyan]: {v}")
