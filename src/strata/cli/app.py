"""
Root Typer application for the strata CLI.

Lifecycle commands keep the ``group:action`` names applications already use
(``migrate:status``, ``migrate:undo:all``).  Every command builds its own
``StorageLifecycle`` from ``STRATA_*`` settings plus the global options and
closes it before exiting.
"""

from __future__ import annotations

import typer
from typer import Typer

from strata.cli.utils import console, operation_context, output_result

app = Typer(
    name="strata",
    help="strata — storage lifecycle: bootstrap, models and migrations.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from importlib.metadata import PackageNotFoundError
        from importlib.metadata import version as pkg_version

        try:
            v = pkg_version("strata")
        except PackageNotFoundError:
            v = "0.1.0"
        typer.echo(f"strata {v}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    adapter: str | None = typer.Option(None, "--adapter", "-a", help="relational | document | schema_first"),
    database_url: str | None = typer.Option(None, "--database-url", help="SQLAlchemy URL"),
    models_dir: str | None = typer.Option(None, "--models-dir", help="Model definitions directory"),
    migrations_dir: str | None = typer.Option(None, "--migrations-dir", help="Migrations directory"),
    log_level: str | None = typer.Option(
        None, "--log-level", help="DEBUG, INFO, WARNING, ERROR (overrides STRATA_LOG_LEVEL)"
    ),
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """strata CLI — run migrations, inspect the ledger, check database health."""
    ctx.obj = {
        "adapter": adapter,
        "database_url": database_url,
        "models_dir": models_dir,
        "migrations_dir": migrations_dir,
        "log_level": log_level,
    }


# ── Migration commands ───────────────────────────────────────────────────


@app.command("migrate")
def migrate(
    ctx: typer.Context,
    force: bool = typer.Option(
        False, "--force", help="Drop and recreate the model tables, then apply pending migrations"
    ),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Apply all pending migrations."""
    from strata.ops.migrations import run_migrations

    with operation_context(**ctx.obj) as op_ctx:
        result = run_migrations(op_ctx, force=force)
    output_result(result, as_json=json_out, title="Migrate")


@app.command("migrate:status")
def migrate_status(
    ctx: typer.Context,
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Show pending and applied migrations."""
    from strata.ops.migrations import migration_status

    with operation_context(**ctx.obj) as op_ctx:
        result = migration_status(op_ctx)
    output_result(result, as_json=json_out, title="Migration Status")


@app.command("migrate:undo")
def migrate_undo(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Model file name (without .py)"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Drop the table/collection of one model (the ledger is untouched)."""
    from strata.ops.migrations import undo_model

    with operation_context(**ctx.obj) as op_ctx:
        result = undo_model(op_ctx, name)
    output_result(result, as_json=json_out, title="Undo Model")


@app.command("migrate:undo:last")
def migrate_undo_last(
    ctx: typer.Context,
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Revert the most recently applied migration."""
    from strata.ops.migrations import undo_last

    with operation_context(**ctx.obj) as op_ctx:
        result = undo_last(op_ctx)
    output_result(result, as_json=json_out, title="Undo Last")


@app.command("migrate:undo:all")
def migrate_undo_all(
    ctx: typer.Context,
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Drop every managed table/collection (down migrations are not run)."""
    from strata.ops.migrations import undo_all

    if not yes:
        typer.confirm("This drops ALL tables, including the migration ledger. Continue?", abort=True)
    with operation_context(**ctx.obj) as op_ctx:
        result = undo_all(op_ctx)
    output_result(result, as_json=json_out, title="Undo All")


@app.command("migrate:create")
def migrate_create(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Migration description, e.g. add_users"),
    table: str | None = typer.Option(None, "--table", "-t", help="Generate a create-table migration"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Create a new migration file."""
    from strata.ops.migrations import create_migration_file

    with operation_context(**ctx.obj) as op_ctx:
        result = create_migration_file(op_ctx, name, table=table)
    output_result(result, as_json=json_out, title="Migration Created")


# ── Database commands ────────────────────────────────────────────────────


@app.command("db:health")
def db_health(
    ctx: typer.Context,
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Connect, load models and report health."""
    from strata.ops.database import check_database_health

    with operation_context(**ctx.obj) as op_ctx:
        result = check_database_health(op_ctx)
    if result.success and not json_out:
        console.print(f"[green]●[/green] {result.data.status}")
    output_result(result, as_json=json_out, title="Database Health")


if __name__ == "__main__":
    app()
