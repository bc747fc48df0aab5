"""lpkg packages commands: read-only views of the package store.

Commands:
  lpkg packages list                   — every stored package
  lpkg packages search <term>          — substring search on names
  lpkg packages show <name>            — one definition (newest version by default)
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated

import typer
from rich.table import Table

from lpkg.cli.common import console
from lpkg.cli.errors import err_package_not_found
from lpkg.config import LpkgConfig
from lpkg.db import Database, PackageRepository, initialize
from lpkg.pkgs.package import PackageDefinition

packages_app = typer.Typer(
    name="packages",
    help="Inspect the package store (list, search, show).",
    add_completion=False,
)


def _render_table(definitions: list[PackageDefinition], title: str) -> None:
    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("Name", style="bold")
    table.add_column("Version")
    table.add_column("Source")
    table.add_column("LTO/PGO")
    for d in definitions:
        opt = d.optimizations
        flags = f"{'✓' if opt.enable_lto else '✗'}/{'✓' if opt.enable_pgo else '✗'}"
        table.add_row(d.name, d.version, d.source or "", flags)
    console.print(table)


def _db_path(ctx: typer.Context) -> Path:
    cfg: LpkgConfig = ctx.obj
    return Path(cfg.database.url)


@packages_app.command("list")
def list_cmd(ctx: typer.Context) -> None:
    """List every package in the store."""
    with Database(_db_path(ctx)) as conn:
        initialize(conn)
        definitions = PackageRepository(conn).load_packages()

    if not definitions:
        console.print("[yellow]No packages stored yet.[/]")
        raise typer.Exit(0)
    _render_table(definitions, "Packages")
    console.print(f"\n  {len(definitions)} package(s)")


@packages_app.command("search")
def search_cmd(
    ctx: typer.Context,
    term: Annotated[str, typer.Argument(help="Substring to look for in package names.")],
    limit: Annotated[
        int | None,
        typer.Option("--limit", help="Maximum number of results (1-200, default 50)."),
    ] = None,
) -> None:
    """Search packages by name."""
    with Database(_db_path(ctx)) as conn:
        initialize(conn)
        definitions = PackageRepository(conn).search_packages(term, limit)

    if not definitions:
        console.print(f"[yellow]No packages match '{term}'.[/]", highlight=False)
        raise typer.Exit(0)
    _render_table(definitions, f"Packages matching '{term}'")


@packages_app.command("show")
def show_cmd(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Package name.")],
    version: Annotated[
        str | None,
        typer.Option("--version", help="Exact version (default: newest)."),
    ] = None,
) -> None:
    """Print one package definition as JSON."""
    with Database(_db_path(ctx)) as conn:
        initialize(conn)
        definition = PackageRepository(conn).find_package(name, version)

    if definition is None:
        console.print(err_package_not_found(name, version))
        raise typer.Exit(1)
    typer.echo(json.dumps(definition.to_dict(), indent=2))
