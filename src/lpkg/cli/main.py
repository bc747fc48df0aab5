"""lpkg CLI entry point."""

from __future__ import annotations

import importlib.metadata
from pathlib import Path
from typing import Annotated

import typer

from lpkg.cli.common import bootstrap
from lpkg.cli.packages import packages_app
from lpkg.cli.workflow import workflow_app


def _installed_version() -> str:
    try:
        return importlib.metadata.version("lpkg")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"lpkg {_installed_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="lpkg",
    help=(
        "lpkg — LFS-family package tooling.\n\n"
        "  lpkg workflow   Host checks, manifests, toolchain builds, scaffolding.\n"
        "  lpkg packages   Inspect the package store."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log progress at INFO level."),
    ] = False,
    project_dir: Annotated[
        Path | None,
        typer.Option("--project-dir", hidden=True, help="Directory holding lpkg.yaml (default: CWD)."),
    ] = None,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
) -> None:
    """lpkg — LFS-family package tooling."""
    ctx.obj = bootstrap(project_dir, verbose)


app.add_typer(workflow_app, name="workflow")
app.add_typer(packages_app, name="packages")


@app.command("version")
def version_cmd() -> None:
    """Show the installed lpkg version."""
    typer.echo(f"lpkg {_installed_version()}")


if __name__ == "__main__":
    app()
