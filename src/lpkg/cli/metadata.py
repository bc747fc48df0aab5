"""lpkg-metadata: validate, index, harvest and refresh the ``ai/metadata`` tree.

Commands:
  lpkg-metadata validate                      — check every package file against the schema
  lpkg-metadata index [--compact]             — validate, then regenerate index.json
  lpkg-metadata harvest --book B --page P     — draft metadata from one book page
  lpkg-metadata refresh [--books csv]         — cache wget-list / md5sums manifests
  lpkg-metadata generate --metadata PATH      — scaffold a package module from one file
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Annotated

import typer

from lpkg.books import BOOKS, parse_books_csv
from lpkg.cli.common import (
    DEFAULT_PKGS_BASE,
    bootstrap,
    console,
    err_console,
    fail,
    http_fetcher,
)
from lpkg.cli.errors import err_validation_failed
from lpkg.config import LpkgConfig
from lpkg.errors import LpkgError
from lpkg.files import dump_json, validate_output_path, write_atomic
from lpkg.metadata.manifest import ManifestCache, ManifestKind
from lpkg.metadata.store import MetadataStore, PackageRecord, ValidationReport
from lpkg.net import fetch_bytes
from lpkg.parsing.harvest import harvest
from lpkg.pkgs.generator import generate_module

app = typer.Typer(
    name="lpkg-metadata",
    help="Validate and regenerate the package metadata index.",
    add_completion=False,
)


@dataclass
class _State:
    base_dir: Path
    cfg: LpkgConfig
    store: MetadataStore


@app.callback()
def main_callback(
    ctx: typer.Context,
    base_dir: Annotated[
        Path,
        typer.Option("--base-dir", help="Repository root containing the ai/metadata directory."),
    ] = Path("."),
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log progress at INFO level."),
    ] = False,
) -> None:
    """Validate and regenerate the package metadata index."""
    cfg = bootstrap(base_dir, verbose)
    ctx.obj = _State(
        base_dir=base_dir,
        cfg=cfg,
        store=MetadataStore.for_base_dir(base_dir, cfg.metadata.dir),
    )


# ---------------------------------------------------------------------------
# validate / index
# ---------------------------------------------------------------------------


def _check(store: MetadataStore) -> tuple[list[PackageRecord], ValidationReport]:
    """Load the schema, scan the tree and print every validation error."""
    validator = store.load_schema()
    records = store.scan()
    report = store.validate(records, validator)
    for path, errors in report.errors.items():
        err_console.print(f"[red]Validation failed for {path}:[/]", highlight=False)
        for message in errors:
            err_console.print(f"  - {message}", markup=False, highlight=False)
    return records, report


@app.command("validate")
def validate_cmd(ctx: typer.Context) -> None:
    """Validate all package metadata against the JSON schema."""
    state: _State = ctx.obj
    try:
        records, report = _check(state.store)
    except LpkgError as exc:
        fail(exc)

    if not report.ok:
        err_console.print(err_validation_failed(report.error_count))
        raise typer.Exit(1)
    console.print(f"[green]✓[/] {len(records)} package file(s) valid")


@app.command("index")
def index_cmd(
    ctx: typer.Context,
    compact: Annotated[
        bool,
        typer.Option("--compact", help="Emit compact JSON instead of pretty printing."),
    ] = False,
) -> None:
    """Validate metadata and regenerate index.json."""
    state: _State = ctx.obj
    try:
        records, report = _check(state.store)
    except LpkgError as exc:
        fail(exc)

    if not report.ok:
        err_console.print(err_validation_failed(report.error_count, index=True))
        raise typer.Exit(1)

    index = state.store.build_index(records)
    path = state.store.write_index(index, compact=compact)
    console.print(f"Updated {path}", highlight=False)


# ---------------------------------------------------------------------------
# harvest
# ---------------------------------------------------------------------------


@app.command("harvest")
def harvest_cmd(
    ctx: typer.Context,
    book: Annotated[str, typer.Option("--book", help="Book identifier (lfs, mlfs, blfs, glfs).")],
    page: Annotated[str, typer.Option("--page", help="Page path (relative to base) or full URL.")],
    base_url: Annotated[
        str | None,
        typer.Option("--base-url", help="Override base URL for the selected book."),
    ] = None,
    output: Annotated[
        Path | None,
        typer.Option("--output", help="Explicit output file path."),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Print the JSON to stdout instead of writing it."),
    ] = False,
) -> None:
    """Fetch and draft metadata for a specific package page."""
    state: _State = ctx.obj
    book = book.lower()
    manifests = ManifestCache(state.store.metadata_dir, fetch=http_fetcher(state.cfg))

    try:
        result = harvest(
            book,
            page,
            base_url or state.cfg.base_url_for(book),
            manifests=manifests,
            fetch=http_fetcher(state.cfg, fetch_bytes),
        )
    except LpkgError as exc:
        fail(exc)

    document = dump_json(result.metadata.to_dict())
    if dry_run:
        typer.echo(document, nl=False)
        return

    if output is not None:
        try:
            output_path = validate_output_path(output, state.base_dir)
        except ValueError as exc:
            err_console.print(f"[red]Error:[/] {exc}")
            raise typer.Exit(1) from exc
    else:
        output_path = state.store.package_path(book, result.slug)
    write_atomic(output_path, document)

    console.print(f"Harvested metadata for {result.package_id} -> {output_path}", highlight=False)
    for issue in result.metadata.status.issues:
        console.print(f"  [yellow]issue:[/] {issue}", highlight=False)
    console.print(
        f"Run `lpkg-metadata --base-dir {state.base_dir} index` to refresh the index.",
        markup=False,
        highlight=False,
    )


# ---------------------------------------------------------------------------
# refresh
# ---------------------------------------------------------------------------


@app.command("refresh")
def refresh_cmd(
    ctx: typer.Context,
    books: Annotated[
        str,
        typer.Option("--books", help="Comma-separated books to refresh."),
    ] = ",".join(BOOKS),
    force: Annotated[
        bool,
        typer.Option("--force", help="Re-download even if cache files exist."),
    ] = False,
) -> None:
    """Refresh cached wget-list and md5sums manifests for the given book(s)."""
    state: _State = ctx.obj
    cache = ManifestCache(state.store.metadata_dir, fetch=http_fetcher(state.cfg))

    refreshed = 0
    for book in parse_books_csv(books):
        for kind in ManifestKind:
            try:
                path = cache.refresh(book, kind, force=force)
            except LpkgError as exc:
                err_console.print(
                    f"[yellow]warning:[/] failed to refresh {kind.description} manifest "
                    f"for {book}: {exc}",
                    highlight=False,
                )
                continue
            refreshed += 1
            console.print(
                f"Refreshed {kind.description} manifest for {book} -> {path}", highlight=False
            )

    if refreshed == 0:
        console.print("No manifests refreshed (check warnings above).")


# ---------------------------------------------------------------------------
# generate
# ---------------------------------------------------------------------------


@app.command("generate")
def generate_cmd(
    metadata: Annotated[
        Path,
        typer.Option("--metadata", help="Metadata JSON file to scaffold from."),
    ],
    base: Annotated[
        Path,
        typer.Option("--base", help="Package module root (must end in by_name)."),
    ] = DEFAULT_PKGS_BASE,
) -> None:
    """Scaffold a package module from one harvested metadata file."""
    try:
        result = generate_module(metadata, base)
    except LpkgError as exc:
        fail(exc)
    console.print(f"[green]✓[/] Generated {result.module_path}", highlight=False)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
