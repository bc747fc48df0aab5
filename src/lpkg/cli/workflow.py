"""lpkg workflow commands.

Commands:
  lpkg workflow env-check <url>            — run the host requirements checks
  lpkg workflow fetch-manifests            — download wget-list / md5sums into a directory
  lpkg workflow build-binutils <url>       — replay a cross-toolchain page against $LFS
  lpkg workflow scaffold-package           — generate one package module and store it
  lpkg workflow import-mlfs                — scaffold every package of the MLFS catalog
  lpkg workflow download-sources           — fetch every wget-list source, verifying MD5
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Annotated

import typer
from rich.markup import escape
from rich.table import Table

from lpkg.books import parse_books_csv
from lpkg.cli.common import DEFAULT_PKGS_BASE, console, err_console, fail, http_fetcher
from lpkg.cli.errors import err_bad_base_dir, err_no_lfs_root
from lpkg.config import LpkgConfig
from lpkg.db import Database, PackageRepository, initialize
from lpkg.downloader import download_files, parse_md5sums, parse_wget_list
from lpkg.errors import ConfigError, LpkgError
from lpkg.files import write_atomic
from lpkg.metadata.manifest import ManifestCache, ManifestKind, manifest_url
from lpkg.metadata.store import MetadataStore
from lpkg.net import open_url
from lpkg.pkgs.mlfs import DEFAULT_MLFS_BASE_URL, import_catalog, load_or_fetch_catalog
from lpkg.pkgs.package import PackageDefinition
from lpkg.pkgs.scaffolder import ScaffoldRequest, scaffold_package
from lpkg.toolchain.cross import build_from_page
from lpkg.version_check import run_version_checks

workflow_app = typer.Typer(
    name="workflow",
    help="Host checks, manifests, toolchain builds and package scaffolding.",
    add_completion=False,
)


def _persist_to(db_url: str) -> Callable[[PackageDefinition], None]:
    """Return a callable that upserts one definition into the package store."""

    def persist(definition: PackageDefinition) -> None:
        with Database(db_url) as conn:
            initialize(conn)
            PackageRepository(conn).upsert_package(definition)

    return persist


# ---------------------------------------------------------------------------
# env-check
# ---------------------------------------------------------------------------


@workflow_app.command("env-check")
def env_check_cmd(
    ctx: typer.Context,
    url: Annotated[str, typer.Argument(help="URL of the host requirements page.")],
) -> None:
    """Run the host system version checks published on *url*."""
    cfg: LpkgConfig = ctx.obj
    try:
        report = run_version_checks(url, fetch=http_fetcher(cfg))
    except LpkgError as exc:
        fail(exc)

    for check in report.checks:
        if check.ok:
            console.print(f"[green]OK:[/]    {check.message}", highlight=False)
        elif check.required:
            console.print(f"[red]ERROR:[/] {check.message}", highlight=False)
        else:
            console.print(f"[yellow]WARN:[/]  {check.message}", highlight=False)

    if not report.ok:
        err_console.print(f"[red]Error:[/] {len(report.failures)} host check(s) failed.")
        raise typer.Exit(1)
    console.print("[green]✓[/] All host checks passed")


# ---------------------------------------------------------------------------
# fetch-manifests
# ---------------------------------------------------------------------------


@workflow_app.command("fetch-manifests")
def fetch_manifests_cmd(
    ctx: typer.Context,
    output: Annotated[
        Path,
        typer.Option("--output", "-o", help="Directory to write the manifests into."),
    ] = Path("."),
    books: Annotated[
        str,
        typer.Option("--books", help="Comma-separated books."),
    ] = "mlfs",
) -> None:
    """Download the wget-list and md5sums manifests for each book."""
    cfg: LpkgConfig = ctx.obj
    fetch = http_fetcher(cfg)

    for book in parse_books_csv(books):
        for kind in ManifestKind:
            try:
                body = fetch(manifest_url(book, kind))
            except LpkgError as exc:
                fail(exc)
            path = output / f"{book}-{kind.filename}"
            write_atomic(path, body)
            console.print(f"[green]✓[/] {book} {kind.value} -> {path}", highlight=False)


# ---------------------------------------------------------------------------
# build-binutils
# ---------------------------------------------------------------------------


@workflow_app.command("build-binutils")
def build_binutils_cmd(
    ctx: typer.Context,
    url: Annotated[str, typer.Argument(help="URL of the Binutils Pass 1 page.")],
    lfs_root: Annotated[
        Path | None,
        typer.Option("--lfs-root", help="LFS root directory (default: $LFS)."),
    ] = None,
    target: Annotated[
        str | None,
        typer.Option("--target", help="Target triple (default: $LFS_TGT)."),
    ] = None,
) -> None:
    """Download, configure, build and install Binutils Pass 1 from its book page."""
    cfg: LpkgConfig = ctx.obj
    root = lfs_root or (Path(cfg.toolchain.lfs) if cfg.toolchain.lfs else None)
    if root is None:
        err_console.print(err_no_lfs_root())
        raise typer.Exit(1)

    try:
        build_from_page(
            url,
            root,
            target or cfg.toolchain.target,
            src_dir=cfg.toolchain.src_dir,
            fetch=http_fetcher(cfg),
        )
    except LpkgError as exc:
        fail(exc)
    console.print(f"[green]✓[/] Binutils installed into {root / 'tools'}", highlight=False)


# ---------------------------------------------------------------------------
# scaffold-package
# ---------------------------------------------------------------------------


@workflow_app.command("scaffold-package")
def scaffold_package_cmd(
    ctx: typer.Context,
    name: Annotated[str, typer.Option("--name", help="Package name.")],
    version: Annotated[str, typer.Option("--version", help="Package version.")],
    source: Annotated[str | None, typer.Option("--source", help="Source archive URL.")] = None,
    md5: Annotated[str | None, typer.Option("--md5", help="MD5 of the source archive.")] = None,
    configure_arg: Annotated[
        list[str] | None,
        typer.Option("--configure-arg", help="Configure argument (repeatable)."),
    ] = None,
    build_cmd: Annotated[
        list[str] | None,
        typer.Option("--build-cmd", help="Build command (repeatable)."),
    ] = None,
    install_cmd: Annotated[
        list[str] | None,
        typer.Option("--install-cmd", help="Install command (repeatable)."),
    ] = None,
    dependency: Annotated[
        list[str] | None,
        typer.Option("--dependency", help="Dependency name (repeatable)."),
    ] = None,
    enable_lto: Annotated[
        bool,
        typer.Option("--enable-lto/--disable-lto", help="Link-time optimisation."),
    ] = True,
    enable_pgo: Annotated[
        bool,
        typer.Option("--enable-pgo/--disable-pgo", help="Profile-guided optimisation."),
    ] = True,
    cflag: Annotated[
        list[str] | None,
        typer.Option("--cflag", help="Explicit CFLAG (repeatable, replaces defaults)."),
    ] = None,
    ldflag: Annotated[
        list[str] | None,
        typer.Option("--ldflag", help="Explicit LDFLAG (repeatable, replaces defaults)."),
    ] = None,
    profdata: Annotated[
        str | None,
        typer.Option("--profdata", help="PGO profile data path (switches to the replay preset)."),
    ] = None,
    stage: Annotated[str | None, typer.Option("--stage", help="Build stage.")] = None,
    variant: Annotated[str | None, typer.Option("--variant", help="Variant, e.g. 'Pass 1'.")] = None,
    notes: Annotated[str | None, typer.Option("--notes", help="Free-form notes.")] = None,
    module: Annotated[
        str | None,
        typer.Option("--module", help="Explicit module name (default: derived from --name)."),
    ] = None,
    base: Annotated[
        Path,
        typer.Option("--base", help="Package module root (must end in by_name)."),
    ] = DEFAULT_PKGS_BASE,
) -> None:
    """Generate a package module and record its definition in the package store."""
    cfg: LpkgConfig = ctx.obj
    request = ScaffoldRequest(
        name=name,
        version=version,
        source=source,
        md5=md5,
        configure_args=configure_arg or [],
        build_commands=build_cmd or [],
        install_commands=install_cmd or [],
        dependencies=dependency or [],
        enable_lto=enable_lto,
        enable_pgo=enable_pgo,
        cflags=cflag or [],
        ldflags=ldflag or [],
        profdata=profdata,
        stage=stage,
        variant=variant,
        notes=notes,
        module_override=module,
    )

    try:
        result = scaffold_package(base, request)
        _persist_to(cfg.database.url)(result.definition)
    except ConfigError:
        err_console.print(err_bad_base_dir(base))
        raise typer.Exit(1)
    except LpkgError as exc:
        fail(exc)

    console.print(f"[green]✓[/] Generated {result.module_path}", highlight=False)
    console.print(f"  Stored {name} {version} in {cfg.database.url}", highlight=False)


# ---------------------------------------------------------------------------
# import-mlfs
# ---------------------------------------------------------------------------


@workflow_app.command("import-mlfs")
def import_mlfs_cmd(
    ctx: typer.Context,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Only list the modules that would be generated."),
    ] = False,
    limit: Annotated[
        int | None,
        typer.Option("--limit", min=1, help="Process at most N catalog entries."),
    ] = None,
    base: Annotated[
        Path,
        typer.Option("--base", help="Package module root (must end in by_name)."),
    ] = DEFAULT_PKGS_BASE,
    overwrite: Annotated[
        bool,
        typer.Option("--overwrite", help="Regenerate modules that already exist."),
    ] = False,
    source_url: Annotated[
        str | None,
        typer.Option("--source-url", help="MLFS book base URL."),
    ] = None,
    metadata_dir: Annotated[
        Path | None,
        typer.Option("--metadata-dir", help="Metadata tree used to enrich modules."),
    ] = None,
) -> None:
    """Scaffold a package module for every MLFS catalog entry."""
    cfg: LpkgConfig = ctx.obj
    base_url = source_url or cfg.base_url_for("mlfs") or DEFAULT_MLFS_BASE_URL
    records = load_or_fetch_catalog(base_url, fetch=http_fetcher(cfg))

    meta_dir = metadata_dir or Path(cfg.metadata.dir)
    store = MetadataStore(meta_dir)
    try:
        entries = store.load_index().get("packages") or []
    except ValueError as exc:
        err_console.print(f"[yellow]warning:[/] ignoring unreadable {store.index_path}: {exc}")
        entries = []

    try:
        report = import_catalog(
            records,
            base,
            entries=entries,
            metadata_dir=meta_dir,
            persist=None if dry_run else _persist_to(cfg.database.url),
            dry_run=dry_run,
            limit=limit,
            overwrite=overwrite,
        )
    except ConfigError:
        err_console.print(err_bad_base_dir(base))
        raise typer.Exit(1)
    except LpkgError as exc:
        fail(exc)

    if dry_run:
        table = Table(title="Planned modules", show_header=True, header_style="bold")
        table.add_column("Name", style="bold")
        table.add_column("Version")
        table.add_column("Module")
        for pkg_name, pkg_version, alias in report.planned:
            table.add_row(pkg_name, pkg_version, alias)
        console.print(table)

    console.print(
        f"\n  Processed: {report.processed}  |  Created: {len(report.created)}  |  "
        f"Skipped: {len(report.skipped)}",
        highlight=False,
    )
    if report.skipped:
        console.print(f"  Skipped (already exist): {', '.join(report.skipped)}", highlight=False)


# ---------------------------------------------------------------------------
# download-sources
# ---------------------------------------------------------------------------


@workflow_app.command("download-sources")
def download_sources_cmd(
    ctx: typer.Context,
    book: Annotated[str, typer.Option("--book", help="Book whose wget-list to download.")] = "mlfs",
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Target directory (default: $LFS/sources)."),
    ] = None,
    mirror: Annotated[
        str | None,
        typer.Option("--mirror", help="Host replacing ftp.gnu.org in source URLs."),
    ] = None,
    workers: Annotated[
        int | None,
        typer.Option("--workers", min=1, help="Parallel downloads."),
    ] = None,
) -> None:
    """Download every source listed in a book's wget-list, verifying MD5 sums."""
    cfg: LpkgConfig = ctx.obj
    target = output or (Path(cfg.toolchain.lfs) / "sources" if cfg.toolchain.lfs else Path("sources"))
    cache = ManifestCache(Path(cfg.metadata.dir), fetch=http_fetcher(cfg))

    try:
        urls = parse_wget_list(cache.load(book, ManifestKind.WGET_LIST))
        md5_map = parse_md5sums(cache.load(book, ManifestKind.MD5SUMS))
    except LpkgError as exc:
        fail(exc)

    results = download_files(
        urls,
        target,
        mirror=mirror or cfg.download.mirror,
        md5_map=md5_map,
        workers=workers or cfg.download.workers,
        opener=http_fetcher(cfg, open_url),
    )

    table = Table(title=f"Sources -> {target}", show_header=True, header_style="bold")
    table.add_column("File", style="bold")
    table.add_column("Status")
    for result in results:
        if result.ok:
            status = "[green]✓ ok[/]"
        elif result.status == "checksum-mismatch":
            status = "[red]✗ checksum mismatch[/]"
        else:
            status = f"[red]✗ {escape(result.error or 'error')}[/]"
        table.add_row(result.filename or result.url, status)
    console.print(table)

    failed = [r for r in results if not r.ok]
    console.print(f"\n  {len(results) - len(failed)}/{len(results)} downloaded")
    if failed:
        raise typer.Exit(1)
