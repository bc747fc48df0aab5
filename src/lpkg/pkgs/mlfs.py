"""MLFS catalog: records, live fetch with bundled fallback, and bulk scaffolding."""

from __future__ import annotations

import json
import logging
import shutil
from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from importlib import resources
from pathlib import Path
from typing import Any

from lpkg.errors import LpkgError, ModuleExistsError
from lpkg.parsing.catalog import BookPackage, fetch_book
from lpkg.parsing.text import slugify
from lpkg.pkgs.generator import load_metadata_file, request_from_metadata
from lpkg.pkgs.package import PackageDefinition
from lpkg.pkgs.scaffolder import ScaffoldRequest, module_directory, scaffold_package

logger = logging.getLogger(__name__)

DEFAULT_MLFS_BASE_URL = "https://linuxfromscratch.org/~thomas/multilib-m32"
_SNAPSHOT = "mlfs_catalog.json"


@dataclass
class MlfsPackageRecord:
    name: str
    version: str
    chapter: int | None = None
    section: str | None = None
    stage: str | None = None
    variant: str | None = None
    notes: str | None = None

    def id(self) -> str:
        ident = self.name.replace("+", "plus")
        if self.variant:
            ident += "_" + self.variant.replace("-", "_")
        return ident

    def module_alias(self) -> str:
        return self.id().replace(".", "_").replace("/", "_").replace(" ", "_").lower()

    def display_label(self) -> str:
        if self.section and self.variant:
            return f"{self.section} ({self.variant})"
        return self.section or self.variant or self.name

    def slug(self) -> str:
        base = slugify(self.name)
        return f"{base}-{slugify(self.variant)}" if self.variant else base

    def to_package_definition(self) -> PackageDefinition:
        pkg = PackageDefinition(name=self.name, version=self.version)
        if self.stage:
            pkg.optimizations.cflags.append(f"-DLPKG_STAGE={self.stage.upper()}")
        if self.variant:
            pkg.optimizations.cflags.append(f"-DLPKG_VARIANT={self.variant.upper()}")
        if self.notes:
            pkg.optimizations.cflags.append(f"-DLPKG_NOTES={self.notes.replace(' ', '_')}")
        return pkg

    @classmethod
    def from_book_package(cls, pkg: BookPackage) -> MlfsPackageRecord | None:
        if not pkg.version:
            return None
        return cls(
            name=pkg.name,
            version=pkg.version,
            chapter=pkg.chapter,
            section=pkg.section,
            stage=pkg.stage,
            variant=pkg.variant,
            notes=pkg.notes,
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _sort_key(record: MlfsPackageRecord) -> tuple[str, str]:
    return record.name, record.variant or ""


# ------------------------------------------------------------------
# Catalog loading
# ------------------------------------------------------------------


def fetch_catalog(
    base_url: str = DEFAULT_MLFS_BASE_URL,
    *,
    fetch: Callable[[str], str] | None = None,
) -> list[MlfsPackageRecord]:
    """Parse the live MLFS ``book.html``.

    Raises:
        FetchError: The book could not be fetched.
        LpkgError: The page parsed to no packages.
    """
    packages = fetch_book("mlfs", base_url, fetch=fetch)
    records = [r for r in map(MlfsPackageRecord.from_book_package, packages) if r is not None]
    if not records:
        raise LpkgError(f"No packages parsed from MLFS book at {base_url}.")
    return sorted(records, key=_sort_key)


def load_cached_catalog() -> list[MlfsPackageRecord]:
    """Load the bundled catalog snapshot."""
    raw = resources.files("lpkg.data").joinpath(_SNAPSHOT).read_text(encoding="utf-8")
    return [MlfsPackageRecord(**item) for item in json.loads(raw)]


def load_or_fetch_catalog(
    base_url: str | None = None,
    *,
    fetch: Callable[[str], str] | None = None,
) -> list[MlfsPackageRecord]:
    """Fetch the live catalog, falling back to the bundled snapshot on any failure."""
    base = base_url or DEFAULT_MLFS_BASE_URL
    try:
        return fetch_catalog(base, fetch=fetch)
    except LpkgError as exc:
        logger.warning("Falling back to cached MLFS package list: %s", exc)
        return sorted(load_cached_catalog(), key=_sort_key)


# ------------------------------------------------------------------
# Metadata matching
# ------------------------------------------------------------------


def _entry_slug(entry: dict[str, Any]) -> str:
    package_id = str(entry.get("id") or "")
    return package_id.split("/", 1)[1] if "/" in package_id else package_id


def match_metadata(
    record: MlfsPackageRecord, entries: list[dict[str, Any]]
) -> dict[str, Any] | None:
    """Find the index entry describing *record*, or None.

    An entry matches when its id slug equals the record's slug (name plus
    variant). Failing that, an entry matches when its slug starts with the
    record's name slug and its variant slugifies to the record's variant, so
    ``Pass 1`` never matches ``Pass 2``.
    """
    wanted = record.slug()
    for entry in entries:
        if _entry_slug(entry) == wanted:
            return entry

    name_slug = slugify(record.name)
    variant_slug = slugify(record.variant or "")
    for entry in entries:
        if not _entry_slug(entry).startswith(name_slug):
            continue
        if slugify(entry.get("variant") or "") == variant_slug:
            return entry
    return None


# ------------------------------------------------------------------
# Bulk import
# ------------------------------------------------------------------


@dataclass
class ImportReport:
    processed: int = 0
    created: list[Path] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    planned: list[tuple[str, str, str]] = field(default_factory=list)


def build_request(
    record: MlfsPackageRecord,
    entries: list[dict[str, Any]],
    metadata_dir: Path | None,
) -> ScaffoldRequest:
    """Request from matched metadata when available, else a bare catalog request.

    Catalog stage/variant/notes fill in whatever the metadata left unset.
    """
    request: ScaffoldRequest | None = None
    entry = match_metadata(record, entries) if entries else None
    if entry is not None and metadata_dir is not None and entry.get("path"):
        metadata_path = Path(metadata_dir) / str(entry["path"])
        try:
            request = request_from_metadata(load_metadata_file(metadata_path))
            logger.debug("Matched %s to metadata %s", record.module_alias(), metadata_path)
        except (LpkgError, KeyError, TypeError, ValueError) as exc:
            logger.warning("Ignoring metadata %s for %s: %s", metadata_path, record.name, exc)

    if request is None:
        request = ScaffoldRequest(
            name=record.name,
            version=record.version,
            module_override=record.module_alias(),
        )

    request.stage = request.stage or record.stage
    request.variant = request.variant or record.variant
    request.notes = request.notes or record.notes
    return request


def import_catalog(
    records: list[MlfsPackageRecord],
    base_dir: Path,
    *,
    entries: list[dict[str, Any]] | None = None,
    metadata_dir: Path | None = None,
    persist: Callable[[PackageDefinition], None] | None = None,
    dry_run: bool = False,
    limit: int | None = None,
    overwrite: bool = False,
) -> ImportReport:
    """Scaffold every catalog record in ``(name, variant)`` order.

    Records sharing a module alias are scaffolded once (first wins). An
    existing module is skipped unless *overwrite* is set, in which case it is
    removed and regenerated. Any other scaffold error aborts the run.
    """
    report = ImportReport()
    seen: set[str] = set()
    ordered = sorted(records, key=_sort_key)
    if limit is not None:
        ordered = ordered[:limit]

    for record in ordered:
        alias = record.module_alias()
        if alias in seen:
            continue
        seen.add(alias)
        report.processed += 1

        if dry_run:
            report.planned.append((record.name, record.version, alias))
            continue

        request = build_request(record, entries or [], metadata_dir)
        if overwrite:
            existing = module_directory(base_dir, request)
            if existing.exists():
                logger.info("Removing existing module %s", existing)
                shutil.rmtree(existing)

        try:
            result = scaffold_package(base_dir, request)
        except ModuleExistsError:
            if overwrite:
                raise
            report.skipped.append(alias)
            continue

        if persist is not None:
            persist(result.definition)
        report.created.append(result.module_path)

    return report
