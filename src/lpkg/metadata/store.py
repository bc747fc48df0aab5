"""Metadata store: scan package JSON files, validate them and build index.json.

Layout under the metadata directory::

    schema.json
    index.json
    packages/<book>/<slug>.json
    cache/<book>-<kind>.txt
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from importlib import resources
from pathlib import Path
from typing import Any

from jsonschema import Draft202012Validator
from jsonschema.exceptions import SchemaError

from lpkg.errors import ConfigError, LpkgError
from lpkg.files import write_json

logger = logging.getLogger(__name__)

DEFAULT_SCHEMA_VERSION = "v0.0.0"


@dataclass
class PackageSummary:
    schema_version: str
    id: str
    name: str
    version: str
    book: str
    stage: str | None
    variant: str | None
    status: str
    path: str

    def to_index_entry(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "version": self.version,
            "stage": self.stage,
            "book": self.book,
            "variant": self.variant,
            "status": self.status,
            "path": self.path,
        }


@dataclass
class PackageRecord:
    """One scanned metadata file: raw JSON plus its summary (or why it has none)."""

    path: Path
    relative_path: str
    value: Any
    summary: PackageSummary | None = None
    summary_error: str | None = None


@dataclass
class ValidationReport:
    """Errors keyed by relative file path, in scan order."""

    errors: dict[str, list[str]] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def error_count(self) -> int:
        return sum(len(v) for v in self.errors.values())

    def add(self, relative_path: str, message: str) -> None:
        self.errors.setdefault(relative_path, []).append(message)


class MetadataStore:
    """Accessor for an ``ai/metadata`` tree."""

    def __init__(self, metadata_dir: Path) -> None:
        self.metadata_dir = Path(metadata_dir)

    @classmethod
    def for_base_dir(cls, base_dir: Path, metadata_subdir: str = "ai/metadata") -> MetadataStore:
        return cls(Path(base_dir) / metadata_subdir)

    @property
    def packages_dir(self) -> Path:
        return self.metadata_dir / "packages"

    @property
    def schema_path(self) -> Path:
        return self.metadata_dir / "schema.json"

    @property
    def index_path(self) -> Path:
        return self.metadata_dir / "index.json"

    def package_path(self, book: str, slug: str) -> Path:
        return self.packages_dir / book / f"{slug}.json"

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------

    def load_schema(self) -> Draft202012Validator:
        """Compile the tree's ``schema.json``, or the bundled schema when absent.

        Raises:
            ConfigError: The schema file is not valid JSON or not a valid schema.
        """
        if self.schema_path.exists():
            source = str(self.schema_path)
            raw = self.schema_path.read_text(encoding="utf-8")
        else:
            source = "bundled schema"
            raw = resources.files("lpkg.data").joinpath("schema.json").read_text(encoding="utf-8")

        try:
            schema = json.loads(raw)
            Draft202012Validator.check_schema(schema)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Schema '{source}' is not valid JSON: {exc}") from exc
        except SchemaError as exc:
            raise ConfigError(f"Schema '{source}' is invalid: {exc.message}") from exc
        return Draft202012Validator(schema)

    # ------------------------------------------------------------------
    # Scan
    # ------------------------------------------------------------------

    def scan(self) -> list[PackageRecord]:
        """Read every ``*.json`` below ``packages/`` in sorted walk order.

        Raises:
            LpkgError: A file cannot be read or is not valid JSON.
        """
        if not self.packages_dir.exists():
            return []

        records: list[PackageRecord] = []
        for path in sorted(p for p in self.packages_dir.rglob("*.json") if p.is_file()):
            relative = path.relative_to(self.metadata_dir).as_posix()
            try:
                value = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError) as exc:
                raise LpkgError(f"Cannot read package metadata '{path}': {exc}") from exc

            record = PackageRecord(path=path, relative_path=relative, value=value)
            try:
                record.summary = extract_summary(value, relative)
            except ValueError as exc:
                record.summary_error = str(exc)
            records.append(record)
        return records

    # ------------------------------------------------------------------
    # Validate + index
    # ------------------------------------------------------------------

    def validate(
        self, records: list[PackageRecord], validator: Draft202012Validator
    ) -> ValidationReport:
        """Validate every record and collect every error; nothing short-circuits.

        A summary-extraction failure is only reported for files the schema
        accepted, so a file contributes one error per actual defect.
        """
        report = ValidationReport()
        for record in records:
            schema_errors = sorted(
                validator.iter_errors(record.value), key=lambda e: list(e.absolute_path)
            )
            for err in schema_errors:
                location = "/".join(str(p) for p in err.absolute_path) or "<root>"
                report.add(record.relative_path, f"{location}: {err.message}")
            if not schema_errors and record.summary_error:
                report.add(record.relative_path, f"summary extraction failed: {record.summary_error}")
        return report

    def build_index(self, records: list[PackageRecord]) -> dict[str, Any]:
        summaries = [r.summary for r in records if r.summary is not None]
        schema_version = summaries[0].schema_version if summaries else DEFAULT_SCHEMA_VERSION
        for summary in summaries[1:]:
            if summary.schema_version != schema_version:
                logger.warning(
                    "%s uses schema %s but the index records %s",
                    summary.path,
                    summary.schema_version,
                    schema_version,
                )
        return {
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "schema_version": schema_version,
            "packages": [s.to_index_entry() for s in summaries],
        }

    def write_index(self, index: dict[str, Any], *, compact: bool = False) -> Path:
        write_json(self.index_path, index, compact=compact)
        return self.index_path

    def load_index(self) -> dict[str, Any]:
        """Return the parsed ``index.json``; an empty index when the file is missing."""
        if not self.index_path.exists():
            return {"generated_at": None, "schema_version": DEFAULT_SCHEMA_VERSION, "packages": []}
        return json.loads(self.index_path.read_text(encoding="utf-8"))


def extract_summary(value: Any, relative_path: str) -> PackageSummary:
    """Denormalised index summary of one metadata document.

    Raises:
        ValueError: A required field is missing or not a string.
    """
    if not isinstance(value, dict):
        raise ValueError("document is not a JSON object")

    def _require(container: Any, key: str, label: str) -> str:
        if not isinstance(container, dict) or not isinstance(container.get(key), str):
            raise ValueError(f"missing {label}")
        return container[key]

    def _optional(container: dict[str, Any], key: str) -> str | None:
        item = container.get(key)
        return item if isinstance(item, str) else None

    schema_version = _require(value, "schema_version", "schema_version")
    package = value.get("package")
    if not isinstance(package, dict):
        raise ValueError("missing package block")
    status = value.get("status")
    if not isinstance(status, dict):
        raise ValueError("missing status block")

    return PackageSummary(
        schema_version=schema_version,
        id=_require(package, "id", "package.id"),
        name=_require(package, "name", "package.name"),
        version=_require(package, "version", "package.version"),
        book=_require(package, "book", "package.book"),
        stage=_optional(package, "stage"),
        variant=_optional(package, "variant"),
        status=_require(status, "state", "status.state"),
        path=relative_path,
    )
