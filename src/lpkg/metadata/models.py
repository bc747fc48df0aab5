"""PackageMetadata record: one harvested or hand-authored JSON document per package."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

SCHEMA_VERSION = "v0.1.0"

STATES = ("draft", "validated", "indexed")


@dataclass
class SourceUrl:
    url: str
    kind: str = "primary"  # primary | patch | signature


@dataclass
class Checksum:
    alg: str
    value: str


@dataclass
class PackageInfo:
    id: str
    name: str
    version: str
    book: str
    chapter: int
    section: str
    stage: str | None = None
    variant: str | None = None
    anchors: dict[str, str] = field(default_factory=dict)


@dataclass
class SourceInfo:
    urls: list[SourceUrl] = field(default_factory=list)
    archive: str | None = None
    checksums: list[Checksum] = field(default_factory=list)


@dataclass
class Artifacts:
    sbu: float | None = None
    disk: int | None = None
    install_prefix: str | None = None


@dataclass
class Dependencies:
    build: list[str] = field(default_factory=list)
    runtime: list[str] = field(default_factory=list)


@dataclass
class BuildPhase:
    phase: str
    commands: list[str]
    cwd: str | None = None
    requires_root: bool = False
    notes: str | None = None


@dataclass
class Optimizations:
    enable_lto: bool = True
    enable_pgo: bool = True
    cflags: list[str] = field(default_factory=lambda: ["-O3", "-flto"])
    ldflags: list[str] = field(default_factory=lambda: ["-flto"])
    profdata: str | None = None


@dataclass
class Provenance:
    book_release: str
    page_url: str
    retrieved_at: str
    content_hash: str


@dataclass
class Status:
    state: str = "draft"
    issues: list[str] = field(default_factory=list)


@dataclass
class PackageMetadata:
    package: PackageInfo
    provenance: Provenance
    source: SourceInfo = field(default_factory=SourceInfo)
    artifacts: Artifacts = field(default_factory=Artifacts)
    dependencies: Dependencies = field(default_factory=Dependencies)
    build: list[BuildPhase] = field(default_factory=list)
    optimizations: Optimizations = field(default_factory=Optimizations)
    status: Status = field(default_factory=Status)
    schema_version: str = SCHEMA_VERSION

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready dict with ``schema_version`` first, matching the on-disk layout."""
        data = asdict(self)
        return {
            "schema_version": data.pop("schema_version"),
            "package": data.pop("package"),
            **data,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PackageMetadata:
        """Build a record from parsed JSON; missing optional sections fall back to defaults.

        Raises:
            KeyError: If ``package`` or one of its required fields is absent.
        """
        pkg = dict(data["package"])
        package = PackageInfo(
            id=pkg["id"],
            name=pkg["name"],
            version=pkg["version"],
            book=pkg["book"],
            chapter=int(pkg.get("chapter") or 0),
            section=str(pkg.get("section") or ""),
            stage=pkg.get("stage"),
            variant=pkg.get("variant"),
            anchors=dict(pkg.get("anchors") or {}),
        )
        src = data.get("source") or {}
        source = SourceInfo(
            urls=[SourceUrl(u["url"], u.get("kind", "primary")) for u in src.get("urls") or []],
            archive=src.get("archive"),
            checksums=[Checksum(c["alg"], c["value"]) for c in src.get("checksums") or []],
        )
        art = data.get("artifacts") or {}
        deps = data.get("dependencies") or {}
        opt = data.get("optimizations") or {}
        prov = data.get("provenance") or {}
        status = data.get("status") or {}
        return cls(
            schema_version=data.get("schema_version", SCHEMA_VERSION),
            package=package,
            source=source,
            artifacts=Artifacts(
                sbu=art.get("sbu"),
                disk=art.get("disk"),
                install_prefix=art.get("install_prefix"),
            ),
            dependencies=Dependencies(
                build=list(deps.get("build") or []),
                runtime=list(deps.get("runtime") or []),
            ),
            build=[
                BuildPhase(
                    phase=step["phase"],
                    commands=list(step.get("commands") or []),
                    cwd=step.get("cwd"),
                    requires_root=bool(step.get("requires_root", False)),
                    notes=step.get("notes"),
                )
                for step in data.get("build") or []
            ],
            optimizations=Optimizations(
                enable_lto=bool(opt.get("enable_lto", True)),
                enable_pgo=bool(opt.get("enable_pgo", True)),
                cflags=list(opt.get("cflags") or []),
                ldflags=list(opt.get("ldflags") or []),
                profdata=opt.get("profdata"),
            ),
            provenance=Provenance(
                book_release=prov.get("book_release", ""),
                page_url=prov.get("page_url", ""),
                retrieved_at=prov.get("retrieved_at", ""),
                content_hash=prov.get("content_hash", ""),
            ),
            status=Status(
                state=status.get("state", "draft"),
                issues=list(status.get("issues") or []),
            ),
        )
