"""Package definition model shared by generated modules, the scaffolder and the store."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass
class OptimizationSettings:
    """Compiler/linker flags applied during a package build.

    The defaults are the instrumented PGO preset; use :meth:`for_pgo_replay`
    once profile data has been collected.
    """

    enable_lto: bool = True
    enable_pgo: bool = True
    cflags: list[str] = field(default_factory=lambda: ["-O3", "-flto", "-fprofile-generate"])
    ldflags: list[str] = field(default_factory=lambda: ["-flto", "-fprofile-generate"])
    profdata: str | None = None

    @classmethod
    def for_pgo_replay(cls, profdata: str) -> OptimizationSettings:
        return cls(
            enable_lto=True,
            enable_pgo=True,
            cflags=["-O3", "-flto", "-fprofile-use"],
            ldflags=["-flto", "-fprofile-use"],
            profdata=profdata,
        )


@dataclass
class PackageDefinition:
    name: str
    version: str
    source: str | None = None
    md5: str | None = None
    configure_args: list[str] = field(default_factory=list)
    build_commands: list[str] = field(default_factory=list)
    install_commands: list[str] = field(default_factory=list)
    dependencies: list[str] = field(default_factory=list)
    optimizations: OptimizationSettings = field(default_factory=OptimizationSettings)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PackageDefinition:
        opt = data.get("optimizations") or {}
        return cls(
            name=data["name"],
            version=data["version"],
            source=data.get("source"),
            md5=data.get("md5"),
            configure_args=list(data.get("configure_args") or []),
            build_commands=list(data.get("build_commands") or []),
            install_commands=list(data.get("install_commands") or []),
            dependencies=list(data.get("dependencies") or []),
            optimizations=OptimizationSettings(
                enable_lto=bool(opt.get("enable_lto", True)),
                enable_pgo=bool(opt.get("enable_pgo", True)),
                cflags=list(opt.get("cflags") or []),
                ldflags=list(opt.get("ldflags") or []),
                profdata=opt.get("profdata"),
            ),
        )
