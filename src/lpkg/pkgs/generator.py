"""Generate package modules from harvested metadata JSON."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from lpkg.errors import LpkgError, ScaffoldError
from lpkg.metadata.models import PackageMetadata
from lpkg.pkgs.scaffolder import (
    ScaffoldRequest,
    ScaffoldResult,
    sanitize_module_name,
    scaffold_package,
    shard_prefix,
)


def module_override_from_id(package_id: str) -> str:
    """``"mlfs/binutils-pass-1"`` → ``"binutils_pass_1"``."""
    slug = package_id.split("/", 1)[1] if "/" in package_id else package_id
    for ch in "./- ":
        slug = slug.replace(ch, "_")
    return slug.lower()


def flatten_commands(metadata: PackageMetadata) -> tuple[list[str], list[str]]:
    """Split every phase's commands into (build, install) lists, keeping order."""
    build: list[str] = []
    install: list[str] = []
    for phase in metadata.build:
        for command in phase.commands:
            (install if "make install" in command else build).append(command)
    return build, install


def request_from_metadata(data: dict[str, Any]) -> ScaffoldRequest:
    """Build a ScaffoldRequest from a parsed metadata document.

    The module name comes from the package id slug; dependencies are the
    sorted union of build and runtime dependencies.
    """
    metadata = PackageMetadata.from_dict(data)
    build_commands, install_commands = flatten_commands(metadata)
    dependencies = sorted(
        set(metadata.dependencies.build) | set(metadata.dependencies.runtime)
    )
    md5 = next(
        (c.value for c in metadata.source.checksums if c.alg.lower() == "md5"),
        None,
    )
    opt = metadata.optimizations
    return ScaffoldRequest(
        name=metadata.package.name,
        version=metadata.package.version,
        source=metadata.source.urls[0].url if metadata.source.urls else None,
        md5=md5,
        build_commands=build_commands,
        install_commands=install_commands,
        dependencies=dependencies,
        enable_lto=opt.enable_lto,
        enable_pgo=opt.enable_pgo,
        cflags=list(opt.cflags),
        ldflags=list(opt.ldflags),
        profdata=opt.profdata,
        stage=metadata.package.stage,
        variant=metadata.package.variant,
        notes=(data.get("package") or {}).get("notes"),
        module_override=module_override_from_id(metadata.package.id),
    )


def load_metadata_file(path: Path) -> dict[str, Any]:
    """Read one metadata JSON document.

    Raises:
        LpkgError: The file cannot be read or parsed.
    """
    try:
        return json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise LpkgError(f"Cannot read metadata file '{path}': {exc}") from exc


def _request_from_file(path: Path) -> ScaffoldRequest:
    try:
        return request_from_metadata(load_metadata_file(path))
    except (KeyError, TypeError, ValueError) as exc:
        raise ScaffoldError(f"Metadata file '{path}' is missing required fields: {exc}") from exc


def module_directory(metadata_path: Path, base_dir: Path) -> Path:
    """Directory the module generated from *metadata_path* would occupy."""
    request = _request_from_file(metadata_path)
    module = sanitize_module_name(request.module_override or request.name)
    return Path(base_dir) / shard_prefix(module) / module


def generate_module(metadata_path: Path, base_dir: Path) -> ScaffoldResult:
    """Scaffold the module for one metadata file under *base_dir*."""
    return scaffold_package(base_dir, _request_from_file(metadata_path))
