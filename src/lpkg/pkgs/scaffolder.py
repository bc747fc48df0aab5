"""Package scaffolder: ScaffoldRequest → generated module under ``by_name/``.

Layout::

    by_name/__init__.py                    from . import <shard>
    by_name/<shard>/__init__.py            from . import <module>
    by_name/<shard>/<module>/__init__.py   def definition() -> PackageDefinition

The shard is the first two characters of the module name.
"""

from __future__ import annotations

import keyword
import logging
from dataclasses import dataclass, field
from pathlib import Path

from lpkg.errors import ConfigError, ModuleExistsError, ScaffoldError
from lpkg.files import write_atomic
from lpkg.pkgs.package import OptimizationSettings, PackageDefinition
from lpkg.pkgs.registry import ModuleRegistry

logger = logging.getLogger(__name__)

BY_NAME_DIR = "by_name"


@dataclass
class ScaffoldRequest:
    name: str
    version: str
    source: str | None = None
    md5: str | None = None
    configure_args: list[str] = field(default_factory=list)
    build_commands: list[str] = field(default_factory=list)
    install_commands: list[str] = field(default_factory=list)
    dependencies: list[str] = field(default_factory=list)
    enable_lto: bool = True
    enable_pgo: bool = True
    cflags: list[str] = field(default_factory=list)
    ldflags: list[str] = field(default_factory=list)
    profdata: str | None = None
    stage: str | None = None
    variant: str | None = None
    notes: str | None = None
    module_override: str | None = None


@dataclass
class ScaffoldResult:
    module_path: Path
    shard_registry: Path
    root_registry: Path
    definition: PackageDefinition


# ------------------------------------------------------------------
# Naming
# ------------------------------------------------------------------


def sanitize_module_name(name: str) -> str:
    """Lowercase ASCII alphanumerics; everything else becomes ``_``.

    Never fails: an empty result becomes ``pkg``, and a leading digit or a
    Python keyword gets a ``p`` prefix.
    """
    out = "".join(ch.lower() if ch.isascii() and ch.isalnum() else "_" for ch in name)
    if not out:
        out = "pkg"
    if out[0].isdigit() or keyword.iskeyword(out):
        out = "p" + out
    return out


def shard_prefix(module_name: str) -> str:
    """First two characters of *module_name*, padded with ``p``/``k``."""
    first = module_name[0] if len(module_name) > 0 else "p"
    second = module_name[1] if len(module_name) > 1 else "k"
    return first + second


# ------------------------------------------------------------------
# Definition
# ------------------------------------------------------------------


def _dedup(values: list[str]) -> list[str]:
    seen: set[str] = set()
    result: list[str] = []
    for value in values:
        if value not in seen:
            seen.add(value)
            result.append(value)
    return result


def _default_flags(base: list[str], request: ScaffoldRequest) -> list[str]:
    flags = list(base)
    if request.enable_pgo:
        flags.append("-fprofile-use" if request.profdata else "-fprofile-generate")
    return flags


def build_definition(request: ScaffoldRequest) -> PackageDefinition:
    """Build the persisted definition; explicit flags win over the LTO/PGO defaults."""
    cflags = request.cflags or _default_flags(["-O3", "-flto"], request)
    ldflags = request.ldflags or _default_flags(["-flto"], request)

    if request.profdata:
        optimizations = OptimizationSettings.for_pgo_replay(request.profdata)
    else:
        optimizations = OptimizationSettings()
    optimizations.enable_lto = request.enable_lto
    optimizations.enable_pgo = request.enable_pgo
    optimizations.cflags = _dedup(cflags)
    optimizations.ldflags = _dedup(ldflags)
    optimizations.profdata = request.profdata

    return PackageDefinition(
        name=request.name,
        version=request.version,
        source=request.source,
        md5=request.md5,
        configure_args=list(request.configure_args),
        build_commands=list(request.build_commands),
        install_commands=list(request.install_commands),
        dependencies=list(request.dependencies),
        optimizations=optimizations,
    )


# ------------------------------------------------------------------
# Rendering
# ------------------------------------------------------------------


def _render_list(values: list[str], indent: str) -> str:
    if not values:
        return "[]"
    inner = "".join(f"{indent}    {value!r},\n" for value in values)
    return f"[\n{inner}{indent}]"


def render_module(request: ScaffoldRequest, definition: PackageDefinition) -> str:
    """Python source of a generated package module (deterministic for a given input)."""
    notes = []
    if request.stage:
        notes.append(f"stage: {request.stage}")
    if request.variant:
        notes.append(f"variant: {request.variant}")
    if request.notes:
        notes.append(f"notes: {request.notes}")

    doc = f"{definition.name} {definition.version} package definition."
    if notes:
        doc += "\n\nMLFS metadata: " + ", ".join(notes) + "\n"
    doc = doc.replace("\\", "\\\\").replace('"""', '\\"\\"\\"')

    opt = definition.optimizations
    i8 = " " * 8
    i12 = " " * 12
    return (
        f'"""{doc}"""\n'
        "\n"
        "from lpkg.pkgs.package import OptimizationSettings, PackageDefinition\n"
        "\n"
        "\n"
        "def definition() -> PackageDefinition:\n"
        "    return PackageDefinition(\n"
        f"        name={definition.name!r},\n"
        f"        version={definition.version!r},\n"
        f"        source={definition.source!r},\n"
        f"        md5={definition.md5!r},\n"
        f"        configure_args={_render_list(definition.configure_args, i8)},\n"
        f"        build_commands={_render_list(definition.build_commands, i8)},\n"
        f"        install_commands={_render_list(definition.install_commands, i8)},\n"
        f"        dependencies={_render_list(definition.dependencies, i8)},\n"
        "        optimizations=OptimizationSettings(\n"
        f"            enable_lto={opt.enable_lto!r},\n"
        f"            enable_pgo={opt.enable_pgo!r},\n"
        f"            cflags={_render_list(opt.cflags, i12)},\n"
        f"            ldflags={_render_list(opt.ldflags, i12)},\n"
        f"            profdata={opt.profdata!r},\n"
        "        ),\n"
        "    )\n"
    )


# ------------------------------------------------------------------
# Scaffold
# ------------------------------------------------------------------


def module_directory(base_dir: Path, request: ScaffoldRequest) -> Path:
    """Directory the module for *request* would be generated in."""
    module_name = sanitize_module_name(request.module_override or request.name)
    return Path(base_dir) / shard_prefix(module_name) / module_name


def scaffold_package(base_dir: Path, request: ScaffoldRequest) -> ScaffoldResult:
    """Generate the package module for *request* below *base_dir*.

    Raises:
        ConfigError: *base_dir* does not end in ``by_name`` (nothing is touched).
        ModuleExistsError: The module directory already exists.
        ScaffoldError: Any filesystem failure, with the offending path.
    """
    base_dir = Path(base_dir)
    if base_dir.name != BY_NAME_DIR:
        raise ConfigError(f"Expected a base directory ending with '{BY_NAME_DIR}', got '{base_dir}'")

    module_name = sanitize_module_name(request.module_override or request.name)
    shard = shard_prefix(module_name)
    shard_dir = base_dir / shard
    package_dir = shard_dir / module_name

    try:
        shard_dir.mkdir(parents=True, exist_ok=True)
        root_registry = ModuleRegistry(
            base_dir / "__init__.py", "Generated package modules, sharded by name prefix."
        )
        shard_registry = ModuleRegistry(
            shard_dir / "__init__.py", f"Generated package modules ({shard})."
        )
        root_registry.add(shard)
        shard_registry.add(module_name)

        if package_dir.exists():
            raise ModuleExistsError(package_dir)
        package_dir.mkdir(parents=True)

        definition = build_definition(request)
        module_path = package_dir / "__init__.py"
        write_atomic(module_path, render_module(request, definition))
    except OSError as exc:
        raise ScaffoldError(f"Cannot write package module under '{package_dir}': {exc}") from exc

    logger.info("Scaffolded %s %s -> %s", request.name, request.version, module_path)
    return ScaffoldResult(
        module_path=module_path,
        shard_registry=shard_registry.path,
        root_registry=root_registry.path,
        definition=definition,
    )
