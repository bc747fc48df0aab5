"""Import generated package modules by name."""

from __future__ import annotations

import importlib
import pkgutil

from lpkg.errors import LpkgError
from lpkg.pkgs.package import PackageDefinition
from lpkg.pkgs.scaffolder import sanitize_module_name, shard_prefix

BY_NAME_PACKAGE = "lpkg.pkgs.by_name"


def load_definition(module_name: str, package: str = BY_NAME_PACKAGE) -> PackageDefinition:
    """Import ``<package>.<shard>.<module>`` and return its ``definition()``.

    Raises:
        LpkgError: No generated module with that name exists.
    """
    module = sanitize_module_name(module_name)
    dotted = f"{package}.{shard_prefix(module)}.{module}"
    try:
        mod = importlib.import_module(dotted)
    except ModuleNotFoundError as exc:
        raise LpkgError(f"No generated package module '{dotted}'") from exc
    return mod.definition()


def available_modules(package: str = BY_NAME_PACKAGE) -> list[str]:
    """Names of every generated module below *package*, sorted."""
    root = importlib.import_module(package)
    names: list[str] = []
    for shard in pkgutil.iter_modules(root.__path__):
        if not shard.ispkg:
            continue
        shard_mod = importlib.import_module(f"{package}.{shard.name}")
        names.extend(m.name for m in pkgutil.iter_modules(shard_mod.__path__) if m.ispkg)
    return sorted(names)
