"""lpkg rich error messages: actionable feedback.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from lpkg.cli.errors import err_validation_failed
    console.print(err_validation_failed(3))
    raise typer.Exit(1)
"""

from __future__ import annotations

from pathlib import Path


def err_generic(exc: Exception) -> str:
    """Fallback for an ``LpkgError`` without a dedicated helper."""
    return f"[red]Error:[/] {exc}"


def err_validation_failed(error_count: int, *, index: bool = False) -> str:
    """Schema or summary errors were reported for one or more metadata files.

    Example:
        Error: metadata validation failed (2 errors); index not updated.
    """
    suffix = "; index not updated" if index else ""
    return (
        f"[red]Error:[/] metadata validation failed ({error_count} "
        f"error{'s' if error_count != 1 else ''}){suffix}.\n"
        "  Fix the files listed above, then run:  lpkg-metadata validate"
    )


def err_fetch(exc: Exception) -> str:
    """Transport failure or non-2xx response."""
    return (
        f"[red]Error:[/] {exc}\n"
        "  Check your network connection, or pass --base-url to use a different mirror."
    )


def err_harvest(exc: Exception) -> str:
    """The primary heading could not be parsed."""
    return (
        f"[red]Error:[/] {exc}\n"
        "  Make sure --page points at a single package page (one <h1 class=\"sect1\"> heading)."
    )


def err_bad_base_dir(path: Path | str) -> str:
    """Scaffold base directory does not end in ``by_name``."""
    return (
        f"[red]Error:[/] Package base directory must end in 'by_name', got '{path}'.\n"
        "  Pass:  --base src/lpkg/pkgs/by_name"
    )


def err_module_exists(path: Path | str) -> str:
    """Generated module directory already exists."""
    return (
        f"[red]Error:[/] Package module already exists: {path}\n"
        "  Delete it first, or rerun with --overwrite (import-mlfs)."
    )


def err_build_failed(step: str, exc: Exception) -> str:
    """A build step of the cross-toolchain run failed."""
    return (
        f"[red]Error:[/] Build failed during '{step}': {exc}\n"
        "  Fix the problem and rerun; an already-extracted source tree is reused."
    )


def err_no_lfs_root() -> str:
    """``--lfs-root`` missing and ``$LFS`` not set."""
    return (
        "[red]Error:[/] No LFS root given.\n"
        "  Pass --lfs-root DIR or set:  export LFS=/mnt/lfs"
    )


def err_package_not_found(name: str, version: str | None = None) -> str:
    label = f"{name} {version}" if version else name
    return (
        f"[red]Error:[/] Package '{label}' not found in the store.\n"
        "  Run:  lpkg workflow scaffold-package --name ... --version ...  (or import-mlfs)"
    )
