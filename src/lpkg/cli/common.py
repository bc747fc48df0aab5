"""Helpers shared by the lpkg command-line tools."""

from __future__ import annotations

import functools
from collections.abc import Callable
from pathlib import Path
from typing import NoReturn, TypeVar

import typer
from rich.console import Console

from lpkg.cli.errors import (
    err_build_failed,
    err_fetch,
    err_generic,
    err_harvest,
    err_module_exists,
)
from lpkg.config import LpkgConfig, load_config
from lpkg.errors import (
    BuildError,
    ConfigError,
    FetchError,
    HarvestError,
    LpkgError,
    ModuleExistsError,
)
from lpkg.log import setup_logging
from lpkg.net import fetch_text

console = Console()
err_console = Console(stderr=True)

T = TypeVar("T")

DEFAULT_PKGS_BASE = Path("src") / "lpkg" / "pkgs" / "by_name"


def bootstrap(project_dir: Path | None, verbose: bool) -> LpkgConfig:
    """Load configuration and install logging handlers for one invocation."""
    try:
        cfg = load_config(project_dir)
    except ConfigError as exc:
        err_console.print(err_generic(exc))
        raise typer.Exit(1) from exc
    setup_logging("INFO" if verbose else cfg.logging.level, cfg.logging.file)
    return cfg


def http_fetcher(cfg: LpkgConfig, fetch: Callable[..., T] = fetch_text) -> Callable[[str], T]:
    """*fetch* (default ``fetch_text``) bound to the configured timeout, user agent
    and redirect limit.
    """
    return functools.partial(
        fetch,
        timeout=cfg.http.timeout,
        user_agent=cfg.http.user_agent,
        max_redirects=cfg.http.max_redirects,
    )


def fail(exc: LpkgError) -> NoReturn:
    """Print *exc* with the matching hint and exit with status 1."""
    if isinstance(exc, FetchError):
        message = err_fetch(exc)
    elif isinstance(exc, HarvestError):
        message = err_harvest(exc)
    elif isinstance(exc, ModuleExistsError):
        message = err_module_exists(exc.path)
    elif isinstance(exc, BuildError):
        message = err_build_failed(exc.step, exc)
    else:
        message = err_generic(exc)
    err_console.print(message)
    raise typer.Exit(1) from exc
