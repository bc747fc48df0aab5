"""lpkg configuration loader.

Priority (high → low):
  1. CLI flags           (handled at call site — not in this module)
  2. Environment variables  (LFS, LFS_TGT, BINUTILS_SRC_DIR, LPKG_DATABASE_URL, LPKG_LOG_LEVEL)
  3. Per-project lpkg.yaml  (in the base directory)
  4. Global ~/.lpkg/config.yaml
  5. Hardcoded defaults

All YAML reads use yaml.safe_load() — never yaml.load().
"""

from __future__ import annotations

import os
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from lpkg.books import PROFILES
from lpkg.errors import ConfigError

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".lpkg"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"
_PROJECT_CONFIG_NAME: str = "lpkg.yaml"

DEFAULT_TARGET = "x86_64-lfs-linux-gnu"
DEFAULT_DB_URL = "lpkg.db"

# Known top-level sections; unknown keys produce a warning
_KNOWN_SECTIONS: frozenset[str] = frozenset(
    ["metadata", "books", "database", "toolchain", "http", "download", "logging"]
)

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class MetadataCfg:
    """Location of the metadata tree, relative to the base directory (lpkg.yaml: metadata:)."""

    dir: str = "ai/metadata"


@dataclass
class DatabaseCfg:
    """Package store location (lpkg.yaml: database:)."""

    url: str = DEFAULT_DB_URL


@dataclass
class ToolchainCfg:
    """Cross-toolchain build settings (lpkg.yaml: toolchain:).

    Attributes:
        lfs: LFS root used to substitute ``$LFS``; None means "must be given".
        target: Cross-compile triple used to substitute ``$LFS_TGT``.
        src_dir: Override for the source base directory.
    """

    lfs: str | None = None
    target: str = DEFAULT_TARGET
    src_dir: str | None = None


@dataclass
class HttpCfg:
    """HTTP client settings (lpkg.yaml: http:)."""

    timeout: float = 30.0
    user_agent: str = "lpkg/0.1 (+https://www.linuxfromscratch.org)"
    max_redirects: int = 5


@dataclass
class DownloadCfg:
    """Source download settings (lpkg.yaml: download:)."""

    workers: int = 4
    mirror: str | None = None


@dataclass
class LoggingCfg:
    """Log level and optional log file (lpkg.yaml: logging:)."""

    level: str = "WARNING"
    file: str | None = None


@dataclass
class LpkgConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    metadata: MetadataCfg = field(default_factory=MetadataCfg)
    books: dict[str, str] = field(default_factory=dict)  # book -> base_url override
    database: DatabaseCfg = field(default_factory=DatabaseCfg)
    toolchain: ToolchainCfg = field(default_factory=ToolchainCfg)
    http: HttpCfg = field(default_factory=HttpCfg)
    download: DownloadCfg = field(default_factory=DownloadCfg)
    logging: LoggingCfg = field(default_factory=LoggingCfg)

    def base_url_for(self, book: str) -> str | None:
        """Return the configured base URL override for *book*, if any."""
        return self.books.get(book.lower())


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    """Emit a UserWarning for unrecognised top-level keys."""
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}' — ignored.",
                UserWarning,
                stacklevel=4,
            )


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"Config section '{name}' must be a mapping, got {type(value).__name__}")
    return value


def _parse_books(raw: dict[str, Any]) -> dict[str, str]:
    books: dict[str, str] = {}
    for book, entry in raw.items():
        key = str(book).lower()
        if key not in PROFILES:
            raise ConfigError(
                f"Unknown book '{book}' in config. Known books: {', '.join(sorted(PROFILES))}"
            )
        if isinstance(entry, dict):
            url = entry.get("base_url")
        else:
            url = entry
        if url:
            books[key] = str(url).rstrip("/")
    return books


# ---------------------------------------------------------------------------
# Merge + build
# ---------------------------------------------------------------------------


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict that is *base* deep-merged with *override*."""
    result = dict(base)
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _cfg_from_dict(data: dict[str, Any]) -> LpkgConfig:
    """Build an *LpkgConfig* from a merged raw YAML dict."""
    cfg = LpkgConfig()

    if "metadata" in data:
        m = _section(data, "metadata")
        cfg.metadata = MetadataCfg(dir=str(m.get("dir", cfg.metadata.dir)))

    if "books" in data:
        cfg.books = _parse_books(_section(data, "books"))

    if "database" in data:
        d = _section(data, "database")
        cfg.database = DatabaseCfg(url=str(d.get("url", cfg.database.url)))

    if "toolchain" in data:
        t = _section(data, "toolchain")
        cfg.toolchain = ToolchainCfg(
            lfs=t.get("lfs") or cfg.toolchain.lfs,
            target=str(t.get("target", cfg.toolchain.target)),
            src_dir=t.get("src_dir") or cfg.toolchain.src_dir,
        )

    if "http" in data:
        h = _section(data, "http")
        cfg.http = HttpCfg(
            timeout=float(h.get("timeout", cfg.http.timeout)),
            user_agent=str(h.get("user_agent", cfg.http.user_agent)),
            max_redirects=int(h.get("max_redirects", cfg.http.max_redirects)),
        )

    if "download" in data:
        dl = _section(data, "download")
        cfg.download = DownloadCfg(
            workers=int(dl.get("workers", cfg.download.workers)),
            mirror=dl.get("mirror") or cfg.download.mirror,
        )
        if cfg.download.workers < 1:
            raise ConfigError(f"download.workers must be >= 1, got {cfg.download.workers}")

    if "logging" in data:
        lg = _section(data, "logging")
        cfg.logging = LoggingCfg(
            level=str(lg.get("level", cfg.logging.level)).upper(),
            file=lg.get("file") or cfg.logging.file,
        )

    if cfg.logging.level not in _LOG_LEVELS:
        raise ConfigError(
            f"logging.level must be one of {', '.join(sorted(_LOG_LEVELS))}, got '{cfg.logging.level}'"
        )

    return cfg


def _apply_env_overrides(cfg: LpkgConfig) -> LpkgConfig:
    """Apply environment variable overrides (layer 2)."""
    if lfs := os.environ.get("LFS"):
        cfg.toolchain.lfs = lfs
    if target := os.environ.get("LFS_TGT"):
        cfg.toolchain.target = target
    if src_dir := os.environ.get("BINUTILS_SRC_DIR"):
        cfg.toolchain.src_dir = src_dir
    if db_url := os.environ.get("LPKG_DATABASE_URL"):
        cfg.database.url = db_url
    if level := os.environ.get("LPKG_LOG_LEVEL"):
        cfg.logging.level = level.upper()
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> LpkgConfig:
    """Load and return a merged *LpkgConfig*.

    Applies layers in order: global → per-project → env vars.
    CLI flag overrides must be applied by the caller after this function.

    Args:
        project_dir: Directory to search for *lpkg.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Raises:
        ConfigError: If a section has the wrong shape or a value is out of range.
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    search_dir = project_dir if project_dir is not None else Path.cwd()

    merged: dict[str, Any] = {}

    # Layer 1: global config
    if global_path.exists():
        raw_global = yaml.safe_load(global_path.read_text(encoding="utf-8")) or {}
        _warn_unknown_keys(raw_global, global_path)
        merged = _deep_merge(merged, raw_global)

    # Layer 2: per-project config
    project_cfg_path = search_dir / _PROJECT_CONFIG_NAME
    if project_cfg_path.exists():
        raw_project = yaml.safe_load(project_cfg_path.read_text(encoding="utf-8")) or {}
        _warn_unknown_keys(raw_project, project_cfg_path)
        merged = _deep_merge(merged, raw_project)

    cfg = _cfg_from_dict(merged)

    # Layer 3: env var overrides
    cfg = _apply_env_overrides(cfg)
    if cfg.logging.level not in _LOG_LEVELS:
        raise ConfigError(f"LPKG_LOG_LEVEL must be one of {', '.join(sorted(_LOG_LEVELS))}")

    return cfg
