"""Tests for the lpkg config loader."""

from __future__ import annotations

import warnings
from pathlib import Path

import pytest
import yaml

from lpkg.config import DEFAULT_TARGET, ConfigError, LpkgConfig, load_config


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _write_yaml(path: Path, data: dict) -> None:
    path.write_text(yaml.dump(data), encoding="utf-8")


def _load(tmp_path: Path, global_cfg: Path | None = None) -> LpkgConfig:
    return load_config(
        project_dir=tmp_path,
        global_config_path=global_cfg or tmp_path / "nonexistent" / "config.yaml",
    )


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------


def test_load_config_defaults_no_files(tmp_path: Path) -> None:
    """No config files → all hardcoded defaults."""
    cfg = _load(tmp_path)

    assert cfg.metadata.dir == "ai/metadata"
    assert cfg.books == {}
    assert cfg.database.url == "lpkg.db"
    assert cfg.toolchain.lfs is None
    assert cfg.toolchain.target == DEFAULT_TARGET
    assert cfg.http.timeout == 30.0
    assert cfg.download.workers == 4
    assert cfg.logging.level == "WARNING"


def test_load_config_empty_files(tmp_path: Path) -> None:
    global_cfg = tmp_path / "config.yaml"
    global_cfg.write_text("", encoding="utf-8")
    (tmp_path / "lpkg.yaml").write_text("", encoding="utf-8")
    assert _load(tmp_path, global_cfg).download.workers == 4


# ---------------------------------------------------------------------------
# Layering
# ---------------------------------------------------------------------------


def test_project_overrides_global(tmp_path: Path) -> None:
    global_cfg = tmp_path / "global.yaml"
    _write_yaml(global_cfg, {"download": {"workers": 2, "mirror": "ftp.fau.de"}, "toolchain": {"lfs": "/mnt/a"}})
    _write_yaml(tmp_path / "lpkg.yaml", {"download": {"workers": 8}})

    cfg = _load(tmp_path, global_cfg)
    assert cfg.download.workers == 8
    assert cfg.download.mirror == "ftp.fau.de"
    assert cfg.toolchain.lfs == "/mnt/a"


def test_env_overrides_yaml(tmp_path: Path, monkeypatch) -> None:
    _write_yaml(
        tmp_path / "lpkg.yaml",
        {"toolchain": {"lfs": "/mnt/yaml", "target": "i686-lfs-linux-gnu"}, "database": {"url": "y.db"}},
    )
    monkeypatch.setenv("LFS", "/mnt/env")
    monkeypatch.setenv("LFS_TGT", "aarch64-lfs-linux-gnu")
    monkeypatch.setenv("BINUTILS_SRC_DIR", "/srv/src")
    monkeypatch.setenv("LPKG_DATABASE_URL", "/var/lib/lpkg.db")
    monkeypatch.setenv("LPKG_LOG_LEVEL", "debug")

    cfg = _load(tmp_path)
    assert cfg.toolchain.lfs == "/mnt/env"
    assert cfg.toolchain.target == "aarch64-lfs-linux-gnu"
    assert cfg.toolchain.src_dir == "/srv/src"
    assert cfg.database.url == "/var/lib/lpkg.db"
    assert cfg.logging.level == "DEBUG"


# ---------------------------------------------------------------------------
# Books
# ---------------------------------------------------------------------------


def test_book_base_url_overrides(tmp_path: Path) -> None:
    _write_yaml(
        tmp_path / "lpkg.yaml",
        {"books": {"MLFS": {"base_url": "https://mirror.test/mlfs/"}, "lfs": "https://mirror.test/lfs"}},
    )
    cfg = _load(tmp_path)
    assert cfg.base_url_for("mlfs") == "https://mirror.test/mlfs"
    assert cfg.base_url_for("LFS") == "https://mirror.test/lfs"
    assert cfg.base_url_for("blfs") is None


def test_unknown_book_rejected(tmp_path: Path) -> None:
    _write_yaml(tmp_path / "lpkg.yaml", {"books": {"xlfs": "https://x"}})
    with pytest.raises(ConfigError, match="Unknown book 'xlfs'"):
        _load(tmp_path)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def test_section_must_be_mapping(tmp_path: Path) -> None:
    _write_yaml(tmp_path / "lpkg.yaml", {"download": ["a", "b"]})
    with pytest.raises(ConfigError, match="must be a mapping"):
        _load(tmp_path)


def test_workers_must_be_positive(tmp_path: Path) -> None:
    _write_yaml(tmp_path / "lpkg.yaml", {"download": {"workers": 0}})
    with pytest.raises(ConfigError, match="workers"):
        _load(tmp_path)


def test_invalid_log_level(tmp_path: Path) -> None:
    _write_yaml(tmp_path / "lpkg.yaml", {"logging": {"level": "chatty"}})
    with pytest.raises(ConfigError, match="logging.level"):
        _load(tmp_path)


def test_invalid_log_level_from_env(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("LPKG_LOG_LEVEL", "loud")
    with pytest.raises(ConfigError, match="LPKG_LOG_LEVEL"):
        _load(tmp_path)


def test_unknown_key_warns(tmp_path: Path) -> None:
    _write_yaml(tmp_path / "lpkg.yaml", {"embedding": {"model": "x"}})
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        _load(tmp_path)
    assert any("Unknown config key 'embedding'" in str(w.message) for w in caught)
