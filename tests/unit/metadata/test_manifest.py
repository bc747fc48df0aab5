"""Tests for the per-book manifest cache."""

from __future__ import annotations

import pytest

from lpkg.books import get_profile
from lpkg.errors import ConfigError, FetchError
from lpkg.metadata.manifest import ManifestCache, ManifestKind, manifest_url


def test_kind_filenames():
    assert ManifestKind.WGET_LIST.filename == "wget-list.txt"
    assert ManifestKind.MD5SUMS.filename == "md5sums.txt"


def test_kind_parse():
    assert ManifestKind.parse("MD5SUMS") is ManifestKind.MD5SUMS
    with pytest.raises(ConfigError, match="Unknown manifest kind"):
        ManifestKind.parse("sha256sums")


def test_manifest_url_per_book():
    assert manifest_url("blfs", ManifestKind.WGET_LIST) == get_profile("blfs").wget_list_url
    with pytest.raises(ConfigError):
        manifest_url("xlfs", ManifestKind.MD5SUMS)


def test_path_for(tmp_path):
    cache = ManifestCache(tmp_path)
    assert cache.path_for("MLFS", ManifestKind.WGET_LIST) == tmp_path / "cache" / "mlfs-wget-list.txt"


def test_refresh_fetches_and_writes(tmp_path, manifest_fetch):
    calls: list[str] = []
    cache = ManifestCache(tmp_path, fetch=manifest_fetch(calls))
    path = cache.refresh("mlfs", ManifestKind.MD5SUMS)
    assert path.read_text(encoding="utf-8").startswith("dee5b4267e0305a99a3c9d6131f45759")
    assert calls == [get_profile("mlfs").md5sums_url]


def test_cached_file_is_not_refetched(tmp_path, manifest_fetch):
    calls: list[str] = []
    cache = ManifestCache(tmp_path, fetch=manifest_fetch(calls))
    path = cache.path_for("mlfs", ManifestKind.WGET_LIST)
    path.parent.mkdir(parents=True)
    path.write_text("https://example.org/old-1.0.tar.xz\n", encoding="utf-8")

    assert cache.load("mlfs", ManifestKind.WGET_LIST) == "https://example.org/old-1.0.tar.xz\n"
    assert calls == []


def test_force_refetches(tmp_path, manifest_fetch):
    calls: list[str] = []
    cache = ManifestCache(tmp_path, fetch=manifest_fetch(calls))
    path = cache.path_for("mlfs", ManifestKind.WGET_LIST)
    path.parent.mkdir(parents=True)
    path.write_text("stale\n", encoding="utf-8")

    cache.refresh("mlfs", ManifestKind.WGET_LIST, force=True)

    assert calls == [get_profile("mlfs").wget_list_url]
    assert "binutils-2.45.tar.xz" in path.read_text(encoding="utf-8")


def test_fetch_failure_leaves_no_file(tmp_path):
    def _fetch(url: str) -> str:
        raise FetchError(url, "HTTP 500")

    cache = ManifestCache(tmp_path, fetch=_fetch)
    with pytest.raises(FetchError):
        cache.refresh("lfs", ManifestKind.MD5SUMS)
    assert not cache.path_for("lfs", ManifestKind.MD5SUMS).exists()
