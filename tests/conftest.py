"""Shared pytest fixtures."""

from __future__ import annotations

import json
from importlib import resources
from pathlib import Path

import pytest

import lpkg.config
from lpkg.books import get_profile
from lpkg.db.connection import Database
from lpkg.db.schema import initialize
from lpkg.log import reset_logging

_ENV_VARS = ("LFS", "LFS_TGT", "BINUTILS_SRC_DIR", "LPKG_DATABASE_URL", "LPKG_LOG_LEVEL")


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path, monkeypatch):
    """No test sees the developer's environment or ~/.lpkg/config.yaml."""
    for var in _ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setattr(
        lpkg.config, "_GLOBAL_CONFIG_PATH", tmp_path / "no-global" / "config.yaml"
    )
    yield
    reset_logging()


@pytest.fixture
def tmp_db(tmp_path):
    """File-based package store in tmp_path with schema initialized, closed after test."""
    db = Database(tmp_path / "lpkg.db")
    conn = db.connect()
    initialize(conn)
    yield conn
    conn.close()


# ------------------------------------------------------------------
# Sample pages
# ------------------------------------------------------------------

BZIP2_PAGE = """<html><body id="lfs-12.1">
<div class="sect1">
<h1 class="sect1">33.2. Bzip2-1.0.8</h1>
<div class="segmentedlist"><div class="seglistitem">
<div class="seg"><strong class="segtitle">Approximate build time:</strong>
<span class="segbody">less than 0.1 SBU</span></div>
<div class="seg"><strong class="segtitle">Required disk space:</strong>
<span class="segbody">7.2 MB</span></div>
</div></div>
<pre class="userinput"><kbd class="command">make -f Makefile-libbz2_so
make clean</kbd></pre>
<pre class="userinput"><kbd class="command">make PREFIX=/usr install</kbd></pre>
</div>
</body></html>
"""

BINUTILS_PAGE = """<html><body id="mlfs-r12.4">
<div class="sect1">
<h1 class="sect1"><a id="ch-tools-binutils-pass1" name="ch-tools-binutils-pass1"></a>5.2. Binutils-2.45 - Pass 1</h1>
<div class="package">
<p>Download: <a href="https://sourceware.org/pub/binutils/releases/binutils-2.45.tar.xz">binutils-2.45.tar.xz</a></p>
<p>Patch: <a href="../patches/binutils-2.45-upstream_fix-1.patch">patch</a></p>
<p>Signature: <a href="https://sourceware.org/pub/binutils/releases/binutils-2.45.tar.xz.sig">sig</a></p>
<p>Again: <a href="https://sourceware.org/pub/binutils/releases/binutils-2.45.tar.xz">mirror</a></p>
<p>Docs: <a href="https://sourceware.org/binutils/docs/">docs</a></p>
<div class="segmentedlist"><div class="seglistitem">
<div class="seg"><strong class="segtitle">Approximate build time:</strong>
<span class="segbody">1 SBU</span></div>
<div class="seg"><strong class="segtitle">Required disk space:</strong>
<span class="segbody">678 MB</span></div>
</div></div>
</div>
<div class="installation">
<pre class="userinput"><kbd class="command">tar -xf ../binutils-2.45.tar.xz
mkdir -v build
cd       build</kbd></pre>
<pre class="userinput"><kbd class="command">../configure --prefix=$LFS/tools \\
             --with-sysroot=$LFS \\
             --target=$LFS_TGT   \\
             --disable-nls       \\
             --enable-gprofng=no \\
             --disable-werror</kbd></pre>
<pre class="userinput"><kbd class="command">make</kbd></pre>
<pre class="userinput"><kbd class="command">make install</kbd></pre>
</div>
</div>
</body></html>
"""

BOOK_PAGE = """<html><body id="mlfs-r12.4">
<h1 class="sect1" id="ch-tools-introduction">5.1. Introduction</h1>
<h1 class="sect1" id="ch-tools-binutils-pass1">5.2. Binutils-2.45 - Pass 1</h1>
<h1 class="sect1" id="ch-tools-gcc-pass1">5.3. GCC-15.2.0 - Pass 1</h1>
<h1 class="sect1" id="ch-tools-linux-headers">5.4. Linux-6.16.9 API Headers</h1>
<h1 class="sect1" id="ch-tools-gcc-libstdcxx">5.6. Libstdc++ from GCC-15.2.0</h1>
<h1 class="sect1" id="ch-system-gcc">8.29. GCC-15.2.0 (multilib)</h1>
<h1 class="sect1" id="ch-system-bzip2">8.7. Bzip2-1.0.8</h1>
</body></html>
"""

WGET_LIST = """https://sourceware.org/pub/binutils/releases/binutils-2.45.tar.xz
https://www.sourceware.org/pub/bzip2/bzip2-1.0.8.tar.gz
https://www.linuxfromscratch.org/patches/lfs/development/bzip2-1.0.8-install_docs-1.patch
https://ftp.gnu.org/gnu/gcc/gcc-15.2.0/gcc-15.2.0.tar.xz
"""

MD5SUMS = """dee5b4267e0305a99a3c9d6131f45759  binutils-2.45.tar.xz
67e051268d0c475ea773822f7500d0e5  bzip2-1.0.8.tar.gz
6a5ac7e89b791aae556de0f745916f7f  bzip2-1.0.8-install_docs-1.patch
"""


@pytest.fixture
def bzip2_page() -> str:
    return BZIP2_PAGE


@pytest.fixture
def binutils_page() -> str:
    return BINUTILS_PAGE


@pytest.fixture
def book_page() -> str:
    return BOOK_PAGE


# ------------------------------------------------------------------
# Metadata tree
# ------------------------------------------------------------------


def _metadata_document(
    slug: str = "binutils-pass-1",
    name: str = "Binutils",
    version: str = "2.45",
    book: str = "mlfs",
    variant: str | None = "Pass 1",
) -> dict:
    return {
        "schema_version": "v0.1.0",
        "package": {
            "id": f"{book}/{slug}",
            "name": name,
            "version": version,
            "book": book,
            "chapter": 5,
            "section": "5.2",
            "stage": "cross-toolchain",
            "variant": variant,
            "anchors": {},
        },
        "source": {
            "urls": [
                {
                    "url": f"https://sourceware.org/pub/binutils/releases/binutils-{version}.tar.xz",
                    "kind": "primary",
                }
            ],
            "archive": f"binutils-{version}.tar.xz",
            "checksums": [{"alg": "md5", "value": "dee5b4267e0305a99a3c9d6131f45759"}],
        },
        "artifacts": {"sbu": 1.0, "disk": 678, "install_prefix": None},
        "dependencies": {"build": ["bash", "make"], "runtime": ["make"]},
        "build": [
            {"phase": "configure", "commands": ["../configure --prefix=$LFS/tools"]},
            {"phase": "build", "commands": ["make"]},
            {"phase": "install", "commands": ["make install"]},
        ],
        "optimizations": {
            "enable_lto": True,
            "enable_pgo": False,
            "cflags": ["-O2"],
            "ldflags": [],
            "profdata": None,
        },
        "provenance": {
            "book_release": "mlfs-r12.4",
            "page_url": "https://linuxfromscratch.org/~thomas/multilib-m32/chapter05/binutils-pass1.html",
            "retrieved_at": "2026-01-01T00:00:00+00:00",
            "content_hash": "0" * 64,
        },
        "status": {"state": "draft", "issues": []},
    }


@pytest.fixture
def metadata_document():
    """Factory for a schema-valid metadata document."""
    return _metadata_document


@pytest.fixture
def metadata_tree(tmp_path) -> Path:
    """``<tmp>/ai/metadata`` with the bundled schema and one valid package file."""
    root = tmp_path / "ai" / "metadata"
    pkg_dir = root / "packages" / "mlfs"
    pkg_dir.mkdir(parents=True)
    schema = resources.files("lpkg.data").joinpath("schema.json").read_text(encoding="utf-8")
    (root / "schema.json").write_text(schema, encoding="utf-8")
    (pkg_dir / "binutils-pass-1.json").write_text(
        json.dumps(_metadata_document(), indent=2), encoding="utf-8"
    )
    return root


@pytest.fixture
def manifest_fetch():
    """Factory for a fake fetch serving the mlfs wget-list and md5sums.

    Pass a list to record every requested URL.
    """
    profile = get_profile("mlfs")
    bodies = {profile.wget_list_url: WGET_LIST, profile.md5sums_url: MD5SUMS}

    def _factory(calls: list[str] | None = None):
        def _fetch(url: str) -> str:
            if calls is not None:
                calls.append(url)
            return bodies[url]

        return _fetch

    return _factory
