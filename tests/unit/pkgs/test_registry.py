"""Tests for ModuleRegistry — set-of-entries registry files."""

from __future__ import annotations

from lpkg.pkgs.registry import ModuleRegistry


def test_add_creates_file(tmp_path):
    registry = ModuleRegistry(tmp_path / "__init__.py", "Shard modules.")
    assert registry.add("gcc_pass_1") is True
    assert (tmp_path / "__init__.py").read_text(encoding="utf-8") == (
        '"""Shard modules."""\n\nfrom . import gcc_pass_1\n'
    )


def test_add_twice_keeps_one_entry(tmp_path):
    registry = ModuleRegistry(tmp_path / "__init__.py")
    registry.add("bzip2")
    assert registry.add("bzip2") is False
    text = (tmp_path / "__init__.py").read_text(encoding="utf-8")
    assert text.count("from . import bzip2") == 1


def test_entries_tolerate_formatting(tmp_path):
    path = tmp_path / "__init__.py"
    path.write_text(
        '"""Hand edited."""\n'
        "from  .  import zlib   # compression\n"
        "from . import bzip2\n"
        "import os\n",
        encoding="utf-8",
    )
    registry = ModuleRegistry(path)
    assert registry.entries() == {"zlib", "bzip2"}
    assert "zlib" in registry
    assert registry.add("zlib") is False


def test_rewrite_is_sorted(tmp_path):
    registry = ModuleRegistry(tmp_path / "__init__.py", "Generated.")
    for name in ("zstd", "bash", "m4"):
        registry.add(name)
    lines = (tmp_path / "__init__.py").read_text(encoding="utf-8").splitlines()
    assert lines[2:] == ["from . import bash", "from . import m4", "from . import zstd"]


def test_missing_file_has_no_entries(tmp_path):
    assert ModuleRegistry(tmp_path / "nope" / "__init__.py").entries() == set()
