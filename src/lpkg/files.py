"""File output helpers: atomic writes and output-path confinement.

Every file lpkg produces (cached manifests, metadata records, index.json,
generated modules) is written through ``write_atomic``, and downloaded sources
through ``write_atomic_chunks``, so readers never see a half-written file.
Concurrent writers of the same path resolve to last-writer-wins.
"""

from __future__ import annotations

import json
import os
import tempfile
from collections.abc import Iterable
from pathlib import Path
from typing import Any


# ------------------------------------------------------------------
# Path validation
# ------------------------------------------------------------------


def validate_output_path(output: str | Path, allowed_base: Path | None = None) -> Path:
    """Normalize and validate an output path.

    Absolute paths are accepted as-is. Relative paths are resolved against
    *allowed_base* (default: CWD) and may not escape it.

    Raises:
        ValueError: If a relative path escapes the allowed base directory.
    """
    path = Path(output)

    if path.is_absolute():
        return path.resolve()

    if allowed_base is None:
        allowed_base = Path.cwd()

    allowed_base = allowed_base.resolve()
    resolved = (allowed_base / path).resolve()

    try:
        resolved.relative_to(allowed_base)
    except ValueError:
        raise ValueError(
            f"Output path '{output}' resolves outside the allowed directory "
            f"('{allowed_base}'). Path traversal is not permitted."
        ) from None

    return resolved


# ------------------------------------------------------------------
# Atomic write
# ------------------------------------------------------------------


def write_atomic(path: Path, content: str | bytes) -> None:
    """Write *content* to *path* atomically (temp → rename).

    Text is written as UTF-8, bytes verbatim. Creates parent directories if needed.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    try:
        if isinstance(content, bytes):
            with os.fdopen(fd, "wb") as f:
                f.write(content)
        else:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
        os.replace(tmp_path, path)
    except Exception:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


def write_atomic_chunks(path: Path, chunks: Iterable[bytes]) -> None:
    """Stream *chunks* into *path* atomically; nothing is buffered beyond one chunk."""
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            for chunk in chunks:
                f.write(chunk)
        os.replace(tmp_path, path)
    except Exception:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


def dump_json(data: Any, *, compact: bool = False) -> str:
    """Serialise *data* as JSON text with a trailing newline (pretty unless *compact*)."""
    if compact:
        return json.dumps(data, separators=(",", ":"), ensure_ascii=False) + "\n"
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


def write_json(path: Path, data: Any, *, compact: bool = False) -> None:
    write_atomic(path, dump_json(data, compact=compact))
