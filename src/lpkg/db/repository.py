"""Repository for package-store operations: upsert, load, find and search.

String-list columns hold JSON arrays; empty lists are stored as NULL.
"""

from __future__ import annotations

import json
import sqlite3

from lpkg.pkgs.package import OptimizationSettings, PackageDefinition

SEARCH_TERM_MAX = 128
SEARCH_DEFAULT_LIMIT = 50
SEARCH_MAX_LIMIT = 200

_COLUMNS = (
    "name, version, source, md5, configure_args, build_commands, install_commands, "
    "dependencies, enable_lto, enable_pgo, cflags, ldflags, profdata"
)


class PackageRepository:
    """Data access layer for the ``packages`` table.

    Wraps an open sqlite3.Connection whose schema has been initialised (see
    lpkg.db.schema.initialize). The connection is owned by the caller.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def upsert_package(self, definition: PackageDefinition) -> None:
        """Insert *definition*, or replace the row with the same (name, version)."""
        opt = definition.optimizations
        self._conn.execute(
            f"""
            INSERT INTO packages ({_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(name, version) DO UPDATE SET
                source           = excluded.source,
                md5              = excluded.md5,
                configure_args   = excluded.configure_args,
                build_commands   = excluded.build_commands,
                install_commands = excluded.install_commands,
                dependencies     = excluded.dependencies,
                enable_lto       = excluded.enable_lto,
                enable_pgo       = excluded.enable_pgo,
                cflags           = excluded.cflags,
                ldflags          = excluded.ldflags,
                profdata         = excluded.profdata
            """,
            (
                definition.name,
                definition.version,
                definition.source,
                definition.md5,
                _encode_list(definition.configure_args),
                _encode_list(definition.build_commands),
                _encode_list(definition.install_commands),
                _encode_list(definition.dependencies),
                int(opt.enable_lto),
                int(opt.enable_pgo),
                _encode_list(opt.cflags),
                _encode_list(opt.ldflags),
                opt.profdata,
            ),
        )
        self._conn.commit()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def load_packages(self) -> list[PackageDefinition]:
        """Return every package ordered by (name, version)."""
        rows = self._conn.execute(
            f"SELECT {_COLUMNS} FROM packages ORDER BY name, version"
        ).fetchall()
        return [_row_to_definition(r) for r in rows]

    def find_package(self, name: str, version: str | None = None) -> PackageDefinition | None:
        """Return the package called *name*; the highest version when *version* is omitted."""
        sql = f"SELECT {_COLUMNS} FROM packages WHERE name = ?"
        params: list[str] = [name]
        if version is not None:
            sql += " AND version = ?"
            params.append(version)
        sql += " ORDER BY version DESC LIMIT 1"
        row = self._conn.execute(sql, params).fetchone()
        return _row_to_definition(row) if row else None

    def search_packages(self, term: str, limit: int | None = None) -> list[PackageDefinition]:
        """Substring search on package names.

        The term is trimmed and truncated to 128 characters, ``%`` and ``_``
        match literally, and *limit* is clamped to [1, 200] (default 50). An
        empty term returns no rows.
        """
        trimmed = term.strip()
        if not trimmed:
            return []

        normalized = trimmed[:SEARCH_TERM_MAX]
        escaped = normalized.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        effective = SEARCH_DEFAULT_LIMIT if limit is None else max(1, limit)
        effective = min(effective, SEARCH_MAX_LIMIT)

        rows = self._conn.execute(
            f"""
            SELECT {_COLUMNS} FROM packages
            WHERE name LIKE ? ESCAPE '\\'
            ORDER BY name, version
            LIMIT ?
            """,
            (f"%{escaped}%", effective),
        ).fetchall()
        return [_row_to_definition(r) for r in rows]

    def count(self) -> int:
        return self._conn.execute("SELECT COUNT(*) FROM packages").fetchone()[0]


# ------------------------------------------------------------------
# Row helpers
# ------------------------------------------------------------------


def _encode_list(values: list[str]) -> str | None:
    return json.dumps(values) if values else None


def _decode_list(raw: str | None) -> list[str]:
    if not raw:
        return []
    return list(json.loads(raw))


def _row_to_definition(row: sqlite3.Row) -> PackageDefinition:
    return PackageDefinition(
        name=row["name"],
        version=row["version"],
        source=row["source"],
        md5=row["md5"],
        configure_args=_decode_list(row["configure_args"]),
        build_commands=_decode_list(row["build_commands"]),
        install_commands=_decode_list(row["install_commands"]),
        dependencies=_decode_list(row["dependencies"]),
        optimizations=OptimizationSettings(
            enable_lto=bool(row["enable_lto"]),
            enable_pgo=bool(row["enable_pgo"]),
            cflags=_decode_list(row["cflags"]),
            ldflags=_decode_list(row["ldflags"]),
            profdata=row["profdata"],
        ),
    )
