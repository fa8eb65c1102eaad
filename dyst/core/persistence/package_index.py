"""
Package index — durable record store of installed packages.

Backed by a single SQLite file with two tables:

    packages(repository PRIMARY KEY, tag, lock, assetFilter, execRename, preReleases)
    meta(key PRIMARY KEY, value)          -- seeded with version = 1

All SQL is parameterized.  The ``old/new`` rename text and the raw
filter pattern are produced and parsed only here; callers deal in
``InstalledPackage`` models.

The index assumes a single writer process.  Concurrent invocations
against the same store are not locked against each other.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import Any

from dyst.core.errors import PackageIndexError, PackageStateError
from dyst.core.models.package import (
    AssetStrategy,
    InstalledPackage,
    RenameMapping,
    RepositoryId,
)

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "1"

_SCHEMA = """
CREATE TABLE IF NOT EXISTS packages (
    repository  TEXT PRIMARY KEY,
    tag         TEXT NOT NULL,
    lock        INTEGER NOT NULL DEFAULT 0,
    assetFilter TEXT,
    execRename  TEXT,
    preReleases INTEGER NOT NULL DEFAULT 0
);
CREATE TABLE IF NOT EXISTS meta (
    key   TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""

_COLUMNS = "repository, tag, lock, assetFilter, execRename, preReleases"


class PackageIndex:
    """SQLite-backed store of ``InstalledPackage`` records."""

    def __init__(self, path: Path):
        self.path = path
        self.conn: sqlite3.Connection | None = None

    # ── Connection ──────────────────────────────────────────────

    def open(self) -> PackageIndex:
        """Open (and if needed create) the index database."""
        if self.conn is not None:
            return self
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(self.path))
            conn.row_factory = sqlite3.Row
            with conn:
                conn.executescript(_SCHEMA)
                conn.execute(
                    "INSERT OR IGNORE INTO meta (key, value) VALUES ('version', ?)",
                    (SCHEMA_VERSION,),
                )
        except (OSError, sqlite3.Error) as e:
            raise PackageIndexError(f"Cannot open package index {self.path}: {e}") from e
        self.conn = conn
        logger.debug("Opened package index %s", self.path)
        return self

    def close(self) -> None:
        if self.conn is not None:
            self.conn.close()
            self.conn = None

    def __enter__(self) -> PackageIndex:
        return self.open()

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _connection(self) -> sqlite3.Connection:
        if self.conn is None:
            self.open()
        assert self.conn is not None
        return self.conn

    def _execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        conn = self._connection()
        try:
            with conn:
                return conn.execute(sql, params)
        except sqlite3.Error as e:
            raise PackageIndexError(f"Package index query failed: {e}") from e

    # ── Reads ───────────────────────────────────────────────────

    def schema_version(self) -> str | None:
        row = self._execute("SELECT value FROM meta WHERE key = 'version'").fetchone()
        return row["value"] if row else None

    def get(self, repository: RepositoryId) -> InstalledPackage | None:
        row = self._execute(
            f"SELECT {_COLUMNS} FROM packages WHERE repository = ?",
            (str(repository),),
        ).fetchone()
        return _from_row(row) if row else None

    def contains(self, repository: RepositoryId) -> bool:
        row = self._execute(
            "SELECT 1 FROM packages WHERE repository = ?", (str(repository),)
        ).fetchone()
        return row is not None

    def list_packages(self) -> list[InstalledPackage]:
        rows = self._execute(
            f"SELECT {_COLUMNS} FROM packages ORDER BY repository"
        ).fetchall()
        return [_from_row(row) for row in rows]

    # ── Writes ──────────────────────────────────────────────────

    def upsert(self, package: InstalledPackage) -> None:
        """Insert the record, or overwrite the existing one for its repository."""
        self._execute(
            f"INSERT OR REPLACE INTO packages ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?)",
            _to_row(package),
        )
        logger.debug("Index: wrote %s @ %s", package.repository, package.tag)

    def delete(self, repository: RepositoryId) -> bool:
        """Delete the record.  Returns False if there was none."""
        cur = self._execute(
            "DELETE FROM packages WHERE repository = ?", (str(repository),)
        )
        return cur.rowcount > 0

    def set_lock(self, repository: RepositoryId, locked: bool) -> None:
        self._update(repository, "lock", int(locked))

    def set_prereleases(self, repository: RepositoryId, allowed: bool) -> None:
        self._update(repository, "preReleases", int(allowed))

    def set_rename(self, repository: RepositoryId, rename: RenameMapping | None) -> None:
        self._update(repository, "execRename", rename.serialize() if rename else None)

    def _update(self, repository: RepositoryId, column: str, value: Any) -> None:
        # column names come from the fixed set above, never from input
        cur = self._execute(
            f"UPDATE packages SET {column} = ? WHERE repository = ?",
            (value, str(repository)),
        )
        if cur.rowcount == 0:
            raise PackageStateError(f"'{repository}' is not installed")


# ── Persistence boundary ────────────────────────────────────────


def _to_row(package: InstalledPackage) -> tuple:
    return (
        str(package.repository),
        package.tag,
        int(package.lock),
        package.asset_strategy.pattern,
        package.rename.serialize() if package.rename else None,
        int(package.prereleases),
    )


def _from_row(row: sqlite3.Row) -> InstalledPackage:
    try:
        return InstalledPackage(
            repository=RepositoryId.parse(row["repository"]),
            tag=row["tag"],
            lock=bool(row["lock"]),
            asset_strategy=AssetStrategy(pattern=row["assetFilter"]),
            rename=RenameMapping.parse(row["execRename"]) if row["execRename"] else None,
            prereleases=bool(row["preReleases"]),
        )
    except ValueError as e:
        raise PackageIndexError(
            f"Corrupt index record for '{row['repository']}': {e}"
        ) from e
