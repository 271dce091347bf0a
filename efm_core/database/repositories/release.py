#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Releases and their links to software titles, systems and file sets.
"""

import logging
import sqlite3
from typing import List, Sequence

from ...errors import InUseError, NotFoundError
from ...models.catalog import Release
from ...models.imports import CreateReleaseParams
from .software_title import insert_software_title

logger = logging.getLogger(__name__)


def insert_release(conn: sqlite3.Connection, name: str, software_title_ids: Sequence[int],
                   file_set_ids: Sequence[int], system_ids: Sequence[int]) -> int:
    """Insert a release with its links using an already open transaction."""
    release_id = conn.execute("INSERT INTO release (name) VALUES (?)", (name,)).lastrowid
    conn.executemany(
        "INSERT INTO release_software_title (release_id, software_title_id) VALUES (?, ?)",
        [(release_id, t) for t in software_title_ids],
    )
    conn.executemany(
        "INSERT INTO release_file_set (release_id, file_set_id) VALUES (?, ?)",
        [(release_id, f) for f in file_set_ids],
    )
    conn.executemany(
        "INSERT INTO release_system (release_id, system_id) VALUES (?, ?)",
        [(release_id, s) for s in system_ids],
    )
    return release_id


def _sync_links(conn: sqlite3.Connection, table: str, column: str, release_id: int,
                wanted: Sequence[int]) -> None:
    existing = {
        row[0] for row in conn.execute(f"SELECT {column} FROM {table} WHERE release_id = ?", (release_id,))
    }
    wanted_set = set(wanted)
    for removed in existing - wanted_set:
        conn.execute(f"DELETE FROM {table} WHERE release_id = ? AND {column} = ?", (release_id, removed))
    for added in wanted_set - existing:
        conn.execute(f"INSERT INTO {table} (release_id, {column}) VALUES (?, ?)", (release_id, added))


class ReleaseRepository:

    def __init__(self, db):
        self.db = db

    def add_release_full(self, name: str, software_title_ids: Sequence[int], file_set_ids: Sequence[int],
                         system_ids: Sequence[int]) -> int:
        with self.db.transaction() as conn:
            return insert_release(conn, name, software_title_ids, file_set_ids, system_ids)

    def create_release_for_file_sets(self, params: CreateReleaseParams, file_set_ids: Sequence[int],
                                     system_ids: Sequence[int]) -> int:
        """Insert a new software title and a release linking it to the file sets, atomically."""
        with self.db.transaction() as conn:
            software_title_id = insert_software_title(conn, params.software_title_name)
            return insert_release(conn, params.release_name, [software_title_id], file_set_ids, system_ids)

    def update_release_full(self, release_id: int, name: str, software_title_ids: Sequence[int],
                            file_set_ids: Sequence[int], system_ids: Sequence[int]) -> None:
        """Rename the release and replace its links, touching only the rows that differ."""
        with self.db.transaction() as conn:
            updated = conn.execute("UPDATE release SET name = ? WHERE id = ?", (name, release_id)).rowcount
            if updated == 0:
                raise NotFoundError(f"Release {release_id} not found")
            _sync_links(conn, "release_software_title", "software_title_id", release_id, software_title_ids)
            _sync_links(conn, "release_file_set", "file_set_id", release_id, file_set_ids)
            _sync_links(conn, "release_system", "system_id", release_id, system_ids)

    def get_release(self, release_id: int) -> Release:
        row = self.db.fetch_one("SELECT id, name FROM release WHERE id = ?", (release_id,))
        if row is None:
            raise NotFoundError(f"Release {release_id} not found")
        return Release(id=row["id"], name=row["name"])

    def get_releases_for_file_set(self, file_set_id: int) -> List[Release]:
        rows = self.db.fetch_all(
            """
            SELECT r.id, r.name
            FROM release r
            JOIN release_file_set rfs ON rfs.release_id = r.id
            WHERE rfs.file_set_id = ?
            ORDER BY r.id
            """,
            (file_set_id,),
        )
        return [Release(id=r["id"], name=r["name"]) for r in rows]

    def get_release_file_set_ids(self, release_id: int) -> List[int]:
        rows = self.db.fetch_all(
            "SELECT file_set_id FROM release_file_set WHERE release_id = ? ORDER BY file_set_id",
            (release_id,),
        )
        return [r[0] for r in rows]

    def get_release_software_title_ids(self, release_id: int) -> List[int]:
        rows = self.db.fetch_all(
            "SELECT software_title_id FROM release_software_title WHERE release_id = ? ORDER BY software_title_id",
            (release_id,),
        )
        return [r[0] for r in rows]

    def has_release_files(self, release_id: int) -> bool:
        return bool(self.get_release_file_set_ids(release_id))

    def delete_release(self, release_id: int) -> None:
        """Delete a release that no longer links any file set."""
        if self.has_release_files(release_id):
            raise InUseError(f"Release {release_id} still has file sets")
        with self.db.transaction() as conn:
            conn.execute("DELETE FROM release WHERE id = ?", (release_id,))
        logger.debug("Deleted release %d", release_id)
