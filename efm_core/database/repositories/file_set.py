#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
File sets: logical groups of stored files forming one release artifact.

add_file_set_full and update_file_set_files are the write paths of the ingest
and update pipelines. Both resolve every incoming file against existing
file_info rows inside the same transaction, so deduplication holds even when
two imports race.
"""

import logging
import sqlite3
from collections import Counter
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from ...errors import FileImportError, InUseError, NotFoundError
from ...models.catalog import FileSet, FileSetFileInfo, FileSetMatchSpec
from ...models.file_types import FileType, ItemType
from ...models.imports import CreateReleaseParams, ImportedFile
from .release import insert_release
from .software_title import insert_software_title

logger = logging.getLogger(__name__)


@dataclass
class AddFileSetResult:
    file_set_id: int
    release_id: Optional[int] = None
    software_title_id: Optional[int] = None
    file_info_ids: List[int] = field(default_factory=list)
    # file infos inserted by this call
    new_file_info_ids: List[int] = field(default_factory=list)
    # archive names passed in that lost to an already stored blob with the same checksum
    unused_archive_names: List[str] = field(default_factory=list)
    removed_file_info_ids: List[int] = field(default_factory=list)


def _file_set_from_row(row) -> FileSet:
    return FileSet(
        id=row["id"],
        file_set_name=row["name"],
        file_set_file_name=row["file_name"],
        file_type=FileType(row["file_type"]),
        source=row["source"],
    )


def _link_files(conn: sqlite3.Connection, file_set_id: int, file_type: FileType,
                files_in_set: Sequence[ImportedFile], system_ids: Sequence[int], result: AddFileSetResult) -> None:
    """Resolve each file against file_info (inserting new rows) and link it to the file set in order."""
    for sort_order, imported in enumerate(files_in_set):
        existing = conn.execute(
            "SELECT id, archive_file_name FROM file_info WHERE sha1_checksum = ? AND file_type = ?",
            (imported.sha1_checksum, int(file_type)),
        ).fetchone()
        if existing is None and imported.stored:
            raise FileImportError(f"Stored file {imported.archive_file_name} disappeared, re-run prepare")
        if existing is not None:
            file_info_id = existing["id"]
            if existing["archive_file_name"] != imported.archive_file_name:
                result.unused_archive_names.append(imported.archive_file_name)
        else:
            file_info_id = conn.execute(
                """
                INSERT INTO file_info (sha1_checksum, file_size, archive_file_name, file_type)
                VALUES (?, ?, ?, ?)
                """,
                (imported.sha1_checksum, imported.file_size, imported.archive_file_name, int(file_type)),
            ).lastrowid
            result.new_file_info_ids.append(file_info_id)
        result.file_info_ids.append(file_info_id)

        conn.execute(
            """
            INSERT INTO file_set_file_info (file_set_id, file_info_id, file_name, sort_order)
            VALUES (?, ?, ?, ?)
            """,
            (file_set_id, file_info_id, imported.original_file_name, sort_order),
        )
        conn.executemany(
            "INSERT OR IGNORE INTO file_info_system (file_info_id, system_id) VALUES (?, ?)",
            [(file_info_id, s) for s in system_ids],
        )


class FileSetRepository:

    def __init__(self, db):
        self.db = db

    def get_file_set(self, file_set_id: int) -> FileSet:
        row = self.db.fetch_one(
            "SELECT id, name, file_name, file_type, source FROM file_set WHERE id = ?", (file_set_id,)
        )
        if row is None:
            raise NotFoundError(f"File set {file_set_id} not found")
        return _file_set_from_row(row)

    def get_all_file_sets(self) -> List[FileSet]:
        rows = self.db.fetch_all("SELECT id, name, file_name, file_type, source FROM file_set ORDER BY id")
        return [_file_set_from_row(r) for r in rows]

    def get_file_sets_by_file_info(self, file_info_id: int) -> List[FileSet]:
        rows = self.db.fetch_all(
            """
            SELECT fs.id, fs.name, fs.file_name, fs.file_type, fs.source
            FROM file_set fs
            JOIN file_set_file_info fsfi ON fsfi.file_set_id = fs.id
            WHERE fsfi.file_info_id = ?
            ORDER BY fs.id
            """,
            (file_info_id,),
        )
        return [_file_set_from_row(r) for r in rows]

    def get_file_set_file_info(self, file_set_id: int) -> List[FileSetFileInfo]:
        rows = self.db.fetch_all(
            """
            SELECT fsfi.file_set_id, fsfi.file_info_id, fsfi.file_name, fsfi.sort_order,
                   fi.sha1_checksum, fi.file_size, fi.archive_file_name, fi.file_type
            FROM file_set_file_info fsfi
            JOIN file_info fi ON fsfi.file_info_id = fi.id
            WHERE fsfi.file_set_id = ?
            ORDER BY fsfi.sort_order, fsfi.file_info_id
            """,
            (file_set_id,),
        )
        return [
            FileSetFileInfo(
                file_set_id=r["file_set_id"],
                file_info_id=r["file_info_id"],
                file_name=r["file_name"],
                sort_order=r["sort_order"],
                sha1_checksum=bytes(r["sha1_checksum"]),
                file_size=r["file_size"],
                archive_file_name=r["archive_file_name"],
                file_type=FileType(r["file_type"]),
            )
            for r in rows
        ]

    def get_item_types(self, file_set_id: int) -> List[ItemType]:
        rows = self.db.fetch_all(
            "SELECT item_type FROM file_set_item_type WHERE file_set_id = ? ORDER BY item_type", (file_set_id,)
        )
        return [ItemType(r[0]) for r in rows]

    def get_system_ids(self, file_set_id: int) -> List[int]:
        rows = self.db.fetch_all(
            "SELECT system_id FROM file_set_system WHERE file_set_id = ? ORDER BY system_id", (file_set_id,)
        )
        return [r[0] for r in rows]

    def add_file_set_full(
        self,
        file_set_name: str,
        file_set_file_name: str,
        file_type: FileType,
        source: str,
        files_in_set: Sequence[ImportedFile],
        system_ids: Sequence[int],
        item_types: Sequence[ItemType] = (),
        create_release: Optional[CreateReleaseParams] = None,
    ) -> AddFileSetResult:
        """Insert a file set, its file infos and links (and optionally a release) atomically."""
        with self.db.transaction() as conn:
            file_set_id = conn.execute(
                "INSERT INTO file_set (name, file_name, file_type, source) VALUES (?, ?, ?, ?)",
                (file_set_name, file_set_file_name, int(file_type), source),
            ).lastrowid
            result = AddFileSetResult(file_set_id=file_set_id)
            _link_files(conn, file_set_id, file_type, files_in_set, system_ids, result)

            conn.executemany(
                "INSERT INTO file_set_system (file_set_id, system_id) VALUES (?, ?)",
                [(file_set_id, s) for s in set(system_ids)],
            )
            conn.executemany(
                "INSERT INTO file_set_item_type (file_set_id, item_type) VALUES (?, ?)",
                [(file_set_id, int(t)) for t in set(item_types)],
            )

            if create_release is not None:
                result.software_title_id = insert_software_title(conn, create_release.software_title_name)
                result.release_id = insert_release(
                    conn, create_release.release_name, [result.software_title_id], [file_set_id], list(system_ids)
                )

        logger.debug("Inserted file set %d with %d file(s)", file_set_id, len(result.file_info_ids))
        return result

    def update_file_set_files(
        self,
        file_set_id: int,
        file_set_name: str,
        file_set_file_name: str,
        source: str,
        files_in_set: Sequence[ImportedFile],
        system_ids: Sequence[int] = (),
    ) -> AddFileSetResult:
        """Rename the file set and replace its members atomically.

        Former members left without any file set lose their file_info row;
        their ids are returned in removed_file_info_ids. Blobs are not touched here.
        """
        if not files_in_set:
            raise FileImportError(f"File set {file_set_id} would have no files")
        with self.db.transaction() as conn:
            row = conn.execute("SELECT file_type FROM file_set WHERE id = ?", (file_set_id,)).fetchone()
            if row is None:
                raise NotFoundError(f"File set {file_set_id} not found")
            file_type = FileType(row["file_type"])
            conn.execute(
                "UPDATE file_set SET name = ?, file_name = ?, source = ? WHERE id = ?",
                (file_set_name, file_set_file_name, source, file_set_id),
            )
            former_ids = [
                r[0] for r in conn.execute(
                    "SELECT file_info_id FROM file_set_file_info WHERE file_set_id = ?", (file_set_id,)
                )
            ]
            conn.execute("DELETE FROM file_set_file_info WHERE file_set_id = ?", (file_set_id,))

            result = AddFileSetResult(file_set_id=file_set_id)
            _link_files(conn, file_set_id, file_type, files_in_set, system_ids, result)

            kept = set(result.file_info_ids)
            result.removed_file_info_ids = [
                file_info_id for file_info_id in former_ids
                if file_info_id not in kept and conn.execute(
                    "SELECT 1 FROM file_set_file_info WHERE file_info_id = ? LIMIT 1", (file_info_id,)
                ).fetchone() is None
            ]
            conn.executemany("DELETE FROM file_info WHERE id = ?", [(i,) for i in result.removed_file_info_ids])

        logger.debug("Updated file set %d: %d file(s), %d orphan file info(s) removed",
                     file_set_id, len(result.file_info_ids), len(result.removed_file_info_ids))
        return result

    def link_file_set_to_items(self, item_ids: Sequence[int], file_set_id: int) -> None:
        with self.db.transaction() as conn:
            conn.executemany(
                "INSERT OR IGNORE INTO release_item_file_set (release_item_id, file_set_id) VALUES (?, ?)",
                [(item_id, file_set_id) for item_id in item_ids],
            )

    def is_file_set_in_use(self, file_set_id: int) -> bool:
        """True when any release links the file set."""
        row = self.db.fetch_one("SELECT COUNT(*) FROM release_file_set WHERE file_set_id = ?", (file_set_id,))
        return row[0] > 0

    def is_orphan_after_file_set_removal(self, file_info_id: int, file_set_id: int) -> bool:
        """True when file_set_id is the only file set linking file_info_id."""
        rows = self.db.fetch_all(
            "SELECT DISTINCT file_set_id FROM file_set_file_info WHERE file_info_id = ?", (file_info_id,)
        )
        return [r[0] for r in rows] == [file_set_id]

    def find_matching_file_set(self, spec: FileSetMatchSpec) -> Optional[int]:
        """Id of the lowest numbered file set with the same type and member multiset."""
        if not spec.members:
            return None
        wanted = Counter((name, bytes(sha1)) for name, sha1 in spec.members)
        candidates = self.db.fetch_all(
            """
            SELECT DISTINCT fsfi.file_set_id
            FROM file_set fs
            JOIN file_set_file_info fsfi ON fsfi.file_set_id = fs.id
            JOIN file_info fi ON fi.id = fsfi.file_info_id
            WHERE fs.file_type = ? AND fi.sha1_checksum = ?
            ORDER BY fsfi.file_set_id
            """,
            (int(spec.file_type), bytes(spec.members[0][1])),
        )
        for candidate in candidates:
            rows = self.db.fetch_all(
                """
                SELECT fsfi.file_name, fi.sha1_checksum
                FROM file_set_file_info fsfi
                JOIN file_info fi ON fi.id = fsfi.file_info_id
                WHERE fsfi.file_set_id = ?
                """,
                (candidate[0],),
            )
            if Counter((r["file_name"], bytes(r["sha1_checksum"])) for r in rows) == wanted:
                return candidate[0]
        return None

    def delete_file_set(self, file_set_id: int) -> List[int]:
        """Delete the file set and every file info it was the last link of.

        Returns the ids of the removed file infos. Blobs are not touched here.
        """
        if self.is_file_set_in_use(file_set_id):
            raise InUseError(f"File set {file_set_id} is in use by one or more releases")

        with self.db.transaction() as conn:
            member_ids = [
                r[0] for r in conn.execute(
                    "SELECT file_info_id FROM file_set_file_info WHERE file_set_id = ?", (file_set_id,)
                )
            ]
            deleted = conn.execute("DELETE FROM file_set WHERE id = ?", (file_set_id,)).rowcount
            if deleted == 0:
                raise NotFoundError(f"File set {file_set_id} not found")
            orphan_ids = [
                file_info_id for file_info_id in member_ids
                if conn.execute(
                    "SELECT 1 FROM file_set_file_info WHERE file_info_id = ? LIMIT 1", (file_info_id,)
                ).fetchone() is None
            ]
            conn.executemany("DELETE FROM file_info WHERE id = ?", [(i,) for i in orphan_ids])

        logger.debug("Deleted file set %d and %d orphan file info(s)", file_set_id, len(orphan_ids))
        return orphan_ids
