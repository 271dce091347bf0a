#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Queries over stored blobs (file_info rows).
"""

from typing import List, Sequence

from ...errors import NotFoundError
from ...models.catalog import FileInfo
from ...models.file_types import FileType

# SQLite caps bound parameters per statement
_IN_CHUNK = 500

_COLUMNS = "id, sha1_checksum, file_size, archive_file_name, file_type"


class FileInfoRepository:

    def __init__(self, db):
        self.db = db

    def find_existing_file_infos(self, sha1_list: Sequence[bytes], file_type: FileType) -> List[FileInfo]:
        """Rows whose checksum is in sha1_list and whose type is file_type."""
        found: List[FileInfo] = []
        checksums = list(sha1_list)
        for i in range(0, len(checksums), _IN_CHUNK):
            chunk = checksums[i:i + _IN_CHUNK]
            placeholders = ",".join("?" for _ in chunk)
            rows = self.db.fetch_all(
                f"""
                SELECT {_COLUMNS}
                FROM file_info
                WHERE file_type = ? AND sha1_checksum IN ({placeholders})
                """,
                [int(file_type), *chunk],
            )
            found.extend(FileInfo.from_row(r) for r in rows)
        return found

    def get_file_info(self, file_info_id: int) -> FileInfo:
        row = self.db.fetch_one(f"SELECT {_COLUMNS} FROM file_info WHERE id = ?", (file_info_id,))
        if row is None:
            raise NotFoundError(f"File info {file_info_id} not found")
        return FileInfo.from_row(row)

    def get_file_infos_by_file_set(self, file_set_id: int) -> List[FileInfo]:
        rows = self.db.fetch_all(
            """
            SELECT fi.id, fi.sha1_checksum, fi.file_size, fi.archive_file_name, fi.file_type
            FROM file_info fi
            JOIN file_set_file_info fsfi ON fsfi.file_info_id = fi.id
            WHERE fsfi.file_set_id = ?
            ORDER BY fsfi.sort_order, fi.id
            """,
            (file_set_id,),
        )
        return [FileInfo.from_row(r) for r in rows]

    def get_file_infos_without_sync_log(self, limit: int, offset: int = 0) -> List[FileInfo]:
        rows = self.db.fetch_all(
            f"""
            SELECT {_COLUMNS}
            FROM file_info
            WHERE id NOT IN (SELECT file_info_id FROM file_sync_log)
            ORDER BY id
            LIMIT ? OFFSET ?
            """,
            (limit, offset),
        )
        return [FileInfo.from_row(r) for r in rows]

    def count_file_infos(self) -> int:
        row = self.db.fetch_one("SELECT COUNT(*) FROM file_info")
        return int(row[0])

    def total_file_size(self) -> int:
        row = self.db.fetch_one("SELECT COALESCE(SUM(file_size), 0) FROM file_info")
        return int(row[0])
