#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Append-only history of each file's cloud copy.

Rows are never updated. The row with the highest id for a file_info_id is the
authoritative state of that file.
"""

from typing import List, Optional, Sequence, Tuple

from ...models.catalog import FileSyncLog, FileSyncLogWithFileInfo
from ...models.file_types import FileSyncStatus, FileType
from ...utils.time import utc_timestamp

_LATEST_LOGS = """
    SELECT l.id, l.file_info_id, l.sync_time, l.status, l.message, l.cloud_key
    FROM file_sync_log l
    JOIN (
        SELECT file_info_id, MAX(id) AS max_id
        FROM file_sync_log
        GROUP BY file_info_id
    ) latest ON latest.max_id = l.id
"""

# Latest states that still describe a cloud object worth keeping a record of
_KEEP_FOR_MISSING_FILES = (
    FileSyncStatus.UPLOAD_COMPLETED,
    FileSyncStatus.DELETION_PENDING,
    FileSyncStatus.DELETION_IN_PROGRESS,
    FileSyncStatus.DELETION_FAILED,
)


def _placeholders(values: Sequence) -> str:
    return ",".join("?" for _ in values)


class FileSyncLogRepository:

    def __init__(self, db):
        self.db = db

    def add_log_entry(self, file_info_id: int, status: FileSyncStatus, message: str, cloud_key: str) -> int:
        with self.db.transaction() as conn:
            return conn.execute(
                "INSERT INTO file_sync_log (file_info_id, sync_time, status, message, cloud_key) VALUES (?, ?, ?, ?, ?)",
                (file_info_id, utc_timestamp(), int(status), message, cloud_key),
            ).lastrowid

    def mark_files_for_cloud_sync(self, files: Sequence[Tuple[int, str]]) -> None:
        """Insert an UPLOAD_PENDING row for each (file_info_id, cloud_key) in one transaction."""
        now = utc_timestamp()
        with self.db.transaction() as conn:
            conn.executemany(
                "INSERT INTO file_sync_log (file_info_id, sync_time, status, message, cloud_key) VALUES (?, ?, ?, '', ?)",
                [(file_info_id, now, int(FileSyncStatus.UPLOAD_PENDING), key) for file_info_id, key in files],
            )

    def get_logs_by_file_info(self, file_info_id: int) -> List[FileSyncLog]:
        """History of one file, oldest first."""
        rows = self.db.fetch_all(
            """
            SELECT id, file_info_id, sync_time, status, message, cloud_key
            FROM file_sync_log
            WHERE file_info_id = ?
            ORDER BY id
            """,
            (file_info_id,),
        )
        return [FileSyncLog.from_row(r) for r in rows]

    def get_latest_log(self, file_info_id: int) -> Optional[FileSyncLog]:
        row = self.db.fetch_one(
            """
            SELECT id, file_info_id, sync_time, status, message, cloud_key
            FROM file_sync_log
            WHERE file_info_id = ?
            ORDER BY id DESC
            LIMIT 1
            """,
            (file_info_id,),
        )
        return FileSyncLog.from_row(row) if row else None

    def get_logs_and_file_info_by_sync_status(
        self,
        statuses: Sequence[FileSyncStatus],
        limit: int,
        after_file_info_id: int = 0,
    ) -> List[FileSyncLogWithFileInfo]:
        """Files whose latest state is one of statuses, paged by file_info_id.

        Keyset paging keeps the walk stable while the caller appends new rows
        that move files out of (or back into) the requested states.
        """
        rows = self.db.fetch_all(
            f"""
            SELECT latest.id AS log_id, latest.file_info_id, latest.status, latest.message, latest.cloud_key,
                   fi.sha1_checksum, fi.file_size, fi.archive_file_name, fi.file_type
            FROM ({_LATEST_LOGS}) latest
            JOIN file_info fi ON fi.id = latest.file_info_id
            WHERE latest.status IN ({_placeholders(statuses)}) AND latest.file_info_id > ?
            ORDER BY latest.file_info_id
            LIMIT ?
            """,
            [*(int(s) for s in statuses), after_file_info_id, limit],
        )
        return [
            FileSyncLogWithFileInfo(
                log_id=r["log_id"],
                file_info_id=r["file_info_id"],
                status=FileSyncStatus(r["status"]),
                message=r["message"],
                cloud_key=r["cloud_key"],
                sha1_checksum=bytes(r["sha1_checksum"]),
                file_size=r["file_size"],
                archive_file_name=r["archive_file_name"],
                file_type=FileType(r["file_type"]),
            )
            for r in rows
        ]

    def count_logs_by_latest_statuses(self, statuses: Sequence[FileSyncStatus]) -> int:
        row = self.db.fetch_one(
            f"SELECT COUNT(*) FROM ({_LATEST_LOGS}) latest WHERE latest.status IN ({_placeholders(statuses)})",
            [int(s) for s in statuses],
        )
        return int(row[0])

    def count_by_latest_status(self) -> dict:
        rows = self.db.fetch_all(f"SELECT latest.status, COUNT(*) FROM ({_LATEST_LOGS}) latest GROUP BY latest.status")
        return {FileSyncStatus(r[0]).name.lower(): r[1] for r in rows}

    def mark_for_cloud_deletion(self, file_info_id: int) -> bool:
        """Append DELETION_PENDING when the file's latest state is a completed upload."""
        latest = self.get_latest_log(file_info_id)
        if latest is None or latest.status != FileSyncStatus.UPLOAD_COMPLETED:
            return False
        self.add_log_entry(file_info_id, FileSyncStatus.DELETION_PENDING, "", latest.cloud_key)
        return True

    def cleanup_orphaned_logs(self) -> int:
        """Drop history of deleted files that never reached the cloud or were fully reaped."""
        keep = [int(s) for s in _KEEP_FOR_MISSING_FILES]
        with self.db.transaction() as conn:
            return conn.execute(
                f"""
                DELETE FROM file_sync_log
                WHERE file_info_id NOT IN (SELECT id FROM file_info)
                  AND file_info_id IN (
                      SELECT latest.file_info_id FROM ({_LATEST_LOGS}) latest
                      WHERE latest.status NOT IN ({_placeholders(keep)})
                  )
                """,
                keep,
            ).rowcount
