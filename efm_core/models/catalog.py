#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Data structures for catalog rows.
"""

from dataclasses import dataclass, asdict, field
from typing import Optional, Dict, Any, List, Tuple

from .file_types import FileType, FileSyncStatus, ItemType


def cloud_key_for(file_type: FileType, archive_file_name: str) -> str:
    """Object store key of a blob: <file_type_dir>/<archive_file_name>."""
    return f"{file_type.dir_name}/{archive_file_name}"


@dataclass
class System:
    id: int
    name: str


@dataclass
class SoftwareTitle:
    id: int
    name: str
    franchise_id: Optional[int] = None


@dataclass
class Release:
    id: int
    name: str


@dataclass
class ReleaseItem:
    id: int
    release_id: int
    item_type: ItemType
    notes: Optional[str] = None


@dataclass
class FileSet:
    """Logical group of files making up one release artifact."""
    id: int
    file_set_name: str
    file_set_file_name: str
    file_type: FileType
    source: str = ""

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["file_type"] = self.file_type.dir_name
        return data


@dataclass
class FileInfo:
    """One stored blob, unique by (sha1_checksum, file_type)."""
    id: int
    sha1_checksum: bytes
    file_size: int
    archive_file_name: str
    file_type: FileType

    @property
    def cloud_key(self) -> str:
        return cloud_key_for(self.file_type, self.archive_file_name)

    @classmethod
    def from_row(cls, row) -> "FileInfo":
        return cls(
            id=row["id"],
            sha1_checksum=bytes(row["sha1_checksum"]),
            file_size=row["file_size"],
            archive_file_name=row["archive_file_name"],
            file_type=FileType(row["file_type"]),
        )


@dataclass
class FileSetFileInfo:
    """A FileInfo as seen through one file set, with its display name in that set."""
    file_set_id: int
    file_info_id: int
    file_name: str
    sort_order: int
    sha1_checksum: bytes
    file_size: int
    archive_file_name: str
    file_type: FileType

    @property
    def cloud_key(self) -> str:
        return cloud_key_for(self.file_type, self.archive_file_name)


@dataclass
class FileSyncLog:
    id: int
    file_info_id: int
    sync_time: str
    status: FileSyncStatus
    message: str
    cloud_key: str

    @classmethod
    def from_row(cls, row) -> "FileSyncLog":
        return cls(
            id=row["id"],
            file_info_id=row["file_info_id"],
            sync_time=row["sync_time"],
            status=FileSyncStatus(row["status"]),
            message=row["message"] or "",
            cloud_key=row["cloud_key"],
        )


@dataclass
class FileSyncLogWithFileInfo:
    """Latest sync log row of a file joined with the file's storage details."""
    log_id: int
    file_info_id: int
    status: FileSyncStatus
    message: str
    cloud_key: str
    sha1_checksum: bytes
    file_size: int
    archive_file_name: str
    file_type: FileType


@dataclass
class FileSetMatchSpec:
    """Identity of a file set for matching: file type plus the unordered
    multiset of (member file name, sha1) pairs."""
    file_type: FileType
    members: List[Tuple[str, bytes]] = field(default_factory=list)
    file_set_name: str = ""
    source: str = ""
