#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Enumerations shared by the catalog, the content store and the services.
"""

from enum import Enum, IntEnum

from ..config import COMPRESSION_LEVEL_FAST, COMPRESSION_LEVEL_GOOD


class FileType(IntEnum):
    """Kind of stored file. Determines the directory namespace in the store."""
    ROM = 1
    DISK_IMAGE = 2
    TAPE_IMAGE = 3
    SCREENSHOT = 4
    MANUAL = 5
    COVER_SCAN = 6
    MEMORY_SNAPSHOT = 7

    @property
    def dir_name(self) -> str:
        return _DIR_NAMES[self]

    @property
    def compression_level(self) -> int:
        if self in _MEDIA_TYPES:
            return COMPRESSION_LEVEL_GOOD
        return COMPRESSION_LEVEL_FAST

    @property
    def is_media_type(self) -> bool:
        return self in _MEDIA_TYPES

    @property
    def is_image_type(self) -> bool:
        return self in _IMAGE_TYPES

    @classmethod
    def from_name(cls, name: str) -> "FileType":
        """Accept either the enum name ('DISK_IMAGE') or the directory name ('disk')."""
        key = name.strip()
        for file_type in cls:
            if key.upper() == file_type.name or key.lower() == file_type.dir_name:
                return file_type
        raise ValueError(f"Unknown file type: {name}")


_DIR_NAMES = {
    FileType.ROM: "rom",
    FileType.DISK_IMAGE: "disk",
    FileType.TAPE_IMAGE: "tape",
    FileType.SCREENSHOT: "screenshot",
    FileType.MANUAL: "manual",
    FileType.COVER_SCAN: "cover",
    FileType.MEMORY_SNAPSHOT: "memory_snapshot",
}

_MEDIA_TYPES = {FileType.ROM, FileType.DISK_IMAGE, FileType.TAPE_IMAGE, FileType.MEMORY_SNAPSHOT}
_IMAGE_TYPES = {FileType.SCREENSHOT, FileType.COVER_SCAN}


class ItemType(IntEnum):
    """Physical or media item a release consists of."""
    DISK_OR_SET_OF_DISKS = 0
    TAPE_OR_SET_OF_TAPES = 1
    MANUAL = 2
    BOX = 3
    CARTRIDGE = 4
    REFERENCE_CARD = 5
    REGISTRATION_CARD = 6
    INLAY_CARD = 7
    POSTER = 8
    MAP = 9
    KEYBOARD_OVERLAY = 10
    CODE_WHEEL = 11
    ADVERTISEMENT = 12
    STICKER = 13
    BOOK = 14
    BROCHURE = 15
    OTHER = 16


class FileSyncStatus(IntEnum):
    """Cloud copy state recorded in the sync log. Values are stored as-is."""
    UPLOAD_PENDING = 0
    UPLOAD_IN_PROGRESS = 1
    UPLOAD_COMPLETED = 2
    UPLOAD_FAILED = 3
    DELETION_PENDING = 4
    DELETION_IN_PROGRESS = 5
    DELETION_COMPLETED = 6
    DELETION_FAILED = 7


class SettingName(str, Enum):
    COLLECTION_ROOT_DIR = "collection_root_dir"
    S3_ENDPOINT = "s3_endpoint"
    S3_REGION = "s3_region"
    S3_BUCKET = "s3_bucket"
    S3_FILE_SYNC_ENABLED = "s3_file_sync_enabled"
