#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Settings snapshot and credential values.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from ..config import BLOB_EXTENSION, THUMBNAILS_DIRNAME
from .file_types import FileType, SettingName


@dataclass(frozen=True)
class Settings:
    """Immutable view of the settings table handed to each pipeline run."""
    collection_root_dir: Path
    s3_endpoint: str = ""
    s3_region: str = ""
    s3_bucket: str = ""
    s3_file_sync_enabled: bool = False

    @classmethod
    def from_dict(cls, values: Dict[str, str]) -> "Settings":
        root = values.get(SettingName.COLLECTION_ROOT_DIR.value) or "."
        return cls(
            collection_root_dir=Path(root),
            s3_endpoint=values.get(SettingName.S3_ENDPOINT.value, ""),
            s3_region=values.get(SettingName.S3_REGION.value, ""),
            s3_bucket=values.get(SettingName.S3_BUCKET.value, ""),
            s3_file_sync_enabled=values.get(SettingName.S3_FILE_SYNC_ENABLED.value, "false") == "true",
        )

    def get_file_type_dir(self, file_type: FileType) -> Path:
        return self.collection_root_dir / file_type.dir_name

    def get_file_path(self, file_type: FileType, archive_file_name: str) -> Path:
        return self.get_file_type_dir(file_type) / f"{archive_file_name}{BLOB_EXTENSION}"

    @property
    def thumbnails_dir(self) -> Path:
        return self.collection_root_dir / THUMBNAILS_DIRNAME


@dataclass(frozen=True)
class CloudCredentials:
    access_key_id: str
    secret_access_key: str


@dataclass
class SettingsSaveModel:
    endpoint: str = ""
    region: str = ""
    bucket: str = ""
    sync_enabled: bool = False
    access_key_id: str = ""
    secret_access_key: str = ""
    collection_root_dir: Optional[Path] = None
