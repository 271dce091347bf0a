#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Data structures passed between the prepare and ingest pipelines.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, List, Dict

from .file_types import FileType, ItemType


@dataclass
class ReadFile:
    """One entry found in an input file: ZIP member or the file itself."""
    file_name: str
    sha1_checksum: bytes
    file_size: int


@dataclass
class ImportedFile:
    """A blob in the content store together with the name it had in the input."""
    original_file_name: str
    archive_file_name: str
    sha1_checksum: bytes
    file_size: int
    # already in the catalog when the import was prepared
    stored: bool = False


@dataclass
class PreparedFile:
    read_file: ReadFile
    is_new: bool
    existing_file: Optional[ImportedFile] = None


@dataclass
class FileImportPrepareResult:
    """Classification of every entry of an input path as new or already stored."""
    input_path: Path
    file_type: FileType
    file_set_name: str
    file_set_file_name: str
    is_zip_archive: bool
    files: Dict[bytes, PreparedFile] = field(default_factory=dict)

    @property
    def new_files(self) -> List[PreparedFile]:
        return [f for f in self.files.values() if f.is_new]

    @property
    def existing_files(self) -> List[PreparedFile]:
        return [f for f in self.files.values() if not f.is_new]

    def to_dict(self) -> dict:
        return {
            "input_path": str(self.input_path),
            "file_type": self.file_type.dir_name,
            "file_set_name": self.file_set_name,
            "file_set_file_name": self.file_set_file_name,
            "is_zip_archive": self.is_zip_archive,
            "files": [
                {
                    "file_name": f.read_file.file_name,
                    "sha1": f.read_file.sha1_checksum.hex(),
                    "size": f.read_file.file_size,
                    "is_new": f.is_new,
                    "archive_file_name": f.existing_file.archive_file_name if f.existing_file else None,
                }
                for f in self.files.values()
            ],
        }


@dataclass
class CreateReleaseParams:
    """Request to create a release (and its software title) for a new file set.

    An empty software_title_name is derived from release_name by the title
    normalizer.
    """
    release_name: str
    software_title_name: str = ""


@dataclass
class FileSetImportModel:
    # None when no new files are read, e.g. when only removing members
    input_path: Optional[Path]
    file_type: FileType
    file_set_name: str
    file_set_file_name: str
    is_zip_archive: bool
    import_files: Dict[bytes, PreparedFile]
    selected_files: List[bytes]
    system_ids: List[int] = field(default_factory=list)
    source: str = ""
    item_ids: List[int] = field(default_factory=list)
    item_types: List[ItemType] = field(default_factory=list)
    create_release: Optional[CreateReleaseParams] = None
    dat_file_id: Optional[int] = None
    # sha1 -> name the member gets in the file set instead of its input name
    member_names: Dict[bytes, str] = field(default_factory=dict)

    @classmethod
    def from_prepare_result(cls, result: FileImportPrepareResult, selected_files: Optional[List[bytes]] = None,
                            **kwargs) -> "FileSetImportModel":
        """Build an import request selecting every entry unless told otherwise."""
        return cls(
            input_path=result.input_path,
            file_type=result.file_type,
            file_set_name=kwargs.pop("file_set_name", result.file_set_name),
            file_set_file_name=kwargs.pop("file_set_file_name", result.file_set_file_name),
            is_zip_archive=result.is_zip_archive,
            import_files=dict(result.files),
            selected_files=list(result.files) if selected_files is None else list(selected_files),
            **kwargs,
        )

    def member_name(self, sha1: bytes, input_name: str) -> str:
        return self.member_names.get(sha1, input_name)


@dataclass
class FileImportResult:
    file_set_id: int
    release_id: Optional[int] = None
    imported_new_files: List[bytes] = field(default_factory=list)
    # step name -> error message of non-critical steps that failed
    failed_steps: Dict[str, str] = field(default_factory=dict)
