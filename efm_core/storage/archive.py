#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Input file reader: lists the entries of a ZIP archive or a single file with
their streamed SHA-1 checksums.
"""

import hashlib
import logging
import zipfile
from pathlib import Path
from typing import BinaryIO, List, Optional, Tuple

from ..config import READ_CHUNK_SIZE
from ..errors import ArchiveReadError
from ..models.imports import ReadFile
from .fs_ops import FileSystemOps, StdFileSystemOps

logger = logging.getLogger(__name__)


def hash_stream(stream: BinaryIO, chunk_size: int = READ_CHUNK_SIZE) -> Tuple[bytes, int]:
    """SHA-1 digest and byte count of a stream, read in constant memory."""
    sha1 = hashlib.sha1()
    size = 0
    for chunk in iter(lambda: stream.read(chunk_size), b""):
        sha1.update(chunk)
        size += len(chunk)
    return sha1.digest(), size


class ArchiveReader:

    def __init__(self, fs: Optional[FileSystemOps] = None):
        self.fs = fs or StdFileSystemOps()

    def read_entries(self, path: Path) -> List[ReadFile]:
        path = Path(path)
        if self.fs.is_zip_archive(path):
            return self.read_zip_entries(path)
        return [self.read_single_file(path)]

    def read_single_file(self, path: Path) -> ReadFile:
        path = Path(path)
        try:
            with open(path, "rb") as f:
                sha1, size = hash_stream(f)
        except OSError as e:
            raise ArchiveReadError(f"Failed to read file: {e}", path.name) from e
        return ReadFile(file_name=path.name, sha1_checksum=sha1, file_size=size)

    def read_zip_entries(self, path: Path) -> List[ReadFile]:
        entries: List[ReadFile] = []
        try:
            with zipfile.ZipFile(path) as archive:
                for info in archive.infolist():
                    if info.is_dir():
                        continue
                    try:
                        with archive.open(info) as member:
                            sha1, size = hash_stream(member)
                    except (OSError, zipfile.BadZipFile, RuntimeError) as e:
                        raise ArchiveReadError(f"Failed to read zip entry: {e}", info.filename) from e
                    entries.append(ReadFile(file_name=info.filename, sha1_checksum=sha1, file_size=size))
        except (OSError, zipfile.BadZipFile) as e:
            raise ArchiveReadError(f"Malformed zip archive {path}: {e}", path.name) from e
        logger.debug("Read %d entries from %s", len(entries), path)
        return entries
