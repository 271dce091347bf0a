#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Compressed local blob store.

Every blob lives at <root>/<file_type_dir>/<archive_file_name>.zst. Names are
opaque UUIDs, so two writes of the same bytes produce two blobs; deduplication
happens in the catalog, which is unique on (sha1_checksum, file_type).
"""

import hashlib
import logging
import uuid
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Dict, Iterable, List, Optional, Sequence, Tuple

import zstandard as zstd

from ..config import BLOB_EXTENSION, READ_CHUNK_SIZE
from ..errors import FileImportError, FileIoError
from ..models.file_types import FileType
from ..utils.path import ensure_dir, partial_path
from .fs_ops import FileSystemOps, StdFileSystemOps

logger = logging.getLogger(__name__)


@dataclass
class StoredBlob:
    archive_file_name: str
    sha1_checksum: bytes
    file_size: int


# (file name inside the container, file type, archive file name, expected sha1)
BlobMember = Tuple[str, FileType, str, bytes]


class ContentStore:

    def __init__(self, collection_root: Path, fs: Optional[FileSystemOps] = None):
        self.collection_root = Path(collection_root)
        self.fs = fs or StdFileSystemOps()

    def blob_path(self, file_type: FileType, archive_file_name: str) -> Path:
        return self.collection_root / file_type.dir_name / f"{archive_file_name}{BLOB_EXTENSION}"

    # ---------- write ----------

    def write_stream(self, stream: BinaryIO, file_type: FileType, level: Optional[int] = None) -> StoredBlob:
        """Compress a stream into a fresh blob, hashing the uncompressed bytes on the way.

        The blob is written to a .part file first and moved into place only
        after the encoder finished, so a visible blob is always complete.
        """
        archive_file_name = str(uuid.uuid4())
        target = self.blob_path(file_type, archive_file_name)
        partial = partial_path(target)
        level = file_type.compression_level if level is None else level

        sha1 = hashlib.sha1()
        size = 0
        try:
            ensure_dir(target.parent)
            compressor = zstd.ZstdCompressor(level=level)
            with open(partial, "wb") as fh:
                with compressor.stream_writer(fh, closefd=False) as writer:
                    for chunk in iter(lambda: stream.read(READ_CHUNK_SIZE), b""):
                        sha1.update(chunk)
                        writer.write(chunk)
                        size += len(chunk)
            self.fs.move_file(partial, target)
        except (OSError, zstd.ZstdError, zipfile.BadZipFile, FileIoError) as e:
            self._discard_partial(partial)
            raise FileImportError(f"Failed to write blob {archive_file_name}: {e}") from e

        logger.debug("Stored %d bytes as %s/%s", size, file_type.dir_name, archive_file_name)
        return StoredBlob(archive_file_name=archive_file_name, sha1_checksum=sha1.digest(), file_size=size)

    def import_file(self, path: Path, file_type: FileType, level: Optional[int] = None) -> StoredBlob:
        try:
            with open(path, "rb") as f:
                return self.write_stream(f, file_type, level)
        except OSError as e:
            raise FileImportError(f"Failed to open {path}: {e}") from e

    def import_zip_members(
        self,
        path: Path,
        file_type: FileType,
        names: Optional[Iterable[str]] = None,
        level: Optional[int] = None,
    ) -> Dict[str, StoredBlob]:
        """Store the named members of a ZIP archive (all files when names is None).

        Returns member name -> blob. Blobs written before a failure are removed.
        """
        wanted = None if names is None else set(names)
        stored: Dict[str, StoredBlob] = {}
        try:
            with zipfile.ZipFile(path) as archive:
                for info in archive.infolist():
                    if info.is_dir() or (wanted is not None and info.filename not in wanted):
                        continue
                    with archive.open(info) as member:
                        stored[info.filename] = self.write_stream(member, file_type, level)
        except (OSError, zipfile.BadZipFile, FileImportError) as e:
            for blob in stored.values():
                self.remove_blob(file_type, blob.archive_file_name, missing_ok=True)
            if isinstance(e, FileImportError):
                raise
            raise FileImportError(f"Failed to import members of {path}: {e}") from e
        return stored

    # ---------- read ----------

    def export_blob(self, file_type: FileType, archive_file_name: str, sha1_checksum: bytes,
                    destination: Path) -> Path:
        """Decompress a blob to destination and check it against the catalog checksum."""
        source = self.blob_path(file_type, archive_file_name)
        destination = Path(destination)
        try:
            ensure_dir(destination.parent)
            with open(destination, "wb") as out:
                digest, _ = self._decompress_into(source, out)
        except (OSError, zstd.ZstdError) as e:
            raise FileIoError(f"Failed to export {source} to {destination}: {e}") from e
        if digest != sha1_checksum:
            raise FileIoError(
                f"Checksum mismatch for {archive_file_name}: expected {sha1_checksum.hex()}, got {digest.hex()}"
            )
        return destination

    def export_blobs_to_zip(self, members: Sequence[BlobMember], destination: Path) -> Path:
        """Pack several blobs, decompressed and verified, into one ZIP container."""
        destination = Path(destination)
        try:
            ensure_dir(destination.parent)
            with zipfile.ZipFile(destination, "w", compression=zipfile.ZIP_DEFLATED) as archive:
                for file_name, file_type, archive_file_name, sha1_checksum in members:
                    source = self.blob_path(file_type, archive_file_name)
                    with archive.open(file_name, "w", force_zip64=True) as out:
                        digest, _ = self._decompress_into(source, out)
                    if digest != sha1_checksum:
                        raise FileIoError(f"Checksum mismatch for {archive_file_name} ({file_name})")
        except FileIoError:
            destination.unlink(missing_ok=True)
            raise
        except (OSError, zstd.ZstdError, zipfile.BadZipFile) as e:
            destination.unlink(missing_ok=True)
            raise FileIoError(f"Failed to write zip {destination}: {e}") from e
        return destination

    def verify_blob(self, file_type: FileType, archive_file_name: str, sha1_checksum: bytes) -> bool:
        """True when the blob decompresses to content with the expected SHA-1."""
        source = self.blob_path(file_type, archive_file_name)
        try:
            digest, _ = self._decompress_into(source, None)
        except (OSError, zstd.ZstdError) as e:
            logger.warning("Blob %s could not be verified: %s", source, e)
            return False
        return digest == sha1_checksum

    def _decompress_into(self, source: Path, out: Optional[BinaryIO]) -> Tuple[bytes, int]:
        sha1 = hashlib.sha1()
        size = 0
        with open(source, "rb") as fh:
            with zstd.ZstdDecompressor().stream_reader(fh) as reader:
                for chunk in iter(lambda: reader.read(READ_CHUNK_SIZE), b""):
                    sha1.update(chunk)
                    size += len(chunk)
                    if out is not None:
                        out.write(chunk)
        return sha1.digest(), size

    # ---------- delete ----------

    def remove_blob(self, file_type: FileType, archive_file_name: str, missing_ok: bool = False) -> None:
        path = self.blob_path(file_type, archive_file_name)
        if missing_ok and not self.fs.exists(path):
            return
        self.fs.remove_file(path)

    def remove_blobs(self, file_type: FileType, archive_file_names: Iterable[str]) -> List[str]:
        """Best-effort removal. Returns the names that could not be removed."""
        failed = []
        for name in archive_file_names:
            try:
                self.remove_blob(file_type, name, missing_ok=True)
            except FileIoError as e:
                logger.warning("Failed to remove blob %s: %s", name, e)
                failed.append(name)
        return failed

    def _discard_partial(self, partial: Path) -> None:
        try:
            if self.fs.exists(partial):
                self.fs.remove_file(partial)
        except FileIoError as e:
            logger.warning("Failed to remove partial blob %s: %s", partial, e)
