#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
File system capability used by the pipelines.

StdFileSystemOps talks to the real disk. MockFileSystemOps keeps an in-memory
view and records every mutating call so tests can assert on them.
"""

import logging
import shutil
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Set, Tuple

from ..errors import FileIoError
from ..utils.path import ensure_dir

logger = logging.getLogger(__name__)

ZIP_MAGIC = b"PK\x03\x04"


class FileSystemOps:
    """Interface of the file system capability."""

    def exists(self, path: Path) -> bool:
        raise NotImplementedError

    def remove_file(self, path: Path) -> None:
        raise NotImplementedError

    def move_file(self, src: Path, dst: Path) -> None:
        raise NotImplementedError

    def read_dir(self, path: Path) -> Iterator[Path]:
        raise NotImplementedError

    def is_zip_archive(self, path: Path) -> bool:
        raise NotImplementedError


class StdFileSystemOps(FileSystemOps):

    def exists(self, path: Path) -> bool:
        return Path(path).exists()

    def remove_file(self, path: Path) -> None:
        try:
            Path(path).unlink()
        except OSError as e:
            raise FileIoError(f"Failed to remove {path}: {e}") from e

    def move_file(self, src: Path, dst: Path) -> None:
        dst = Path(dst)
        try:
            ensure_dir(dst.parent)
            shutil.move(str(src), str(dst))
        except OSError as e:
            raise FileIoError(f"Failed to move {src} to {dst}: {e}") from e

    def read_dir(self, path: Path) -> Iterator[Path]:
        try:
            entries = sorted(Path(path).iterdir())
        except OSError as e:
            raise FileIoError(f"Failed to read directory {path}: {e}") from e
        return iter(entries)

    def is_zip_archive(self, path: Path) -> bool:
        """Check the local file header magic; the extension is ignored."""
        try:
            with open(path, "rb") as f:
                return f.read(len(ZIP_MAGIC)) == ZIP_MAGIC
        except OSError as e:
            raise FileIoError(f"Failed to read {path}: {e}") from e


class MockFileSystemOps(FileSystemOps):
    """In-memory file system for hermetic tests."""

    def __init__(self, existing_files: Optional[Set[Path]] = None, zip_files: Optional[Set[Path]] = None):
        self.files: Set[Path] = {Path(p) for p in (existing_files or set())}
        self.zip_files: Set[Path] = {Path(p) for p in (zip_files or set())}
        self.dirs: Dict[Path, List[Path]] = {}
        self.deleted_files: List[Path] = []
        self.moved_files: List[Tuple[Path, Path]] = []
        self.fail_delete_with: Optional[str] = None

    def add_file(self, path: Path, is_zip: bool = False) -> None:
        path = Path(path)
        self.files.add(path)
        self.dirs.setdefault(path.parent, []).append(path)
        if is_zip:
            self.zip_files.add(path)

    def exists(self, path: Path) -> bool:
        return Path(path) in self.files

    def remove_file(self, path: Path) -> None:
        if self.fail_delete_with is not None:
            raise FileIoError(self.fail_delete_with)
        path = Path(path)
        self.files.discard(path)
        self.deleted_files.append(path)

    def move_file(self, src: Path, dst: Path) -> None:
        src, dst = Path(src), Path(dst)
        if src not in self.files:
            raise FileIoError(f"No such file: {src}")
        self.files.discard(src)
        self.files.add(dst)
        self.moved_files.append((src, dst))

    def read_dir(self, path: Path) -> Iterator[Path]:
        return iter(sorted(self.dirs.get(Path(path), [])))

    def is_zip_archive(self, path: Path) -> bool:
        if Path(path) not in self.files:
            raise FileIoError(f"No such file: {path}")
        return Path(path) in self.zip_files
