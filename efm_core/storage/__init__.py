"""Local storage: file system capability, input archive reader and blob store."""

from .fs_ops import FileSystemOps, StdFileSystemOps, MockFileSystemOps
from .archive import ArchiveReader, hash_stream
from .content_store import ContentStore, StoredBlob

__all__ = ['FileSystemOps', 'StdFileSystemOps', 'MockFileSystemOps', 'ArchiveReader', 'hash_stream',
           'ContentStore', 'StoredBlob']
