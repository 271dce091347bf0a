"""Data models for the collection core."""

from .file_types import FileType, ItemType, FileSyncStatus, SettingName
from .catalog import (
    System, SoftwareTitle, Release, ReleaseItem, FileSet, FileInfo,
    FileSetFileInfo, FileSyncLog, FileSyncLogWithFileInfo, FileSetMatchSpec, cloud_key_for,
)
from .imports import (
    ReadFile, ImportedFile, PreparedFile, FileImportPrepareResult,
    CreateReleaseParams, FileSetImportModel, FileImportResult,
)
from .dat import DatFile, DatHeader, DatGame, DatRom
from .settings import Settings, CloudCredentials, SettingsSaveModel
from .events import EventKind, ProgressEvent, ProgressSink

__all__ = [
    'FileType', 'ItemType', 'FileSyncStatus', 'SettingName',
    'System', 'SoftwareTitle', 'Release', 'ReleaseItem', 'FileSet', 'FileInfo',
    'FileSetFileInfo', 'FileSyncLog', 'FileSyncLogWithFileInfo', 'FileSetMatchSpec', 'cloud_key_for',
    'ReadFile', 'ImportedFile', 'PreparedFile', 'FileImportPrepareResult',
    'CreateReleaseParams', 'FileSetImportModel', 'FileImportResult',
    'DatFile', 'DatHeader', 'DatGame', 'DatRom',
    'Settings', 'CloudCredentials', 'SettingsSaveModel',
    'EventKind', 'ProgressEvent', 'ProgressSink',
]
