"""Collection core - content-addressed file set ingestion, storage and retrieval."""

__version__ = "0.1.0"
__author__ = "EFM Team"

# Import key classes for convenient top-level access
from .database import DatabaseManager
from .errors import CollectionError
from .services import (
    SettingsService, PrepareService, IngestService, MaterializeService, DeletionService,
    CloudSyncService, DatGameStatusService,
)
from .models import FileType, FileSetImportModel, Settings

# Common convenience imports
from .utils import format_bytes, normalize_title

__all__ = [
    # Core classes
    'DatabaseManager',
    'CollectionError',

    # Services
    'SettingsService',
    'PrepareService',
    'IngestService',
    'MaterializeService',
    'DeletionService',
    'CloudSyncService',
    'DatGameStatusService',

    # Data models
    'FileType',
    'FileSetImportModel',
    'Settings',

    # Utilities
    'format_bytes',
    'normalize_title',

    # Package metadata
    '__version__',
    '__author__'
]
