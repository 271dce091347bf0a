"""Pipelines and services built on the catalog, the content store and the object store."""

from .settings_service import SettingsService
from .prepare import PrepareService
from .ingest import IngestService
from .materialize import MaterializeService, MaterializeResult, FileDownloadResult
from .deletion import DeletionService, FileDeletionResult
from .cloud_sync import CloudSyncService, SyncResult
from .dat_matcher import DatGameStatusService, DatGameStatus, DatGameStatusKind
from .update_file_set import UpdateFileSetService, FileSetUpdateResult
from .mass_import import MassImportService, MassImportResult

__all__ = ['SettingsService', 'PrepareService', 'IngestService', 'MaterializeService', 'MaterializeResult',
           'FileDownloadResult', 'DeletionService', 'FileDeletionResult', 'CloudSyncService', 'SyncResult',
           'DatGameStatusService', 'DatGameStatus', 'DatGameStatusKind', 'UpdateFileSetService',
           'FileSetUpdateResult', 'MassImportService', 'MassImportResult']
