#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Cloud sync engine.

Each pass registers new blobs in the sync log (UPLOAD_PENDING), then uploads
every file whose latest state is UPLOAD_PENDING or UPLOAD_FAILED, recording
UPLOAD_IN_PROGRESS before and UPLOAD_COMPLETED / UPLOAD_FAILED after each
upload. Upload errors never stop the pass; failed files are picked up again
by the next one.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from ..config import DEFAULT_SYNC_INTERVAL_SECONDS, SYNC_PREPARE_BATCH_SIZE, SYNC_UPLOAD_BATCH_SIZE
from ..errors import CloudError, CollectionError, OperationCancelled, SettingsError
from ..cloud import CloudStorageOps
from ..models.events import EventKind, ProgressEvent, ProgressSink, emit
from ..models.file_types import FileSyncStatus
from ..models.settings import Settings
from ..pipeline import CONTINUE, SKIP, Pipeline, PipelineStep, StepAction
from .settings_service import SettingsService

logger = logging.getLogger(__name__)

UPLOADABLE_STATUSES = (FileSyncStatus.UPLOAD_PENDING, FileSyncStatus.UPLOAD_FAILED)


@dataclass
class SyncResult:
    enabled: bool = True
    prepared: int = 0
    pending: int = 0
    uploaded: int = 0
    failed: int = 0


@dataclass
class SyncContext:
    db: object
    settings: Settings
    settings_service: SettingsService
    cloud_ops: Optional[CloudStorageOps] = None
    progress: Optional[ProgressSink] = None
    cancel_event: Optional[asyncio.Event] = None
    result: Optional[SyncResult] = None

    def __post_init__(self):
        if self.result is None:
            self.result = SyncResult()

    def is_cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()


class ValidateSettings(PipelineStep[SyncContext]):
    name = "validate_settings"

    async def execute(self, ctx: SyncContext) -> StepAction:
        if not ctx.settings.s3_file_sync_enabled:
            logger.info("Cloud sync is disabled")
            ctx.result.enabled = False
            return SKIP
        return CONTINUE


class PrepareFilesForSync(PipelineStep[SyncContext]):
    name = "prepare_files_for_sync"

    async def execute(self, ctx: SyncContext) -> StepAction:
        try:
            while True:
                # marked rows drop out of the query, so the next batch always starts at offset 0
                batch = ctx.db.file_infos.get_file_infos_without_sync_log(SYNC_PREPARE_BATCH_SIZE, 0)
                if not batch:
                    break
                ctx.db.sync_logs.mark_files_for_cloud_sync([(fi.id, fi.cloud_key) for fi in batch])
                ctx.result.prepared += len(batch)
        except CollectionError as e:
            return StepAction.abort(e)
        if ctx.result.prepared:
            logger.info("Marked %d file(s) for cloud sync", ctx.result.prepared)
        return CONTINUE


class GetSyncFileCounts(PipelineStep[SyncContext]):
    name = "get_sync_file_counts"

    async def execute(self, ctx: SyncContext) -> StepAction:
        try:
            ctx.result.pending = ctx.db.sync_logs.count_logs_by_latest_statuses(UPLOADABLE_STATUSES)
        except CollectionError as e:
            return StepAction.abort(e)
        emit(ctx.progress, ProgressEvent(EventKind.SYNC_STARTED, total_files=ctx.result.pending))
        if ctx.result.pending == 0:
            logger.info("Nothing to upload")
            emit(ctx.progress, ProgressEvent(EventKind.SYNC_COMPLETED))
            return SKIP
        return CONTINUE


class ConnectToCloud(PipelineStep[SyncContext]):
    name = "connect_to_cloud"

    def should_execute(self, ctx: SyncContext) -> bool:
        return ctx.cloud_ops is None

    async def execute(self, ctx: SyncContext) -> StepAction:
        try:
            ctx.cloud_ops = await asyncio.to_thread(ctx.settings_service.connect_cloud_storage, ctx.settings)
        except (CloudError, SettingsError) as e:
            return StepAction.abort(e)
        return CONTINUE


class UploadPendingFiles(PipelineStep[SyncContext]):
    name = "upload_pending_files"

    async def execute(self, ctx: SyncContext) -> StepAction:
        total = ctx.result.pending
        number = 0
        after_id = 0
        try:
            while True:
                batch = ctx.db.sync_logs.get_logs_and_file_info_by_sync_status(
                    UPLOADABLE_STATUSES, SYNC_UPLOAD_BATCH_SIZE, after_id
                )
                if not batch:
                    break
                for entry in batch:
                    if ctx.is_cancelled():
                        emit(ctx.progress, ProgressEvent(EventKind.SYNC_CANCELLED))
                        return StepAction.abort(OperationCancelled("Cloud sync cancelled"))
                    after_id = entry.file_info_id
                    number += 1
                    await self._upload_one(ctx, entry, number, total)
        except CollectionError as e:
            return StepAction.abort(e)

        emit(ctx.progress, ProgressEvent(EventKind.SYNC_COMPLETED, total_files=total))
        logger.info("Cloud sync finished: %d uploaded, %d failed", ctx.result.uploaded, ctx.result.failed)
        return CONTINUE

    async def _upload_one(self, ctx: SyncContext, entry, number: int, total: int) -> None:
        key = entry.cloud_key
        sync_logs = ctx.db.sync_logs
        emit(ctx.progress, ProgressEvent(EventKind.FILE_UPLOAD_STARTED, key=key, file_number=number,
                                         total_files=total))
        sync_logs.add_log_entry(entry.file_info_id, FileSyncStatus.UPLOAD_IN_PROGRESS, "", key)
        path = ctx.settings.get_file_path(entry.file_type, entry.archive_file_name)
        try:
            await ctx.cloud_ops.upload_file(path, key, ctx.progress)
        except (CloudError, OSError) as e:
            logger.error("Upload of %s failed: %s", key, e)
            sync_logs.add_log_entry(entry.file_info_id, FileSyncStatus.UPLOAD_FAILED, str(e), key)
            ctx.result.failed += 1
            emit(ctx.progress, ProgressEvent(EventKind.FILE_UPLOAD_FAILED, key=key, file_number=number,
                                             total_files=total, error=str(e)))
            return
        sync_logs.add_log_entry(entry.file_info_id, FileSyncStatus.UPLOAD_COMPLETED, "", key)
        ctx.result.uploaded += 1
        emit(ctx.progress, ProgressEvent(EventKind.FILE_UPLOAD_COMPLETED, key=key, file_number=number,
                                         total_files=total))


class CloudSyncService:

    def __init__(
        self,
        db,
        settings: Settings,
        settings_service: Optional[SettingsService] = None,
        cloud_ops: Optional[CloudStorageOps] = None,
        progress: Optional[ProgressSink] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ):
        self.db = db
        self.settings = settings
        self.settings_service = settings_service or SettingsService(db)
        self.cloud_ops = cloud_ops
        self.progress = progress
        self.cancel_event = cancel_event

    async def sync_to_cloud(self) -> SyncResult:
        ctx = SyncContext(
            db=self.db,
            settings=self.settings,
            settings_service=self.settings_service,
            cloud_ops=self.cloud_ops,
            progress=self.progress,
            cancel_event=self.cancel_event,
        )
        pipeline = Pipeline([
            ValidateSettings(),
            PrepareFilesForSync(),
            GetSyncFileCounts(),
            ConnectToCloud(),
            UploadPendingFiles(),
        ])
        await pipeline.execute(ctx)
        # keep the session for the next pass
        self.cloud_ops = ctx.cloud_ops
        return ctx.result

    async def run(self, interval: float = DEFAULT_SYNC_INTERVAL_SECONDS,
                  stop_event: Optional[asyncio.Event] = None) -> None:
        """Sync every interval seconds until stop_event is set."""
        stop_event = stop_event or asyncio.Event()
        while not stop_event.is_set():
            try:
                await self.sync_to_cloud()
                removed = self.db.sync_logs.cleanup_orphaned_logs()
                if removed:
                    logger.debug("Removed %d orphaned sync log row(s)", removed)
            except OperationCancelled:
                logger.info("Cloud sync cancelled")
                return
            except CollectionError as e:
                logger.error("Cloud sync pass failed: %s", e)
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass
