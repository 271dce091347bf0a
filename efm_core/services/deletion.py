#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Deletion pipeline for file sets.

Only blobs whose last reference is the deleted file set are removed, and only
after the catalog rows are gone. Cloud copies of removed blobs are marked
DELETION_PENDING for an external reaper. Nothing on disk or in the sync log
is touched when the catalog delete fails.

A failure on one member does not stop the others; the result reports each
member separately.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from ..errors import CollectionError, FileIoError, InUseError
from ..models.catalog import FileInfo
from ..models.settings import Settings
from ..pipeline import CONTINUE, Pipeline, PipelineStep, StepAction
from ..storage import FileSystemOps, StdFileSystemOps

logger = logging.getLogger(__name__)


@dataclass
class FileDeletionResult:
    file_info: FileInfo
    file_path: Path
    is_deletable: bool = False
    file_deletion_success: bool = False
    db_deletion_success: bool = False
    cloud_delete_marked: bool = False
    error_messages: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "file_info_id": self.file_info.id,
            "archive_file_name": self.file_info.archive_file_name,
            "file_path": str(self.file_path),
            "is_deletable": self.is_deletable,
            "file_deletion_success": self.file_deletion_success,
            "db_deletion_success": self.db_deletion_success,
            "cloud_delete_marked": self.cloud_delete_marked,
            "error_messages": list(self.error_messages),
        }


@dataclass
class DeletionContext:
    file_set_id: int
    db: object
    settings: Settings
    fs: FileSystemOps
    results: List[FileDeletionResult] = field(default_factory=list)

    @property
    def deletable(self) -> List[FileDeletionResult]:
        return [r for r in self.results if r.is_deletable]


class ValidateNotInUse(PipelineStep[DeletionContext]):
    name = "validate_not_in_use"

    async def execute(self, ctx: DeletionContext) -> StepAction:
        try:
            in_use = ctx.db.file_sets.is_file_set_in_use(ctx.file_set_id)
        except CollectionError as e:
            return StepAction.abort(e)
        if in_use:
            return StepAction.abort(InUseError(f"File set {ctx.file_set_id} is in use by one or more releases"))
        return CONTINUE


class FetchFileInfos(PipelineStep[DeletionContext]):
    name = "fetch_file_infos"

    async def execute(self, ctx: DeletionContext) -> StepAction:
        try:
            ctx.db.file_sets.get_file_set(ctx.file_set_id)
            file_infos = ctx.db.file_infos.get_file_infos_by_file_set(ctx.file_set_id)
        except CollectionError as e:
            return StepAction.abort(e)
        seen = set()
        for file_info in file_infos:
            if file_info.id in seen:
                continue
            seen.add(file_info.id)
            ctx.results.append(FileDeletionResult(
                file_info=file_info,
                file_path=ctx.settings.get_file_path(file_info.file_type, file_info.archive_file_name),
            ))
        return CONTINUE


class FilterDeletableFiles(PipelineStep[DeletionContext]):
    name = "filter_deletable_files"

    async def execute(self, ctx: DeletionContext) -> StepAction:
        for result in ctx.results:
            try:
                result.is_deletable = ctx.db.file_sets.is_orphan_after_file_set_removal(
                    result.file_info.id, ctx.file_set_id
                )
            except CollectionError as e:
                result.error_messages.append(str(e))
        return CONTINUE


class DeleteFileSet(PipelineStep[DeletionContext]):
    name = "delete_file_set"

    async def execute(self, ctx: DeletionContext) -> StepAction:
        try:
            removed_ids = set(ctx.db.file_sets.delete_file_set(ctx.file_set_id))
        except CollectionError as e:
            for result in ctx.results:
                result.error_messages.append(str(e))
            return StepAction.abort(e)
        for result in ctx.results:
            result.db_deletion_success = result.file_info.id in removed_ids
            # linked by another file set since the decision
            if not result.db_deletion_success:
                result.is_deletable = False
        return CONTINUE


class MarkForCloudDeletion(PipelineStep[DeletionContext]):
    name = "mark_for_cloud_deletion"

    def should_execute(self, ctx: DeletionContext) -> bool:
        return bool(ctx.deletable)

    async def execute(self, ctx: DeletionContext) -> StepAction:
        for result in ctx.deletable:
            try:
                result.cloud_delete_marked = ctx.db.sync_logs.mark_for_cloud_deletion(result.file_info.id)
            except CollectionError as e:
                logger.warning("Failed to mark %s for cloud deletion: %s", result.file_info.cloud_key, e)
                result.error_messages.append(str(e))
        return CONTINUE


class DeleteLocalFiles(PipelineStep[DeletionContext]):
    name = "delete_local_files"

    def should_execute(self, ctx: DeletionContext) -> bool:
        return bool(ctx.deletable)

    async def execute(self, ctx: DeletionContext) -> StepAction:
        for result in ctx.deletable:
            if not ctx.fs.exists(result.file_path):
                # blob only in the cloud, nothing to remove locally
                result.file_deletion_success = True
                continue
            try:
                ctx.fs.remove_file(result.file_path)
                result.file_deletion_success = True
            except FileIoError as e:
                logger.error("Failed to delete %s: %s", result.file_path, e)
                result.error_messages.append(str(e))
        return CONTINUE


class DeletionService:

    def __init__(self, db, settings: Settings, fs: Optional[FileSystemOps] = None):
        self.db = db
        self.settings = settings
        self.fs = fs or StdFileSystemOps()

    async def delete_file_set(self, file_set_id: int) -> List[FileDeletionResult]:
        ctx = DeletionContext(file_set_id=file_set_id, db=self.db, settings=self.settings, fs=self.fs)
        pipeline = Pipeline([
            ValidateNotInUse(),
            FetchFileInfos(),
            FilterDeletableFiles(),
            DeleteFileSet(),
            MarkForCloudDeletion(),
            DeleteLocalFiles(),
        ])
        await pipeline.execute(ctx)
        logger.info("Deleted file set %d: %d of %d file(s) removed",
                    file_set_id, sum(r.file_deletion_success for r in ctx.deletable), len(ctx.results))
        return ctx.results
