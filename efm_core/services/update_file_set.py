#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Update pipeline for an existing file set: rename it, add files from a
prepared input and drop members that are no longer selected.

The selected checksums of the model are the complete new member list.
Members kept from the current set keep their stored blob and their name.
Dropped members whose file_info row goes with them have their blob removed
and their cloud copy marked for deletion, as the deletion pipeline does.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from ..errors import CollectionError, FileImportError
from ..models.catalog import FileInfo, FileSetFileInfo, cloud_key_for
from ..models.imports import FileSetImportModel, ImportedFile
from ..models.settings import Settings
from ..pipeline import CONTINUE, Pipeline, PipelineStep, StepAction
from ..storage import ContentStore, FileSystemOps, StdFileSystemOps
from .deletion import DeleteLocalFiles, FileDeletionResult, MarkForCloudDeletion
from .ingest import ImportFiles, IngestContext

logger = logging.getLogger(__name__)


@dataclass
class FileSetUpdateResult:
    file_set_id: int
    imported_new_files: List[bytes] = field(default_factory=list)
    removed_files: List[FileDeletionResult] = field(default_factory=list)
    failed_steps: Dict[str, str] = field(default_factory=dict)


@dataclass
class UpdateFileSetContext(IngestContext):
    settings: Optional[Settings] = None
    fs: Optional[FileSystemOps] = None
    current_members: Dict[bytes, FileSetFileInfo] = field(default_factory=dict)
    # (file_info_id, archive_file_name) of rows inserted by this update
    new_files: List[Tuple[int, str]] = field(default_factory=list)
    results: List[FileDeletionResult] = field(default_factory=list)

    @property
    def deletable(self) -> List[FileDeletionResult]:
        return [r for r in self.results if r.is_deletable]


def _file_info_of(member: FileSetFileInfo) -> FileInfo:
    return FileInfo(
        id=member.file_info_id,
        sha1_checksum=member.sha1_checksum,
        file_size=member.file_size,
        archive_file_name=member.archive_file_name,
        file_type=member.file_type,
    )


class FetchFileSet(PipelineStep[UpdateFileSetContext]):
    name = "fetch_file_set"

    async def execute(self, ctx: UpdateFileSetContext) -> StepAction:
        try:
            file_set = ctx.db.file_sets.get_file_set(ctx.file_set_id)
            if not ctx.model.system_ids:
                ctx.model.system_ids = ctx.db.file_sets.get_system_ids(ctx.file_set_id)
        except CollectionError as e:
            return StepAction.abort(e)
        if file_set.file_type != ctx.model.file_type:
            return StepAction.abort(FileImportError(
                f"File set {ctx.file_set_id} holds {file_set.file_type.dir_name} files, "
                f"not {ctx.model.file_type.dir_name}"
            ))
        return CONTINUE


class FetchFilesInFileSet(PipelineStep[UpdateFileSetContext]):
    name = "fetch_files_in_file_set"

    async def execute(self, ctx: UpdateFileSetContext) -> StepAction:
        try:
            members = ctx.db.file_sets.get_file_set_file_info(ctx.file_set_id)
        except CollectionError as e:
            return StepAction.abort(e)
        ctx.current_members = {m.sha1_checksum: m for m in members}
        return CONTINUE


class UpdateFileSetFiles(PipelineStep[UpdateFileSetContext]):
    name = "update_file_set_files"

    async def execute(self, ctx: UpdateFileSetContext) -> StepAction:
        model = ctx.model
        files_in_set = []
        for sha1 in model.selected_files:
            if sha1 in ctx.imported_files:
                files_in_set.append(ctx.imported_files[sha1])
            elif sha1 in ctx.current_members:
                member = ctx.current_members[sha1]
                files_in_set.append(ImportedFile(
                    original_file_name=model.member_name(sha1, member.file_name),
                    archive_file_name=member.archive_file_name,
                    sha1_checksum=sha1,
                    file_size=member.file_size,
                    stored=True,
                ))
            else:
                ctx.rollback_written_blobs()
                return StepAction.abort(FileImportError(
                    f"{sha1.hex()} is neither in file set {ctx.file_set_id} nor in the input"
                ))

        try:
            result = ctx.db.file_sets.update_file_set_files(
                ctx.file_set_id,
                file_set_name=model.file_set_name,
                file_set_file_name=model.file_set_file_name,
                source=model.source,
                files_in_set=files_in_set,
                system_ids=model.system_ids,
            )
        except CollectionError as e:
            ctx.rollback_written_blobs()
            return StepAction.abort(e)

        if result.unused_archive_names:
            ctx.store.remove_blobs(model.file_type, result.unused_archive_names)
        unused = set(result.unused_archive_names)
        ctx.written_archive_names = [n for n in ctx.written_archive_names if n not in unused]

        inserted = set(result.new_file_info_ids)
        ctx.new_files = [
            (file_info_id, imported.archive_file_name)
            for file_info_id, imported in zip(result.file_info_ids, files_in_set)
            if file_info_id in inserted
        ]

        removed = set(result.removed_file_info_ids)
        for member in ctx.current_members.values():
            if member.file_info_id in removed:
                ctx.results.append(FileDeletionResult(
                    file_info=_file_info_of(member),
                    file_path=ctx.settings.get_file_path(member.file_type, member.archive_file_name),
                    is_deletable=True,
                    db_deletion_success=True,
                ))
        logger.debug("File set %d: %d new file info(s), %d removed",
                     ctx.file_set_id, len(ctx.new_files), len(ctx.results))
        return CONTINUE


class MarkNewFilesForCloudSync(PipelineStep[UpdateFileSetContext]):
    name = "mark_new_files_for_cloud_sync"

    def should_execute(self, ctx: UpdateFileSetContext) -> bool:
        return ctx.settings.s3_file_sync_enabled and bool(ctx.new_files)

    async def execute(self, ctx: UpdateFileSetContext) -> StepAction:
        files = [(file_info_id, cloud_key_for(ctx.model.file_type, name)) for file_info_id, name in ctx.new_files]
        try:
            ctx.db.sync_logs.mark_files_for_cloud_sync(files)
        except CollectionError as e:
            logger.warning("Failed to mark %d new file(s) for cloud sync: %s", len(files), e)
            ctx.failed_steps[self.name] = str(e)
        return CONTINUE


class UpdateFileSetService:

    def __init__(self, db, settings: Settings, fs: Optional[FileSystemOps] = None):
        self.db = db
        self.settings = settings
        self.fs = fs or StdFileSystemOps()
        self.store = ContentStore(settings.collection_root_dir, self.fs)

    async def update_file_set(self, file_set_id: int, model: FileSetImportModel) -> FileSetUpdateResult:
        """Make the file set hold exactly model.selected_files under the model's names."""
        ctx = UpdateFileSetContext(
            model=model,
            db=self.db,
            store=self.store,
            file_set_id=file_set_id,
            settings=self.settings,
            fs=self.fs,
        )
        pipeline = Pipeline([
            FetchFileSet(),
            FetchFilesInFileSet(),
            ImportFiles(),
            UpdateFileSetFiles(),
            MarkForCloudDeletion(),
            DeleteLocalFiles(),
            MarkNewFilesForCloudSync(),
        ])
        await pipeline.execute(ctx)
        logger.info("Updated file set %d (%s): %d new blob(s), %d file(s) removed",
                    file_set_id, model.file_set_name, len(ctx.written_archive_names), len(ctx.results))
        return FileSetUpdateResult(
            file_set_id=file_set_id,
            imported_new_files=[
                sha1 for sha1, f in ctx.imported_files.items() if f.archive_file_name in ctx.written_archive_names
            ],
            removed_files=ctx.results,
            failed_steps=ctx.failed_steps,
        )

    async def remove_files(self, file_set_id: int, sha1_checksums: Sequence[bytes]) -> FileSetUpdateResult:
        """Drop the given members, keeping name, source and the other members as they are."""
        file_set = self.db.file_sets.get_file_set(file_set_id)
        members = self.db.file_sets.get_file_set_file_info(file_set_id)
        dropped = set(sha1_checksums)
        model = FileSetImportModel(
            input_path=None,
            file_type=file_set.file_type,
            file_set_name=file_set.file_set_name,
            file_set_file_name=file_set.file_set_file_name,
            is_zip_archive=False,
            import_files={},
            selected_files=[m.sha1_checksum for m in members if m.sha1_checksum not in dropped],
            source=file_set.source,
        )
        return await self.update_file_set(file_set_id, model)
