#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Ingest pipeline: write selected new entries to the content store and record
the file set in the catalog.

Either the whole file set (with its optional release, title, item and DAT
links) ends up stored, or blobs written by this run are removed again and the
catalog is left untouched.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..errors import CollectionError, FileImportError
from ..models.imports import FileImportResult, FileSetImportModel, ImportedFile
from ..models.settings import Settings
from ..pipeline import CONTINUE, Pipeline, PipelineStep, StepAction
from ..storage import ContentStore, FileSystemOps, StdFileSystemOps
from ..utils.title_normalizer import software_title_name

logger = logging.getLogger(__name__)


@dataclass
class IngestContext:
    model: FileSetImportModel
    db: object
    store: ContentStore
    imported_files: Dict[bytes, ImportedFile] = field(default_factory=dict)
    # blobs created by this run, removed again if the catalog write fails
    written_archive_names: List[str] = field(default_factory=list)
    file_set_id: Optional[int] = None
    release_id: Optional[int] = None
    failed_steps: Dict[str, str] = field(default_factory=dict)

    def rollback_written_blobs(self) -> None:
        failed = self.store.remove_blobs(self.model.file_type, self.written_archive_names)
        if failed:
            logger.warning("%d blob(s) could not be removed after a failed import", len(failed))
        self.written_archive_names = []


class ImportFiles(PipelineStep[IngestContext]):
    name = "import_files"

    async def execute(self, ctx: IngestContext) -> StepAction:
        model = ctx.model
        selected = [sha1 for sha1 in model.selected_files if sha1 in model.import_files]
        to_write = {}
        for sha1 in selected:
            prepared = model.import_files[sha1]
            if prepared.is_new:
                to_write[prepared.read_file.file_name] = sha1
            elif prepared.existing_file is not None:
                ctx.imported_files[sha1] = ImportedFile(
                    original_file_name=model.member_name(sha1, prepared.read_file.file_name),
                    archive_file_name=prepared.existing_file.archive_file_name,
                    sha1_checksum=sha1,
                    file_size=prepared.existing_file.file_size,
                    stored=True,
                )

        if not to_write:
            return CONTINUE

        try:
            if model.is_zip_archive:
                stored = await asyncio.to_thread(
                    ctx.store.import_zip_members, model.input_path, model.file_type, list(to_write)
                )
            else:
                blob = await asyncio.to_thread(ctx.store.import_file, model.input_path, model.file_type)
                stored = {model.input_path.name: blob}
        except CollectionError as e:
            return StepAction.abort(e)

        ctx.written_archive_names.extend(b.archive_file_name for b in stored.values())
        for file_name, sha1 in to_write.items():
            blob = stored.get(file_name)
            if blob is None or blob.sha1_checksum != sha1:
                ctx.rollback_written_blobs()
                return StepAction.abort(FileImportError(f"Content of {file_name} changed since it was prepared"))
            ctx.imported_files[sha1] = ImportedFile(
                original_file_name=model.member_name(sha1, file_name),
                archive_file_name=blob.archive_file_name,
                sha1_checksum=sha1,
                file_size=blob.file_size,
            )
        logger.debug("Wrote %d new blob(s)", len(stored))
        return CONTINUE


class CreateReleaseIfRequested(PipelineStep[IngestContext]):
    """Completes the release request; the rows are written by UpdateDatabase in its transaction."""
    name = "create_release_if_requested"

    def should_execute(self, ctx: IngestContext) -> bool:
        return ctx.model.create_release is not None

    async def execute(self, ctx: IngestContext) -> StepAction:
        request = ctx.model.create_release
        if not request.software_title_name:
            request.software_title_name = software_title_name(request.release_name)
        return CONTINUE


class UpdateDatabase(PipelineStep[IngestContext]):
    name = "update_database"

    async def execute(self, ctx: IngestContext) -> StepAction:
        model = ctx.model
        files_in_set = [ctx.imported_files[s] for s in model.selected_files if s in ctx.imported_files]
        if not files_in_set:
            return StepAction.abort(FileImportError("No files selected for import"))

        try:
            result = ctx.db.file_sets.add_file_set_full(
                file_set_name=model.file_set_name,
                file_set_file_name=model.file_set_file_name,
                file_type=model.file_type,
                source=model.source,
                files_in_set=files_in_set,
                system_ids=model.system_ids,
                item_types=model.item_types,
                create_release=model.create_release,
            )
        except CollectionError as e:
            ctx.rollback_written_blobs()
            return StepAction.abort(e)

        ctx.file_set_id = result.file_set_id
        ctx.release_id = result.release_id
        if result.unused_archive_names:
            # another import stored the same content first
            ctx.store.remove_blobs(model.file_type, result.unused_archive_names)
        unused = set(result.unused_archive_names)
        ctx.written_archive_names = [n for n in ctx.written_archive_names if n not in unused]
        return CONTINUE


class LinkItems(PipelineStep[IngestContext]):
    name = "link_items"

    def should_execute(self, ctx: IngestContext) -> bool:
        return bool(ctx.model.item_ids) and ctx.file_set_id is not None

    async def execute(self, ctx: IngestContext) -> StepAction:
        try:
            ctx.db.file_sets.link_file_set_to_items(ctx.model.item_ids, ctx.file_set_id)
        except CollectionError as e:
            logger.warning("Failed to link file set %s to items: %s", ctx.file_set_id, e)
            ctx.failed_steps[self.name] = str(e)
        return CONTINUE


class LinkDat(PipelineStep[IngestContext]):
    name = "link_dat"

    def should_execute(self, ctx: IngestContext) -> bool:
        return ctx.model.dat_file_id is not None and ctx.file_set_id is not None

    async def execute(self, ctx: IngestContext) -> StepAction:
        try:
            ctx.db.dats.link_file_set_to_dat(ctx.file_set_id, ctx.model.dat_file_id)
        except CollectionError as e:
            logger.warning("Failed to link file set %s to DAT %s: %s", ctx.file_set_id, ctx.model.dat_file_id, e)
            ctx.failed_steps[self.name] = str(e)
        return CONTINUE


class IngestService:

    def __init__(self, db, settings: Settings, fs: Optional[FileSystemOps] = None):
        self.db = db
        self.settings = settings
        self.store = ContentStore(settings.collection_root_dir, fs or StdFileSystemOps())

    async def import_file_set(self, model: FileSetImportModel) -> FileImportResult:
        ctx = IngestContext(model=model, db=self.db, store=self.store)
        pipeline = Pipeline([
            ImportFiles(),
            CreateReleaseIfRequested(),
            UpdateDatabase(),
            LinkItems(),
            LinkDat(),
        ])
        await pipeline.execute(ctx)
        logger.info("Imported file set %d (%s) with %d new blob(s)",
                    ctx.file_set_id, model.file_set_name, len(ctx.written_archive_names))
        return FileImportResult(
            file_set_id=ctx.file_set_id,
            release_id=ctx.release_id,
            imported_new_files=[
                sha1 for sha1, f in ctx.imported_files.items() if f.archive_file_name in ctx.written_archive_names
            ],
            failed_steps=ctx.failed_steps,
        )
