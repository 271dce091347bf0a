#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Prepare pipeline: inspect an input path, hash its entries and classify each
checksum as new or already stored.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from ..errors import CollectionError, FileIoError
from ..models.catalog import FileInfo
from ..models.file_types import FileType
from ..models.imports import FileImportPrepareResult, ImportedFile, PreparedFile, ReadFile
from ..pipeline import CONTINUE, Pipeline, PipelineStep, StepAction
from ..storage import ArchiveReader, FileSystemOps, StdFileSystemOps

logger = logging.getLogger(__name__)


@dataclass
class PrepareContext:
    input_path: Path
    file_type: FileType
    fs: FileSystemOps
    archive_reader: ArchiveReader
    db: object
    file_set_name: str = ""
    file_set_file_name: str = ""
    is_zip_archive: bool = False
    entries: Dict[bytes, ReadFile] = field(default_factory=dict)
    existing: Dict[bytes, FileInfo] = field(default_factory=dict)


class CollectFileMetadata(PipelineStep[PrepareContext]):
    name = "collect_file_metadata"

    async def execute(self, ctx: PrepareContext) -> StepAction:
        ctx.file_set_name = ctx.input_path.stem
        ctx.file_set_file_name = ctx.input_path.name
        try:
            ctx.is_zip_archive = await asyncio.to_thread(ctx.fs.is_zip_archive, ctx.input_path)
        except FileIoError as e:
            return StepAction.abort(e)
        return CONTINUE


class CollectFileContent(PipelineStep[PrepareContext]):
    name = "collect_file_content"

    async def execute(self, ctx: PrepareContext) -> StepAction:
        try:
            if ctx.is_zip_archive:
                entries = await asyncio.to_thread(ctx.archive_reader.read_zip_entries, ctx.input_path)
            else:
                entries = [await asyncio.to_thread(ctx.archive_reader.read_single_file, ctx.input_path)]
        except FileIoError as e:
            return StepAction.abort(e)
        for entry in entries:
            # identical content under several names collapses to the first name
            ctx.entries.setdefault(entry.sha1_checksum, entry)
        logger.debug("Collected %d unique entries from %s", len(ctx.entries), ctx.input_path)
        return CONTINUE


class CheckExistingFiles(PipelineStep[PrepareContext]):
    name = "check_existing_files"

    def should_execute(self, ctx: PrepareContext) -> bool:
        return bool(ctx.entries)

    async def execute(self, ctx: PrepareContext) -> StepAction:
        try:
            found = ctx.db.file_infos.find_existing_file_infos(list(ctx.entries), ctx.file_type)
        except CollectionError as e:
            return StepAction.abort(e)
        ctx.existing = {fi.sha1_checksum: fi for fi in found}
        return CONTINUE


def _build_result(ctx: PrepareContext) -> FileImportPrepareResult:
    files = {}
    for sha1, entry in ctx.entries.items():
        existing = ctx.existing.get(sha1)
        files[sha1] = PreparedFile(
            read_file=entry,
            is_new=existing is None,
            existing_file=None if existing is None else ImportedFile(
                original_file_name=entry.file_name,
                archive_file_name=existing.archive_file_name,
                sha1_checksum=existing.sha1_checksum,
                file_size=existing.file_size,
            ),
        )
    return FileImportPrepareResult(
        input_path=ctx.input_path,
        file_type=ctx.file_type,
        file_set_name=ctx.file_set_name,
        file_set_file_name=ctx.file_set_file_name,
        is_zip_archive=ctx.is_zip_archive,
        files=files,
    )


class PrepareService:

    def __init__(self, db, fs: Optional[FileSystemOps] = None):
        self.db = db
        self.fs = fs or StdFileSystemOps()
        self.archive_reader = ArchiveReader(self.fs)

    async def prepare_import(self, input_path: Path, file_type: FileType) -> FileImportPrepareResult:
        ctx = PrepareContext(
            input_path=Path(input_path),
            file_type=file_type,
            fs=self.fs,
            archive_reader=self.archive_reader,
            db=self.db,
        )
        pipeline = Pipeline([CollectFileMetadata(), CollectFileContent(), CheckExistingFiles()])
        await pipeline.execute(ctx)
        result = _build_result(ctx)
        logger.info("Prepared %s: %d new, %d existing",
                    input_path, len(result.new_files), len(result.existing_files))
        return result

    async def prepare_directory(self, directory: Path, file_type: FileType) -> List[FileImportPrepareResult]:
        """Prepare every regular file directly inside directory, in name order."""
        results = []
        for path in self.fs.read_dir(Path(directory)):
            if Path(path).is_dir():
                continue
            results.append(await self.prepare_import(path, file_type))
        return results
