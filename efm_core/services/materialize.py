#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Materialize pipeline: make a stored file set available in a scratch directory.

Blobs missing locally are downloaded from the object store first. Members
are then decompressed under their original names, or packed into a single
ZIP container when extraction is not requested.
"""

import asyncio
import logging
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from ..cloud import CloudStorageOps
from ..errors import CloudError, CollectionError, FileIoError, OperationCancelled, SettingsError
from ..models.catalog import FileSet, FileSetFileInfo
from ..models.events import EventKind, ProgressEvent, ProgressSink, emit
from ..models.settings import Settings
from ..pipeline import CONTINUE, Pipeline, PipelineStep, StepAction
from ..storage import ContentStore, FileSystemOps, StdFileSystemOps
from ..storage.thumbnails import ensure_thumbnail, thumbnail_path
from ..utils.path import ensure_dir, partial_path, resolve_within
from .settings_service import SettingsService

logger = logging.getLogger(__name__)


@dataclass
class FileDownloadResult:
    file_info_id: int
    cloud_key: str
    success: bool
    error: str = ""


@dataclass
class MaterializeResult:
    file_set_id: int
    temp_dir: Path
    output_files: List[str] = field(default_factory=list)
    entry_point: Optional[str] = None
    thumbnails: Dict[str, Path] = field(default_factory=dict)
    download_results: List[FileDownloadResult] = field(default_factory=list)


@dataclass
class MaterializeContext:
    file_set_id: int
    extract_files: bool
    temp_dir: Path
    db: object
    settings: Settings
    settings_service: SettingsService
    fs: FileSystemOps
    store: ContentStore
    cloud_ops: Optional[CloudStorageOps] = None
    progress: Optional[ProgressSink] = None
    cancel_event: Optional[asyncio.Event] = None
    file_set: Optional[FileSet] = None
    members: List[FileSetFileInfo] = field(default_factory=list)
    missing: List[FileSetFileInfo] = field(default_factory=list)
    download_results: List[FileDownloadResult] = field(default_factory=list)
    output_files: List[str] = field(default_factory=list)
    thumbnails: Dict[str, Path] = field(default_factory=dict)

    def is_cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()


def _safe_target(temp_dir: Path, file_name: str) -> Path:
    target = resolve_within(temp_dir, file_name)
    if target is None:
        raise FileIoError(f"Refusing to write outside the target directory: {file_name}")
    return target


class FetchFileSet(PipelineStep[MaterializeContext]):
    name = "fetch_file_set"

    async def execute(self, ctx: MaterializeContext) -> StepAction:
        try:
            ctx.file_set = ctx.db.file_sets.get_file_set(ctx.file_set_id)
        except CollectionError as e:
            return StepAction.abort(e)
        return CONTINUE


class FetchFileSetFileInfo(PipelineStep[MaterializeContext]):
    name = "fetch_file_set_file_info"

    async def execute(self, ctx: MaterializeContext) -> StepAction:
        try:
            ctx.members = ctx.db.file_sets.get_file_set_file_info(ctx.file_set_id)
        except CollectionError as e:
            return StepAction.abort(e)
        if not ctx.members:
            return StepAction.abort(FileIoError(f"File set {ctx.file_set_id} has no files"))
        return CONTINUE


class PrepareForDownload(PipelineStep[MaterializeContext]):
    name = "prepare_for_download"

    async def execute(self, ctx: MaterializeContext) -> StepAction:
        seen = set()
        for member in ctx.members:
            if member.file_info_id in seen:
                continue
            seen.add(member.file_info_id)
            path = ctx.settings.get_file_path(member.file_type, member.archive_file_name)
            if not ctx.fs.exists(path):
                ctx.missing.append(member)
        logger.debug("%d of %d blob(s) missing locally", len(ctx.missing), len(seen))
        return CONTINUE


class ConnectToCloud(PipelineStep[MaterializeContext]):
    name = "connect_to_cloud"

    def should_execute(self, ctx: MaterializeContext) -> bool:
        return bool(ctx.missing) and ctx.cloud_ops is None

    async def execute(self, ctx: MaterializeContext) -> StepAction:
        try:
            ctx.cloud_ops = await asyncio.to_thread(ctx.settings_service.connect_cloud_storage, ctx.settings)
        except (CloudError, SettingsError) as e:
            return StepAction.abort(e)
        return CONTINUE


class DownloadFiles(PipelineStep[MaterializeContext]):
    name = "download_files"

    def should_execute(self, ctx: MaterializeContext) -> bool:
        return bool(ctx.missing)

    async def execute(self, ctx: MaterializeContext) -> StepAction:
        total = len(ctx.missing)
        emit(ctx.progress, ProgressEvent(EventKind.DOWNLOAD_STARTED, total_files=total))
        for number, member in enumerate(ctx.missing, start=1):
            if ctx.is_cancelled():
                return StepAction.abort(OperationCancelled("Download cancelled"))
            key = member.cloud_key
            target = ctx.settings.get_file_path(member.file_type, member.archive_file_name)
            partial = partial_path(target)
            try:
                ensure_dir(target.parent)
                await ctx.cloud_ops.download_file(key, partial, ctx.progress, ctx.cancel_event)
                ctx.fs.move_file(partial, target)
                verified = await asyncio.to_thread(
                    ctx.store.verify_blob, member.file_type, member.archive_file_name, member.sha1_checksum
                )
                if not verified:
                    ctx.store.remove_blob(member.file_type, member.archive_file_name, missing_ok=True)
                    raise FileIoError(f"Downloaded blob {key} does not match its checksum")
            except OperationCancelled as e:
                emit(ctx.progress, ProgressEvent(EventKind.SYNC_CANCELLED, key=key))
                return StepAction.abort(e)
            except (CollectionError, OSError) as e:
                logger.error("Failed to download %s: %s", key, e)
                ctx.download_results.append(FileDownloadResult(member.file_info_id, key, False, str(e)))
                emit(ctx.progress, ProgressEvent(EventKind.FILE_DOWNLOAD_FAILED, key=key, file_number=number,
                                                 total_files=total, error=str(e)))
                continue
            ctx.download_results.append(FileDownloadResult(member.file_info_id, key, True))
            emit(ctx.progress, ProgressEvent(EventKind.FILE_DOWNLOAD_COMPLETED, key=key, file_number=number,
                                             total_files=total))

        emit(ctx.progress, ProgressEvent(EventKind.DOWNLOAD_COMPLETED, total_files=total))
        failed = [r for r in ctx.download_results if not r.success]
        if failed:
            return StepAction.abort(CloudError(
                f"{len(failed)} of {total} download(s) failed: " + "; ".join(r.error for r in failed)
            ))
        return CONTINUE


class ExportFiles(PipelineStep[MaterializeContext]):
    name = "export_files"

    async def execute(self, ctx: MaterializeContext) -> StepAction:
        try:
            ctx.temp_dir.mkdir(parents=True, exist_ok=True)
            if ctx.extract_files or len(ctx.members) == 1:
                for member in ctx.members:
                    target = _safe_target(ctx.temp_dir, member.file_name)
                    await asyncio.to_thread(
                        ctx.store.export_blob,
                        member.file_type, member.archive_file_name, member.sha1_checksum, target,
                    )
                    ctx.output_files.append(member.file_name)
            else:
                zip_name = ctx.file_set.file_set_file_name
                if not zip_name.lower().endswith(".zip"):
                    zip_name += ".zip"
                target = _safe_target(ctx.temp_dir, zip_name)
                await asyncio.to_thread(
                    ctx.store.export_blobs_to_zip,
                    [(m.file_name, m.file_type, m.archive_file_name, m.sha1_checksum) for m in ctx.members],
                    target,
                )
                ctx.output_files.append(zip_name)
        except (CollectionError, OSError) as e:
            return StepAction.abort(e if isinstance(e, CollectionError) else FileIoError(str(e)))
        return CONTINUE


class PrepareThumbnails(PipelineStep[MaterializeContext]):
    name = "prepare_thumbnails"

    def should_execute(self, ctx: MaterializeContext) -> bool:
        return ctx.file_set is not None and ctx.file_set.file_type.is_image_type

    async def execute(self, ctx: MaterializeContext) -> StepAction:
        thumbnails_dir = ctx.settings.thumbnails_dir
        for member in ctx.members:
            destination = thumbnail_path(thumbnails_dir, member.archive_file_name)
            try:
                source = ctx.temp_dir / member.file_name
                if source.exists():
                    await asyncio.to_thread(ensure_thumbnail, source, destination)
                elif not destination.exists():
                    await asyncio.to_thread(self._thumbnail_from_blob, ctx, member, destination)
            except (OSError, FileIoError) as e:
                logger.warning("Failed to create thumbnail for %s: %s", member.file_name, e)
                continue
            ctx.thumbnails[member.file_name] = destination
        return CONTINUE

    @staticmethod
    def _thumbnail_from_blob(ctx: MaterializeContext, member: FileSetFileInfo, destination: Path) -> None:
        with tempfile.TemporaryDirectory() as scratch:
            image = Path(scratch) / Path(member.file_name).name
            ctx.store.export_blob(member.file_type, member.archive_file_name, member.sha1_checksum, image)
            ensure_thumbnail(image, destination)


def _entry_point(output_files: List[str], requested: Optional[str]) -> Optional[str]:
    if len(output_files) == 1:
        return output_files[0]
    if requested is not None and requested in output_files:
        return requested
    return None


class MaterializeService:

    def __init__(
        self,
        db,
        settings: Settings,
        settings_service: Optional[SettingsService] = None,
        fs: Optional[FileSystemOps] = None,
        cloud_ops: Optional[CloudStorageOps] = None,
        progress: Optional[ProgressSink] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ):
        self.db = db
        self.settings = settings
        self.settings_service = settings_service or SettingsService(db)
        self.fs = fs or StdFileSystemOps()
        self.store = ContentStore(settings.collection_root_dir, self.fs)
        self.cloud_ops = cloud_ops
        self.progress = progress
        self.cancel_event = cancel_event

    async def materialize(
        self,
        file_set_id: int,
        temp_dir: Path,
        extract_files: bool = True,
        file_name: Optional[str] = None,
    ) -> MaterializeResult:
        """Export a file set into temp_dir. file_name picks the entry point of multi-file sets."""
        ctx = MaterializeContext(
            file_set_id=file_set_id,
            extract_files=extract_files,
            temp_dir=Path(temp_dir),
            db=self.db,
            settings=self.settings,
            settings_service=self.settings_service,
            fs=self.fs,
            store=self.store,
            cloud_ops=self.cloud_ops,
            progress=self.progress,
            cancel_event=self.cancel_event,
        )
        pipeline = Pipeline([
            FetchFileSet(),
            FetchFileSetFileInfo(),
            PrepareForDownload(),
            ConnectToCloud(),
            DownloadFiles(),
            ExportFiles(),
            PrepareThumbnails(),
        ])
        await pipeline.execute(ctx)
        return MaterializeResult(
            file_set_id=file_set_id,
            temp_dir=ctx.temp_dir,
            output_files=ctx.output_files,
            entry_point=_entry_point(ctx.output_files, file_name),
            thumbnails=ctx.thumbnails,
            download_results=ctx.download_results,
        )
