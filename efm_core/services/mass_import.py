#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Mass import pipeline: import every file of a directory, optionally guided by
a parsed DAT manifest.

With a DAT, the manifest is stored (once per DAT id and version) and each
game is matched against the catalog. Games without a file set are imported
from the input file holding all of their ROMs, named after the game and
with a release of the same name. Existing file sets not yet linked to the
DAT are linked, and get a release when they have none.

Without a DAT, every input file becomes its own file set unless a file set
with the same members already exists.

A failure on one game or file is recorded in the result and does not stop
the others.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from ..errors import CollectionError
from ..models.catalog import FileSetMatchSpec
from ..models.dat import DatFile, DatGame
from ..models.events import EventKind, ProgressEvent, ProgressSink, emit
from ..models.file_types import FileType, ItemType
from ..models.imports import CreateReleaseParams, FileImportPrepareResult, FileSetImportModel
from ..models.settings import Settings
from ..pipeline import CONTINUE, Pipeline, PipelineStep, StepAction
from ..storage import FileSystemOps, StdFileSystemOps
from ..utils.checksum import sha1_from_hex
from ..utils.title_normalizer import software_title_name
from .dat_matcher import DatGameStatus, DatGameStatusKind, DatGameStatusService
from .ingest import IngestService
from .prepare import PrepareService

logger = logging.getLogger(__name__)


@dataclass
class MassImportResult:
    dat_file_id: Optional[int] = None
    # file set name -> id of the file set created for it
    imported: Dict[str, int] = field(default_factory=dict)
    # game name -> id of the existing file set now linked to the DAT
    linked: Dict[str, int] = field(default_factory=dict)
    # game or file set name -> id of the file set that already covered it
    skipped_existing: Dict[str, int] = field(default_factory=dict)
    # game name -> names of ROMs not found in any input file
    missing_roms: Dict[str, List[str]] = field(default_factory=dict)
    # input path -> error while reading it
    failed_files: Dict[str, str] = field(default_factory=dict)
    # game or file set name -> error while matching, importing or linking it
    failed: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "dat_file_id": self.dat_file_id,
            "imported": dict(self.imported),
            "linked": dict(self.linked),
            "skipped_existing": dict(self.skipped_existing),
            "missing_roms": {k: list(v) for k, v in self.missing_roms.items()},
            "failed_files": dict(self.failed_files),
            "failed": dict(self.failed),
        }


@dataclass
class MassImportContext:
    source_dir: Path
    file_type: FileType
    system_id: int
    db: object
    fs: FileSystemOps
    prepare_service: PrepareService
    ingest_service: IngestService
    dat_file: Optional[DatFile] = None
    item_type: Optional[ItemType] = None
    progress: Optional[ProgressSink] = None
    source_files: List[Path] = field(default_factory=list)
    prepared: List[FileImportPrepareResult] = field(default_factory=list)
    statuses: List[DatGameStatus] = field(default_factory=list)
    import_models: List[FileSetImportModel] = field(default_factory=list)
    result: MassImportResult = field(default_factory=MassImportResult)

    @property
    def item_types(self) -> List[ItemType]:
        return [self.item_type] if self.item_type is not None else []


class StoreDatFile(PipelineStep[MassImportContext]):
    name = "store_dat_file"

    def should_execute(self, ctx: MassImportContext) -> bool:
        return ctx.dat_file is not None

    async def execute(self, ctx: MassImportContext) -> StepAction:
        header = ctx.dat_file.header
        try:
            dat_file_id = ctx.db.dats.find_dat_file_id(header.id, header.version)
            if dat_file_id is None:
                dat_file_id = ctx.db.dats.add_dat_file(ctx.dat_file, ctx.system_id)
                logger.info("Stored DAT %s as %d", header.source, dat_file_id)
        except CollectionError as e:
            return StepAction.abort(e)
        ctx.result.dat_file_id = dat_file_id
        return CONTINUE


class ReadFiles(PipelineStep[MassImportContext]):
    name = "read_files"

    async def execute(self, ctx: MassImportContext) -> StepAction:
        try:
            ctx.source_files = [p for p in ctx.fs.read_dir(ctx.source_dir) if not Path(p).is_dir()]
        except CollectionError as e:
            return StepAction.abort(e)
        logger.debug("Found %d file(s) in %s", len(ctx.source_files), ctx.source_dir)
        return CONTINUE


class ReadFileMetadata(PipelineStep[MassImportContext]):
    name = "read_file_metadata"

    async def execute(self, ctx: MassImportContext) -> StepAction:
        for path in ctx.source_files:
            try:
                ctx.prepared.append(await ctx.prepare_service.prepare_import(path, ctx.file_type))
            except CollectionError as e:
                logger.warning("Skipping %s: %s", path, e)
                ctx.result.failed_files[str(path)] = str(e)
        return CONTINUE


class FilterExistingFileSets(PipelineStep[MassImportContext]):
    name = "filter_existing_file_sets"

    def should_execute(self, ctx: MassImportContext) -> bool:
        return ctx.dat_file is not None

    async def execute(self, ctx: MassImportContext) -> StepAction:
        matcher = DatGameStatusService(ctx.db)
        for game in ctx.dat_file.games:
            try:
                status = matcher.get_status(game, ctx.file_type, ctx.dat_file.header, ctx.result.dat_file_id)
            except CollectionError as e:
                ctx.result.failed[game.name] = str(e)
                continue
            ctx.statuses.append(status)
            if status.status is DatGameStatusKind.EXISTING_LINKED_TO_THIS_DAT:
                ctx.result.skipped_existing[game.name] = status.file_set_id
        return CONTINUE


def _game_model(ctx: MassImportContext, game: DatGame) -> Optional[FileSetImportModel]:
    """Import request for a game whose ROMs all sit in one input file, else None."""
    rom_names: Dict[bytes, str] = OrderedDict()
    for rom in game.roms:
        rom_names[sha1_from_hex(rom.sha1)] = rom.name
    if not rom_names:
        ctx.result.failed[game.name] = "Game has no ROMs"
        return None

    source = next((p for p in ctx.prepared if all(sha1 in p.files for sha1 in rom_names)), None)
    if source is None:
        available = set()
        for prepared in ctx.prepared:
            available.update(prepared.files)
        missing = [name for sha1, name in rom_names.items() if sha1 not in available]
        if missing:
            ctx.result.missing_roms[game.name] = missing
        else:
            ctx.result.failed[game.name] = "ROMs are spread over several input files"
        return None

    return FileSetImportModel.from_prepare_result(
        source,
        selected_files=list(rom_names),
        file_set_name=game.name,
        file_set_file_name=game.name,
        system_ids=[ctx.system_id],
        source=ctx.dat_file.header.source,
        item_types=ctx.item_types,
        create_release=CreateReleaseParams(game.name),
        dat_file_id=ctx.result.dat_file_id,
        member_names=dict(rom_names),
    )


def _file_model(ctx: MassImportContext, prepared: FileImportPrepareResult) -> Optional[FileSetImportModel]:
    """Import request for one input file, or None when its file set already exists."""
    spec = FileSetMatchSpec(
        file_type=ctx.file_type,
        members=[(f.read_file.file_name, sha1) for sha1, f in prepared.files.items()],
        file_set_name=prepared.file_set_name,
    )
    existing = ctx.db.file_sets.find_matching_file_set(spec)
    if existing is not None:
        logger.info("File set %s already exists as %d, skipping %s",
                    prepared.file_set_name, existing, prepared.input_path)
        ctx.result.skipped_existing[prepared.file_set_name] = existing
        return None
    return FileSetImportModel.from_prepare_result(
        prepared,
        system_ids=[ctx.system_id],
        item_types=ctx.item_types,
    )


class CollectImportModels(PipelineStep[MassImportContext]):
    name = "collect_import_models"

    async def execute(self, ctx: MassImportContext) -> StepAction:
        if ctx.dat_file is not None:
            candidates = [s.game for s in ctx.statuses if s.status is DatGameStatusKind.NON_EXISTING]
            build, key = _game_model, (lambda game: game.name)
        else:
            candidates = ctx.prepared
            build, key = _file_model, (lambda prepared: prepared.file_set_name)
        for candidate in candidates:
            try:
                model = build(ctx, candidate)
            except CollectionError as e:
                ctx.result.failed[key(candidate)] = str(e)
                continue
            if model is not None:
                ctx.import_models.append(model)
        return CONTINUE


class ImportFileSets(PipelineStep[MassImportContext]):
    name = "import_file_sets"

    def should_execute(self, ctx: MassImportContext) -> bool:
        return bool(ctx.import_models)

    async def execute(self, ctx: MassImportContext) -> StepAction:
        total = len(ctx.import_models)
        emit(ctx.progress, ProgressEvent(EventKind.MASS_IMPORT_STARTED, total_files=total))
        for number, model in enumerate(ctx.import_models, start=1):
            name = model.file_set_name
            try:
                imported = await ctx.ingest_service.import_file_set(model)
            except CollectionError as e:
                logger.error("Failed to import %s from %s: %s", name, model.input_path, e)
                ctx.result.failed[name] = str(e)
                emit(ctx.progress, ProgressEvent(EventKind.FILE_SET_IMPORT_FAILED, key=name, file_number=number,
                                                 total_files=total, error=str(e)))
                continue
            ctx.result.imported[name] = imported.file_set_id
            emit(ctx.progress, ProgressEvent(EventKind.FILE_SET_IMPORTED, key=name, file_number=number,
                                             total_files=total))
        emit(ctx.progress, ProgressEvent(EventKind.MASS_IMPORT_COMPLETED, total_files=total))
        return CONTINUE


class LinkExistingFileSets(PipelineStep[MassImportContext]):
    name = "link_existing_file_sets"

    def should_execute(self, ctx: MassImportContext) -> bool:
        return any(s.status is DatGameStatusKind.EXISTING_UNLINKED_TO_THIS_DAT for s in ctx.statuses)

    async def execute(self, ctx: MassImportContext) -> StepAction:
        for status in ctx.statuses:
            if status.status is not DatGameStatusKind.EXISTING_UNLINKED_TO_THIS_DAT:
                continue
            game = status.game
            try:
                ctx.db.dats.link_file_set_to_dat(status.file_set_id, ctx.result.dat_file_id)
                if not ctx.db.file_sets.is_file_set_in_use(status.file_set_id):
                    ctx.db.releases.create_release_for_file_sets(
                        CreateReleaseParams(game.name, software_title_name(game.name)),
                        [status.file_set_id], [ctx.system_id],
                    )
            except CollectionError as e:
                logger.warning("Failed to link file set %d to DAT for %s: %s", status.file_set_id, game.name, e)
                ctx.result.failed[game.name] = str(e)
                continue
            ctx.result.linked[game.name] = status.file_set_id
        return CONTINUE


class MassImportService:

    def __init__(self, db, settings: Settings, fs: Optional[FileSystemOps] = None,
                 progress: Optional[ProgressSink] = None):
        self.db = db
        self.settings = settings
        self.fs = fs or StdFileSystemOps()
        self.progress = progress
        self.prepare_service = PrepareService(db, self.fs)
        self.ingest_service = IngestService(db, settings, self.fs)

    async def import_directory(
        self,
        source_dir: Path,
        file_type: FileType,
        system_id: int,
        dat_file: Optional[DatFile] = None,
        item_type: Optional[ItemType] = None,
    ) -> MassImportResult:
        ctx = MassImportContext(
            source_dir=Path(source_dir),
            file_type=file_type,
            system_id=system_id,
            db=self.db,
            fs=self.fs,
            prepare_service=self.prepare_service,
            ingest_service=self.ingest_service,
            dat_file=dat_file,
            item_type=item_type,
            progress=self.progress,
        )
        pipeline = Pipeline([
            StoreDatFile(),
            ReadFiles(),
            ReadFileMetadata(),
            FilterExistingFileSets(),
            CollectImportModels(),
            ImportFileSets(),
            LinkExistingFileSets(),
        ])
        await pipeline.execute(ctx)
        result = ctx.result
        logger.info("Mass import of %s: %d imported, %d linked, %d skipped, %d failed",
                    source_dir, len(result.imported), len(result.linked), len(result.skipped_existing),
                    len(result.failed) + len(result.failed_files))
        return result
