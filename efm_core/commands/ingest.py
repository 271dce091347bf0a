#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Prepare and import command implementations.
"""

import asyncio
import logging
from pathlib import Path
from typing import List, Optional, Sequence

from ..database.manager import DatabaseManager
from ..errors import CollectionError
from ..jsonio import error, success
from ..models.file_types import FileType, ItemType
from ..models.imports import CreateReleaseParams, FileSetImportModel
from ..services.ingest import IngestService
from ..services.prepare import PrepareService
from ..services.settings_service import SettingsService
from ..utils.format import format_bytes

logger = logging.getLogger(__name__)


def cmd_prepare(db_manager: DatabaseManager, input_path: Path, file_type: FileType, as_json: bool = False) -> int:
    """Show which entries of a file (or of every file in a directory) are new."""
    service = PrepareService(db_manager)
    try:
        if input_path.is_dir():
            results = asyncio.run(service.prepare_directory(input_path, file_type))
        else:
            results = [asyncio.run(service.prepare_import(input_path, file_type))]
    except CollectionError as e:
        if as_json:
            return error("prepare", str(e))
        logger.error("Prepare failed: %s", e)
        return 1

    if as_json:
        return success("prepare", {"results": [r.to_dict() for r in results]})

    for result in results:
        print(f"{result.file_set_file_name} ({'zip' if result.is_zip_archive else 'file'}, {file_type.dir_name})")
        for prepared in result.files.values():
            state = "new" if prepared.is_new else f"existing ({prepared.existing_file.archive_file_name})"
            print(f"  {prepared.read_file.file_name:<40} {format_bytes(prepared.read_file.file_size):>10}  {state}")
    return 0


def cmd_import(
    db_manager: DatabaseManager,
    input_path: Path,
    file_type: FileType,
    system_ids: Sequence[int] = (),
    source: str = "",
    file_set_name: Optional[str] = None,
    release_name: Optional[str] = None,
    software_title_name: str = "",
    item_ids: Sequence[int] = (),
    item_types: Sequence[ItemType] = (),
    dat_file_id: Optional[int] = None,
    only_files: Optional[List[str]] = None,
    as_json: bool = False,
) -> int:
    """Prepare and import one input file as a new file set."""
    settings = SettingsService(db_manager).load_settings()

    async def run():
        prepared = await PrepareService(db_manager).prepare_import(input_path, file_type)
        selected = None
        if only_files:
            selected = [sha1 for sha1, f in prepared.files.items() if f.read_file.file_name in only_files]
        overrides = {}
        if file_set_name:
            overrides["file_set_name"] = file_set_name
        model = FileSetImportModel.from_prepare_result(
            prepared,
            selected_files=selected,
            system_ids=list(system_ids),
            source=source,
            item_ids=list(item_ids),
            item_types=list(item_types),
            create_release=CreateReleaseParams(release_name, software_title_name) if release_name else None,
            dat_file_id=dat_file_id,
            **overrides,
        )
        return await IngestService(db_manager, settings).import_file_set(model)

    try:
        result = asyncio.run(run())
    except CollectionError as e:
        if as_json:
            return error("import", str(e))
        logger.error("Import failed: %s", e)
        return 1

    data = {
        "file_set_id": result.file_set_id,
        "release_id": result.release_id,
        "imported_new_files": [sha1.hex() for sha1 in result.imported_new_files],
        "failed_steps": result.failed_steps,
    }
    if as_json:
        return success("import", data)

    print(f"Imported file set {result.file_set_id} with {len(result.imported_new_files)} new file(s)")
    if result.release_id is not None:
        print(f"Created release {result.release_id}")
    for step, message in result.failed_steps.items():
        print(f"  Warning: {step} failed: {message}")
    return 0
