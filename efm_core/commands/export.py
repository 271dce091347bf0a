#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Export (materialize) command implementation.
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional

from ..database.manager import DatabaseManager
from ..errors import CollectionError
from ..jsonio import error, success
from ..services.materialize import MaterializeService
from ..services.settings_service import SettingsService
from .progress import TqdmProgress

logger = logging.getLogger(__name__)


def cmd_export(
    db_manager: DatabaseManager,
    file_set_id: int,
    out_dir: Path,
    extract_files: bool = True,
    file_name: Optional[str] = None,
    as_json: bool = False,
) -> int:
    """Materialize a file set into out_dir, downloading missing blobs first."""
    settings_service = SettingsService(db_manager)
    progress = TqdmProgress(disable=as_json)
    service = MaterializeService(
        db_manager, settings_service.load_settings(), settings_service=settings_service, progress=progress
    )
    try:
        result = asyncio.run(service.materialize(file_set_id, out_dir, extract_files, file_name))
    except CollectionError as e:
        if as_json:
            return error("export", str(e))
        logger.error("Export of file set %d failed: %s", file_set_id, e)
        return 1
    finally:
        progress.close()

    data = {
        "file_set_id": file_set_id,
        "directory": str(result.temp_dir),
        "output_files": result.output_files,
        "entry_point": result.entry_point,
        "thumbnails": {name: str(path) for name, path in result.thumbnails.items()},
        "downloaded": [r.cloud_key for r in result.download_results if r.success],
    }
    if as_json:
        return success("export", data)

    print(f"Exported {len(result.output_files)} file(s) to {result.temp_dir}")
    for name in result.output_files:
        marker = " *" if name == result.entry_point else ""
        print(f"  {name}{marker}")
    return 0
