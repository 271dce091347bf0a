#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
File set deletion command implementation.
"""

import asyncio
import logging

from ..database.manager import DatabaseManager
from ..errors import CollectionError
from ..jsonio import error, success
from ..services.deletion import DeletionService
from ..services.settings_service import SettingsService

logger = logging.getLogger(__name__)


def cmd_delete_file_set(db_manager: DatabaseManager, file_set_id: int, as_json: bool = False) -> int:
    settings = SettingsService(db_manager).load_settings()
    try:
        results = asyncio.run(DeletionService(db_manager, settings).delete_file_set(file_set_id))
    except CollectionError as e:
        if as_json:
            return error("delete-file-set", str(e))
        logger.error("Failed to delete file set %d: %s", file_set_id, e)
        return 1

    errors = [m for r in results for m in r.error_messages]
    if as_json:
        return success("delete-file-set", {
            "file_set_id": file_set_id,
            "files": [r.to_dict() for r in results],
            "partial": bool(errors),
        })

    print(f"Deleted file set {file_set_id}")
    for r in results:
        if not r.is_deletable:
            state = "kept (shared)"
        elif r.file_deletion_success:
            state = "removed" + (", cloud copy marked for deletion" if r.cloud_delete_marked else "")
        else:
            state = "FAILED: " + "; ".join(r.error_messages)
        print(f"  {r.file_info.archive_file_name}: {state}")
    return 0
