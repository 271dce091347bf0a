#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Cloud sync command implementation.
"""

import asyncio
import logging
from dataclasses import asdict

from ..config import DEFAULT_SYNC_INTERVAL_SECONDS
from ..database.manager import DatabaseManager
from ..errors import CollectionError
from ..jsonio import error, success
from ..services.cloud_sync import CloudSyncService
from ..services.settings_service import SettingsService
from .progress import TqdmProgress

logger = logging.getLogger(__name__)


def cmd_sync(
    db_manager: DatabaseManager,
    watch: bool = False,
    interval: float = DEFAULT_SYNC_INTERVAL_SECONDS,
    as_json: bool = False,
) -> int:
    """Run one sync pass, or keep syncing every interval seconds with watch."""
    settings_service = SettingsService(db_manager)
    progress = TqdmProgress(disable=as_json)
    service = CloudSyncService(
        db_manager, settings_service.load_settings(), settings_service=settings_service, progress=progress
    )
    try:
        if watch:
            asyncio.run(service.run(interval))
            return 0
        result = asyncio.run(service.sync_to_cloud())
    except CollectionError as e:
        if as_json:
            return error("sync", str(e))
        logger.error("Cloud sync failed: %s", e)
        return 1
    finally:
        progress.close()

    if as_json:
        return success("sync", asdict(result))

    if not result.enabled:
        print("Cloud sync is disabled. Enable it with: settings --sync-enabled")
        return 0
    print(f"Marked {result.prepared} new file(s); uploaded {result.uploaded}, failed {result.failed}")
    return 1 if result.failed else 0
