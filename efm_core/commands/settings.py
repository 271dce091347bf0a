#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Settings and credential command implementations.
"""

import logging
from pathlib import Path
from typing import Optional

from ..database.manager import DatabaseManager
from ..errors import CollectionError
from ..jsonio import error, success
from ..models.settings import SettingsSaveModel
from ..services.settings_service import SettingsService

logger = logging.getLogger(__name__)


def _settings_dict(service: SettingsService) -> dict:
    settings = service.load_settings()
    return {
        "collection_root_dir": str(settings.collection_root_dir),
        "s3_endpoint": settings.s3_endpoint,
        "s3_region": settings.s3_region,
        "s3_bucket": settings.s3_bucket,
        "s3_file_sync_enabled": settings.s3_file_sync_enabled,
        "has_credentials": service.has_credentials(),
    }


def cmd_settings(
    db_manager: DatabaseManager,
    collection_root: Optional[Path] = None,
    endpoint: Optional[str] = None,
    region: Optional[str] = None,
    bucket: Optional[str] = None,
    sync_enabled: Optional[bool] = None,
    access_key_id: str = "",
    secret_access_key: str = "",
    delete_credentials: bool = False,
    as_json: bool = False,
) -> int:
    """Show settings; update the given ones first when any are passed."""
    service = SettingsService(db_manager)
    try:
        changes = (collection_root, endpoint, region, bucket, sync_enabled)
        if any(v is not None for v in changes) or (access_key_id and secret_access_key):
            current = service.load_settings()
            service.save_settings(SettingsSaveModel(
                endpoint=current.s3_endpoint if endpoint is None else endpoint,
                region=current.s3_region if region is None else region,
                bucket=current.s3_bucket if bucket is None else bucket,
                sync_enabled=current.s3_file_sync_enabled if sync_enabled is None else sync_enabled,
                access_key_id=access_key_id,
                secret_access_key=secret_access_key,
                collection_root_dir=collection_root,
            ))
        if delete_credentials:
            service.delete_credentials()
        data = _settings_dict(service)
    except CollectionError as e:
        if as_json:
            return error("settings", str(e))
        logger.error("Settings update failed: %s", e)
        return 1

    if as_json:
        return success("settings", data)
    for key, value in data.items():
        print(f"{key:<22} {value}")
    return 0
