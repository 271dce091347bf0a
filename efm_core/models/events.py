#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Progress events emitted by the sync engine, the download steps and mass import.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class EventKind(Enum):
    SYNC_STARTED = "sync_started"
    FILE_UPLOAD_STARTED = "file_upload_started"
    PART_UPLOADED = "part_uploaded"
    PART_UPLOAD_FAILED = "part_upload_failed"
    FILE_UPLOAD_COMPLETED = "file_upload_completed"
    FILE_UPLOAD_FAILED = "file_upload_failed"
    SYNC_COMPLETED = "sync_completed"
    SYNC_CANCELLED = "sync_cancelled"
    DOWNLOAD_STARTED = "download_started"
    FILE_DOWNLOAD_STARTED = "file_download_started"
    FILE_DOWNLOAD_PROGRESS = "file_download_progress"
    FILE_DOWNLOAD_COMPLETED = "file_download_completed"
    FILE_DOWNLOAD_FAILED = "file_download_failed"
    DOWNLOAD_COMPLETED = "download_completed"
    MASS_IMPORT_STARTED = "mass_import_started"
    FILE_SET_IMPORTED = "file_set_imported"
    FILE_SET_IMPORT_FAILED = "file_set_import_failed"
    MASS_IMPORT_COMPLETED = "mass_import_completed"


@dataclass
class ProgressEvent:
    kind: EventKind
    key: str = ""
    file_number: int = 0
    total_files: int = 0
    part: int = 0
    bytes_done: int = 0
    total_bytes: Optional[int] = None
    error: str = ""


ProgressSink = Callable[[ProgressEvent], None]


def emit(sink: Optional[ProgressSink], event: ProgressEvent) -> None:
    """Deliver an event; a failing sink never interrupts the operation."""
    if sink is None:
        return
    try:
        sink(event)
    except Exception as e:
        logger.warning("Progress sink failed for %s: %s", event.kind.value, e)
