#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
In-memory object store used by tests and dry runs.
"""

import asyncio
from pathlib import Path
from typing import Dict, List, Optional, Set

from ..errors import CloudError, OperationCancelled
from ..models.events import EventKind, ProgressEvent, ProgressSink, emit
from .ops import CloudStorageOps


class MockCloudStorage(CloudStorageOps):

    def __init__(self, objects: Optional[Dict[str, bytes]] = None):
        self.objects: Dict[str, bytes] = dict(objects or {})
        self.uploaded: List[str] = []
        self.downloaded: List[str] = []
        self.fail_upload_keys: Set[str] = set()
        self.fail_download_keys: Set[str] = set()

    async def upload_file(self, file_path: Path, cloud_key: str, progress: Optional[ProgressSink] = None) -> None:
        if cloud_key in self.fail_upload_keys:
            emit(progress, ProgressEvent(EventKind.PART_UPLOAD_FAILED, key=cloud_key, part=1, error="mock failure"))
            raise CloudError(f"Upload of {cloud_key} failed: mock failure")
        data = Path(file_path).read_bytes()
        self.objects[cloud_key] = data
        self.uploaded.append(cloud_key)
        emit(progress, ProgressEvent(EventKind.PART_UPLOADED, key=cloud_key, part=1, bytes_done=len(data)))

    async def download_file(
        self,
        cloud_key: str,
        destination: Path,
        progress: Optional[ProgressSink] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> int:
        if cancel_event is not None and cancel_event.is_set():
            raise OperationCancelled(f"Download of {cloud_key} cancelled")
        if cloud_key in self.fail_download_keys or cloud_key not in self.objects:
            raise CloudError(f"Failed to fetch {cloud_key}")
        data = self.objects[cloud_key]
        Path(destination).write_bytes(data)
        self.downloaded.append(cloud_key)
        emit(progress, ProgressEvent(EventKind.FILE_DOWNLOAD_PROGRESS, key=cloud_key, bytes_done=len(data),
                                     total_bytes=len(data)))
        return len(data)

    async def file_exists(self, cloud_key: str) -> bool:
        return cloud_key in self.objects
