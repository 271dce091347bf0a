#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
tqdm progress bars driven by pipeline progress events.
"""

from typing import Optional

from tqdm import tqdm

from ..models.events import EventKind, ProgressEvent

_START = {EventKind.SYNC_STARTED: "Uploading", EventKind.DOWNLOAD_STARTED: "Downloading"}
_FILE_DONE = {
    EventKind.FILE_UPLOAD_COMPLETED,
    EventKind.FILE_UPLOAD_FAILED,
    EventKind.FILE_DOWNLOAD_COMPLETED,
    EventKind.FILE_DOWNLOAD_FAILED,
}
_END = {EventKind.SYNC_COMPLETED, EventKind.SYNC_CANCELLED, EventKind.DOWNLOAD_COMPLETED}


class TqdmProgress:
    """Progress sink showing one bar per sync pass or download batch."""

    def __init__(self, disable: bool = False):
        self.disable = disable
        self.bar: Optional[tqdm] = None

    def __call__(self, event: ProgressEvent) -> None:
        if event.kind in _START:
            self.close()
            self.bar = tqdm(total=event.total_files, desc=_START[event.kind], unit="file", disable=self.disable)
        elif event.kind in _FILE_DONE and self.bar is not None:
            if event.error:
                self.bar.write(f"Failed: {event.key}: {event.error}")
            self.bar.update(1)
        elif event.kind in _END:
            self.close()

    def close(self) -> None:
        if self.bar is not None:
            self.bar.close()
            self.bar = None
