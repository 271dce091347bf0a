#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Timestamps for catalog rows.
"""

from datetime import datetime, timezone

# Layout of SQLite CURRENT_TIMESTAMP
SQLITE_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).strftime(SQLITE_TIMESTAMP_FORMAT)
