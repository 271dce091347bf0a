#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Statistics command implementation.

- Uses Python logging for the human readable report.
- as_json=True writes a single JSON object to stdout instead.
"""

import json
import logging
import sys
from typing import Any, Dict

from ..database.manager import DatabaseManager
from ..models.file_types import FileType
from ..utils.format import format_bytes


def cmd_show_stats(
    db_manager: DatabaseManager,
    detailed: bool = False,
    as_json: bool = False,
) -> Dict[str, Any]:
    """Show catalog statistics.

    Args:
        db_manager: DatabaseManager instance.
        detailed: If True, include per-file-type breakdown.
        as_json: If True, emit a single JSON object to stdout instead of logs.

    Returns:
        A dict of computed statistics (returned regardless of output mode).
    """
    logger = logging.getLogger(__name__)

    def count(table: str) -> int:
        return int(db_manager.fetch_one(f"SELECT COUNT(*) FROM {table}")[0])

    results: Dict[str, Any] = {
        "counts": {
            "systems": count("system"),
            "software_titles": count("software_title"),
            "releases": count("release"),
            "file_sets": count("file_set"),
            "file_infos": db_manager.file_infos.count_file_infos(),
            "dat_files": count("dat_file"),
        },
        "storage": {
            "total_bytes": db_manager.file_infos.total_file_size(),
        },
        "sync_status": db_manager.sync_logs.count_by_latest_status(),
    }

    if detailed or as_json:
        type_rows = db_manager.fetch_all(
            """
            SELECT file_type, COUNT(*) AS files, COALESCE(SUM(file_size), 0) AS bytes
            FROM file_info
            GROUP BY file_type
            ORDER BY file_type
            """
        )
        results["types"] = {
            FileType(row["file_type"]).dir_name: {"files": int(row["files"]), "bytes": int(row["bytes"])}
            for row in type_rows
        }

    if as_json:
        sys.stdout.write(json.dumps(results, indent=2, ensure_ascii=False))
        sys.stdout.write("\n")
    else:
        logger.info("=== Collection Statistics ===")
        for name, value in results["counts"].items():
            logger.info("%s: %s", name.replace("_", " ").capitalize(), f"{value:,}")
        logger.info("Stored content: %s", format_bytes(results["storage"]["total_bytes"]))

        logger.info("Cloud sync status:")
        if results["sync_status"]:
            for status, n in results["sync_status"].items():
                logger.info("  %s: %s", status, f"{n:,}")
        else:
            logger.info("  (none)")

        if detailed:
            logger.info("=== Detailed Breakdown ===")
            for dir_name, entry in results.get("types", {}).items():
                logger.info("  %s: %s files, %s", dir_name, f"{entry['files']:,}", format_bytes(entry["bytes"]))

    return results
