#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Software titles: canonical names shared by regional releases.
"""

import sqlite3
from typing import List, Optional, Sequence

from ...errors import InUseError, NotFoundError
from ...models.catalog import SoftwareTitle


def insert_software_title(conn: sqlite3.Connection, name: str, franchise_id: Optional[int] = None) -> int:
    return conn.execute(
        "INSERT INTO software_title (name, franchise_id) VALUES (?, ?)", (name, franchise_id)
    ).lastrowid


class SoftwareTitleRepository:

    def __init__(self, db):
        self.db = db

    def add_software_title(self, name: str, franchise_id: Optional[int] = None) -> int:
        with self.db.transaction() as conn:
            return insert_software_title(conn, name, franchise_id)

    def get_software_title(self, software_title_id: int) -> SoftwareTitle:
        row = self.db.fetch_one(
            "SELECT id, name, franchise_id FROM software_title WHERE id = ?", (software_title_id,)
        )
        if row is None:
            raise NotFoundError(f"Software title {software_title_id} not found")
        return SoftwareTitle(id=row["id"], name=row["name"], franchise_id=row["franchise_id"])

    def get_software_titles(self) -> List[SoftwareTitle]:
        rows = self.db.fetch_all("SELECT id, name, franchise_id FROM software_title ORDER BY name, id")
        return [SoftwareTitle(id=r["id"], name=r["name"], franchise_id=r["franchise_id"]) for r in rows]

    def update_software_title(self, software_title_id: int, name: str, franchise_id: Optional[int] = None) -> None:
        with self.db.transaction() as conn:
            updated = conn.execute(
                "UPDATE software_title SET name = ?, franchise_id = ? WHERE id = ?",
                (name, franchise_id, software_title_id),
            ).rowcount
        if updated == 0:
            raise NotFoundError(f"Software title {software_title_id} not found")

    def delete_software_title(self, software_title_id: int) -> None:
        row = self.db.fetch_one(
            "SELECT COUNT(*) FROM release_software_title WHERE software_title_id = ?", (software_title_id,)
        )
        if row[0] > 0:
            raise InUseError(f"Software title {software_title_id} is used by {row[0]} release(s)")
        with self.db.transaction() as conn:
            conn.execute("DELETE FROM software_title WHERE id = ?", (software_title_id,))

    def merge_software_titles(self, target_id: int, merged_ids: Sequence[int]) -> None:
        """Move every release of merged_ids onto target_id and delete the merged titles."""
        sources = [i for i in merged_ids if i != target_id]
        with self.db.transaction() as conn:
            if conn.execute("SELECT 1 FROM software_title WHERE id = ?", (target_id,)).fetchone() is None:
                raise NotFoundError(f"Software title {target_id} not found")
            for source_id in sources:
                conn.execute(
                    """
                    INSERT OR IGNORE INTO release_software_title (release_id, software_title_id)
                    SELECT release_id, ? FROM release_software_title WHERE software_title_id = ?
                    """,
                    (target_id, source_id),
                )
                conn.execute("DELETE FROM software_title WHERE id = ?", (source_id,))
