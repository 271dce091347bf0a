#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Physical items of a release (disks, manuals, boxes...) and the file sets documenting them.
"""

from typing import List, Optional

from ...models.catalog import ReleaseItem
from ...models.file_types import ItemType


class ReleaseItemRepository:

    def __init__(self, db):
        self.db = db

    def add_item(self, release_id: int, item_type: ItemType, notes: Optional[str] = None) -> int:
        with self.db.transaction() as conn:
            return conn.execute(
                "INSERT INTO release_item (release_id, item_type, notes) VALUES (?, ?, ?)",
                (release_id, int(item_type), notes),
            ).lastrowid

    def get_items_for_release(self, release_id: int) -> List[ReleaseItem]:
        rows = self.db.fetch_all(
            "SELECT id, release_id, item_type, notes FROM release_item WHERE release_id = ? ORDER BY id",
            (release_id,),
        )
        return [
            ReleaseItem(id=r["id"], release_id=r["release_id"], item_type=ItemType(r["item_type"]), notes=r["notes"])
            for r in rows
        ]

    def get_file_set_ids_for_item(self, item_id: int) -> List[int]:
        rows = self.db.fetch_all(
            "SELECT file_set_id FROM release_item_file_set WHERE release_item_id = ? ORDER BY file_set_id",
            (item_id,),
        )
        return [r[0] for r in rows]

    def delete_item(self, item_id: int) -> None:
        with self.db.transaction() as conn:
            conn.execute("DELETE FROM release_item WHERE id = ?", (item_id,))
