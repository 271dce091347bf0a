#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Systems (platforms) that releases and file sets belong to.
"""

from typing import List

from ...errors import InUseError, NotFoundError
from ...models.catalog import System


class SystemRepository:

    def __init__(self, db):
        self.db = db

    def add_system(self, name: str) -> int:
        with self.db.transaction() as conn:
            return conn.execute("INSERT INTO system (name) VALUES (?)", (name,)).lastrowid

    def get_system(self, system_id: int) -> System:
        row = self.db.fetch_one("SELECT id, name FROM system WHERE id = ?", (system_id,))
        if row is None:
            raise NotFoundError(f"System {system_id} not found")
        return System(id=row["id"], name=row["name"])

    def get_systems(self) -> List[System]:
        return [System(id=r["id"], name=r["name"]) for r in self.db.fetch_all("SELECT id, name FROM system ORDER BY name")]

    def is_system_in_use(self, system_id: int) -> bool:
        row = self.db.fetch_one(
            """
            SELECT
                (SELECT COUNT(*) FROM release_system WHERE system_id = ?)
              + (SELECT COUNT(*) FROM file_set_system WHERE system_id = ?)
            """,
            (system_id, system_id),
        )
        return row[0] > 0

    def delete_system(self, system_id: int) -> None:
        if self.is_system_in_use(system_id):
            raise InUseError(f"System {system_id} is still referenced")
        with self.db.transaction() as conn:
            conn.execute("DELETE FROM system WHERE id = ?", (system_id,))
