#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Key/value settings table.
"""

from typing import Dict, Mapping, Optional


class SettingRepository:

    def __init__(self, db):
        self.db = db

    def get_settings(self) -> Dict[str, str]:
        return {r["key"]: r["value"] for r in self.db.fetch_all("SELECT key, value FROM setting")}

    def get_setting(self, key: str) -> Optional[str]:
        row = self.db.fetch_one("SELECT value FROM setting WHERE key = ?", (key,))
        return row["value"] if row else None

    def add_or_update_setting(self, key: str, value: str) -> None:
        self.add_or_update_settings({key: value})

    def add_or_update_settings(self, values: Mapping[str, str]) -> None:
        with self.db.transaction() as conn:
            conn.executemany(
                """
                INSERT INTO setting (key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value
                """,
                list(values.items()),
            )

    def delete_setting(self, key: str) -> None:
        with self.db.transaction() as conn:
            conn.execute("DELETE FROM setting WHERE key = ?", (key,))
