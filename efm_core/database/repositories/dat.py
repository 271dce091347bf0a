#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Stored DAT manifests and their links to file sets.
"""

from typing import List, Optional

from ...errors import NotFoundError
from ...models.dat import DatFile, DatGame, DatHeader, DatRom


class DatRepository:

    def __init__(self, db):
        self.db = db

    def add_dat_file(self, dat_file: DatFile, system_id: Optional[int] = None) -> int:
        """Store header, games and ROMs verbatim in one transaction."""
        header = dat_file.header
        with self.db.transaction() as conn:
            dat_file_id = conn.execute(
                """
                INSERT INTO dat_file (dat_id, name, description, version, date, author, homepage, url, subset, system_id)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (header.id, header.name, header.description, header.version, header.date, header.author,
                 header.homepage, header.url, header.subset, system_id),
            ).lastrowid
            for game in dat_file.games:
                game_id = conn.execute(
                    """
                    INSERT INTO dat_game (dat_file_id, name, game_id, description, cloneof, cloneofid)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (dat_file_id, game.name, game.id, game.description, game.cloneof, game.cloneofid),
                ).lastrowid
                conn.executemany(
                    """
                    INSERT INTO dat_rom (dat_game_id, name, size, crc, md5, sha1, sha256, status, serial, header)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    [(game_id, r.name, r.size, r.crc, r.md5, r.sha1, r.sha256, r.status, r.serial, r.header)
                     for r in game.roms],
                )
        return dat_file_id

    def find_dat_file_id(self, dat_id: int, version: str) -> Optional[int]:
        row = self.db.fetch_one(
            "SELECT id FROM dat_file WHERE dat_id = ? AND version = ? ORDER BY id LIMIT 1", (dat_id, version)
        )
        return row[0] if row else None

    def get_dat_file(self, dat_file_id: int) -> DatFile:
        row = self.db.fetch_one(
            """
            SELECT dat_id, name, description, version, date, author, homepage, url, subset
            FROM dat_file WHERE id = ?
            """,
            (dat_file_id,),
        )
        if row is None:
            raise NotFoundError(f"DAT file {dat_file_id} not found")
        header = DatHeader(
            id=row["dat_id"], name=row["name"], version=row["version"], description=row["description"],
            author=row["author"], date=row["date"], homepage=row["homepage"], url=row["url"], subset=row["subset"],
        )
        games = []
        for g in self.db.fetch_all(
            "SELECT id, name, game_id, description, cloneof, cloneofid FROM dat_game WHERE dat_file_id = ? ORDER BY id",
            (dat_file_id,),
        ):
            roms = [
                DatRom(name=r["name"], size=r["size"], sha1=r["sha1"], crc=r["crc"], md5=r["md5"],
                       sha256=r["sha256"], status=r["status"], serial=r["serial"], header=r["header"])
                for r in self.db.fetch_all(
                    """
                    SELECT name, size, crc, md5, sha1, sha256, status, serial, header
                    FROM dat_rom WHERE dat_game_id = ? ORDER BY id
                    """,
                    (g["id"],),
                )
            ]
            games.append(DatGame(name=g["name"], description=g["description"], id=g["game_id"],
                                 cloneof=g["cloneof"], cloneofid=g["cloneofid"], roms=roms))
        return DatFile(header=header, games=games)

    def link_file_set_to_dat(self, file_set_id: int, dat_file_id: int) -> None:
        """Idempotent: linking twice leaves a single row."""
        with self.db.transaction() as conn:
            conn.execute(
                "INSERT OR IGNORE INTO file_set_dat_file_link (file_set_id, dat_file_id) VALUES (?, ?)",
                (file_set_id, dat_file_id),
            )

    def get_dat_files_for_file_set(self, file_set_id: int) -> List[int]:
        rows = self.db.fetch_all(
            "SELECT dat_file_id FROM file_set_dat_file_link WHERE file_set_id = ? ORDER BY dat_file_id",
            (file_set_id,),
        )
        return [r[0] for r in rows]
