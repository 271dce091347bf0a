#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Match DAT games against stored file sets.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from ..errors import ParseError
from ..models.catalog import FileSetMatchSpec
from ..models.dat import DatFile, DatGame, DatHeader
from ..models.file_types import FileType
from ..utils.checksum import sha1_from_hex

logger = logging.getLogger(__name__)


class DatGameStatusKind(Enum):
    NON_EXISTING = "non_existing"
    EXISTING_LINKED_TO_THIS_DAT = "existing_linked_to_this_dat"
    EXISTING_UNLINKED_TO_THIS_DAT = "existing_unlinked_to_this_dat"


@dataclass
class DatGameStatus:
    game: DatGame
    status: DatGameStatusKind
    file_set_id: Optional[int] = None


def build_match_spec(game: DatGame, file_type: FileType, header: DatHeader) -> FileSetMatchSpec:
    members = []
    for rom in game.roms:
        if not rom.sha1:
            raise ParseError(f"ROM '{rom.name}' of game '{game.name}' has no SHA-1")
        members.append((rom.name, sha1_from_hex(rom.sha1)))
    return FileSetMatchSpec(file_type=file_type, members=members, file_set_name=game.name, source=header.source)


class DatGameStatusService:

    def __init__(self, db):
        self.db = db

    def get_status(self, game: DatGame, file_type: FileType, header: DatHeader,
                   dat_file_id: int) -> DatGameStatus:
        spec = build_match_spec(game, file_type, header)
        file_set_id = self.db.file_sets.find_matching_file_set(spec)
        if file_set_id is None:
            return DatGameStatus(game, DatGameStatusKind.NON_EXISTING)
        if dat_file_id in self.db.dats.get_dat_files_for_file_set(file_set_id):
            return DatGameStatus(game, DatGameStatusKind.EXISTING_LINKED_TO_THIS_DAT, file_set_id)
        return DatGameStatus(game, DatGameStatusKind.EXISTING_UNLINKED_TO_THIS_DAT, file_set_id)

    def get_statuses(self, dat_file: DatFile, file_type: FileType, dat_file_id: int) -> List[DatGameStatus]:
        statuses = [self.get_status(g, file_type, dat_file.header, dat_file_id) for g in dat_file.games]
        logger.debug("Matched %d game(s) of %s", len(statuses), dat_file.header.source)
        return statuses
