#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Tests for matching DAT games against stored file sets.
"""

import pytest

from efm_core.errors import ParseError
from efm_core.models.dat import DatFile, DatGame, DatHeader, DatRom
from efm_core.models.file_types import FileType
from efm_core.services.dat_matcher import DatGameStatusKind, DatGameStatusService, build_match_spec
from efm_core.tests.fixtures.catalog_setup import CatalogFixture, import_path, sha1_of, write_file, write_zip

BIOS = bytes(range(256)) * 32
BIOS_NAME = "[BIOS] ColecoVision (USA, Europe)"


def coleco_dat(*games):
    header = DatHeader(id=3, name="Coleco - ColecoVision", version="20240101-000000",
                       description="Coleco - ColecoVision")
    return DatFile(header=header, games=list(games))


def bios_game(rom_name="[BIOS] ColecoVision (USA, Europe).col", data=BIOS):
    return DatGame(
        name=BIOS_NAME,
        description=BIOS_NAME,
        roms=[DatRom(name=rom_name, size=len(data), crc="3aa93ef3", sha1=sha1_of(data).hex())],
    )


class TestDatMatcher(CatalogFixture):

    @pytest.fixture
    def dat_file_id(self, test_db, system_id):
        return test_db.dats.add_dat_file(coleco_dat(bios_game()), system_id)

    def test_linked_game(self, test_db, settings, inputs, system_id, dat_file_id):
        dat = test_db.dats.get_dat_file(dat_file_id)
        path = write_file(inputs / "[BIOS] ColecoVision (USA, Europe).col", BIOS)
        file_set_id = import_path(test_db, settings, path, system_ids=[system_id], dat_file_id=dat_file_id,
                                  source=dat.header.source).file_set_id

        status = DatGameStatusService(test_db).get_status(dat.games[0], FileType.ROM, dat.header, dat_file_id)

        assert status.status is DatGameStatusKind.EXISTING_LINKED_TO_THIS_DAT
        assert status.file_set_id == file_set_id
        assert test_db.file_sets.get_file_set(file_set_id).source == "Coleco - ColecoVision 20240101-000000"

    def test_unlinked_game(self, test_db, settings, inputs, system_id, dat_file_id):
        dat = test_db.dats.get_dat_file(dat_file_id)
        zip_path = write_zip(inputs / "bios.zip", {"[BIOS] ColecoVision (USA, Europe).col": BIOS})
        file_set_id = import_path(test_db, settings, zip_path, system_ids=[system_id]).file_set_id

        status = DatGameStatusService(test_db).get_status(dat.games[0], FileType.ROM, dat.header, dat_file_id)

        assert status.status is DatGameStatusKind.EXISTING_UNLINKED_TO_THIS_DAT
        assert status.file_set_id == file_set_id

    def test_non_existing_game(self, test_db, settings, inputs, system_id, dat_file_id):
        dat = test_db.dats.get_dat_file(dat_file_id)
        # same content under another name is not the same file set
        import_path(test_db, settings, write_file(inputs / "coleco.rom", BIOS), system_ids=[system_id])

        statuses = DatGameStatusService(test_db).get_statuses(dat, FileType.ROM, dat_file_id)

        assert [s.status for s in statuses] == [DatGameStatusKind.NON_EXISTING]
        assert statuses[0].file_set_id is None

    def test_other_file_type_does_not_match(self, test_db, settings, inputs, system_id, dat_file_id):
        dat = test_db.dats.get_dat_file(dat_file_id)
        path = write_file(inputs / "[BIOS] ColecoVision (USA, Europe).col", BIOS)
        import_path(test_db, settings, path, FileType.DISK_IMAGE, system_ids=[system_id])
        status = DatGameStatusService(test_db).get_status(dat.games[0], FileType.ROM, dat.header, dat_file_id)
        assert status.status is DatGameStatusKind.NON_EXISTING

    def test_rom_without_sha1(self):
        game = DatGame(name="Broken", roms=[DatRom(name="broken.rom", size=1, sha1="")])
        with pytest.raises(ParseError):
            build_match_spec(game, FileType.ROM, coleco_dat().header)

    def test_match_spec_carries_dat_source(self):
        spec = build_match_spec(bios_game(), FileType.ROM, coleco_dat().header)
        assert spec.file_set_name == BIOS_NAME
        assert spec.source == "Coleco - ColecoVision 20240101-000000"
        assert spec.members == [("[BIOS] ColecoVision (USA, Europe).col", sha1_of(BIOS))]
