#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Tests for the prepare and ingest pipelines against a real catalog and store.
"""

import asyncio
from pathlib import Path
from unittest.mock import patch

import pytest

from efm_core.errors import ArchiveReadError, CatalogError, FileImportError, FileIoError
from efm_core.models.file_types import FileType, ItemType
from efm_core.models.imports import CreateReleaseParams, FileSetImportModel
from efm_core.services.deletion import DeletionService
from efm_core.services.ingest import IngestService
from efm_core.services.prepare import PrepareService
from efm_core.storage import MockFileSystemOps
from efm_core.tests.fixtures.catalog_setup import (
    ONE_BYTE_255_SHA1, CatalogFixture, blob_files, import_path, sha1_of, write_file, write_zip,
)


class TestPrepare(CatalogFixture):

    def test_single_file_is_new(self, test_db, inputs):
        path = write_file(inputs / "one_byte_255.bin", b"\xff")
        result = asyncio.run(PrepareService(test_db).prepare_import(path, FileType.ROM))
        assert result.file_set_name == "one_byte_255"
        assert result.file_set_file_name == "one_byte_255.bin"
        assert result.is_zip_archive is False
        assert len(result.new_files) == 1 and result.existing_files == []
        assert result.new_files[0].read_file.sha1_checksum.hex() == ONE_BYTE_255_SHA1

    def test_zip_detected_by_content_not_extension(self, test_db, inputs):
        path = write_zip(inputs / "game.dat", {"a.rom": b"a"})
        result = asyncio.run(PrepareService(test_db).prepare_import(path, FileType.ROM))
        assert result.is_zip_archive is True
        assert [f.read_file.file_name for f in result.files.values()] == ["a.rom"]

    def test_duplicate_content_inside_zip_collapses(self, test_db, inputs):
        path = write_zip(inputs / "dups.zip", {"a.rom": b"same", "b.rom": b"same", "c.rom": b"other"})
        result = asyncio.run(PrepareService(test_db).prepare_import(path, FileType.ROM))
        assert len(result.files) == 2
        assert result.files[sha1_of(b"same")].read_file.file_name == "a.rom"

    def test_existing_files_are_reported(self, test_db, settings, inputs, system_id):
        import_path(test_db, settings, write_file(inputs / "one_byte_255.bin", b"\xff"), system_ids=[system_id])
        zip_path = write_zip(inputs / "one_byte_255.zip", {"one_byte_255.bin": b"\xff", "new.bin": b"new"})
        result = asyncio.run(PrepareService(test_db).prepare_import(zip_path, FileType.ROM))
        existing = result.files[bytes.fromhex(ONE_BYTE_255_SHA1)]
        assert existing.is_new is False
        stored = blob_files(settings.collection_root_dir, FileType.ROM)
        assert f"{existing.existing_file.archive_file_name}.zst" in stored
        assert result.files[sha1_of(b"new")].is_new is True

    def test_existing_in_other_type_is_new(self, test_db, settings, inputs, system_id):
        path = write_file(inputs / "one_byte_255.bin", b"\xff")
        import_path(test_db, settings, path, system_ids=[system_id])
        result = asyncio.run(PrepareService(test_db).prepare_import(path, FileType.DISK_IMAGE))
        assert len(result.new_files) == 1

    def test_broken_zip_raises(self, test_db, inputs):
        path = write_file(inputs / "broken.zip", b"PK\x03\x04garbage")
        with pytest.raises(ArchiveReadError):
            asyncio.run(PrepareService(test_db).prepare_import(path, FileType.ROM))

    def test_missing_file_raises(self, test_db, inputs):
        with pytest.raises(FileIoError):
            asyncio.run(PrepareService(test_db).prepare_import(inputs / "nope.bin", FileType.ROM))

    def test_prepare_directory_in_name_order(self, test_db, inputs):
        write_file(inputs / "b.bin", b"b")
        write_file(inputs / "a.bin", b"a")
        (inputs / "subdir").mkdir()
        results = asyncio.run(PrepareService(test_db).prepare_directory(inputs, FileType.ROM))
        assert [r.file_set_file_name for r in results] == ["a.bin", "b.bin"]

    def test_mock_fs_is_used_for_zip_detection(self, test_db, inputs):
        path = write_file(inputs / "looks_like.zip", b"plain bytes")
        fs = MockFileSystemOps()
        fs.add_file(path, is_zip=False)
        result = asyncio.run(PrepareService(test_db, fs).prepare_import(path, FileType.ROM))
        assert result.is_zip_archive is False
        assert len(result.files) == 1


class TestIngest(CatalogFixture):

    def test_single_file_ingest(self, test_db, settings, inputs, system_id):
        path = write_file(inputs / "one_byte_255.bin", b"\xff")
        result = import_path(test_db, settings, path, system_ids=[system_id])

        file_set = test_db.file_sets.get_file_set(result.file_set_id)
        assert file_set.file_set_name == "one_byte_255"
        members = test_db.file_sets.get_file_set_file_info(result.file_set_id)
        assert len(members) == 1
        assert members[0].sha1_checksum.hex() == ONE_BYTE_255_SHA1
        assert members[0].file_size == 1
        assert blob_files(settings.collection_root_dir, FileType.ROM) == {f"{members[0].archive_file_name}.zst"}
        assert result.imported_new_files == [bytes.fromhex(ONE_BYTE_255_SHA1)]
        assert test_db.file_sets.get_system_ids(result.file_set_id) == [system_id]

    def test_zip_after_single_file_reuses_blob(self, test_db, settings, inputs, system_id):
        first = import_path(test_db, settings, write_file(inputs / "one_byte_255.bin", b"\xff"),
                            system_ids=[system_id])
        blobs_before = blob_files(settings.collection_root_dir, FileType.ROM)

        zip_path = write_zip(inputs / "one_byte_255.zip", {"one_byte_255.bin": b"\xff"})
        second = import_path(test_db, settings, zip_path, system_ids=[system_id])

        assert second.file_set_id != first.file_set_id
        assert test_db.file_sets.get_file_set(second.file_set_id).file_set_file_name == "one_byte_255.zip"
        assert test_db.file_infos.count_file_infos() == 1
        assert blob_files(settings.collection_root_dir, FileType.ROM) == blobs_before
        assert second.imported_new_files == []
        first_member = test_db.file_sets.get_file_set_file_info(first.file_set_id)[0]
        second_member = test_db.file_sets.get_file_set_file_info(second.file_set_id)[0]
        assert first_member.file_info_id == second_member.file_info_id

    def test_zip_members_are_stored_individually(self, test_db, settings, inputs, system_id):
        zip_path = write_zip(inputs / "disks.zip", {"disk1.d64": b"one", "disk2.d64": b"two"})
        result = import_path(test_db, settings, zip_path, FileType.DISK_IMAGE, system_ids=[system_id])
        names = sorted(m.file_name for m in test_db.file_sets.get_file_set_file_info(result.file_set_id))
        assert names == ["disk1.d64", "disk2.d64"]
        assert len(blob_files(settings.collection_root_dir, FileType.DISK_IMAGE)) == 2

    def test_deselected_entries_are_not_stored(self, test_db, settings, inputs, system_id):
        zip_path = write_zip(inputs / "set.zip", {"keep.rom": b"keep", "skip.rom": b"skip"})
        result = import_path(test_db, settings, zip_path, selected_names=["keep.rom"], system_ids=[system_id])
        members = test_db.file_sets.get_file_set_file_info(result.file_set_id)
        assert [m.file_name for m in members] == ["keep.rom"]
        assert len(blob_files(settings.collection_root_dir, FileType.ROM)) == 1

    def test_nothing_selected_fails(self, test_db, settings, inputs, system_id):
        path = write_file(inputs / "a.rom", b"a")
        with pytest.raises(FileImportError):
            import_path(test_db, settings, path, selected_names=[], system_ids=[system_id])
        assert test_db.file_sets.get_all_file_sets() == []

    def test_catalog_failure_removes_written_blobs(self, test_db, settings, inputs, system_id):
        import_path(test_db, settings, write_file(inputs / "old.rom", b"old"), system_ids=[system_id])
        before = blob_files(settings.collection_root_dir, FileType.ROM)
        zip_path = write_zip(inputs / "new.zip", {"a.rom": b"a", "b.rom": b"b"})

        with patch.object(test_db.file_sets, "add_file_set_full", side_effect=CatalogError("disk I/O error")):
            with pytest.raises(CatalogError):
                import_path(test_db, settings, zip_path, system_ids=[system_id])

        assert blob_files(settings.collection_root_dir, FileType.ROM) == before
        assert len(test_db.file_sets.get_all_file_sets()) == 1

    def test_unknown_system_rolls_back(self, test_db, settings, inputs):
        path = write_file(inputs / "a.rom", b"a")
        with pytest.raises(CatalogError):
            import_path(test_db, settings, path, system_ids=[12345])
        assert blob_files(settings.collection_root_dir, FileType.ROM) == set()
        assert test_db.file_infos.count_file_infos() == 0

    def test_release_with_derived_title(self, test_db, settings, inputs, system_id):
        path = write_file(inputs / "decathlon.rom", b"decathlon")
        result = import_path(
            test_db, settings, path, system_ids=[system_id],
            create_release=CreateReleaseParams(release_name="Activision Decathlon, The (USA)"),
        )
        assert result.release_id is not None
        assert test_db.releases.get_release(result.release_id).name == "Activision Decathlon, The (USA)"
        title_ids = test_db.releases.get_release_software_title_ids(result.release_id)
        assert test_db.software_titles.get_software_title(title_ids[0]).name == "The Activision Decathlon"
        assert test_db.releases.get_releases_for_file_set(result.file_set_id)[0].id == result.release_id

    def test_items_and_dat_links(self, test_db, settings, inputs, system_id):
        release_id = test_db.releases.add_release_full("Game", [], [], [system_id])
        item_id = test_db.release_items.add_item(release_id, ItemType.MANUAL)
        path = write_file(inputs / "manual.pdf", b"%PDF-1.4")
        result = import_path(
            test_db, settings, path, FileType.MANUAL, system_ids=[system_id],
            item_ids=[item_id], item_types=[ItemType.MANUAL], source="scanned",
        )
        assert result.failed_steps == {}
        assert test_db.release_items.get_file_set_ids_for_item(item_id) == [result.file_set_id]
        assert test_db.file_sets.get_item_types(result.file_set_id) == [ItemType.MANUAL]
        assert test_db.file_sets.get_file_set(result.file_set_id).source == "scanned"

    def test_failed_link_is_reported_not_raised(self, test_db, settings, inputs, system_id):
        path = write_file(inputs / "a.rom", b"a")
        result = import_path(test_db, settings, path, system_ids=[system_id], item_ids=[999], dat_file_id=999)
        assert set(result.failed_steps) == {"link_items", "link_dat"}
        assert test_db.file_sets.get_file_set(result.file_set_id).file_set_name == "a"

    def test_content_changed_after_prepare(self, test_db, settings, inputs, system_id):
        path = write_file(inputs / "a.rom", b"before")

        async def run():
            prepared = await PrepareService(test_db).prepare_import(path, FileType.ROM)
            path.write_bytes(b"after")
            model = FileSetImportModel.from_prepare_result(prepared, system_ids=[system_id])
            return await IngestService(test_db, settings).import_file_set(model)

        with pytest.raises(FileImportError, match="changed"):
            asyncio.run(run())
        assert blob_files(settings.collection_root_dir, FileType.ROM) == set()
        assert test_db.file_sets.get_all_file_sets() == []

    def test_blob_written_while_racing_import_is_discarded(self, test_db, settings, inputs, system_id):
        path = write_file(inputs / "a.rom", b"racing")
        prepared = asyncio.run(PrepareService(test_db).prepare_import(path, FileType.ROM))

        # another import stores the same content between prepare and ingest
        import_path(test_db, settings, write_file(inputs / "other.rom", b"racing"), system_ids=[system_id])
        model = FileSetImportModel.from_prepare_result(prepared, system_ids=[system_id])
        result = asyncio.run(IngestService(test_db, settings).import_file_set(model))

        assert result.imported_new_files == []
        assert test_db.file_infos.count_file_infos() == 1
        assert len(blob_files(settings.collection_root_dir, FileType.ROM)) == 1
        assert Path(inputs / "a.rom").exists()

    def test_stored_file_deleted_after_prepare(self, test_db, settings, inputs, system_id):
        original = import_path(test_db, settings, write_file(inputs / "a.rom", b"gone"),
                               system_ids=[system_id]).file_set_id
        prepared = asyncio.run(PrepareService(test_db).prepare_import(write_file(inputs / "b.rom", b"gone"),
                                                                      FileType.ROM))
        assert len(prepared.existing_files) == 1
        asyncio.run(DeletionService(test_db, settings).delete_file_set(original))

        model = FileSetImportModel.from_prepare_result(prepared, system_ids=[system_id])
        with pytest.raises(FileImportError, match="re-run prepare"):
            asyncio.run(IngestService(test_db, settings).import_file_set(model))

        assert test_db.file_sets.get_all_file_sets() == []
        assert test_db.file_infos.count_file_infos() == 0
        assert blob_files(settings.collection_root_dir, FileType.ROM) == set()
