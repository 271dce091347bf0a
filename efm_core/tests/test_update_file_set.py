#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Tests for adding files to and removing files from an existing file set.
"""

import asyncio
from dataclasses import replace

import pytest

from efm_core.errors import FileImportError, NotFoundError
from efm_core.models.file_types import FileSyncStatus, FileType
from efm_core.models.imports import FileSetImportModel
from efm_core.services.prepare import PrepareService
from efm_core.services.update_file_set import UpdateFileSetService
from efm_core.tests.fixtures.catalog_setup import CatalogFixture, blob_files, import_path, sha1_of, write_file, \
    write_zip


class TestUpdateFileSet(CatalogFixture):

    def _prepare(self, test_db, path, file_type=FileType.ROM):
        return asyncio.run(PrepareService(test_db).prepare_import(path, file_type))

    def _update(self, test_db, settings, file_set_id, model):
        return asyncio.run(UpdateFileSetService(test_db, settings).update_file_set(file_set_id, model))

    def _remove(self, test_db, settings, file_set_id, *contents):
        service = UpdateFileSetService(test_db, settings)
        return asyncio.run(service.remove_files(file_set_id, [sha1_of(c) for c in contents]))

    def test_add_file_and_rename(self, test_db, settings, inputs, system_id):
        file_set_id = import_path(test_db, settings, write_zip(inputs / "a.zip", {"a.rom": b"a"}),
                                  system_ids=[system_id]).file_set_id
        prepared = self._prepare(test_db, write_file(inputs / "b.rom", b"b"))
        model = FileSetImportModel.from_prepare_result(
            prepared, selected_files=[sha1_of(b"a"), sha1_of(b"b")],
            file_set_name="AB", file_set_file_name="ab.zip",
        )

        result = self._update(test_db, settings, file_set_id, model)

        assert result.imported_new_files == [sha1_of(b"b")]
        assert result.removed_files == []
        file_set = test_db.file_sets.get_file_set(file_set_id)
        assert (file_set.file_set_name, file_set.file_set_file_name) == ("AB", "ab.zip")
        assert [m.file_name for m in test_db.file_sets.get_file_set_file_info(file_set_id)] == ["a.rom", "b.rom"]
        assert len(blob_files(settings.collection_root_dir, FileType.ROM)) == 2
        new_member = test_db.file_sets.get_file_set_file_info(file_set_id)[1]
        # new members take the systems of the file set
        rows = test_db.fetch_all("SELECT system_id FROM file_info_system WHERE file_info_id = ?",
                                 (new_member.file_info_id,))
        assert [r[0] for r in rows] == [system_id]

    def test_removed_orphan_is_deleted_and_marked(self, test_db, settings, inputs, system_id):
        file_set_id = import_path(test_db, settings, write_zip(inputs / "ab.zip", {"a.rom": b"a", "b.rom": b"b"}),
                                  system_ids=[system_id]).file_set_id
        dropped = test_db.file_sets.get_file_set_file_info(file_set_id)[1]
        test_db.sync_logs.add_log_entry(dropped.file_info_id, FileSyncStatus.UPLOAD_COMPLETED, "", dropped.cloud_key)

        result = self._remove(test_db, settings, file_set_id, b"b")

        assert len(result.removed_files) == 1
        removed = result.removed_files[0]
        assert removed.file_info.id == dropped.file_info_id
        assert removed.file_deletion_success and removed.db_deletion_success and removed.cloud_delete_marked
        assert test_db.sync_logs.get_latest_log(dropped.file_info_id).status is FileSyncStatus.DELETION_PENDING
        with pytest.raises(NotFoundError):
            test_db.file_infos.get_file_info(dropped.file_info_id)
        assert [m.file_name for m in test_db.file_sets.get_file_set_file_info(file_set_id)] == ["a.rom"]
        assert len(blob_files(settings.collection_root_dir, FileType.ROM)) == 1
        assert test_db.file_sets.get_file_set(file_set_id).file_set_name == "ab"

    def test_removed_shared_member_keeps_blob(self, test_db, settings, inputs, system_id):
        file_set_id = import_path(test_db, settings, write_zip(inputs / "ab.zip", {"a.rom": b"a", "b.rom": b"b"}),
                                  system_ids=[system_id]).file_set_id
        other = import_path(test_db, settings, write_file(inputs / "b.rom", b"b"),
                            system_ids=[system_id]).file_set_id
        blobs = blob_files(settings.collection_root_dir, FileType.ROM)

        result = self._remove(test_db, settings, file_set_id, b"b")

        assert result.removed_files == []
        assert blob_files(settings.collection_root_dir, FileType.ROM) == blobs
        assert len(test_db.file_sets.get_file_set_file_info(other)) == 1

    def test_removing_every_member_fails(self, test_db, settings, inputs, system_id):
        file_set_id = import_path(test_db, settings, write_file(inputs / "a.rom", b"a"),
                                  system_ids=[system_id]).file_set_id

        with pytest.raises(FileImportError):
            self._remove(test_db, settings, file_set_id, b"a")

        assert len(test_db.file_sets.get_file_set_file_info(file_set_id)) == 1
        assert len(blob_files(settings.collection_root_dir, FileType.ROM)) == 1

    def test_unknown_selection_rolls_back_new_blobs(self, test_db, settings, inputs, system_id):
        file_set_id = import_path(test_db, settings, write_file(inputs / "a.rom", b"a"),
                                  system_ids=[system_id]).file_set_id
        blobs = blob_files(settings.collection_root_dir, FileType.ROM)
        prepared = self._prepare(test_db, write_file(inputs / "c.rom", b"c"))
        model = FileSetImportModel.from_prepare_result(prepared, selected_files=[sha1_of(b"c"), sha1_of(b"zzz")])

        with pytest.raises(FileImportError, match="neither"):
            self._update(test_db, settings, file_set_id, model)

        assert blob_files(settings.collection_root_dir, FileType.ROM) == blobs
        assert test_db.file_infos.count_file_infos() == 1

    def test_new_files_marked_for_sync_when_enabled(self, test_db, settings, inputs, system_id):
        file_set_id = import_path(test_db, settings, write_file(inputs / "a.rom", b"a"),
                                  system_ids=[system_id]).file_set_id
        prepared = self._prepare(test_db, write_file(inputs / "b.rom", b"b"))
        model = FileSetImportModel.from_prepare_result(prepared, selected_files=[sha1_of(b"a"), sha1_of(b"b")])

        self._update(test_db, replace(settings, s3_file_sync_enabled=True), file_set_id, model)

        members = {m.sha1_checksum: m for m in test_db.file_sets.get_file_set_file_info(file_set_id)}
        added = members[sha1_of(b"b")]
        latest = test_db.sync_logs.get_latest_log(added.file_info_id)
        assert latest.status is FileSyncStatus.UPLOAD_PENDING
        assert latest.cloud_key == added.cloud_key
        assert test_db.sync_logs.get_latest_log(members[sha1_of(b"a")].file_info_id) is None

    def test_unknown_file_set(self, test_db, settings, inputs):
        prepared = self._prepare(test_db, write_file(inputs / "a.rom", b"a"))
        with pytest.raises(NotFoundError):
            self._update(test_db, settings, 42, FileSetImportModel.from_prepare_result(prepared))

    def test_file_type_must_match(self, test_db, settings, inputs, system_id):
        file_set_id = import_path(test_db, settings, write_file(inputs / "a.rom", b"a"),
                                  system_ids=[system_id]).file_set_id
        prepared = self._prepare(test_db, write_file(inputs / "disk.d64", b"disk"), FileType.DISK_IMAGE)
        with pytest.raises(FileImportError, match="holds rom files"):
            self._update(test_db, settings, file_set_id, FileSetImportModel.from_prepare_result(prepared))
