#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Tests for the cloud sync engine, the S3 adapter and the credential store.
"""

import asyncio
import json
from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError
from keyring.errors import KeyringError, PasswordDeleteError

from efm_core.cloud import MockCloudStorage, S3CloudStorage, credentials
from efm_core.errors import CloudError, OperationCancelled, SettingsError
from efm_core.models.events import EventKind
from efm_core.models.file_types import FileSyncStatus
from efm_core.models.settings import CloudCredentials, Settings
from efm_core.services.cloud_sync import CloudSyncService
from efm_core.tests.fixtures.catalog_setup import CatalogFixture, import_path, write_file


def client_error(code="500", operation="UploadPart"):
    return ClientError({"Error": {"Code": code, "Message": "boom"}}, operation)


def s3_client():
    client = MagicMock()
    client.create_multipart_upload.return_value = {"UploadId": "upload-1"}
    client.upload_part.side_effect = lambda **kwargs: {"ETag": f"etag-{kwargs['PartNumber']}"}
    return client


class TestS3CloudStorage:

    def test_multipart_upload(self, tmp_path):
        path = write_file(tmp_path / "blob.zst", b"0123456789")
        client = s3_client()
        asyncio.run(S3CloudStorage(client, "bucket", part_size=4).upload_file(path, "rom/blob"))

        numbers = [c.kwargs["PartNumber"] for c in client.upload_part.call_args_list]
        bodies = [c.kwargs["Body"] for c in client.upload_part.call_args_list]
        assert numbers == [1, 2, 3]
        assert bodies == [b"0123", b"4567", b"89"]
        client.complete_multipart_upload.assert_called_once_with(
            Bucket="bucket", Key="rom/blob", UploadId="upload-1",
            MultipartUpload={"Parts": [{"ETag": f"etag-{n}", "PartNumber": n} for n in (1, 2, 3)]},
        )
        client.abort_multipart_upload.assert_not_called()

    def test_empty_blob_is_one_part(self, tmp_path):
        path = write_file(tmp_path / "empty.zst", b"")
        client = s3_client()
        asyncio.run(S3CloudStorage(client, "bucket", part_size=4).upload_file(path, "rom/empty"))
        assert client.upload_part.call_count == 1

    def test_failed_part_aborts_upload(self, tmp_path):
        path = write_file(tmp_path / "blob.zst", b"0123456789")
        client = s3_client()
        client.upload_part.side_effect = [{"ETag": "a"}, client_error()]
        events = []

        with pytest.raises(CloudError):
            asyncio.run(S3CloudStorage(client, "bucket", part_size=4).upload_file(path, "rom/blob", events.append))

        client.abort_multipart_upload.assert_called_once_with(Bucket="bucket", Key="rom/blob", UploadId="upload-1")
        client.complete_multipart_upload.assert_not_called()
        failed = [e for e in events if e.kind is EventKind.PART_UPLOAD_FAILED]
        assert len(failed) == 1 and failed[0].part == 2

    def test_download_streams_chunks(self, tmp_path):
        client = MagicMock()
        body = MagicMock()
        body.iter_chunks.return_value = iter([b"abc", b"def"])
        client.get_object.return_value = {"Body": body, "ContentLength": 6}
        destination = tmp_path / "out.part"

        size = asyncio.run(S3CloudStorage(client, "bucket").download_file("rom/x", destination))

        assert size == 6
        assert destination.read_bytes() == b"abcdef"

    def test_cancelled_download_leaves_no_file(self, tmp_path):
        client = MagicMock()
        body = MagicMock()
        body.iter_chunks.return_value = iter([b"abc"])
        client.get_object.return_value = {"Body": body}
        destination = tmp_path / "out.part"

        async def run():
            cancel = asyncio.Event()
            cancel.set()
            await S3CloudStorage(client, "bucket").download_file("rom/x", destination, cancel_event=cancel)

        with pytest.raises(OperationCancelled):
            asyncio.run(run())
        assert not destination.exists()

    def test_file_exists(self):
        client = MagicMock()
        storage = S3CloudStorage(client, "bucket")
        assert asyncio.run(storage.file_exists("rom/x")) is True
        client.head_object.side_effect = client_error("404", "HeadObject")
        assert asyncio.run(storage.file_exists("rom/x")) is False
        client.head_object.side_effect = client_error("403", "HeadObject")
        with pytest.raises(CloudError):
            asyncio.run(storage.file_exists("rom/x"))


class TestCloudSync(CatalogFixture):

    @pytest.fixture
    def sync_settings(self, collection_root):
        return Settings(collection_root_dir=collection_root, s3_bucket="bucket", s3_file_sync_enabled=True)

    @pytest.fixture
    def file_info_id(self, test_db, sync_settings, inputs, system_id):
        result = import_path(test_db, sync_settings, write_file(inputs / "game.rom", b"x" * 1000),
                             system_ids=[system_id])
        return test_db.file_sets.get_file_set_file_info(result.file_set_id)[0].file_info_id

    def _statuses(self, test_db, file_info_id):
        return [log.status for log in test_db.sync_logs.get_logs_by_file_info(file_info_id)]

    def test_disabled_sync_does_nothing(self, test_db, settings, file_info_id):
        cloud = MockCloudStorage()
        result = asyncio.run(CloudSyncService(test_db, settings, cloud_ops=cloud).sync_to_cloud())
        assert result.enabled is False
        assert cloud.uploaded == []
        assert self._statuses(test_db, file_info_id) == []

    def test_new_blobs_are_uploaded(self, test_db, sync_settings, file_info_id):
        cloud = MockCloudStorage()
        events = []
        service = CloudSyncService(test_db, sync_settings, cloud_ops=cloud, progress=events.append)
        result = asyncio.run(service.sync_to_cloud())

        file_info = test_db.file_infos.get_file_info(file_info_id)
        assert (result.prepared, result.pending, result.uploaded, result.failed) == (1, 1, 1, 0)
        assert cloud.uploaded == [file_info.cloud_key]
        assert cloud.objects[file_info.cloud_key] == sync_settings.get_file_path(
            file_info.file_type, file_info.archive_file_name).read_bytes()
        assert self._statuses(test_db, file_info_id) == [
            FileSyncStatus.UPLOAD_PENDING, FileSyncStatus.UPLOAD_IN_PROGRESS, FileSyncStatus.UPLOAD_COMPLETED,
        ]
        kinds = [e.kind for e in events]
        assert kinds[0] is EventKind.SYNC_STARTED and kinds[-1] is EventKind.SYNC_COMPLETED

        second = asyncio.run(service.sync_to_cloud())
        assert (second.prepared, second.pending, second.uploaded) == (0, 0, 0)
        assert cloud.uploaded == [file_info.cloud_key]

    def test_failed_upload_is_retried_next_pass(self, test_db, sync_settings, file_info_id):
        client = s3_client()
        calls = []

        def upload_part(**kwargs):
            calls.append(kwargs["PartNumber"])
            if len(calls) == 2:
                raise client_error()
            return {"ETag": f"etag-{kwargs['PartNumber']}"}

        client.upload_part.side_effect = upload_part
        service = CloudSyncService(test_db, sync_settings, cloud_ops=S3CloudStorage(client, "bucket", part_size=4))

        first = asyncio.run(service.sync_to_cloud())
        assert (first.uploaded, first.failed) == (0, 1)
        client.abort_multipart_upload.assert_called_once()
        assert client.abort_multipart_upload.call_args.kwargs["UploadId"] == "upload-1"
        latest = test_db.sync_logs.get_latest_log(file_info_id)
        assert latest.status is FileSyncStatus.UPLOAD_FAILED
        assert "boom" in latest.message

        retry_start = len(calls)
        second = asyncio.run(service.sync_to_cloud())
        assert (second.prepared, second.pending, second.uploaded, second.failed) == (0, 1, 1, 0)
        assert calls[retry_start] == 1
        client.complete_multipart_upload.assert_called_once()
        assert self._statuses(test_db, file_info_id)[-3:] == [
            FileSyncStatus.UPLOAD_FAILED, FileSyncStatus.UPLOAD_IN_PROGRESS, FileSyncStatus.UPLOAD_COMPLETED,
        ]

    def test_failure_does_not_stop_other_uploads(self, test_db, sync_settings, inputs, system_id, file_info_id):
        import_path(test_db, sync_settings, write_file(inputs / "other.rom", b"other"), system_ids=[system_id])
        cloud = MockCloudStorage()
        cloud.fail_upload_keys.add(test_db.file_infos.get_file_info(file_info_id).cloud_key)

        result = asyncio.run(CloudSyncService(test_db, sync_settings, cloud_ops=cloud).sync_to_cloud())

        assert (result.pending, result.uploaded, result.failed) == (2, 1, 1)
        assert len(cloud.uploaded) == 1

    def test_cancelled_sync(self, test_db, sync_settings, file_info_id):
        cloud = MockCloudStorage()
        events = []

        async def run():
            cancel = asyncio.Event()
            cancel.set()
            service = CloudSyncService(test_db, sync_settings, cloud_ops=cloud, progress=events.append,
                                       cancel_event=cancel)
            await service.sync_to_cloud()

        with pytest.raises(OperationCancelled):
            asyncio.run(run())
        assert cloud.uploaded == []
        assert EventKind.SYNC_CANCELLED in [e.kind for e in events]
        assert test_db.sync_logs.get_latest_log(file_info_id).status is FileSyncStatus.UPLOAD_PENDING

    def test_run_until_stopped(self, test_db, sync_settings, file_info_id):
        cloud = MockCloudStorage()

        async def run():
            stop = asyncio.Event()

            def on_event(event):
                if event.kind is EventKind.SYNC_COMPLETED:
                    stop.set()

            service = CloudSyncService(test_db, sync_settings, cloud_ops=cloud, progress=on_event)
            await asyncio.wait_for(service.run(interval=60, stop_event=stop), timeout=10)

        asyncio.run(run())
        assert len(cloud.uploaded) == 1


class TestCredentials:

    @pytest.fixture(autouse=True)
    def clear_env(self, monkeypatch):
        monkeypatch.delenv("AWS_ACCESS_KEY_ID", raising=False)
        monkeypatch.delenv("AWS_SECRET_ACCESS_KEY", raising=False)

    def test_keyring_round_trip(self):
        with patch("efm_core.cloud.credentials.keyring") as mock_keyring:
            credentials.store_credentials(CloudCredentials("id", "secret"))
            stored = mock_keyring.set_password.call_args.args[2]
            mock_keyring.get_password.return_value = stored
            assert credentials.load_credentials() == CloudCredentials("id", "secret")
        assert json.loads(stored) == {"access_key_id": "id", "secret_access_key": "secret"}

    def test_environment_fallback(self, monkeypatch):
        monkeypatch.setenv("AWS_ACCESS_KEY_ID", "env-id")
        monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "env-secret")
        with patch("efm_core.cloud.credentials.keyring") as mock_keyring:
            mock_keyring.get_password.side_effect = KeyringError("locked")
            assert credentials.load_credentials() == CloudCredentials("env-id", "env-secret")

    def test_no_credentials(self):
        with patch("efm_core.cloud.credentials.keyring") as mock_keyring:
            mock_keyring.get_password.return_value = None
            assert credentials.load_credentials() is None

    def test_malformed_keyring_entry(self):
        with patch("efm_core.cloud.credentials.keyring") as mock_keyring:
            mock_keyring.get_password.return_value = "not json"
            with pytest.raises(SettingsError):
                credentials.load_credentials()

    def test_delete_missing_credentials_is_not_an_error(self):
        with patch("efm_core.cloud.credentials.keyring") as mock_keyring:
            mock_keyring.delete_password.side_effect = PasswordDeleteError("missing")
            credentials.delete_credentials()
            mock_keyring.delete_password.side_effect = KeyringError("no backend")
            with pytest.raises(SettingsError):
                credentials.delete_credentials()
