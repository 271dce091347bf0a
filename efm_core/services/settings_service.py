#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Single writer of the settings table and the credential store.

Everything else reads an immutable Settings snapshot produced here.
"""

import logging
from typing import Optional

from ..cloud import S3CloudStorage
from ..cloud import credentials as credential_store
from ..errors import CredentialsMissingError, SettingsError
from ..models.file_types import SettingName
from ..models.settings import CloudCredentials, Settings, SettingsSaveModel

logger = logging.getLogger(__name__)


class SettingsService:

    def __init__(self, db):
        self.db = db

    def load_settings(self) -> Settings:
        return Settings.from_dict(self.db.settings.get_settings())

    def save_settings(self, model: SettingsSaveModel) -> Settings:
        values = {
            SettingName.S3_ENDPOINT.value: model.endpoint,
            SettingName.S3_REGION.value: model.region,
            SettingName.S3_BUCKET.value: model.bucket,
            SettingName.S3_FILE_SYNC_ENABLED.value: "true" if model.sync_enabled else "false",
        }
        if model.collection_root_dir is not None:
            values[SettingName.COLLECTION_ROOT_DIR.value] = str(model.collection_root_dir)
        self.db.settings.add_or_update_settings(values)

        # Blank credential fields keep whatever is stored
        if model.access_key_id and model.secret_access_key:
            credential_store.store_credentials(CloudCredentials(model.access_key_id, model.secret_access_key))
            logger.info("Stored cloud credentials")
        return self.load_settings()

    def load_credentials(self) -> Optional[CloudCredentials]:
        return credential_store.load_credentials()

    def has_credentials(self) -> bool:
        return self.load_credentials() is not None

    def delete_credentials(self) -> None:
        credential_store.delete_credentials()
        logger.info("Deleted cloud credentials")

    def connect_cloud_storage(self, settings: Settings) -> S3CloudStorage:
        """Open an object store session from the snapshot and the stored credentials."""
        credentials = self.load_credentials()
        if credentials is None:
            raise CredentialsMissingError("Cloud credentials are not configured")
        if not settings.s3_bucket:
            raise SettingsError("S3 bucket is not configured")
        return S3CloudStorage.connect(credentials, settings.s3_endpoint, settings.s3_region, settings.s3_bucket)
