#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Cloud credentials in the platform keyring, with an environment fallback.
"""

import json
import logging
import os
from typing import Optional

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

from ..config import ENV_ACCESS_KEY_ID, ENV_SECRET_ACCESS_KEY, KEYRING_SERVICE_NAME, KEYRING_USERNAME
from ..errors import SettingsError
from ..models.settings import CloudCredentials

logger = logging.getLogger(__name__)


def store_credentials(credentials: CloudCredentials) -> None:
    value = json.dumps({
        "access_key_id": credentials.access_key_id,
        "secret_access_key": credentials.secret_access_key,
    })
    try:
        keyring.set_password(KEYRING_SERVICE_NAME, KEYRING_USERNAME, value)
    except KeyringError as e:
        raise SettingsError(f"Failed to store credentials in keyring: {e}") from e


def _credentials_from_env() -> Optional[CloudCredentials]:
    access_key_id = os.environ.get(ENV_ACCESS_KEY_ID)
    secret_access_key = os.environ.get(ENV_SECRET_ACCESS_KEY)
    if access_key_id and secret_access_key:
        return CloudCredentials(access_key_id, secret_access_key)
    return None


def load_credentials() -> Optional[CloudCredentials]:
    """Keyring entry first, then AWS_ACCESS_KEY_ID / AWS_SECRET_ACCESS_KEY."""
    try:
        value = keyring.get_password(KEYRING_SERVICE_NAME, KEYRING_USERNAME)
    except KeyringError as e:
        logger.warning("Keyring unavailable, falling back to environment: %s", e)
        value = None

    if value:
        try:
            data = json.loads(value)
            return CloudCredentials(data["access_key_id"], data["secret_access_key"])
        except (ValueError, KeyError, TypeError) as e:
            raise SettingsError(f"Malformed credentials in keyring: {e}") from e

    return _credentials_from_env()


def delete_credentials() -> None:
    """Remove the keyring entry. Deleting absent credentials is not an error."""
    try:
        keyring.delete_password(KEYRING_SERVICE_NAME, KEYRING_USERNAME)
    except PasswordDeleteError:
        logger.debug("No stored credentials to delete")
    except KeyringError as e:
        raise SettingsError(f"Failed to delete credentials from keyring: {e}") from e
