"""Object store capability and credential storage."""

from .ops import CloudStorageOps, S3CloudStorage
from .mock import MockCloudStorage
from .credentials import store_credentials, load_credentials, delete_credentials

__all__ = ['CloudStorageOps', 'S3CloudStorage', 'MockCloudStorage',
           'store_credentials', 'load_credentials', 'delete_credentials']
