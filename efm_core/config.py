#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Global configuration and constants for the collection core.
"""

# Streaming I/O
READ_CHUNK_SIZE = 8 * 1024
BLOB_EXTENSION = ".zst"
PARTIAL_SUFFIX = ".part"

# zstd levels
COMPRESSION_LEVEL_FAST = 1
COMPRESSION_LEVEL_GOOD = 6

# Collection layout
THUMBNAILS_DIRNAME = "thumbnails"
THUMBNAIL_SIZE = (100, 100)

# Cloud storage
CLOUD_CONTENT_TYPE = "application/zstd"
MULTIPART_PART_SIZE = 5 * 1024 * 1024
SYNC_PREPARE_BATCH_SIZE = 100
SYNC_UPLOAD_BATCH_SIZE = 10
DEFAULT_SYNC_INTERVAL_SECONDS = 300

# Credential store
KEYRING_SERVICE_NAME = "efm-cloud-sync"
KEYRING_USERNAME = "s3-credentials"
ENV_ACCESS_KEY_ID = "AWS_ACCESS_KEY_ID"
ENV_SECRET_ACCESS_KEY = "AWS_SECRET_ACCESS_KEY"

# Catalog
DEFAULT_DB_FILENAME = "efm_collection.db"
