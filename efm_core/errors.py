#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Exception hierarchy for the collection core.

Every error surfaced by a pipeline or service derives from CollectionError,
so callers (CLI commands, UIs) can catch one type and still tell the kinds
apart.
"""


class CollectionError(Exception):
    """Base class for all collection core errors."""


class FileIoError(CollectionError):
    """Underlying file system or archive read/write failure."""


class ArchiveReadError(FileIoError):
    """Failure while reading an input archive or one of its entries."""

    def __init__(self, message: str, entry: str = ""):
        super().__init__(f"{message} (entry: {entry})" if entry else message)
        self.entry = entry


class ParseError(CollectionError):
    """DAT parsing or hex checksum decoding failure."""


class CatalogError(CollectionError):
    """Catalog (database) failure."""


class NotFoundError(CatalogError):
    pass


class InUseError(CatalogError):
    """Entity is still referenced and cannot be removed."""


class FileImportError(CollectionError):
    """Content store write failure or unsupported input."""


class CloudError(CollectionError):
    """Object store failure: unreachable endpoint, HTTP error, aborted upload."""


class CredentialsMissingError(CloudError):
    pass


class OperationCancelled(CollectionError):
    """User initiated stop."""


class SettingsError(CollectionError):
    """Missing or invalid configuration."""


class LaunchError(CollectionError):
    """Launcher command could not be built."""
