"""Utility functions for the collection core."""

from .time import utc_timestamp
from .path import ensure_dir
from .format import format_bytes
from .checksum import sha1_from_hex
from .title_normalizer import normalize_title, software_title_name

__all__ = ['utc_timestamp', 'ensure_dir', 'format_bytes', 'sha1_from_hex',
           'normalize_title', 'software_title_name']
