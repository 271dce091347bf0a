#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
SHA-1 checksum helpers.
"""

from ..errors import ParseError

SHA1_LENGTH = 20


def sha1_from_hex(value: str) -> bytes:
    """Decode a 40 character hex string into the 20 byte checksum."""
    try:
        checksum = bytes.fromhex(value.strip())
    except ValueError as e:
        raise ParseError(f"Invalid SHA-1 hex string '{value}': {e}") from e
    if len(checksum) != SHA1_LENGTH:
        raise ParseError(f"Invalid SHA-1 length {len(checksum)} for '{value}'")
    return checksum
