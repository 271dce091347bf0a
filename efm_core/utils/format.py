#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Human readable formatting helpers.
"""

_UNITS = ["KiB", "MiB", "GiB", "TiB", "PiB"]


def format_bytes(size: int) -> str:
    """Format a byte count with binary units: 1023 -> '1023 B', 1024 -> '1.0 KiB'."""
    if size < 1024:
        return f"{size} B"
    value = float(size)
    unit = _UNITS[0]
    for unit in _UNITS:
        value /= 1024
        if value < 1024:
            break
    return f"{value:.1f} {unit}"
