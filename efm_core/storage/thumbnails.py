#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Lazy thumbnail generation for image file sets (screenshots, cover scans).
"""

import logging
from pathlib import Path
from typing import Tuple

from PIL import Image

from ..config import THUMBNAIL_SIZE
from ..utils.path import ensure_dir

logger = logging.getLogger(__name__)
logging.getLogger("PIL.PngImagePlugin").setLevel(logging.WARNING)


def thumbnail_path(thumbnails_dir: Path, archive_file_name: str) -> Path:
    return Path(thumbnails_dir) / f"{archive_file_name}.png"


def ensure_thumbnail(image_path: Path, destination: Path, size: Tuple[int, int] = THUMBNAIL_SIZE) -> bool:
    """Create a PNG thumbnail unless one already exists.

    Returns True when a new thumbnail was written. Aspect ratio is kept, so
    the result fits within size.
    """
    destination = Path(destination)
    if destination.exists():
        return False
    ensure_dir(destination.parent)
    with Image.open(image_path) as im:
        im.thumbnail(size)
        if im.mode not in ("RGB", "RGBA", "L", "LA", "P"):
            im = im.convert("RGBA")
        im.save(destination, format="PNG")
    logger.debug("Created thumbnail %s", destination)
    return True
