#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Path helpers shared by the content store and the materialize pipeline.
"""

from pathlib import Path
from typing import Optional

from ..config import PARTIAL_SUFFIX


def ensure_dir(p: Path) -> None:
    """Ensure directory exists, creating it if necessary."""
    p.mkdir(parents=True, exist_ok=True)


def partial_path(target: Path) -> Path:
    """Sibling path a blob is written to before it is moved onto target."""
    return target.with_name(target.name + PARTIAL_SUFFIX)


def resolve_within(root: Path, name: str) -> Optional[Path]:
    """Resolve name below root; None when it would land outside root."""
    base = Path(root).resolve()
    target = (base / name).resolve()
    if target != base and base not in target.parents:
        return None
    return target
