#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Parsed DAT manifest values. Parsing the XML itself happens elsewhere.
"""

from dataclasses import dataclass, field
from typing import Optional, List


@dataclass
class DatHeader:
    id: int
    name: str
    version: str
    description: str = ""
    author: str = ""
    date: Optional[str] = None
    homepage: Optional[str] = None
    url: Optional[str] = None
    subset: Optional[str] = None

    @property
    def source(self) -> str:
        """Provenance string stored on file sets imported from this DAT."""
        return f"{self.name} {self.version}"


@dataclass
class DatRom:
    name: str
    size: int
    sha1: str
    crc: str = ""
    md5: str = ""
    sha256: Optional[str] = None
    status: Optional[str] = None
    serial: Optional[str] = None
    header: Optional[str] = None


@dataclass
class DatGame:
    name: str
    description: str = ""
    id: Optional[str] = None
    cloneof: Optional[str] = None
    cloneofid: Optional[str] = None
    roms: List[DatRom] = field(default_factory=list)


@dataclass
class DatFile:
    header: DatHeader
    games: List[DatGame] = field(default_factory=list)
