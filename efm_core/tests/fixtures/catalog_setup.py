#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Test catalog, collection root and sample input files.
"""

import asyncio
import hashlib
import zipfile
from pathlib import Path
from typing import Dict, Optional, Tuple

import pytest
from PIL import Image

from efm_core.database.manager import DatabaseManager
from efm_core.models.file_types import FileType
from efm_core.models.imports import FileImportResult, FileSetImportModel
from efm_core.models.settings import Settings
from efm_core.services.ingest import IngestService
from efm_core.services.prepare import PrepareService

# SHA-1 of the single byte 0xFF
ONE_BYTE_255_SHA1 = "85e53271e14006f0265921d02d4d736cdc580b0b"


def sha1_of(data: bytes) -> bytes:
    return hashlib.sha1(data).digest()


def write_file(path: Path, data: bytes) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return path


def write_zip(path: Path, members: Dict[str, bytes]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for name, data in members.items():
            zf.writestr(name, data)
    return path


def write_png(path: Path, size: Tuple[int, int] = (320, 200), color=(200, 30, 30)) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGB", size, color).save(path, format="PNG")
    return path


def blob_files(root: Path, file_type: FileType):
    """Names of all blobs currently stored for a file type."""
    directory = root / file_type.dir_name
    if not directory.exists():
        return set()
    return {p.name for p in directory.iterdir()}


def import_path(db: DatabaseManager, settings: Settings, path: Path, file_type: FileType = FileType.ROM,
                selected_names: Optional[list] = None, **kwargs) -> FileImportResult:
    """Prepare and import path with every entry selected (or only selected_names)."""

    async def run():
        prepared = await PrepareService(db).prepare_import(path, file_type)
        selected = None
        if selected_names is not None:
            selected = [s for s, f in prepared.files.items() if f.read_file.file_name in selected_names]
        model = FileSetImportModel.from_prepare_result(prepared, selected_files=selected, **kwargs)
        return await IngestService(db, settings).import_file_set(model)

    return asyncio.run(run())


class CatalogFixture:
    """Test fixture providing a fresh catalog and collection root for each test."""

    @pytest.fixture
    def test_db(self, tmp_path):
        db_manager = DatabaseManager(tmp_path / "catalog" / "test.db")
        yield db_manager
        db_manager.close()

    @pytest.fixture
    def collection_root(self, tmp_path):
        root = tmp_path / "collection"
        root.mkdir()
        return root

    @pytest.fixture
    def settings(self, collection_root):
        return Settings(collection_root_dir=collection_root)

    @pytest.fixture
    def inputs(self, tmp_path):
        directory = tmp_path / "inputs"
        directory.mkdir()
        return directory

    @pytest.fixture
    def system_id(self, test_db):
        return test_db.systems.add_system("ColecoVision")
