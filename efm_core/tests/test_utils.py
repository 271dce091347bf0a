#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Unit tests for the helper functions and the launcher command builder.
"""

from datetime import datetime
from pathlib import Path

import pytest

from efm_core.errors import LaunchError, ParseError
from efm_core.models.catalog import cloud_key_for
from efm_core.models.events import EventKind, ProgressEvent, emit
from efm_core.models.file_types import FileType
from efm_core.models.settings import Settings
from efm_core.services.launcher import (
    Flag, FlagEqualsValue, FlagWithValue, build_launch_command, parse_argument, parse_arguments,
)
from efm_core.utils import format_bytes, normalize_title, sha1_from_hex, software_title_name
from efm_core.utils.path import partial_path, resolve_within
from efm_core.utils.time import SQLITE_TIMESTAMP_FORMAT, utc_timestamp
from efm_core.utils.title_normalizer import normalize_articles


class TestFormatBytes:

    @pytest.mark.parametrize("size, expected", [
        (0, "0 B"),
        (1023, "1023 B"),
        (1024, "1.0 KiB"),
        (1_048_576, "1.0 MiB"),
        (1_073_741_824, "1.0 GiB"),
        (1536, "1.5 KiB"),
    ])
    def test_format_bytes(self, size, expected):
        assert format_bytes(size) == expected


class TestTitleNormalizer:

    @pytest.mark.parametrize("release_name, canonical", [
        ("Activision Decathlon, The (USA)", "The Activision Decathlon"),
        ("A.E. (USA) (Proto)", "A.E."),
        ("Antarctic Adventure (USA, Europe) (Beta)", "Antarctic Adventure"),
        ("Lord of the Rings - War in the North (Europe)", "Lord of the Rings - War in the North"),
    ])
    def test_canonical_title(self, release_name, canonical):
        assert software_title_name(release_name) == canonical

    def test_search_keys(self):
        assert normalize_title("Activision Decathlon, The (USA)").search_keys == [
            "the activision decathlon", "theactivisiondecathlon",
        ]
        assert normalize_title("A.E. (USA) (Proto)").search_keys == ["ae"]

    def test_ampersand_becomes_and(self):
        assert normalize_title("Dungeons & Dragons (USA)").search_keys[0] == "dungeons and dragons"

    def test_article_only_moves_when_trailing(self):
        assert normalize_articles("Game, A") == "A Game"
        assert normalize_articles("Game, Part Two") == "Game, Part Two"


class TestChecksum:

    def test_sha1_from_hex(self):
        assert sha1_from_hex("85E53271E14006F0265921D02D4D736CDC580B0B").hex() == \
            "85e53271e14006f0265921d02d4d736cdc580b0b"

    @pytest.mark.parametrize("value", ["xyz", "abcd", ""])
    def test_invalid_hex(self, value):
        with pytest.raises(ParseError):
            sha1_from_hex(value)


class TestFileTypesAndPaths:

    def test_from_name(self):
        assert FileType.from_name("disk") is FileType.DISK_IMAGE
        assert FileType.from_name("DISK_IMAGE") is FileType.DISK_IMAGE
        with pytest.raises(ValueError):
            FileType.from_name("floppy")

    def test_compression_levels(self):
        media = {FileType.ROM, FileType.DISK_IMAGE, FileType.TAPE_IMAGE, FileType.MEMORY_SNAPSHOT}
        for file_type in FileType:
            assert file_type.compression_level == (6 if file_type in media else 1)

    def test_blob_locations(self, tmp_path):
        settings = Settings(collection_root_dir=tmp_path)
        assert settings.get_file_path(FileType.COVER_SCAN, "abc") == tmp_path / "cover" / "abc.zst"
        assert cloud_key_for(FileType.TAPE_IMAGE, "abc") == "tape/abc"

    def test_settings_from_dict(self):
        settings = Settings.from_dict({"collection_root_dir": "/data", "s3_file_sync_enabled": "true"})
        assert settings.collection_root_dir == Path("/data")
        assert settings.s3_file_sync_enabled is True
        assert Settings.from_dict({}).s3_file_sync_enabled is False

    def test_failing_progress_sink_is_ignored(self):
        def sink(event):
            raise RuntimeError("closed window")

        emit(sink, ProgressEvent(EventKind.SYNC_STARTED))
        emit(None, ProgressEvent(EventKind.SYNC_STARTED))


class TestLauncher:

    @pytest.mark.parametrize("text, expected", [
        ("-fullscreen", Flag("-fullscreen")),
        ("-scale 2", FlagWithValue("-scale", "2")),
        ("--mode=fast", FlagEqualsValue("--mode", "fast")),
        ("  -x  ", Flag("-x")),
        ("--opt=a b", FlagEqualsValue("--opt", "a b")),
    ])
    def test_parse_argument(self, text, expected):
        assert parse_argument(text) == expected

    def test_parse_arguments_drops_blank_entries(self):
        assert parse_arguments(["-a", " ", ""]) == [Flag("-a")]

    def test_build_launch_command(self, tmp_path):
        command = build_launch_command(
            "x64sc",
            [Flag("-autostart-warp"), FlagWithValue("-model", "c64c"), FlagEqualsValue("--sound", "off")],
            ["disk1.d64", "disk2.d64"],
            "disk1.d64",
            tmp_path,
        )
        assert command.argv == [
            "x64sc", "-autostart-warp", "-model", "c64c", "--sound=off", str(tmp_path / "disk1.d64"),
        ]
        assert command.cwd == tmp_path

    def test_launch_requires_selected_member(self, tmp_path):
        with pytest.raises(LaunchError):
            build_launch_command("x64sc", [], ["disk1.d64"], None, tmp_path)
        with pytest.raises(LaunchError):
            build_launch_command("x64sc", [], ["disk1.d64"], "other.d64", tmp_path)


class TestPathAndTime:

    def test_partial_path_is_sibling(self, tmp_path):
        assert partial_path(tmp_path / "rom" / "abc.zst") == tmp_path / "rom" / "abc.zst.part"

    def test_resolve_within(self, tmp_path):
        assert resolve_within(tmp_path, "sub/a.d64") == (tmp_path / "sub" / "a.d64").resolve()
        assert resolve_within(tmp_path, "../evil.rom") is None
        assert resolve_within(tmp_path, "/etc/passwd") is None

    def test_utc_timestamp_layout(self):
        datetime.strptime(utc_timestamp(), SQLITE_TIMESTAMP_FORMAT)
