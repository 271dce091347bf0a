#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Build the argument vector for an emulator or document viewer.

Only the command is computed here; spawning the process is the caller's job.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Union

from ..errors import LaunchError


@dataclass(frozen=True)
class Flag:
    name: str

    def to_args(self) -> List[str]:
        return [self.name]


@dataclass(frozen=True)
class FlagWithValue:
    name: str
    value: str

    def to_args(self) -> List[str]:
        return [self.name, self.value]


@dataclass(frozen=True)
class FlagEqualsValue:
    name: str
    value: str

    def to_args(self) -> List[str]:
        return [f"{self.name}={self.value}"]


Argument = Union[Flag, FlagWithValue, FlagEqualsValue]


def parse_argument(text: str) -> Argument:
    """'-fullscreen' -> Flag, '-scale 2' -> FlagWithValue, '--mode=fast' -> FlagEqualsValue.

    '=' takes precedence over a space when both appear.
    """
    text = text.strip()
    if "=" in text:
        name, value = text.split("=", 1)
        return FlagEqualsValue(name.strip(), value.strip())
    if " " in text:
        name, value = text.split(" ", 1)
        return FlagWithValue(name, value.strip())
    return Flag(text)


def parse_arguments(texts: Sequence[str]) -> List[Argument]:
    return [parse_argument(t) for t in texts if t.strip()]


@dataclass
class LaunchCommand:
    argv: List[str]
    cwd: Path


def build_launch_command(
    executable: str,
    arguments: Sequence[Argument],
    file_names: Sequence[str],
    selected_file_name: Optional[str],
    source_path: Path,
) -> LaunchCommand:
    """[executable, *arguments, <source_path>/<selected file>] run from source_path."""
    if not selected_file_name:
        raise LaunchError("No file selected to launch")
    if selected_file_name not in file_names:
        raise LaunchError(f"File {selected_file_name} is not part of the file set")
    argv = [executable]
    for argument in arguments:
        argv.extend(argument.to_args())
    argv.append(str(Path(source_path) / selected_file_name))
    return LaunchCommand(argv=argv, cwd=Path(source_path))
